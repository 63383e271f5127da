from datetime import date, datetime
from types import SimpleNamespace

from performance import BudgetPerformance, calculate_budget_performance, spent_by_category


def _budget(start=date(2024, 1, 1), end=date(2024, 1, 31)):
    return SimpleNamespace(id=1, user_id=1, start_date=start, end_date=end)


def _allocation(category_id, amount):
    return SimpleNamespace(category_id=category_id, amount=amount)


def _expense(category_id, amount, when):
    return SimpleNamespace(category_id=category_id, amount=amount, date=when)


def test_in_range_spend_only():
    allocations = [_allocation(1, 100)]
    expenses = [
        _expense(1, 40, datetime(2024, 1, 15, 9, 30)),
        _expense(1, 10, datetime(2024, 2, 1, 0, 0)),
    ]

    result = calculate_budget_performance(_budget(), allocations, expenses)

    assert result.allocated == 100
    assert result.spent == 40
    assert result.remaining == 60
    assert len(result.categories) == 1
    assert result.categories[0].category_id == 1
    assert result.categories[0].allocated == 100
    assert result.categories[0].spent == 40
    assert result.categories[0].remaining == 60


def test_over_budget_goes_negative():
    result = calculate_budget_performance(
        _budget(), [_allocation(1, 50)], [_expense(1, 70, datetime(2024, 1, 10))]
    )

    assert result.remaining == -20
    assert result.categories[0].remaining == -20


def test_allocation_without_expenses_reports_zero_spent():
    result = calculate_budget_performance(
        _budget(), [_allocation(2, 30)], [_expense(1, 15, datetime(2024, 1, 5))]
    )

    category = result.categories[0]
    assert category.category_id == 2
    assert category.allocated == 30
    assert category.spent == 0
    assert category.remaining == 30


def test_no_allocations():
    expenses = [_expense(1, 25, datetime(2024, 1, 3)), _expense(3, 5, datetime(2024, 1, 4))]

    result = calculate_budget_performance(_budget(), [], expenses)

    assert result.allocated == 0
    assert result.spent == 0
    assert result.remaining == 0
    assert result.categories == []


def test_interval_is_inclusive_on_both_ends():
    expenses = [
        _expense(1, 1, datetime(2023, 12, 31, 23, 59)),
        _expense(1, 2, datetime(2024, 1, 1, 0, 0)),
        _expense(1, 4, datetime(2024, 1, 31, 18, 45)),
        _expense(1, 8, datetime(2024, 2, 1, 0, 0)),
    ]

    result = calculate_budget_performance(_budget(), [_allocation(1, 100)], expenses)

    assert result.spent == 6


def test_plain_dates_are_accepted():
    result = calculate_budget_performance(
        _budget(), [_allocation(1, 10)], [_expense(1, 3, date(2024, 1, 31))]
    )

    assert result.spent == 3


def test_unallocated_category_spend_is_not_counted():
    expenses = [
        _expense(1, 20, datetime(2024, 1, 2)),
        _expense(9, 500, datetime(2024, 1, 2)),
    ]

    result = calculate_budget_performance(_budget(), [_allocation(1, 50)], expenses)

    assert [c.category_id for c in result.categories] == [1]
    assert result.spent == 20


def test_repeated_category_allocations_each_report_full_spend():
    allocations = [_allocation(1, 50), _allocation(1, 30)]
    expenses = [_expense(1, 20, datetime(2024, 1, 12))]

    result = calculate_budget_performance(_budget(), allocations, expenses)

    assert [c.spent for c in result.categories] == [20, 20]
    assert [c.remaining for c in result.categories] == [30, 10]
    assert result.allocated == 80
    assert result.spent == 40
    assert result.remaining == 40


def test_aggregate_identity():
    allocations = [_allocation(1, 100), _allocation(2, 40), _allocation(3, 0)]
    expenses = [
        _expense(1, 30, datetime(2024, 1, 2)),
        _expense(2, 55, datetime(2024, 1, 20)),
        _expense(3, 5, datetime(2024, 1, 21)),
    ]

    result = calculate_budget_performance(_budget(), allocations, expenses)

    for category in result.categories:
        assert category.remaining == category.allocated - category.spent
    assert result.remaining == result.allocated - result.spent
    assert result.allocated == 140
    assert result.spent == 90


def test_missing_amounts_and_dates_count_as_nothing():
    expenses = [
        _expense(1, None, datetime(2024, 1, 2)),
        _expense(1, 5, None),
    ]

    result = calculate_budget_performance(_budget(), [_allocation(1, None)], expenses)

    assert result.allocated == 0
    assert result.spent == 0


def test_same_inputs_same_output():
    budget = _budget()
    allocations = [_allocation(1, 100), _allocation(2, 20)]
    expenses = [_expense(1, 40, datetime(2024, 1, 15)), _expense(2, 25, datetime(2024, 1, 16))]

    first = calculate_budget_performance(budget, allocations, expenses)
    second = calculate_budget_performance(budget, allocations, expenses)

    assert first == second
    assert isinstance(first, BudgetPerformance)
    assert len(expenses) == 2


def test_spent_by_category_groups_in_range():
    expenses = [
        _expense(1, 10, datetime(2024, 1, 1)),
        _expense(1, 15, datetime(2024, 1, 2)),
        _expense(2, 7, datetime(2024, 1, 3)),
        _expense(2, 99, datetime(2024, 3, 3)),
    ]

    totals = spent_by_category(expenses, date(2024, 1, 1), date(2024, 1, 31))

    assert dict(totals) == {1: 25, 2: 7}
