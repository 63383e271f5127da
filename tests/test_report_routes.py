import csv
from datetime import date, datetime, time
from io import StringIO

from conftest import category_id


def _add(client, headers, amount, when, category="Food", description="Item"):
    response = client.post(
        "/api/expenses",
        headers=headers,
        json={
            "amount": amount,
            "description": description,
            "date": when.isoformat(),
            "category_id": category_id(client, headers, category),
        },
    )
    assert response.status_code == 201


def test_summary_for_current_month(client, alice):
    today = datetime.combine(date.today(), time(12))
    _add(client, alice, 30, today, "Food")
    _add(client, alice, 50, today, "Transportation")

    summary = client.get("/api/reports/summary", headers=alice).json()

    assert summary["total_expenses"] == 80
    assert summary["total_income"] == 0
    assert summary["highest_category"] == "Transportation"
    assert summary["recent_entries_count"] == 2


def test_monthly_totals_route(client, alice):
    _add(client, alice, 12, datetime.combine(date.today(), time(12)))

    rows = client.get("/api/reports/monthly", headers=alice, params={"months": 3}).json()

    assert len(rows) == 3
    assert rows[-1]["month"] == date.today().strftime("%Y-%m")
    assert rows[-1]["total"] == 12


def test_category_totals_route(client, alice):
    _add(client, alice, 10, datetime(2024, 1, 5, 9), "Food")
    _add(client, alice, 25, datetime(2024, 1, 6, 9), "Health")
    _add(client, alice, 99, datetime(2024, 3, 6, 9), "Health")

    rows = client.get(
        "/api/reports/categories",
        headers=alice,
        params={"start_date": "2024-01-01", "end_date": "2024-01-31"},
    ).json()

    assert [(r["category"], r["total"]) for r in rows] == [("Health", 25), ("Food", 10)]


def test_category_trends_route(client, alice, bob):
    _add(client, alice, 10, datetime(2024, 1, 5, 9), "Food")
    _add(client, alice, 5, datetime(2024, 1, 25, 9), "Food")
    _add(client, alice, 7, datetime(2024, 2, 2, 9), "Food")
    _add(client, bob, 100, datetime(2024, 1, 5, 9), "Food")

    rows = client.get(
        "/api/analytics/category-trends", headers=alice, params={"end_date": "2024-01-31"}
    ).json()

    assert rows == [
        {
            "category_id": category_id(client, alice, "Food"),
            "category": "Food",
            "month": "2024-01",
            "total": 15,
        }
    ]


def test_category_trends_keep_same_named_categories_apart(client, alice):
    system_food = category_id(client, alice, "Food")
    own_food = client.post(
        "/api/expense-categories", headers=alice, json={"name": "Food"}
    ).json()["id"]
    for cat, amount in [(system_food, 10), (own_food, 4)]:
        client.post(
            "/api/expenses",
            headers=alice,
            json={
                "amount": amount,
                "description": "Item",
                "date": "2024-01-05T09:00:00",
                "category_id": cat,
            },
        )

    rows = client.get("/api/analytics/category-trends", headers=alice).json()

    assert sorted((r["category_id"], r["total"]) for r in rows) == sorted(
        [(system_food, 10), (own_food, 4)]
    )
    assert {r["category"] for r in rows} == {"Food"}


def test_export_expenses_uses_user_currency(client, alice):
    client.patch("/api/user/settings", headers=alice, json={"currency": "XAF"})
    _add(client, alice, 1500, datetime(2024, 1, 5, 9), "Food", "Market")

    response = client.get("/api/export/expenses", headers=alice)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment; filename=expenses-" in response.headers["content-disposition"]
    rows = list(csv.reader(StringIO(response.text)))
    assert rows[1] == ["Jan 05, 2024", "Market", "Food", "", "1,500 FCFA", ""]


def test_export_incomes_and_budgets(client, alice):
    client.post(
        "/api/incomes",
        headers=alice,
        json={
            "amount": 100,
            "description": "Gift",
            "date": "2024-01-02T10:00:00",
            "category": "Other",
        },
    )
    client.post(
        "/api/budgets",
        headers=alice,
        json={"name": "Jan", "period": "monthly", "start_date": "2024-01-01", "amount": 300},
    )

    incomes = list(csv.reader(StringIO(client.get("/api/export/incomes", headers=alice).text)))
    budgets = list(csv.reader(StringIO(client.get("/api/export/budgets", headers=alice).text)))

    assert incomes[1] == ["Jan 02, 2024", "Gift", "Other", "$100.00", "", ""]
    assert budgets[1] == ["Jan", "monthly", "Jan 01, 2024", "Feb 01, 2024", "$300.00", ""]


def test_export_report(client, alice):
    _add(client, alice, 8, datetime(2024, 1, 5, 9), "Food")

    response = client.get("/api/export-report", headers=alice)

    assert response.status_code == 200
    assert "alice_financial_report.csv" in response.headers["content-disposition"]
    assert "Total Spending" in response.text
