from formatting import format_currency


def test_xaf_has_no_decimals_and_trailing_symbol():
    assert format_currency(1234.6, "XAF") == "1,235 FCFA"


def test_default_currency_is_xaf():
    assert format_currency(500) == "500 FCFA"


def test_two_decimals_with_leading_symbol():
    assert format_currency(1234.5, "USD") == "$1,234.50"
    assert format_currency(3, "EUR") == "€3.00"


def test_zero_decimal_currencies():
    assert format_currency(1500.4, "JPY") == "¥1,500"
    assert format_currency(99.9, "KRW") == "KRW100"


def test_unknown_code_is_used_as_symbol():
    assert format_currency(2, "CHF") == "CHF2.00"


def test_invalid_amount_is_zero():
    assert format_currency(None, "USD") == "$0.00"
    assert format_currency("abc", "USD") == "$0.00"
    assert format_currency(float("nan"), "GBP") == "£0.00"
