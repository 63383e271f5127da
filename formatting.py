CURRENCY_SYMBOLS = {
    "XAF": "FCFA",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "CNY": "¥",
    "INR": "₹",
}

ZERO_DECIMAL_CURRENCIES = ("JPY", "KRW", "IDR")


def format_currency(amount, currency_code="XAF"):
    """Render ``amount`` with the symbol and decimal convention of ``currency_code``.

    XAF is written as ``1,234 FCFA``; everything else puts the symbol first.
    """
    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = 0.0
    if value != value:  # NaN
        value = 0.0

    symbol = CURRENCY_SYMBOLS.get(currency_code, currency_code)

    if currency_code == "XAF":
        return f"{round(value):,} {symbol}"

    decimals = 0 if currency_code in ZERO_DECIMAL_CURRENCIES else 2
    return f"{symbol}{value:,.{decimals}f}"
