"""
formatting.py
-------------

Display helpers shared by the templates, the JSON API and the assistant:
money with a currency symbol, the profit factor (which may be infinite)
and percentages.
"""
from __future__ import annotations

import math

DEFAULT_CURRENCY = "USD"

# en-US display conventions; codes missing here are shown as "CODE 1,234.50"
_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "IDR": "Rp",
}


def currency_symbol(code: str) -> str:
    code = (code or DEFAULT_CURRENCY).upper()
    return _SYMBOLS.get(code, f"{code} ")


def format_currency(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Format ``amount`` with two decimals, thousands separators and the
    currency symbol, e.g. -1234.5 -> '-$1,234.50'.
    Amounts that round to zero are printed without a sign.
    """
    value = round(float(amount or 0.0), 2)
    if value == 0:
        value = 0.0  # drops the sign of -0.0
    sign = "-" if value < 0 else ""
    return f"{sign}{currency_symbol(currency)}{abs(value):,.2f}"


def format_profit_factor(value: float) -> str:
    if math.isinf(value):
        return "∞"
    return f"{value:.2f}"


def format_percent(value: float, digits: int = 1) -> str:
    return f"{value:.{digits}f}%"
