"""
Formatting utilities.
"""

from datetime import datetime


def format_currency(amount: float, currency: str = "MYR") -> str:
    """
    Format an amount as currency with two decimal places.

    Args:
        amount: The amount in major units (ringgit, not sen).
        currency: Currency code (default MYR).

    Returns:
        Formatted currency string, e.g. "RM 1,250.00".
    """
    symbols = {
        "MYR": "RM ",
        "GBP": "£",
        "USD": "$",
    }
    symbol = symbols.get(currency, currency + " ")
    return f"{symbol}{amount:,.2f}"


def format_date(value: datetime) -> str:
    """Long-form date used on agreements, e.g. "5 January 2026"."""
    return f"{value.day} {value:%B %Y}"
