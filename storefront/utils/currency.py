from __future__ import annotations


def format_currency(value: float, symbol: str = "€") -> str:
    """Format an amount the way the storefront displays prices: ``1 234 €``."""
    rounded = int(round(value))
    sign = "-" if rounded < 0 else ""
    grouped = f"{abs(rounded):,}".replace(",", " ")
    return f"{sign}{grouped} {symbol}"


__all__ = ["format_currency"]
