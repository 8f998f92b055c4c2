"""Human-readable labels for findings and mismatch messages"""


def format_amount(cents: float) -> str:
    """Minor units to a grouped major-unit string, e.g. 123456 -> '1,234.56'"""
    return f"{cents / 100:,.2f}"


def format_percent(fraction: float) -> str:
    return f"{fraction * 100:.1f}%"
