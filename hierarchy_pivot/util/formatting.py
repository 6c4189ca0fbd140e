"""
Compact number formatting for pivot cell values.
"""


def format_value(value: float) -> str:
    """12345.6 -> '12.35k', 2500000 -> '2.50m', 0 -> '0.00'"""
    if value is None:
        return "0.00"
    value = float(value)
    if value == 0:
        return "0.00"
    if abs(value) >= 1_000_000:
        return f"{value / 1_000_000:.2f}m"
    if abs(value) >= 1_000:
        return f"{value / 1_000:.2f}k"
    return f"{value:.2f}"
