"""Korean won display helpers (만 / 억 / 조 units)."""

import math

MAN = 10_000
EOK = 100_000_000
JO = 1_000_000_000_000


def _group(value: float, max_fraction_digits: int = 0) -> str:
    """Thousands-grouped number with up to ``max_fraction_digits`` decimals."""
    text = f"{value:,.{max_fraction_digits}f}"
    if max_fraction_digits > 0:
        text = text.rstrip("0").rstrip(".")
    return text


def _plain(value: float) -> str:
    """Whole numbers without a decimal point, others at full precision."""
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_krw(value: float, fraction_digits: int = 0) -> str:
    """Format an amount with the largest fitting unit, e.g. "1억 5,000만"."""
    if value == 0:
        return "0"
    if value < 0:
        return "-" + format_krw(-value, fraction_digits)

    if value >= JO:
        return f"{_group(value / JO, 1)}조"

    if value >= EOK:
        euks = int(value // EOK)
        mans = _round_half_up((value % EOK) / MAN)
        result = f"{euks}억"
        if mans > 0:
            result += f" {_group(mans)}만"
        return result

    if value >= MAN:
        return f"{_group(value / MAN, fraction_digits)}만"

    return _group(value, 3)


def format_compact_krw(value: float) -> str:
    """Axis-style label: "1.5억", "5000만", or the plain number."""
    if value >= EOK:
        return f"{value / EOK:.1f}억"
    if value >= MAN:
        return f"{value / MAN:.0f}만"
    return _plain(value)


def format_eok_range(start: float, end: float) -> str:
    """Histogram bin label in 억 with one decimal, e.g. "1.2~1.5억"."""
    return f"{start / EOK:.1f}~{end / EOK:.1f}억"
