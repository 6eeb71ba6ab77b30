"""Amount conversions between human units and integer base units."""

from decimal import Decimal, InvalidOperation, ROUND_DOWN

ETHER_DECIMALS = 18


def to_base_units(amount: str | int | float | Decimal, decimals: int = ETHER_DECIMALS) -> int:
    """'1.5' with 18 decimals -> 1500000000000000000. Extra precision is truncated."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {amount!r}")
    if value < 0:
        raise ValueError(f"Amount must not be negative: {amount!r}")
    scaled = (value * (Decimal(10) ** decimals)).quantize(Decimal(1), rounding=ROUND_DOWN)
    return int(scaled)


def from_base_units(raw: int, decimals: int = ETHER_DECIMALS) -> Decimal:
    return Decimal(int(raw)) / (Decimal(10) ** decimals)


def format_units(raw: int, decimals: int = ETHER_DECIMALS) -> str:
    """Human string without trailing zeros, e.g. 1000000000000000 -> '0.001'."""
    value = from_base_units(raw, decimals)
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"


def parse_wei(value: str | int | None, default: int = 0) -> int:
    """Accept an integer wei amount as int or decimal string."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        number = Decimal(text)
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a wei amount: {value!r}") from e
    # Wei has no fractions; "1.9" must not quietly become 1.
    if not number.is_finite() or number != number.to_integral_value():
        raise ValueError(f"Not a whole wei amount: {value!r}")
    return int(number)


def apply_bps_floor(amount: int, bps_kept: int) -> int:
    """Keep ``bps_kept`` basis points of ``amount`` (9900 keeps 99%)."""
    return amount * bps_kept // 10_000
