"""Token unit formatting (raw integer amounts -> human readable strings)."""

from decimal import Context, Decimal

# uint256 has 78 digits; the default 28-digit context would round them
UINT256_CONTEXT = Context(prec=80)


def to_decimal(raw_amount: int | str, decimals: int) -> Decimal:
    """Scale a raw integer amount down by 10^decimals, exactly."""
    return Decimal(int(raw_amount)).scaleb(-decimals, UINT256_CONTEXT)


def format_units(raw_amount: int | str, decimals: int) -> str:
    """Format a raw amount as a plain decimal string without trailing zeros.

    format_units(600 * 10**18, 18) == "600"
    format_units(1_500_000, 6) == "1.5"
    """
    value = to_decimal(raw_amount, decimals)
    if value == 0:
        return "0"
    return format(value.normalize(UINT256_CONTEXT), "f")


def format_fixed(raw_amount: int | str, decimals: int, places: int) -> str:
    """Format a raw amount rounded to a fixed number of decimal places."""
    value = to_decimal(raw_amount, decimals)
    return f"{value:.{places}f}"
