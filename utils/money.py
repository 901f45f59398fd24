from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

CENT = Decimal('0.01')


def money(x) -> Decimal:
    """Always return a 2-decimal Decimal with HALF_UP rounding."""
    if x is None:
        x = 0
    if not isinstance(x, Decimal):
        try:
            x = Decimal(str(x))
        except InvalidOperation:
            raise ValueError(f'Not a valid amount: {x!r}')
    return x.quantize(CENT, rounding=ROUND_HALF_UP)


def to_float(x):
    """JSON-friendly float for a Decimal column value (None stays None)."""
    if x is None:
        return None
    return float(x)
