from decimal import Decimal, ROUND_HALF_UP

Q2 = Decimal("0.01")
ZERO = Decimal("0.00")


def d2(x: Decimal) -> Decimal:
    return x.quantize(Q2, rounding=ROUND_HALF_UP)


def to_dec(v) -> Decimal:
    if v is None:
        return ZERO
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def format_rupiah(v) -> str:
    """Render an amount the way Indonesian invoices do: ``Rp 1.234.567``."""
    amt = d2(to_dec(v))
    sign = "-" if amt < 0 else ""
    whole = int(abs(amt).to_integral_value(rounding=ROUND_HALF_UP))
    return f"{sign}Rp {whole:,}".replace(",", ".")
