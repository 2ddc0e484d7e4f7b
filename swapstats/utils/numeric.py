from decimal import Decimal, DefaultContext, getcontext

# uint256 amounts have up to 78 digits
getcontext().prec = 80
# threads started later copy DefaultContext
DefaultContext.prec = 80


def int_to_dec(amount: int, decimals: int) -> Decimal:
    """Scale a raw on-chain integer amount down by the token's decimals."""
    return Decimal(amount) / (Decimal(10) ** decimals)


def dec_to_int(value: Decimal, decimals: int) -> int:
    """Scale a decimal amount up to the raw on-chain integer (rounded half-even)."""
    scaled = value * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value())


def parse_decimal(text) -> Decimal:
    """Inverse of ``str(Decimal)`` for persisted values; empty means zero."""
    if text is None or text == "":
        return Decimal(0)
    return Decimal(text)
