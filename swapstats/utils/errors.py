class NotFoundError(LookupError):
    """Entity lookup by address found nothing."""


class PriceNotFound(LookupError):
    """No direct reference-stablecoin pair exists for a token."""

    def __init__(self, symbol: str = ""):
        self.symbol = symbol
        super().__init__(f"price not found for {symbol}" if symbol else "price not found")


class StoredValueError(ValueError):
    """A persisted row could not be decoded (malformed decimal text etc.)."""
