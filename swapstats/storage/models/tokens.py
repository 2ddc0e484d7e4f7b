from sqlalchemy import Column, Integer, String, Text

from swapstats.storage.base import Base, DocumentMixin


class TokenRow(DocumentMixin, Base):
    __tablename__ = "tokens"

    address      = Column(String(42),  primary_key=True)
    name         = Column(String(256), nullable=False, default="")
    symbol       = Column(String(64),  nullable=False, default="")
    decimals     = Column(Integer,     nullable=False)
    # decimals are stored as their canonical string
    total_supply = Column(Text, nullable=False, default="0")
    price_usd    = Column(Text, nullable=False, default="0")

    def __repr__(self) -> str:
        return f"<Token {self.symbol} {self.address}>"
