from sqlalchemy import BigInteger, Column, Index, String, Text

from swapstats.storage.base import Base, DocumentMixin

# Hourly rows keyed "{address}_{unixHour}" (totals: "{unixHour}") so a
# re-run overwrites instead of appending. Decimal fields are stored as the
# canonical string of the value; liquidity_usd is derived on load.


class PairBucketRow(DocumentMixin, Base):
    __tablename__ = "pair_buckets"

    id           = Column(String(64), primary_key=True)
    address      = Column(String(42), nullable=False)
    pair         = Column(String(128), nullable=False, default="")
    time         = Column(BigInteger, nullable=False)          # epoch seconds, hour aligned
    amount0_in   = Column(Text, nullable=False, default="0")
    amount1_in   = Column(Text, nullable=False, default="0")
    amount0_out  = Column(Text, nullable=False, default="0")
    amount1_out  = Column(Text, nullable=False, default="0")
    volume_usd   = Column(Text, nullable=False, default="0")
    price0_usd   = Column(Text, nullable=False, default="0")
    price1_usd   = Column(Text, nullable=False, default="0")
    total_supply = Column(Text, nullable=False, default="0")
    reserve0     = Column(Text, nullable=False, default="0")
    reserve1     = Column(Text, nullable=False, default="0")

    __table_args__ = (
        Index("ix_pair_buckets_address_time", "address", "time"),
        Index("ix_pair_buckets_time", "time"),
    )


class TokenBucketRow(DocumentMixin, Base):
    __tablename__ = "token_buckets"

    id         = Column(String(64), primary_key=True)
    address    = Column(String(42), nullable=False)
    symbol     = Column(String(64), nullable=False, default="")
    time       = Column(BigInteger, nullable=False)
    amount_in  = Column(Text, nullable=False, default="0")
    amount_out = Column(Text, nullable=False, default="0")
    volume_usd = Column(Text, nullable=False, default="0")
    price_usd  = Column(Text, nullable=False, default="0")
    reserve    = Column(Text, nullable=False, default="0")

    __table_args__ = (
        Index("ix_token_buckets_address_time", "address", "time"),
        Index("ix_token_buckets_time", "time"),
    )


class TotalBucketRow(DocumentMixin, Base):
    __tablename__ = "total_buckets"

    id            = Column(String(32), primary_key=True)
    time          = Column(BigInteger, nullable=False, index=True)
    volume_usd    = Column(Text, nullable=False, default="0")
    liquidity_usd = Column(Text, nullable=False, default="0")
