"""
Typed records shared by the collector, the storage backends and the API.

Every persisted record converts to and from a flat "document": decimals
become their canonical string, times become unix seconds. The same
document shape is written to SQL rows and to the in-memory backend.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Dict, Mapping, NamedTuple, Optional, Tuple

from swapstats.utils.numeric import parse_decimal
from swapstats.utils.time_utils import from_unix, to_unix

ZERO = Decimal(0)


def bucket_key(address: str, time: datetime) -> str:
    """Deterministic document key: ``{address}_{unixHour}`` or ``{unixHour}`` for totals."""
    if address:
        return f"{address}_{to_unix(time)}"
    return f"{to_unix(time)}"


@dataclass
class Token:
    address: str
    name: str = ""
    symbol: str = ""
    decimals: int = 18
    total_supply: Decimal = ZERO
    price_usd: Decimal = ZERO

    def __str__(self) -> str:
        return self.symbol

    def to_document(self) -> Dict:
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": str(self.total_supply),
            "price_usd": str(self.price_usd),
        }

    @classmethod
    def from_document(cls, doc: Mapping) -> "Token":
        return cls(
            address=doc["address"],
            name=doc.get("name") or "",
            symbol=doc.get("symbol") or "",
            decimals=int(doc.get("decimals") or 0),
            total_supply=parse_decimal(doc.get("total_supply")),
            price_usd=parse_decimal(doc.get("price_usd")),
        )


@dataclass
class Pair:
    address: str
    index: int
    token0: Token
    token1: Token
    label: str = ""

    def __post_init__(self):
        if not self.label:
            self.label = f"{self.token0.symbol}-{self.token1.symbol}"

    def __str__(self) -> str:
        return self.label

    def to_document(self) -> Dict:
        return {
            "address": self.address,
            "index": self.index,
            "pair": self.label,
            "token0_address": self.token0.address,
            "token1_address": self.token1.address,
        }

    @classmethod
    def from_document(cls, doc: Mapping, tokens: Mapping[str, Token]) -> "Pair":
        # KeyError here means the pair row references a token we never stored
        return cls(
            address=doc["address"],
            index=int(doc["index"]),
            token0=tokens[doc["token0_address"]],
            token1=tokens[doc["token1_address"]],
            label=doc.get("pair") or "",
        )


@dataclass
class PairLiquidity:
    """Current reserves of a pair, priced in USD. Recomputed every run, never stored."""
    address: str
    label: str
    reserve0: Decimal = ZERO
    reserve1: Decimal = ZERO
    total_supply: Decimal = ZERO
    price0_usd: Decimal = ZERO
    price1_usd: Decimal = ZERO

    @property
    def liquidity_usd(self) -> Decimal:
        return self.reserve0 * self.price0_usd + self.reserve1 * self.price1_usd


@dataclass
class PairBucket:
    address: str
    pair: str
    time: datetime
    amount0_in: Decimal = ZERO
    amount1_in: Decimal = ZERO
    amount0_out: Decimal = ZERO
    amount1_out: Decimal = ZERO
    volume_usd: Decimal = ZERO
    price0_usd: Decimal = ZERO
    price1_usd: Decimal = ZERO
    total_supply: Decimal = ZERO
    reserve0: Decimal = ZERO
    reserve1: Decimal = ZERO
    liquidity_usd: Decimal = ZERO  # derived, never stored

    ADDITIVE_FIELDS: ClassVar[Tuple[str, ...]] = (
        "amount0_in", "amount1_in", "amount0_out", "amount1_out", "volume_usd",
    )

    @property
    def key(self) -> str:
        return bucket_key(self.address, self.time)

    def recompute_liquidity(self) -> None:
        self.liquidity_usd = self.reserve0 * self.price0_usd + self.reserve1 * self.price1_usd

    def to_document(self) -> Dict:
        return {
            "id": self.key,
            "address": self.address,
            "pair": self.pair,
            "time": to_unix(self.time),
            "amount0_in": str(self.amount0_in),
            "amount1_in": str(self.amount1_in),
            "amount0_out": str(self.amount0_out),
            "amount1_out": str(self.amount1_out),
            "volume_usd": str(self.volume_usd),
            "price0_usd": str(self.price0_usd),
            "price1_usd": str(self.price1_usd),
            "total_supply": str(self.total_supply),
            "reserve0": str(self.reserve0),
            "reserve1": str(self.reserve1),
        }

    @classmethod
    def from_document(cls, doc: Mapping) -> "PairBucket":
        b = cls(
            address=doc["address"],
            pair=doc.get("pair") or "",
            time=from_unix(doc["time"]),
            amount0_in=parse_decimal(doc.get("amount0_in")),
            amount1_in=parse_decimal(doc.get("amount1_in")),
            amount0_out=parse_decimal(doc.get("amount0_out")),
            amount1_out=parse_decimal(doc.get("amount1_out")),
            volume_usd=parse_decimal(doc.get("volume_usd")),
            price0_usd=parse_decimal(doc.get("price0_usd")),
            price1_usd=parse_decimal(doc.get("price1_usd")),
            total_supply=parse_decimal(doc.get("total_supply")),
            reserve0=parse_decimal(doc.get("reserve0")),
            reserve1=parse_decimal(doc.get("reserve1")),
        )
        b.recompute_liquidity()
        return b


@dataclass
class TokenBucket:
    address: str
    symbol: str
    time: datetime
    amount_in: Decimal = ZERO
    amount_out: Decimal = ZERO
    volume_usd: Decimal = ZERO
    price_usd: Decimal = ZERO
    reserve: Decimal = ZERO
    liquidity_usd: Decimal = ZERO  # derived, never stored

    ADDITIVE_FIELDS: ClassVar[Tuple[str, ...]] = ("amount_in", "amount_out", "volume_usd")

    @property
    def key(self) -> str:
        return bucket_key(self.address, self.time)

    def recompute_liquidity(self) -> None:
        self.liquidity_usd = self.reserve * self.price_usd

    def to_document(self) -> Dict:
        return {
            "id": self.key,
            "address": self.address,
            "symbol": self.symbol,
            "time": to_unix(self.time),
            "amount_in": str(self.amount_in),
            "amount_out": str(self.amount_out),
            "volume_usd": str(self.volume_usd),
            "price_usd": str(self.price_usd),
            "reserve": str(self.reserve),
        }

    @classmethod
    def from_document(cls, doc: Mapping) -> "TokenBucket":
        b = cls(
            address=doc["address"],
            symbol=doc.get("symbol") or "",
            time=from_unix(doc["time"]),
            amount_in=parse_decimal(doc.get("amount_in")),
            amount_out=parse_decimal(doc.get("amount_out")),
            volume_usd=parse_decimal(doc.get("volume_usd")),
            price_usd=parse_decimal(doc.get("price_usd")),
            reserve=parse_decimal(doc.get("reserve")),
        )
        b.recompute_liquidity()
        return b


@dataclass
class TotalBucket:
    time: datetime
    volume_usd: Decimal = ZERO
    liquidity_usd: Decimal = ZERO  # snapshot at collection time, stored

    ADDITIVE_FIELDS: ClassVar[Tuple[str, ...]] = ("volume_usd",)

    # totals have no grouping key
    address: ClassVar[str] = ""

    @property
    def key(self) -> str:
        return bucket_key("", self.time)

    def recompute_liquidity(self) -> None:
        pass

    def to_document(self) -> Dict:
        return {
            "id": self.key,
            "time": to_unix(self.time),
            "volume_usd": str(self.volume_usd),
            "liquidity_usd": str(self.liquidity_usd),
        }

    @classmethod
    def from_document(cls, doc: Mapping) -> "TotalBucket":
        return cls(
            time=from_unix(doc["time"]),
            volume_usd=parse_decimal(doc.get("volume_usd")),
            liquidity_usd=parse_decimal(doc.get("liquidity_usd")),
        )


@dataclass
class Checkpoint:
    last_check_at: datetime
    last_block_number: int

    def to_document(self) -> Dict:
        return {
            "id": "last_check",
            "last_check_at": to_unix(self.last_check_at),
            "last_block_number": self.last_block_number,
        }

    @classmethod
    def from_document(cls, doc: Mapping) -> "Checkpoint":
        return cls(
            last_check_at=from_unix(doc["last_check_at"]),
            last_block_number=int(doc["last_block_number"]),
        )


class SwapEvent(NamedTuple):
    block_number: int
    tx_hash: str
    log_index: int
    sender: str
    to: str
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    timestamp: Optional[datetime] = None
    tx_from: Optional[str] = None


class MintEvent(NamedTuple):
    block_number: int
    tx_hash: str
    log_index: int
    sender: str
    amount0: int
    amount1: int
    tx_from: Optional[str] = None


@dataclass
class CollectionResult:
    """Outcome of one collector pass."""
    stop_at: datetime
    start_block: int = 0
    end_block: int = 0
    skipped: bool = False
    pairs: int = 0
    new_pairs: int = 0
    events: int = 0
    pair_buckets: int = 0
    token_buckets: int = 0
    total_buckets: int = 0
    liquidity_usd: Decimal = ZERO
    last_block_number: int = 0
