import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from decimal import InvalidOperation
from typing import Iterable, Iterator, List, Mapping, Optional, Type, TypeVar

from swapstats.utils.errors import StoredValueError
from swapstats.utils.types import (
    Checkpoint,
    Pair,
    PairBucket,
    Token,
    TokenBucket,
    TotalBucket,
)

log = logging.getLogger(__name__)

R = TypeVar("R")


class StatsBackend(ABC):
    """Read side: what the API layer (through the cache) queries.

    Time ranges are ``[from_, to)``; either bound may be None for open.
    ``interval`` is the rollup window (zero = stored hourly rows).
    An empty address on the bucket queries means every pair/token.
    """

    @abstractmethod
    def get_pairs(self) -> List[Pair]:
        ...

    @abstractmethod
    def get_pair(self, address: str) -> Pair:
        """Raises NotFoundError for an unknown address."""

    @abstractmethod
    def get_tokens(self) -> List[Token]:
        ...

    @abstractmethod
    def get_token(self, address: str) -> Token:
        """Raises NotFoundError for an unknown address."""

    @abstractmethod
    def get_totals(self, from_: Optional[datetime], to: Optional[datetime],
                   interval: timedelta) -> List[TotalBucket]:
        ...

    @abstractmethod
    def get_pair_buckets(self, address: str, from_: Optional[datetime], to: Optional[datetime],
                         interval: timedelta) -> List[PairBucket]:
        ...

    @abstractmethod
    def get_token_buckets(self, address: str, from_: Optional[datetime], to: Optional[datetime],
                          interval: timedelta) -> List[TokenBucket]:
        ...


class CollectorStore(ABC):
    """Write side used by the collector. Every write is an upsert by key."""

    @abstractmethod
    def get_pairs(self) -> List[Pair]:
        """Every stored pair, by discovery index."""

    @abstractmethod
    def get_checkpoint(self) -> Optional[Checkpoint]:
        ...

    @abstractmethod
    def save_checkpoint(self, checkpoint: Checkpoint) -> None:
        ...

    @abstractmethod
    def save_tokens(self, tokens: Iterable[Token]) -> None:
        ...

    @abstractmethod
    def save_pairs(self, pairs: Iterable[Pair]) -> None:
        """Persist pairs together with both of their tokens."""

    @abstractmethod
    def save_pair_buckets(self, buckets: Iterable[PairBucket]) -> None:
        ...

    @abstractmethod
    def save_token_buckets(self, buckets: Iterable[TokenBucket]) -> None:
        ...

    @abstractmethod
    def save_total_buckets(self, buckets: Iterable[TotalBucket]) -> None:
        ...


def decode_documents(docs: Iterable[Mapping], cls: Type[R]) -> Iterator[R]:
    """Load stored documents into records, skipping rows that do not decode."""
    for doc in docs:
        try:
            yield cls.from_document(doc)
        except (InvalidOperation, KeyError, ValueError, TypeError) as e:
            err = StoredValueError(f"{cls.__name__} {doc.get('id') or doc.get('address')}: {e}")
            log.error("skipping stored row: %s", err)
