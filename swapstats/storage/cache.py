"""
Read-through cache in front of a StatsBackend.

Keys are a fixed 25-byte prefix plus the entity address:

    endpoint id  (1 byte)
    from         (8 bytes, unix seconds rounded to the interval, 0 = open)
    to           (8 bytes, same)
    interval     (8 bytes, seconds)

so keys of different endpoints never collide, and queries whose bounds round
to the same interval multiple share one entry. With interval 0 the bounds are
lifted to the next hour mark, where stored rows sit. A miss takes the write
side of the lock, looks again and only then calls the backend: N concurrent
misses on one key cost one backend call. Failed fills are not stored.
"""
import logging
import struct
import time
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple, TypeVar

from swapstats.config.settings import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS
from swapstats.storage.backend import StatsBackend
from swapstats.utils.constants import BUCKET_INTERVAL
from swapstats.utils.rwlock import RWLock
from swapstats.utils.time_utils import ceil_unix, optional_unix, round_unix
from swapstats.utils.types import Pair, PairBucket, Token, TokenBucket, TotalBucket

log = logging.getLogger(__name__)

T = TypeVar("T")

PAIR_EP = 1
PAIRS_EP = 2
TOKEN_EP = 3
TOKENS_EP = 4
TOTALS_EP = 5
TOKEN_BUCKETS_EP = 6
PAIR_BUCKETS_EP = 7

_PREFIX = struct.Struct("<Bqqq")
KEY_PREFIX_SIZE = _PREFIX.size  # 25


def make_key(endpoint: int, from_: Optional[datetime], to: Optional[datetime],
             interval: timedelta, suffix: str = "") -> bytes:
    step = int(interval.total_seconds())
    lo, hi = optional_unix(from_), optional_unix(to)
    if step:
        lo = 0 if lo is None else round_unix(lo, step)
        hi = 0 if hi is None else round_unix(hi, step)
    else:
        # rows sit on hour marks: bounds within one hour select the same rows
        hour = int(BUCKET_INTERVAL.total_seconds())
        lo = 0 if lo is None else ceil_unix(lo, hour)
        hi = 0 if hi is None else ceil_unix(hi, hour)
    return _PREFIX.pack(endpoint, lo, hi, step) + suffix.encode("utf-8")


class CachedBackend(StatsBackend):
    """StatsBackend decorator. Entries live ``ttl`` seconds; at most ``max_entries``
    are held, oldest evicted first."""

    def __init__(self, backend: StatsBackend, ttl: float = CACHE_TTL_SECONDS,
                 max_entries: int = CACHE_MAX_ENTRIES, clock: Callable[[], float] = time.monotonic):
        self.backend = backend
        self.ttl = ttl
        self.max_entries = max_entries
        self.clock = clock
        self._lock = RWLock()
        self._store: "OrderedDict[bytes, Tuple[float, object]]" = OrderedDict()

    def _lookup(self, key: bytes) -> Tuple[bool, object]:
        rec = self._store.get(key)
        if rec is None:
            return False, None
        expires, value = rec
        if expires <= self.clock():
            return False, None
        return True, value

    def _check(self, key: bytes, fill: Callable[[], T]) -> T:
        with self._lock.read():
            hit, value = self._lookup(key)
        if hit:
            return value  # type: ignore[return-value]

        with self._lock.write():
            hit, value = self._lookup(key)
            if hit:
                return value  # type: ignore[return-value]
            log.debug("cache fill endpoint=%d suffix=%s", key[0], key[KEY_PREFIX_SIZE:].decode())
            result = fill()
            self._store.pop(key, None)
            while len(self._store) >= max(self.max_entries, 1):
                self._store.popitem(last=False)
            self._store[key] = (self.clock() + self.ttl, result)
            return result

    def clear(self) -> None:
        with self._lock.write():
            self._store.clear()

    def get_pairs(self) -> List[Pair]:
        key = make_key(PAIRS_EP, None, None, timedelta(0))
        return self._check(key, self.backend.get_pairs)

    def get_pair(self, address: str) -> Pair:
        key = make_key(PAIR_EP, None, None, timedelta(0), address)
        return self._check(key, lambda: self.backend.get_pair(address))

    def get_tokens(self) -> List[Token]:
        key = make_key(TOKENS_EP, None, None, timedelta(0))
        return self._check(key, self.backend.get_tokens)

    def get_token(self, address: str) -> Token:
        key = make_key(TOKEN_EP, None, None, timedelta(0), address)
        return self._check(key, lambda: self.backend.get_token(address))

    def get_totals(self, from_, to, interval: timedelta) -> List[TotalBucket]:
        key = make_key(TOTALS_EP, from_, to, interval)
        return self._check(key, lambda: self.backend.get_totals(from_, to, interval))

    def get_pair_buckets(self, address, from_, to, interval: timedelta) -> List[PairBucket]:
        key = make_key(PAIR_BUCKETS_EP, from_, to, interval, address)
        return self._check(key, lambda: self.backend.get_pair_buckets(address, from_, to, interval))

    def get_token_buckets(self, address, from_, to, interval: timedelta) -> List[TokenBucket]:
        key = make_key(TOKEN_BUCKETS_EP, from_, to, interval, address)
        return self._check(key, lambda: self.backend.get_token_buckets(address, from_, to, interval))
