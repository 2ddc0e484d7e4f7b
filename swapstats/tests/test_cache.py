import threading
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from swapstats.storage.cache import (
    KEY_PREFIX_SIZE,
    PAIR_BUCKETS_EP,
    PAIR_EP,
    TOKEN_BUCKETS_EP,
    TOTALS_EP,
    CachedBackend,
    make_key,
)
from swapstats.utils.errors import NotFoundError
from swapstats.utils.types import TotalBucket

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
H = timedelta(hours=1)


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_key_layout():
    key = make_key(PAIR_BUCKETS_EP, T0, T0 + H, H, "0xabc")

    assert KEY_PREFIX_SIZE == 25
    assert key[0] == PAIR_BUCKETS_EP
    assert key[KEY_PREFIX_SIZE:] == b"0xabc"
    assert len(key) == 25 + 5


def test_keys_differ_across_endpoints_with_same_arguments():
    keys = {
        make_key(ep, T0, T0 + H, H, "0xabc")
        for ep in (PAIR_EP, TOTALS_EP, PAIR_BUCKETS_EP, TOKEN_BUCKETS_EP)
    }
    assert len(keys) == 4


def test_unbounded_times_encode_as_zero():
    key = make_key(TOTALS_EP, None, None, timedelta(0))
    assert key == bytes([TOTALS_EP]) + b"\x00" * 24


def test_times_round_to_the_interval():
    a = make_key(TOTALS_EP, T0 + timedelta(minutes=10), T0 + timedelta(minutes=20), H)
    b = make_key(TOTALS_EP, T0, T0, H)
    c = make_key(TOTALS_EP, T0 + timedelta(minutes=30), T0, H)  # halfway rounds up

    assert a == b
    assert c != b


def test_second_call_is_served_from_cache():
    backend = MagicMock()
    backend.get_totals.return_value = [TotalBucket(time=T0, volume_usd=Decimal(1))]
    cache = CachedBackend(backend, ttl=60)

    first = cache.get_totals(T0, T0 + H, H)
    second = cache.get_totals(T0, T0 + H, H)

    assert first == second
    backend.get_totals.assert_called_once_with(T0, T0 + H, H)


def test_entries_expire_after_ttl():
    clock = Clock()
    backend = MagicMock()
    backend.get_pairs.return_value = []
    cache = CachedBackend(backend, ttl=60, clock=clock)

    cache.get_pairs()
    clock.now += 59
    cache.get_pairs()
    assert backend.get_pairs.call_count == 1

    clock.now += 2
    cache.get_pairs()
    assert backend.get_pairs.call_count == 2


def test_errors_are_not_cached():
    backend = MagicMock()
    backend.get_pair.side_effect = [NotFoundError("nope"), MagicMock(address="0x1")]
    cache = CachedBackend(backend, ttl=60)

    with pytest.raises(NotFoundError):
        cache.get_pair("0x1")
    assert cache.get_pair("0x1").address == "0x1"
    assert backend.get_pair.call_count == 2


def test_oldest_entry_evicted_when_full():
    backend = MagicMock()
    backend.get_token.side_effect = lambda a: a
    cache = CachedBackend(backend, ttl=60, max_entries=2)

    cache.get_token("a")
    cache.get_token("b")
    cache.get_token("c")
    cache.get_token("b")
    assert backend.get_token.call_count == 3

    cache.get_token("a")
    assert backend.get_token.call_count == 4


def test_concurrent_misses_fill_once():
    calls = []
    gate = threading.Event()

    class SlowBackend:
        def get_totals(self, from_, to, interval):
            calls.append(1)
            gate.wait(1)
            time.sleep(0.05)
            return [TotalBucket(time=T0, volume_usd=Decimal(7))]

    cache = CachedBackend(SlowBackend(), ttl=60)
    results = []

    def worker():
        results.append(cache.get_totals(T0, T0 + H, H))

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    gate.set()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == 10
    assert all(r[0].volume_usd == Decimal(7) for r in results)


def test_hourly_rows_share_a_key_within_the_hour():
    a = make_key(TOTALS_EP, T0 + timedelta(minutes=1), T0 + timedelta(minutes=10), timedelta(0))
    b = make_key(TOTALS_EP, T0 + H, T0 + H, timedelta(0))
    c = make_key(TOTALS_EP, T0 + H, T0 + H + timedelta(seconds=1), timedelta(0))

    assert a == b
    assert c != b


def test_default_end_time_hits_within_the_hour():
    backend = MagicMock()
    backend.get_totals.return_value = []
    cache = CachedBackend(backend, ttl=60)

    cache.get_totals(None, T0 + timedelta(minutes=5), timedelta(0))
    cache.get_totals(None, T0 + timedelta(minutes=6), timedelta(0))

    backend.get_totals.assert_called_once_with(None, T0 + timedelta(minutes=5), timedelta(0))
