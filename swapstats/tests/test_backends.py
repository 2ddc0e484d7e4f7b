import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from swapstats.storage.db import init_db, make_session_factory
from swapstats.storage.memory_backend import MemoryBackend
from swapstats.storage.sql_backend import SqlBackend
from swapstats.utils.errors import NotFoundError
from swapstats.utils.types import (
    Checkpoint,
    Pair,
    PairBucket,
    Token,
    TokenBucket,
    TotalBucket,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
H = timedelta(hours=1)

USDC = Token(address="0x00000000000000000000000000000000000000A1", name="USD Coin", symbol="USDC",
             decimals=6, total_supply=Decimal("1000000"), price_usd=Decimal(1))
WGO = Token(address="0x00000000000000000000000000000000000000A2", name="Wrapped GO", symbol="WGO",
            decimals=18, total_supply=Decimal("123.456"), price_usd=Decimal("0.0125"))
PAIR = Pair(address="0x00000000000000000000000000000000000000B1", index=0, token0=WGO, token1=USDC)


def _sql_backend():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    return SqlBackend(make_session_factory(engine)), engine


@pytest.fixture(params=["memory", "sql"])
def backend(request):
    if request.param == "memory":
        return MemoryBackend()
    store, _ = _sql_backend()
    return store


def _pair_bucket(time, volume="1", **kw):
    return PairBucket(address=PAIR.address, pair=PAIR.label, time=time,
                      volume_usd=Decimal(volume), **kw)


def test_pair_round_trip_joins_tokens(backend):
    backend.save_pairs([PAIR])

    pair = backend.get_pair(PAIR.address)

    assert pair.label == "WGO-USDC"
    assert pair.token0 == WGO
    assert pair.token1 == USDC
    assert backend.get_pairs() == [pair]
    assert {t.symbol for t in backend.get_tokens()} == {"WGO", "USDC"}


def test_unknown_entities_raise_not_found(backend):
    with pytest.raises(NotFoundError):
        backend.get_pair("0xnope")
    with pytest.raises(NotFoundError):
        backend.get_token("0xnope")


def test_pairs_come_back_in_discovery_order(backend):
    later = Pair(address="0x00000000000000000000000000000000000000B2", index=1, token0=USDC, token1=WGO)
    backend.save_pairs([later, PAIR])

    assert [p.index for p in backend.get_pairs()] == [0, 1]


def test_bucket_decimals_survive_storage(backend):
    b = _pair_bucket(T0, volume="12.345678901234567890123456789",
                     reserve0=Decimal("1000.5"), price0_usd=Decimal("2"), reserve1=Decimal("3"),
                     price1_usd=Decimal("1"), amount0_in=Decimal("0.000000000000000001"))
    backend.save_pair_buckets([b])

    [loaded] = backend.get_pair_buckets(PAIR.address, None, None, timedelta(0))

    assert loaded.volume_usd == Decimal("12.345678901234567890123456789")
    assert loaded.amount0_in == Decimal("0.000000000000000001")
    assert loaded.liquidity_usd == Decimal("2004")
    assert loaded.time == T0


def test_upsert_by_key_never_duplicates(backend):
    backend.save_total_buckets([TotalBucket(time=T0, volume_usd=Decimal(1))])
    backend.save_total_buckets([TotalBucket(time=T0, volume_usd=Decimal(5))])

    rows = backend.get_totals(None, None, timedelta(0))

    assert [r.volume_usd for r in rows] == [Decimal(5)]


def test_range_is_from_inclusive_to_exclusive(backend):
    backend.save_pair_buckets([_pair_bucket(T0 + i * H) for i in range(4)])

    rows = backend.get_pair_buckets(PAIR.address, T0 + H, T0 + 3 * H, timedelta(0))

    assert [r.time for r in rows] == [T0 + H, T0 + 2 * H]


def test_empty_address_queries_every_entity(backend):
    backend.save_token_buckets([
        TokenBucket(address=WGO.address, symbol="WGO", time=T0, volume_usd=Decimal(1)),
        TokenBucket(address=USDC.address, symbol="USDC", time=T0 + H, volume_usd=Decimal(2)),
        TokenBucket(address=WGO.address, symbol="WGO", time=T0 + H, volume_usd=Decimal(3)),
    ])

    rows = backend.get_token_buckets("", T0, T0 + 2 * H, timedelta(hours=24))

    assert {r.symbol: r.volume_usd for r in rows} == {"WGO": Decimal(4), "USDC": Decimal(2)}
    assert len(backend.get_token_buckets(WGO.address, None, None, timedelta(0))) == 2


def test_checkpoint_round_trip(backend):
    assert backend.get_checkpoint() is None

    backend.save_checkpoint(Checkpoint(last_check_at=T0, last_block_number=10))
    backend.save_checkpoint(Checkpoint(last_check_at=T0 + H, last_block_number=20))

    assert backend.get_checkpoint() == Checkpoint(last_check_at=T0 + H, last_block_number=20)


def test_malformed_sql_row_is_logged_and_skipped(caplog):
    store, engine = _sql_backend()
    store.save_total_buckets([TotalBucket(time=T0 + i * H, volume_usd=Decimal(1)) for i in range(3)])
    with engine.begin() as conn:
        conn.execute(text("UPDATE total_buckets SET volume_usd = 'not-a-number' WHERE time = :t"),
                     {"t": int((T0 + H).timestamp())})

    with caplog.at_level(logging.ERROR):
        rows = store.get_totals(None, None, timedelta(0))

    assert [r.time for r in rows] == [T0, T0 + 2 * H]
    assert "skipping stored row" in caplog.text


def test_malformed_memory_row_is_skipped():
    store = MemoryBackend()
    store.save_pair_buckets([_pair_bucket(T0), _pair_bucket(T0 + H)])
    store.tables["pair_buckets"][f"{PAIR.address}_{int(T0.timestamp())}"]["reserve0"] = "1.2.3"

    rows = store.get_pair_buckets(PAIR.address, None, None, timedelta(0))

    assert [r.time for r in rows] == [T0 + H]
