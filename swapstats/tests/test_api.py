from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from swapstats.api.api import get_collector
from swapstats.main import app
from swapstats.storage.db import get_backend
from swapstats.storage.memory_backend import MemoryBackend
from swapstats.utils.constants import BUCKET_INTERVAL
from swapstats.utils.time_utils import truncate
from swapstats.utils.types import (
    CollectionResult,
    Pair,
    PairBucket,
    Token,
    TokenBucket,
    TotalBucket,
)

USDC = Token(address="0x00000000000000000000000000000000000000A1", symbol="USDC", decimals=6, price_usd=Decimal(1))
WGO = Token(address="0x00000000000000000000000000000000000000A2", symbol="WGO", price_usd=Decimal(2))
DUST = Token(address="0x00000000000000000000000000000000000000A3", symbol="DUST")
WGO_USDC = Pair(address="0x00000000000000000000000000000000000000B1", index=0, token0=WGO, token1=USDC)
DUST_USDC = Pair(address="0x00000000000000000000000000000000000000B2", index=1, token0=DUST, token1=USDC)


@pytest.fixture
def store():
    hour = truncate(datetime.now(timezone.utc), BUCKET_INTERVAL) - 2 * BUCKET_INTERVAL
    s = MemoryBackend()
    s.save_pairs([WGO_USDC, DUST_USDC])
    s.save_pair_buckets([
        PairBucket(address=WGO_USDC.address, pair="WGO-USDC", time=hour - BUCKET_INTERVAL,
                   volume_usd=Decimal(3), reserve0=Decimal(10), price0_usd=Decimal(2)),
        PairBucket(address=WGO_USDC.address, pair="WGO-USDC", time=hour,
                   volume_usd=Decimal(5), reserve0=Decimal(10), price0_usd=Decimal(2),
                   reserve1=Decimal(20), price1_usd=Decimal(1)),
        PairBucket(address=DUST_USDC.address, pair="DUST-USDC", time=hour),
    ])
    s.save_token_buckets([
        TokenBucket(address=WGO.address, symbol="WGO", time=hour, volume_usd=Decimal(5),
                    reserve=Decimal(10), price_usd=Decimal(2)),
        TokenBucket(address=USDC.address, symbol="USDC", time=hour, reserve=Decimal(50),
                    price_usd=Decimal(1)),
    ])
    s.save_total_buckets([
        TotalBucket(time=hour - BUCKET_INTERVAL, volume_usd=Decimal(3), liquidity_usd=Decimal(40)),
        TotalBucket(time=hour, volume_usd=Decimal(5), liquidity_usd=Decimal(40)),
    ])
    s.hour = hour
    return s


@pytest.fixture
def client(store):
    app.dependency_overrides[get_backend] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/api/").json() == {"message": "welcome"}


def test_pairs_ranked_by_liquidity_without_empty_ones(client):
    body = client.get("/api/pairs").json()

    assert [p["address"] for p in body["pairs"]] == [WGO_USDC.address]
    assert body["pairs"][0]["token0"]["symbol"] == "WGO"
    stats = body["stats"][WGO_USDC.address]
    assert Decimal(stats["volume_usd"]) == Decimal(8)
    assert Decimal(stats["liquidity_usd"]) == Decimal(40)


def test_pair_lookup(client):
    assert client.get(f"/api/pairs/{WGO_USDC.address}").json()["pair"] == "WGO-USDC"
    assert client.get("/api/pairs/0xmissing").status_code == 404


def test_tokens_ranked_by_liquidity(client):
    body = client.get("/api/tokens").json()

    assert [t["symbol"] for t in body["tokens"]] == ["USDC", "WGO"]
    assert client.get("/api/tokens/0xmissing").status_code == 404


def test_pair_buckets_rollup(client, store):
    start = (store.hour - 2 * BUCKET_INTERVAL).isoformat()
    end = (store.hour + BUCKET_INTERVAL).isoformat()

    rows = client.get(f"/api/pairs/{WGO_USDC.address}/buckets",
                      params={"start_time": start, "end_time": end}).json()["overTime"]
    assert [Decimal(r["volume_usd"]) for r in rows] == [Decimal(3), Decimal(5)]

    rows = client.get(f"/api/pairs/{WGO_USDC.address}/buckets",
                      params={"start_time": start, "end_time": end, "interval": 3 * 3600}).json()["overTime"]
    assert [Decimal(r["volume_usd"]) for r in rows] == [Decimal(8)]


def test_totals_default_to_now(client):
    rows = client.get("/api/totals").json()["overTime"]

    assert [Decimal(r["volume_usd"]) for r in rows] == [Decimal(3), Decimal(5)]
    assert all(Decimal(r["liquidity_usd"]) == Decimal(40) for r in rows)


def test_token_buckets_route(client):
    rows = client.get(f"/api/tokens/{WGO.address}/buckets").json()["overTime"]

    assert [r["symbol"] for r in rows] == ["WGO"]


def test_negative_interval_rejected(client):
    assert client.get("/api/totals", params={"interval": -1}).status_code == 400


def test_collect_reports_result(client, store):
    collector = MagicMock()
    collector.run.return_value = CollectionResult(stop_at=store.hour, events=3)
    app.dependency_overrides[get_collector] = lambda: collector

    assert client.post("/api/collect").json() == {"status": "ok", "skipped": False, "events": 3}


def test_collect_failure_is_500(client):
    collector = MagicMock()
    collector.run.side_effect = ConnectionError("rpc down")
    app.dependency_overrides[get_collector] = lambda: collector

    resp = client.post("/api/collect")

    assert resp.status_code == 500
    assert "rpc down" in resp.json()["detail"]


def test_bucket_bounds_without_timezone_are_utc(client, store):
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    store.save_total_buckets([TotalBucket(time=t0 + i * BUCKET_INTERVAL, volume_usd=Decimal(1)) for i in range(3)])

    resp = client.get("/api/totals", params={
        "start_time": "2024-01-01T00:00:00",
        "end_time": "2024-01-01T03:00:00",
        "interval": 86400,
    })

    assert resp.status_code == 200
    assert [Decimal(r["volume_usd"]) for r in resp.json()["overTime"]] == [Decimal(3)]
