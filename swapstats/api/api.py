import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from swapstats.stats.summary import summarize_pairs, summarize_tokens
from swapstats.storage.backend import StatsBackend
from swapstats.storage.db import get_backend
from swapstats.utils.errors import NotFoundError
from swapstats.utils.time_utils import as_utc

log = logging.getLogger(__name__)

router = APIRouter()


def get_collector():
    from swapstats.collector.runner import build_collector
    return build_collector()


def render(record) -> dict:
    """JSON-safe dict of a record: decimals as strings, times as unix seconds."""
    doc = record.to_document()
    doc.pop("id", None)
    if hasattr(record, "token0"):
        doc["token0"] = render(record.token0)
        doc["token1"] = render(record.token1)
    if hasattr(record, "liquidity_usd"):
        doc["liquidity_usd"] = str(record.liquidity_usd)
    return doc


def _range(start_time: Optional[datetime], end_time: Optional[datetime], interval: int):
    if interval < 0:
        raise HTTPException(status_code=400, detail="interval must be >= 0")
    return as_utc(start_time), as_utc(end_time) or datetime.now(timezone.utc), timedelta(seconds=interval)


@router.get("/")
def read_root():
    return {"message": "welcome"}


@router.get("/pairs")
def get_pairs(backend: StatsBackend = Depends(get_backend)):
    pairs, stats = summarize_pairs(backend)
    return {
        "pairs": [render(p) for p in pairs],
        "stats": {a: render(s) for a, s in stats.items()},
    }


@router.get("/pairs/{address}")
def get_pair(address: str, backend: StatsBackend = Depends(get_backend)):
    try:
        return render(backend.get_pair(address))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/pairs/{address}/buckets")
def get_pair_buckets(
    address: str,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    interval: int = Query(0, description="rollup window in seconds, 0 = hourly rows"),
    backend: StatsBackend = Depends(get_backend),
):
    from_, to, step = _range(start_time, end_time, interval)
    buckets = backend.get_pair_buckets(address, from_, to, step)
    return {"overTime": [render(b) for b in buckets]}


@router.get("/tokens")
def get_tokens(backend: StatsBackend = Depends(get_backend)):
    tokens, stats = summarize_tokens(backend)
    return {
        "tokens": [render(t) for t in tokens],
        "stats": {a: render(s) for a, s in stats.items()},
    }


@router.get("/tokens/{address}")
def get_token(address: str, backend: StatsBackend = Depends(get_backend)):
    try:
        return render(backend.get_token(address))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/tokens/{address}/buckets")
def get_token_buckets(
    address: str,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    interval: int = Query(0, description="rollup window in seconds, 0 = hourly rows"),
    backend: StatsBackend = Depends(get_backend),
):
    from_, to, step = _range(start_time, end_time, interval)
    buckets = backend.get_token_buckets(address, from_, to, step)
    return {"overTime": [render(b) for b in buckets]}


@router.get("/totals")
def get_totals(
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    interval: int = Query(0, description="rollup window in seconds, 0 = hourly rows"),
    backend: StatsBackend = Depends(get_backend),
):
    from_, to, step = _range(start_time, end_time, interval)
    return {"overTime": [render(b) for b in backend.get_totals(from_, to, step)]}


@router.post("/collect")
def collect(collector=Depends(get_collector)):
    try:
        result = collector.run()
    except Exception as e:
        log.error(f"collect failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "ok", "skipped": result.skipped, "events": result.events}
