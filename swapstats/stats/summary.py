from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from swapstats.storage.backend import StatsBackend
from swapstats.utils.constants import BUCKET_INTERVAL
from swapstats.utils.types import Pair, PairBucket, Token, TokenBucket

STATS_WINDOW = timedelta(days=1)


def _window(now: Optional[datetime], window: timedelta) -> Tuple[datetime, datetime]:
    end = now or datetime.now(timezone.utc)
    return end - window, end


def pair_stats(backend: StatsBackend, pair: Pair, now: Optional[datetime] = None,
               window: timedelta = STATS_WINDOW) -> PairBucket:
    """Latest liquidity snapshot plus summed flow of the last 24 hours."""
    start, end = _window(now, window)
    buckets = backend.get_pair_buckets(pair.address, start, end, BUCKET_INTERVAL)
    stats = PairBucket(address=pair.address, pair=pair.label, time=end)
    if buckets:
        latest = buckets[-1]
        stats.reserve0 = latest.reserve0
        stats.reserve1 = latest.reserve1
        stats.price0_usd = latest.price0_usd
        stats.price1_usd = latest.price1_usd
        stats.total_supply = latest.total_supply
        for b in buckets:
            stats.amount0_in += b.amount0_in
            stats.amount1_in += b.amount1_in
            stats.amount0_out += b.amount0_out
            stats.amount1_out += b.amount1_out
            stats.volume_usd += b.volume_usd
    stats.recompute_liquidity()
    return stats


def token_stats(backend: StatsBackend, token: Token, now: Optional[datetime] = None,
                window: timedelta = STATS_WINDOW) -> TokenBucket:
    start, end = _window(now, window)
    buckets = backend.get_token_buckets(token.address, start, end, BUCKET_INTERVAL)
    stats = TokenBucket(address=token.address, symbol=token.symbol, time=end)
    if buckets:
        latest = buckets[-1]
        stats.reserve = latest.reserve
        stats.price_usd = latest.price_usd
        for b in buckets:
            stats.amount_in += b.amount_in
            stats.amount_out += b.amount_out
            stats.volume_usd += b.volume_usd
    stats.recompute_liquidity()
    return stats


def summarize_pairs(backend: StatsBackend, now: Optional[datetime] = None) -> Tuple[List[Pair], Dict[str, PairBucket]]:
    """Pairs with liquidity, most liquid first, and their 24h stats by address."""
    pairs = backend.get_pairs()
    stats = {p.address: pair_stats(backend, p, now) for p in pairs}
    ranked = sorted(pairs, key=lambda p: stats[p.address].liquidity_usd, reverse=True)
    return [p for p in ranked if stats[p.address].liquidity_usd != Decimal(0)], stats


def summarize_tokens(backend: StatsBackend, now: Optional[datetime] = None) -> Tuple[List[Token], Dict[str, TokenBucket]]:
    tokens = backend.get_tokens()
    stats = {t.address: token_stats(backend, t, now) for t in tokens}
    ranked = sorted(tokens, key=lambda t: stats[t.address].liquidity_usd, reverse=True)
    return [t for t in ranked if stats[t.address].liquidity_usd != Decimal(0)], stats
