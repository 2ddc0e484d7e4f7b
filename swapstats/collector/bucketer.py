"""
Hourly bucketing of one run's swaps.

Pair buckets are filled from decoded swaps; token and total buckets are
derived from the finished pair buckets. Flow fields add up, snapshot
fields (prices, reserves, LP supply) come from the run's liquidity
snapshot and are set when a bucket is created.
"""
import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from swapstats.utils.constants import BUCKET_INTERVAL
from swapstats.utils.numeric import int_to_dec
from swapstats.utils.time_utils import truncate
from swapstats.utils.types import (
    Pair,
    PairBucket,
    PairLiquidity,
    SwapEvent,
    TokenBucket,
    TotalBucket,
)

logger = logging.getLogger(__name__)


class PairBucketer:
    """Hourly buckets of one pair for swaps before ``stop_at``."""

    def __init__(self, pair: Pair, liquidity: PairLiquidity, stop_at: datetime):
        self.pair = pair
        self.liquidity = liquidity
        self.stop_at = stop_at
        self.buckets: Dict[datetime, PairBucket] = {}
        self.last_block_number = 0

    def _new_bucket(self, time: datetime) -> PairBucket:
        liq = self.liquidity
        b = PairBucket(
            address=self.pair.address,
            pair=self.pair.label,
            time=time,
            price0_usd=liq.price0_usd,
            price1_usd=liq.price1_usd,
            total_supply=liq.total_supply,
            reserve0=liq.reserve0,
            reserve1=liq.reserve1,
        )
        b.recompute_liquidity()
        return b

    def add(self, swap: SwapEvent) -> bool:
        """Tally ``swap``; returns False when it falls in the still-open hour."""
        if swap.timestamp >= self.stop_at:
            return False

        hour = truncate(swap.timestamp, BUCKET_INTERVAL)
        bucket = self.buckets.get(hour)
        if bucket is None:
            bucket = self.buckets[hour] = self._new_bucket(hour)

        t0, t1 = self.pair.token0, self.pair.token1
        amount0_in = int_to_dec(swap.amount0_in, t0.decimals)
        amount1_in = int_to_dec(swap.amount1_in, t1.decimals)
        bucket.amount0_in += amount0_in
        bucket.amount1_in += amount1_in
        bucket.amount0_out += int_to_dec(swap.amount0_out, t0.decimals)
        bucket.amount1_out += int_to_dec(swap.amount1_out, t1.decimals)
        bucket.volume_usd += amount0_in * bucket.price0_usd + amount1_in * bucket.price1_usd

        self.last_block_number = max(self.last_block_number, swap.block_number)
        return True

    def add_all(self, swaps: Iterable[SwapEvent]) -> int:
        return sum(1 for s in swaps if self.add(s))

    def results(self) -> List[PairBucket]:
        """Buckets in time order. A pair without swaps gets one bucket for the
        last closed hour so its liquidity is still recorded."""
        if not self.buckets:
            hour = truncate(self.stop_at - BUCKET_INTERVAL, BUCKET_INTERVAL)
            logger.debug(f"{self.pair}: no swaps, making liquidity bucket at {hour}")
            self.buckets[hour] = self._new_bucket(hour)
        return [self.buckets[t] for t in sorted(self.buckets)]


def roll_token_buckets(pair_buckets: Iterable[Tuple[Pair, PairBucket]],
                       token_reserves: Dict[str, Decimal]) -> List[TokenBucket]:
    """Token buckets from pair buckets. ``token_reserves`` holds each token's
    reserve summed over every pair containing it."""
    buckets: Dict[Tuple[str, datetime], TokenBucket] = {}

    for pair, pb in pair_buckets:
        sides = (
            (pair.token0, pb.amount0_in, pb.amount0_out, pb.price0_usd),
            (pair.token1, pb.amount1_in, pb.amount1_out, pb.price1_usd),
        )
        for token, amount_in, amount_out, price in sides:
            key = (token.address, pb.time)
            tb = buckets.get(key)
            if tb is None:
                tb = buckets[key] = TokenBucket(
                    address=token.address,
                    symbol=token.symbol,
                    time=pb.time,
                    price_usd=price,
                    reserve=token_reserves.get(token.address, Decimal(0)),
                )
            tb.amount_in += amount_in
            tb.amount_out += amount_out
            tb.volume_usd += amount_in * price

    out = sorted(buckets.values(), key=lambda b: (b.address, b.time))
    for tb in out:
        tb.recompute_liquidity()
    return out


def roll_total_buckets(pair_buckets: Iterable[PairBucket], liquidity_usd: Decimal) -> List[TotalBucket]:
    """One total per hour: summed pair volume, the run's total liquidity snapshot."""
    volume: Dict[datetime, Decimal] = defaultdict(Decimal)
    for pb in pair_buckets:
        volume[pb.time] += pb.volume_usd
    return [
        TotalBucket(time=t, volume_usd=volume[t], liquidity_usd=liquidity_usd)
        for t in sorted(volume)
    ]


def token_reserves(liquidities: Iterable[Tuple[Pair, PairLiquidity]]) -> Dict[str, Decimal]:
    reserves: Dict[str, Decimal] = defaultdict(Decimal)
    for pair, liq in liquidities:
        reserves[pair.token0.address] += liq.reserve0
        reserves[pair.token1.address] += liq.reserve1
    return dict(reserves)
