import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from swapstats.stats.summary import STATS_WINDOW, pair_stats, token_stats
from swapstats.storage.backend import StatsBackend

log = logging.getLogger(__name__)


@dataclass
class VolumeReport:
    start: datetime
    end: datetime
    pair_volume_usd: Decimal
    token_volume_usd: Decimal
    total_volume_usd: Decimal

    @property
    def consistent(self) -> bool:
        return self.pair_volume_usd == self.token_volume_usd == self.total_volume_usd


def check_volumes(backend: StatsBackend, now: Optional[datetime] = None,
                  window: timedelta = STATS_WINDOW) -> VolumeReport:
    """Sum one window's volume three ways: over pairs, over tokens, from totals.

    Each swap's USD volume is the sum of its priced inputs, and the token
    rollup attributes each input to its token, so the three sums agree
    when the stored buckets are complete.
    """
    end = now or datetime.now(timezone.utc)
    start = end - window

    pair_vol = sum((pair_stats(backend, p, end, window).volume_usd for p in backend.get_pairs()), Decimal(0))
    token_vol = sum((token_stats(backend, t, end, window).volume_usd for t in backend.get_tokens()), Decimal(0))
    total_vol = sum((t.volume_usd for t in backend.get_totals(start, end, window)), Decimal(0))

    report = VolumeReport(start, end, pair_vol, token_vol, total_vol)
    log.info(f"pairVol: {pair_vol} tokenVol: {token_vol} totals: {total_vol}")
    return report
