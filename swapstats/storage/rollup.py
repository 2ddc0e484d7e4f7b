"""
Roll stored hourly buckets up into caller-requested intervals.

Shared by every backend so the SQL store and the in-memory store can never
disagree on window placement.

Rows arrive in ascending time order. Each entity (pair/token address, or
the single "" entity for totals) is scanned newest to oldest. The newest
window is anchored to ``to`` when the query is bounded, so "last N hours"
queries line up with the query's end rather than with calendar hours.
Inside a window:

* additive fields (``ADDITIVE_FIELDS``: amounts, volume) are summed;
* every other field is a point sample and keeps the newest row's value,
  which the backward scan already holds.

Windows are emitted oldest first and carry the time of their newest row.
"""
import copy
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, TypeVar

from swapstats.utils.time_utils import as_utc

B = TypeVar("B")


def _merge(window, row) -> None:
    for name in window.ADDITIVE_FIELDS:
        setattr(window, name, getattr(window, name) + getattr(row, name))


def _rollup_entity(rows: List[B], to: Optional[datetime], interval: timedelta) -> List[B]:
    out: List[B] = []
    window = None
    pinned_time = None  # true time of the window while its time is pinned to `to`

    for row in reversed(rows):
        if window is None:
            window = copy.copy(row)
            if to is not None:
                pinned_time = window.time
                window.time = to
            continue

        if window.time - row.time >= interval:
            if pinned_time is not None:
                window.time = pinned_time
                pinned_time = None
            out.insert(0, window)
            window = copy.copy(row)
        else:
            _merge(window, row)

    if window is not None:
        if pinned_time is not None:
            window.time = pinned_time
        out.insert(0, window)
    return out


def rollup(rows: Iterable[B], to: Optional[datetime], interval: timedelta) -> List[B]:
    """Merge ascending hourly ``rows`` into one row per entity per ``interval`` window.

    ``interval`` of zero (or the stored granularity) returns the rows as they
    are. A ``to`` without a timezone is taken as UTC. Input rows are never mutated.
    """
    to = as_utc(to)
    groups: "OrderedDict[str, List[B]]" = OrderedDict()
    for row in rows:
        groups.setdefault(row.address, []).append(row)

    out: List[B] = []
    for entity_rows in groups.values():
        out.extend(_rollup_entity(entity_rows, to, interval))
    return out
