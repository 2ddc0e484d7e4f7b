import logging
from typing import Callable, List, TypeVar

import backoff

from swapstats.config.settings import LOG_FETCH_BACKOFF, LOG_FETCH_MAX_TRIES, MAX_BLOCKS_PER_REQUEST
from swapstats.sources.chain.blocks import BlockClient
from swapstats.sources.chain.decoder import decode_mint_log, decode_swap_log
from swapstats.utils.constants import MINT_TOPIC, SWAP_TOPIC
from swapstats.utils.types import MintEvent, SwapEvent

logger = logging.getLogger(__name__)

E = TypeVar("E")


def _log_retry(details):
    logger.warning(
        "get_logs failed (try %d), retrying in %.1fs: %s",
        details["tries"], details.get("wait") or 0, details.get("exception"),
    )


def fetch_logs(chain, address: str, topics: List[str], from_block: int, to_block: int,
               max_tries: int = LOG_FETCH_MAX_TRIES, interval: float = LOG_FETCH_BACKOFF) -> List[dict]:
    """Logs of one block range. Retried at a fixed interval; the last error propagates."""

    @backoff.on_exception(backoff.constant, Exception, interval=interval,
                          max_tries=max_tries, jitter=None, on_backoff=_log_retry)
    def _get():
        return chain.get_logs(address, topics, from_block, to_block)

    return _get()


def _fetch_events(blocks: BlockClient, address: str, topic: str, decode: Callable[[dict], E],
                  start_block: int, end_block: int, step: int, **retry) -> List[E]:
    events = []
    for from_block, to_block in blocks.walk_block_ranges(start_block, end_block, step):
        raw_logs = fetch_logs(blocks.chain, address, [topic], from_block, to_block, **retry)
        if raw_logs:
            logger.debug(f"{address}: {len(raw_logs)} logs in blocks {from_block}-{to_block}")
        events.extend(decode(log) for log in raw_logs)
    events.sort(key=lambda e: (e.block_number, e.log_index))
    return events


def fetch_swap_events(blocks: BlockClient, pair_address: str, start_block: int, end_block: int,
                      step: int = MAX_BLOCKS_PER_REQUEST, resolve_sender: bool = True,
                      **retry) -> List[SwapEvent]:
    """Swaps of one pair in ``[start_block, end_block]``, annotated with block time
    and (optionally) the transaction's sender."""
    swaps = _fetch_events(blocks, pair_address, SWAP_TOPIC, decode_swap_log,
                          start_block, end_block, step, **retry)
    out = []
    for s in swaps:
        tx_from = blocks.get_tx_sender(s.tx_hash) if resolve_sender else None
        out.append(s._replace(timestamp=blocks.get_block_time(s.block_number), tx_from=tx_from))
    return out


def fetch_mint_events(blocks: BlockClient, pair_address: str, start_block: int, end_block: int,
                      step: int = MAX_BLOCKS_PER_REQUEST, **retry) -> List[MintEvent]:
    """Mints of one pair; ``sender`` on a Mint is the router, ``tx_from`` the liquidity provider."""
    mints = _fetch_events(blocks, pair_address, MINT_TOPIC, decode_mint_log,
                          start_block, end_block, step, **retry)
    return [m._replace(tx_from=blocks.get_tx_sender(m.tx_hash)) for m in mints]
