"""
One incremental pass over the chain.

    head block -> stop_at (head time truncated to the hour)
    checkpoint -> start block (or skip when stop_at is already done)
    factory    -> new pairs (concurrent, fail-fast), persisted then merged
    reserves   -> liquidity + USD prices per pair
    Swap logs  -> hourly pair buckets -> token / total buckets -> upsert
    checkpoint <- {stop_at, last block with a counted swap}

The checkpoint is written last, so a run that fails anywhere leaves the
next run to redo the same range; every write is a keyed upsert.
"""
import logging
import time
from decimal import Decimal
from typing import List, Optional, Tuple

from swapstats.collector.bucketer import (
    PairBucketer,
    roll_token_buckets,
    roll_total_buckets,
    token_reserves,
)
from swapstats.collector.registry import TokenRegistry
from swapstats.config import settings
from swapstats.sources.chain.blocks import BlockClient
from swapstats.sources.chain.events import fetch_swap_events
from swapstats.sources.chain.pricing import Pricer, fetch_liquidity
from swapstats.sources.chain.token_meta import discover_new_pairs
from swapstats.storage.backend import CollectorStore
from swapstats.utils.constants import BUCKET_INTERVAL
from swapstats.utils.numeric import int_to_dec
from swapstats.utils.time_utils import truncate
from swapstats.utils.types import (
    Checkpoint,
    CollectionResult,
    Pair,
    PairBucket,
    PairLiquidity,
)

log = logging.getLogger(__name__)


class Collector:

    def __init__(
        self,
        chain,
        store: CollectorStore,
        lookback_blocks: int = settings.LOOKBACK_BLOCKS,
        max_blocks_per_request: int = settings.MAX_BLOCKS_PER_REQUEST,
        discovery_workers: int = settings.DISCOVERY_WORKERS,
        resolve_tx_sender: bool = settings.RESOLVE_TX_SENDER,
        reference_symbol: str = settings.REFERENCE_SYMBOL,
        min_reference_reserve: Decimal = Decimal(settings.MIN_REFERENCE_RESERVE),
        log_fetch_max_tries: int = settings.LOG_FETCH_MAX_TRIES,
        log_fetch_backoff: float = settings.LOG_FETCH_BACKOFF,
    ):
        self.chain = chain
        self.store = store
        self.lookback_blocks = lookback_blocks
        self.max_blocks_per_request = max_blocks_per_request
        self.discovery_workers = discovery_workers
        self.resolve_tx_sender = resolve_tx_sender
        self.reference_symbol = reference_symbol
        self.min_reference_reserve = min_reference_reserve
        self.retry = {"max_tries": log_fetch_max_tries, "interval": log_fetch_backoff}

    def _start_block(self, checkpoint: Optional[Checkpoint], end_block: int) -> Tuple[int, int]:
        """(first block to scan, last_block_number to keep when no swap is counted)"""
        if checkpoint is None:
            start = max(0, end_block - self.lookback_blocks)
            return start, start - 1
        return checkpoint.last_block_number + 1, checkpoint.last_block_number

    def _load_pairs(self, registry: TokenRegistry) -> int:
        new_pairs = discover_new_pairs(self.chain, registry, self.discovery_workers)
        if new_pairs:
            # persist before merge: a failed write leaves the next run to rediscover them
            self.store.save_pairs(new_pairs)
            registry.add_pairs(new_pairs)
            log.info(f"Added {len(new_pairs)} new pairs")
        return len(new_pairs)

    def _refresh_tokens(self, registry: TokenRegistry, pricer: Pricer) -> None:
        tokens = registry.tokens()
        for t in tokens:
            t.total_supply = int_to_dec(self.chain.erc20_total_supply(t.address), t.decimals)
            t.price_usd = pricer.price_or_zero(t)
        self.store.save_tokens(tokens)

    def run(self) -> CollectionResult:
        started = time.time()
        blocks = BlockClient(self.chain)

        end_block = blocks.get_latest_block()
        stop_at = truncate(blocks.get_block_time(end_block), BUCKET_INTERVAL)
        result = CollectionResult(stop_at=stop_at, end_block=end_block)

        checkpoint = self.store.get_checkpoint()
        if checkpoint is not None and checkpoint.last_check_at == stop_at:
            log.info(f"[collect] {stop_at} already collected, skipping")
            result.skipped = True
            result.last_block_number = checkpoint.last_block_number
            return result

        start_block, last_block_number = self._start_block(checkpoint, end_block)
        result.start_block = start_block
        log.info(f"[collect] blocks {start_block}..{end_block}, stop_at {stop_at}")

        registry = TokenRegistry(self.store.get_pairs())
        result.new_pairs = self._load_pairs(registry)
        pairs = registry.pairs()
        result.pairs = len(pairs)

        pricer = Pricer(self.chain, registry, self.reference_symbol, self.min_reference_reserve)
        liquidities: List[Tuple[Pair, PairLiquidity]] = []
        for p in pairs:
            liq = fetch_liquidity(self.chain, pricer, p)
            log.info(f"{p} liquidity: {liq.liquidity_usd:.2f}")
            liquidities.append((p, liq))
        result.liquidity_usd = sum((liq.liquidity_usd for _, liq in liquidities), Decimal(0))

        pair_buckets: List[Tuple[Pair, PairBucket]] = []
        for p, liq in liquidities:
            swaps = fetch_swap_events(
                blocks, p.address, start_block, end_block,
                step=self.max_blocks_per_request,
                resolve_sender=self.resolve_tx_sender,
                **self.retry,
            )
            bucketer = PairBucketer(p, liq, stop_at)
            counted = bucketer.add_all(swaps)
            log.info(f"{p}: {counted} of {len(swaps)} swap events bucketed")
            result.events += counted
            if counted:
                last_block_number = max(last_block_number, bucketer.last_block_number)
            pair_buckets.extend((p, b) for b in bucketer.results())

        token_buckets = roll_token_buckets(pair_buckets, token_reserves(liquidities))
        total_buckets = roll_total_buckets((b for _, b in pair_buckets), result.liquidity_usd)

        self._refresh_tokens(registry, pricer)
        self.store.save_pair_buckets(b for _, b in pair_buckets)
        self.store.save_token_buckets(token_buckets)
        self.store.save_total_buckets(total_buckets)
        self.store.save_checkpoint(Checkpoint(last_check_at=stop_at, last_block_number=last_block_number))

        result.pair_buckets = len(pair_buckets)
        result.token_buckets = len(token_buckets)
        result.total_buckets = len(total_buckets)
        result.last_block_number = last_block_number

        volume = sum((b.volume_usd for b in total_buckets), Decimal(0))
        log.info(
            f"[collect] done in {time.time() - started:.2f}s: {result.events} swaps, "
            f"volume {volume:.2f}, liquidity {result.liquidity_usd:.2f}"
        )
        return result
