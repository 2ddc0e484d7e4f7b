import logging
from datetime import timedelta
from typing import Optional

import typer
from web3 import Web3

from swapstats.config.settings import MAX_BLOCKS_PER_REQUEST
from swapstats.utils.shortname import ShortNameFilter

log = logging.getLogger(__name__)

app = typer.Typer(help="Collect and inspect AMM swap statistics")


@app.callback()
def setup(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(shortname)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(ShortNameFilter())


@app.command("collect")
def collect(
    dry_run: bool = typer.Option(False, help="Bucket into memory instead of the database"),
):
    """
    Run one collector pass inline.
    """
    from swapstats.collector.collector import Collector
    from swapstats.collector.runner import run_collection
    from swapstats.sources.chain.client import ChainClient
    from swapstats.storage.memory_backend import MemoryBackend

    try:
        if dry_run:
            result = Collector(ChainClient.connect(), MemoryBackend()).run()
        else:
            result = run_collection()
    except Exception:
        log.error("[cli] Collection failed", exc_info=True)
        raise typer.Exit(code=1)

    if result.skipped:
        typer.echo(f"{result.stop_at} already collected")
        return
    typer.echo(
        f"blocks {result.start_block}-{result.end_block}: {result.events} swaps, "
        f"{result.pair_buckets} pair / {result.token_buckets} token / {result.total_buckets} total buckets, "
        f"liquidity ${result.liquidity_usd:.2f}"
    )


@app.command("check")
def check(hours: int = typer.Option(24, help="Window to sum, ending now")):
    """
    Compare summed pair, token and total volume over a window.
    """
    from swapstats.ingestion.checker import check_volumes
    from swapstats.storage.db import SessionLocal
    from swapstats.storage.sql_backend import SqlBackend

    report = check_volumes(SqlBackend(SessionLocal), window=timedelta(hours=hours))
    typer.echo(f"{report.start} .. {report.end}")
    typer.echo(f"pairVol: {report.pair_volume_usd} tokenVol: {report.token_volume_usd} totals: {report.total_volume_usd}")
    if not report.consistent:
        raise typer.Exit(code=1)


@app.command("mints")
def mints(
    pair_address: str = typer.Option(..., help="0x..."),
    start_block: int = typer.Option(..., help="First block to scan"),
    end_block: Optional[int] = typer.Option(None, help="Last block (default: head)"),
    step: int = typer.Option(MAX_BLOCKS_PER_REQUEST, help="Blocks per log query"),
):
    """
    List Mint (add liquidity) events of a pair with the providing account.
    """
    from swapstats.sources.chain.blocks import BlockClient
    from swapstats.sources.chain.client import ChainClient
    from swapstats.sources.chain.events import fetch_mint_events

    blocks = BlockClient(ChainClient.connect())
    if end_block is None:
        end_block = blocks.get_latest_block()
    pair_address = Web3.to_checksum_address(pair_address)

    events = fetch_mint_events(blocks, pair_address, start_block, end_block, step=step)
    for m in events:
        typer.echo(f"{m.block_number} {m.tx_hash} from={m.tx_from} amount0={m.amount0} amount1={m.amount1}")
    typer.echo(f"{len(events)} mint events")


def main():
    app()


if __name__ == "__main__":
    main()
