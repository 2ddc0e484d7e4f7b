# --------------------------------------------------------------
# Decode Uniswap V2 pair events (Swap, Mint) from sanitized logs
# --------------------------------------------------------------
from eth_abi import decode
from hexbytes import HexBytes
from web3 import Web3

from swapstats.utils.constants import MINT_TOPIC, SWAP_TOPIC
from swapstats.utils.types import MintEvent, SwapEvent


def topic_address(topic: str) -> str:
    """Indexed address topics are left-padded to 32 bytes."""
    return Web3.to_checksum_address(Web3.to_hex(bytes(HexBytes(topic))[-20:]))


def _topic0(log: dict) -> str:
    return Web3.to_hex(HexBytes(log["topics"][0])).lower()


def decode_swap_log(log: dict) -> SwapEvent:
    """Swap(address indexed sender, uint amount0In, uint amount1In,
    uint amount0Out, uint amount1Out, address indexed to)"""
    if _topic0(log) != SWAP_TOPIC:
        raise ValueError(f"not a Swap log: {log['topics'][0]}")

    amount0_in, amount1_in, amount0_out, amount1_out = decode(
        ["uint256", "uint256", "uint256", "uint256"], bytes(HexBytes(log["data"]))
    )
    return SwapEvent(
        block_number=int(log["blockNumber"]),
        tx_hash=Web3.to_hex(HexBytes(log["transactionHash"])),
        log_index=int(log["logIndex"]),
        sender=topic_address(log["topics"][1]),
        to=topic_address(log["topics"][2]),
        amount0_in=amount0_in,
        amount1_in=amount1_in,
        amount0_out=amount0_out,
        amount1_out=amount1_out,
    )


def decode_mint_log(log: dict) -> MintEvent:
    """Mint(address indexed sender, uint amount0, uint amount1)"""
    if _topic0(log) != MINT_TOPIC:
        raise ValueError(f"not a Mint log: {log['topics'][0]}")

    amount0, amount1 = decode(["uint256", "uint256"], bytes(HexBytes(log["data"])))
    return MintEvent(
        block_number=int(log["blockNumber"]),
        tx_hash=Web3.to_hex(HexBytes(log["transactionHash"])),
        log_index=int(log["logIndex"]),
        sender=topic_address(log["topics"][1]),
        amount0=amount0,
        amount1=amount1,
    )
