from typing import List

from web3 import Web3
from web3.datastructures import AttributeDict


def _plain(v):
    if isinstance(v, (bytes, bytearray)):
        return Web3.to_hex(v)
    if isinstance(v, AttributeDict):
        return {k: _plain(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [_plain(x) for x in v]
    return v


def sanitize_log(log) -> dict:
    """Convert a web3 log receipt to a plain dict: bytes become 0x-hex strings."""
    return {k: _plain(v) for k, v in dict(log).items()}


def sanitize_logs(logs) -> List[dict]:
    return [sanitize_log(log) for log in logs]
