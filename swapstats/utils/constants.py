from datetime import timedelta

from web3 import Web3

SWAP_TOPIC = Web3.to_hex(Web3.keccak(text="Swap(address,uint256,uint256,uint256,uint256,address)"))
MINT_TOPIC = Web3.to_hex(Web3.keccak(text="Mint(address,uint256,uint256)"))

# stored bucket granularity
BUCKET_INTERVAL = timedelta(hours=1)

# LP tokens of a V2 pair always have 18 decimals
LP_DECIMALS = 18
