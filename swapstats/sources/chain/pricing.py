import logging
from decimal import Decimal
from typing import Dict, Tuple

from swapstats.collector.registry import TokenRegistry
from swapstats.config.settings import MIN_REFERENCE_RESERVE, REFERENCE_SYMBOL
from swapstats.utils.constants import LP_DECIMALS
from swapstats.utils.errors import PriceNotFound
from swapstats.utils.numeric import int_to_dec
from swapstats.utils.types import Pair, PairLiquidity, Token

logger = logging.getLogger(__name__)

ZERO = Decimal(0)
ONE = Decimal(1)


class Pricer:
    """USD prices from the direct pair against the reference stablecoin.

    Reserves and prices are read once per run.
    """

    def __init__(self, chain, registry: TokenRegistry, reference_symbol: str = REFERENCE_SYMBOL,
                 min_reserve: Decimal = Decimal(MIN_REFERENCE_RESERVE)):
        self.chain = chain
        self.reference_symbol = reference_symbol
        self.min_reserve = Decimal(min_reserve)
        self.reference_pairs = registry.reference_pairs(reference_symbol)
        self._reserves: Dict[str, Tuple[Decimal, Decimal]] = {}
        self._prices: Dict[str, Decimal] = {}

    def reserves(self, pair: Pair) -> Tuple[Decimal, Decimal]:
        """Decimal-scaled (reserve0, reserve1) of ``pair``."""
        if pair.address not in self._reserves:
            r0, r1 = self.chain.pair_reserves(pair.address)
            self._reserves[pair.address] = (
                int_to_dec(r0, pair.token0.decimals),
                int_to_dec(r1, pair.token1.decimals),
            )
        return self._reserves[pair.address]

    def price_in_usd(self, token: Token) -> Decimal:
        """Raises PriceNotFound when no reference pair quotes ``token``."""
        if token.symbol == self.reference_symbol:
            return ONE
        if token.address in self._prices:
            return self._prices[token.address]

        pair = self.reference_pairs.get(token.address)
        if pair is None:
            raise PriceNotFound(token.symbol)

        reserve0, reserve1 = self.reserves(pair)
        if pair.token0.symbol == self.reference_symbol:
            ref_reserve, token_reserve = reserve0, reserve1
        else:
            ref_reserve, token_reserve = reserve1, reserve0

        if ref_reserve < self.min_reserve or token_reserve == 0:
            logger.info(f"{token.symbol} liquidity too low in pricing pair, returning zero")
            price = ZERO
        else:
            price = ref_reserve / token_reserve
        self._prices[token.address] = price
        return price

    def price_or_zero(self, token: Token) -> Decimal:
        try:
            return self.price_in_usd(token)
        except PriceNotFound as e:
            logger.warning(f"{token.symbol} price error: {e}")
            return ZERO


def fetch_liquidity(chain, pricer: Pricer, pair: Pair) -> PairLiquidity:
    """Current reserves and LP supply of ``pair`` with both tokens priced."""
    reserve0, reserve1 = pricer.reserves(pair)
    total_supply = int_to_dec(chain.pair_total_supply(pair.address), LP_DECIMALS)
    return PairLiquidity(
        address=pair.address,
        label=pair.label,
        reserve0=reserve0,
        reserve1=reserve1,
        total_supply=total_supply,
        price0_usd=pricer.price_or_zero(pair.token0),
        price1_usd=pricer.price_or_zero(pair.token1),
    )
