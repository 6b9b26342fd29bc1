"""Build payment options for a USD price across configured chains."""

from __future__ import annotations

import math
import re
from typing import Optional, Union

from pydantic import Field
from x402.http import PaymentOption
from x402.schemas import Network

from .errors import PriceRangeError
from .networks import validate_network
from .types import GateModel

# Prices above this lose precision as floats
MAX_PRICE_USD = 1_000_000_000

# Fractional digits rendered before trimming; enough for 1e-8 style prices
PRICE_PRECISION = 10

_TRAILING_ZEROS = re.compile(r"\.?0+$")


class ChainConfig(GateModel):
    pay_to: str
    network: Network


class ChainsConfig(GateModel):
    """Enabled chains: any number of EVM networks, at most one Solana and one Algorand."""

    evm: list[ChainConfig] = Field(default_factory=list)
    solana: Optional[ChainConfig] = None
    algorand: Optional[ChainConfig] = None


def format_price(price_usd: Union[int, float]) -> str:
    """Format a USD price as ``$<decimal>`` without scientific notation.

    ``1`` -> ``"$1"``, ``0.1`` -> ``"$0.1"``, ``1e-8`` -> ``"$0.00000001"``.

    Raises:
        PriceRangeError: If the price is negative, not finite or above
            MAX_PRICE_USD.
    """
    if isinstance(price_usd, float) and not math.isfinite(price_usd):
        raise PriceRangeError("Price must be a finite number")
    if price_usd < 0:
        raise PriceRangeError("Price must be non-negative")
    if price_usd > MAX_PRICE_USD:
        raise PriceRangeError(f"Price exceeds maximum supported value of ${MAX_PRICE_USD}")

    fixed = f"{price_usd:.{PRICE_PRECISION}f}"
    return f"${_TRAILING_ZEROS.sub('', fixed)}"


def _chain_entries(chains: ChainsConfig) -> list[ChainConfig]:
    entries = list(chains.evm)
    if chains.solana:
        entries.append(chains.solana)
    if chains.algorand:
        entries.append(chains.algorand)
    return entries


def build_payment_options(chains: ChainsConfig, price_usd: Union[int, float]) -> list[PaymentOption]:
    """Build one ``exact`` payment option per enabled chain.

    Order is EVM entries as listed, then Solana, then Algorand. Every network
    is validated before anything is returned.

    Args:
        chains: Enabled chain configuration.
        price_usd: Price in USD, as small as 0.00000001.

    Returns:
        Payment options for all enabled chains.

    Raises:
        PriceRangeError: If the price is out of range.
        NetworkValidationError: On the first malformed network identifier.

    Example:
        ```python
        options = build_payment_options(
            ChainsConfig(evm=[ChainConfig(pay_to="0x123...", network="eip155:8453")]),
            0.01,
        )
        ```
    """
    price = format_price(price_usd)

    options: list[PaymentOption] = []
    for entry in _chain_entries(chains):
        validate_network(entry.network)
        options.append(
            PaymentOption(
                scheme="exact",
                network=entry.network,
                pay_to=entry.pay_to,
                price=price,
            )
        )
    return options


def get_enabled_chain_names(chains: ChainsConfig) -> list[str]:
    """Names of chain families with a non-empty configuration."""
    names: list[str] = []
    if chains.evm:
        names.append("evm")
    if chains.solana:
        names.append("solana")
    if chains.algorand:
        names.append("algorand")
    return names
