"""x402-gate: pay-per-request FastAPI middleware for the x402 protocol.

Verification, settlement and header encoding are done by the ``x402`` SDK
(``x402ResourceServer``, ``x402.http``). This package adds the route
policies, the chain/price helpers and the middleware in
``x402_gate.fastapi`` (``pip install x402-gate[fastapi]``).

Quick Start:
    ```python
    from x402_gate import ChainConfig, ChainsConfig, build_payment_options

    options = build_payment_options(
        ChainsConfig(evm=[ChainConfig(pay_to="0x123...", network="eip155:8453")]),
        0.01,
    )
    ```
"""

# Chains
from .chains import (
    MAX_PRICE_USD,
    ChainConfig,
    ChainsConfig,
    build_payment_options,
    format_price,
    get_enabled_chain_names,
)

# Errors
from .errors import ErrorMessages, NetworkValidationError, PriceRangeError, X402GateError
from .logger import sanitize_error

# Networks
from .networks import is_valid_network, validate_network

# Types
from .types import PaymentInfo

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Chains
    "MAX_PRICE_USD",
    "ChainConfig",
    "ChainsConfig",
    "build_payment_options",
    "format_price",
    "get_enabled_chain_names",
    # Errors
    "ErrorMessages",
    "X402GateError",
    "NetworkValidationError",
    "PriceRangeError",
    "sanitize_error",
    # Networks
    "is_valid_network",
    "validate_network",
    # Types
    "PaymentInfo",
]
