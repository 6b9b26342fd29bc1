"""Network identifier validation.

Networks follow CAIP-2 conventions, ``namespace:reference``:

- namespace: letters, digits and hyphens (``eip155``, ``solana``, ``cosmos``)
- reference: letters, digits and ``+/=_-`` so base64 genesis hashes fit

Examples: ``eip155:8453``, ``solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp``,
``cosmos:cosmoshub-4``, ``algorand:wGHE2Pwdvd7S12BL5FaOP20EGYesN73ktiC1qzkkit8=``.
"""

from __future__ import annotations

import re

from .errors import NetworkValidationError

NETWORK_PATTERN = re.compile(r"[a-zA-Z0-9-]+:[a-zA-Z0-9+/=_-]+")


def is_valid_network(network: object) -> bool:
    """Check a network identifier without raising."""
    return isinstance(network, str) and NETWORK_PATTERN.fullmatch(network) is not None


def validate_network(network: object) -> str:
    """Validate a network identifier.

    Args:
        network: Candidate identifier.

    Returns:
        The identifier, unchanged.

    Raises:
        NetworkValidationError: If it is not ``namespace:reference``.
    """
    if not is_valid_network(network):
        raise NetworkValidationError(network)
    return network  # type: ignore[return-value]
