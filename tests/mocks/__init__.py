"""Mock implementations for testing."""

from .cash import (
    CashFacilitatorClient,
    CashSchemeNetworkServer,
    build_cash_payment_payload,
    build_cash_payment_requirements,
    cash_payment_header,
)

__all__ = [
    "CashSchemeNetworkServer",
    "CashFacilitatorClient",
    "build_cash_payment_payload",
    "build_cash_payment_requirements",
    "cash_payment_header",
]
