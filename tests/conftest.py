"""Shared fixtures."""

import pytest

from x402 import x402ResourceServer

from .mocks import CashFacilitatorClient, CashSchemeNetworkServer

CASH_NETWORK = "x402:cash"


@pytest.fixture
def facilitator() -> CashFacilitatorClient:
    return CashFacilitatorClient()


@pytest.fixture
def resource_server(facilitator: CashFacilitatorClient) -> x402ResourceServer:
    return x402ResourceServer(facilitator).register(CASH_NETWORK, CashSchemeNetworkServer())
