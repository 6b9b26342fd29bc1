"""Models owned by x402-gate.

Protocol models (requirements, payloads, verify/settle responses) come from
``x402.schemas``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from x402.schemas import Network


class GateModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaymentInfo(GateModel):
    """Payment record attached to ``request.state.x402``.

    ``transaction`` is filled in place once settlement succeeds.
    """

    payer: str
    network: Network
    transaction: Optional[str] = None
