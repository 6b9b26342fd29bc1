"""FastAPI integration for x402-gate.

Install: pip install x402-gate[fastapi]

Example:
    ```python
    from fastapi import FastAPI, Request
    from x402_gate.fastapi import get_payment_info, payment_middleware

    app = FastAPI()
    app.middleware("http")(payment_middleware(resource_server, routes))

    @app.get("/weather")
    async def weather(request: Request):
        info = get_payment_info(request)
        return {"paid_by": info.payer if info else None}
    ```
"""

from .adapter import FastAPIAdapter
from .constants import LEGACY_PAYMENT_HEADER, LEGACY_PAYMENT_RESPONSE_HEADER
from .init_state import InitFailed, InitializationState, InitPending, InitSuccess
from .middleware import (
    handle_dynamic_route,
    payment_middleware,
    payment_middleware_from_config,
    payment_middleware_from_http_server,
)
from .responses import clone_with_headers, is_body_consumed
from .routes import DynamicRouteConfig, RouteTable
from .utils import (
    PAYMENT_INFO_STATE_KEY,
    PaymentHeaderAdapter,
    PolicyRequest,
    build_payment_requirements_from_options,
    create_402_response,
    extract_payment_payload,
    get_payment_info,
    handle_settlement,
    handle_static_route_verified,
    read_payment_header,
    verify_and_build_payment_info,
)

__all__ = [
    # Entry points
    "payment_middleware",
    "payment_middleware_from_config",
    "payment_middleware_from_http_server",
    # Routes
    "DynamicRouteConfig",
    "RouteTable",
    # Request state
    "PAYMENT_INFO_STATE_KEY",
    "get_payment_info",
    # Headers
    "LEGACY_PAYMENT_HEADER",
    "LEGACY_PAYMENT_RESPONSE_HEADER",
    "read_payment_header",
    # Building blocks
    "FastAPIAdapter",
    "PaymentHeaderAdapter",
    "PolicyRequest",
    "InitializationState",
    "InitPending",
    "InitSuccess",
    "InitFailed",
    "clone_with_headers",
    "is_body_consumed",
    "create_402_response",
    "build_payment_requirements_from_options",
    "extract_payment_payload",
    "verify_and_build_payment_info",
    "handle_settlement",
    "handle_static_route_verified",
    "handle_dynamic_route",
]
