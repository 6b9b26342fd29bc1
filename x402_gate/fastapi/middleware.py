"""
FastAPI middleware for x402 payment requirements.

Install: pip install x402-gate[fastapi]
Usage:   from x402_gate.fastapi import payment_middleware_from_config

Example:
    from fastapi import FastAPI
    from x402.mechanisms.evm.exact import register_exact_evm_server
    from x402_gate.fastapi import payment_middleware_from_config

    app = FastAPI()
    app.middleware("http")(
        payment_middleware_from_config(
            facilitator_url="https://x402.org/facilitator",
            schemes=[register_exact_evm_server],
            routes={
                "GET /weather": {
                    "accepts": {
                        "scheme": "exact",
                        "network": "eip155:84532",
                        "payTo": "0x...",
                        "price": "$0.001",
                    },
                },
            },
        )
    )
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from x402 import x402ResourceServer
from x402.http import FacilitatorConfig, HTTPFacilitatorClient, x402HTTPResourceServer
from x402.http.types import RESULT_PAYMENT_ERROR, RESULT_PAYMENT_VERIFIED
from x402.schemas import ResourceInfo

from ..errors import ErrorMessages
from ..logger import get_logger, sanitize_error
from ..utils import maybe_await
from .init_state import InitializationState, Initializer
from .responses import instructions_to_response, service_unavailable_response
from .routes import DynamicRouteConfig, RoutesConfig, RouteTable
from .utils import (
    CallNext,
    PolicyRequest,
    VerificationFailure,
    build_payment_requirements_from_options,
    create_challenge,
    create_request_context,
    extract_payment_payload,
    handle_settlement,
    handle_static_route_verified,
    is_success_status,
    set_payment_info,
    verify_and_build_payment_info,
)

Middleware = Callable[[Request, CallNext], Any]

# Either fn(resource_server) or an object with register(resource_server)
SchemeRegistration = Any


def _requirements_failed_response() -> JSONResponse:
    return JSONResponse(
        content={"error": ErrorMessages.PAYMENT_REQUIREMENTS_FAILED},
        status_code=500,
    )


def _passthrough() -> Middleware:
    async def middleware(request: Request, call_next: CallNext) -> Response:
        return await call_next(request)

    return middleware


def _initializer(server: Any) -> Initializer:
    """Wrap ``server.initialize`` (sync or async) as an awaitable initializer."""

    async def initialize() -> None:
        await maybe_await(server.initialize())

    return initialize


async def _serve_static_route(
    http_server: x402HTTPResourceServer,
    request: Request,
    call_next: CallNext,
    log: logging.Logger,
) -> Response:
    context = create_request_context(request)

    if http_server.requires_payment(context):
        result = await maybe_await(http_server.process_http_request(context))

        if result.type == RESULT_PAYMENT_ERROR and result.response is not None:
            return instructions_to_response(result.response)

        if result.type == RESULT_PAYMENT_VERIFIED:
            return await handle_static_route_verified(
                http_server,
                request,
                call_next,
                result.payment_payload,
                result.payment_requirements,
                logger=log,
            )

    return await call_next(request)


def payment_middleware_from_http_server(
    http_server: x402HTTPResourceServer,
    logger: Optional[logging.Logger] = None,
) -> Middleware:
    """Build middleware around a pre-configured HTTP resource server.

    Only statically configured routes are served. The HTTP server (and with
    it the resource server) is initialized once, on first use at the latest.

    Args:
        http_server: Configured ``x402.http.x402HTTPResourceServer``.
        logger: Logger for settlement and initialization errors.

    Returns:
        Callable: FastAPI middleware function enforcing payment
    """
    log = get_logger(logger, __name__)
    init_state = InitializationState(_initializer(http_server), logger=log)

    async def middleware(request: Request, call_next: CallNext) -> Response:
        await init_state.wait()
        if init_state.is_failed:
            return service_unavailable_response()
        return await _serve_static_route(http_server, request, call_next, log)

    return middleware


def payment_middleware(
    resource_server: x402ResourceServer,
    routes: RoutesConfig,
    enabled: bool = True,
    logger: Optional[logging.Logger] = None,
) -> Middleware:
    """Build middleware from a resource server and a route map.

    Routes whose ``accepts`` is a callable are dynamic: the callable receives
    the request and returns the payment options for it (None or an empty list
    serves the request for free). Dynamic routes are matched before static
    ones and win when both match.

    Args:
        resource_server: ``x402.x402ResourceServer`` with its schemes registered.
        routes: Mapping of ``"METHOD /path"`` (or ``"/path"``) to route config.
        enabled: When False, every request passes through untouched.
        logger: Logger for settlement and initialization errors.

    Returns:
        Callable: FastAPI middleware function enforcing payment
    """
    if not enabled:
        return _passthrough()

    log = get_logger(logger, __name__)
    table = RouteTable(routes)

    http_server = (
        x402HTTPResourceServer(resource_server, table.static_routes)
        if table.has_static_routes
        else None
    )

    # HTTP server initialization also initializes the resource server
    if http_server is not None:
        init_state = InitializationState(_initializer(http_server), logger=log)
    elif table.has_dynamic_routes:
        init_state = InitializationState(_initializer(resource_server), logger=log)
    else:
        init_state = InitializationState(logger=log)

    async def middleware(request: Request, call_next: CallNext) -> Response:
        await init_state.wait()
        if init_state.is_failed:
            return service_unavailable_response()

        dynamic_config = table.find_dynamic_route(request.method, request.url.path)
        if dynamic_config is not None:
            return await handle_dynamic_route(
                request, call_next, resource_server, dynamic_config, log
            )

        if http_server is not None:
            return await _serve_static_route(http_server, request, call_next, log)

        return await call_next(request)

    return middleware


def payment_middleware_from_config(
    facilitator_url: str,
    routes: RoutesConfig,
    schemes: Iterable[SchemeRegistration],
    enabled: bool = True,
    logger: Optional[logging.Logger] = None,
    facilitator_config: Optional[FacilitatorConfig] = None,
) -> Middleware:
    """Build middleware from a facilitator URL and scheme registrations.

    Args:
        facilitator_url: Base URL of the x402 facilitator.
        routes: Route map, as for ``payment_middleware``.
        schemes: Registrations applied to the new resource server, each
            either ``fn(server)`` (e.g. ``register_exact_evm_server``) or an
            object with ``register(server)``.
        enabled: When False, every request passes through untouched.
        logger: Logger for settlement and initialization errors.
        facilitator_config: Extra ``x402.http.FacilitatorConfig`` settings
            (auth provider, timeout, client); its ``url`` is replaced by
            ``facilitator_url``.

    Returns:
        Callable: FastAPI middleware function enforcing payment
    """
    if not enabled:
        return _passthrough()

    config = replace(facilitator_config or FacilitatorConfig(), url=facilitator_url)
    resource_server = x402ResourceServer(HTTPFacilitatorClient(config))

    for scheme in schemes:
        register = getattr(scheme, "register", scheme)
        register(resource_server)

    return payment_middleware(resource_server, routes, enabled=enabled, logger=logger)


async def handle_dynamic_route(
    request: Request,
    call_next: CallNext,
    resource_server: x402ResourceServer,
    dynamic_config: DynamicRouteConfig,
    logger: Optional[logging.Logger] = None,
) -> Response:
    """Serve a dynamic route: resolve options, verify, call the handler, settle.

    Args:
        request: Incoming request.
        call_next: Downstream ASGI handler.
        resource_server: Resource server for requirements, verification and settlement.
        dynamic_config: Matched dynamic route.
        logger: Logger for pricing, verification and settlement errors.

    Returns:
        The handler's response (with settlement headers when settled), or a
        402/500 response when the request cannot be served.
    """
    log = get_logger(logger, __name__)
    context = create_request_context(request)

    try:
        payment_options = await maybe_await(dynamic_config.accepts(PolicyRequest(request)))
    except Exception as e:
        log.error(f"{ErrorMessages.LOG_REQUIREMENTS_ERROR} {sanitize_error(e)}")
        return _requirements_failed_response()

    # None or [] serves the request for free
    if not payment_options:
        return await call_next(request)

    try:
        requirements = await build_payment_requirements_from_options(
            resource_server, list(payment_options), context
        )
    except Exception as e:
        log.error(f"{ErrorMessages.LOG_REQUIREMENTS_ERROR} {sanitize_error(e)}")
        return _requirements_failed_response()

    resource_info = ResourceInfo(
        url=str(request.url),
        description=dynamic_config.description or "",
        mime_type=dynamic_config.mime_type or "application/json",
    )

    try:
        payment_payload = extract_payment_payload(request)
    except ValueError:
        return await create_challenge(
            resource_server, requirements, resource_info, ErrorMessages.INVALID_SIGNATURE_HEADER
        )

    if payment_payload is None:
        return await create_challenge(resource_server, requirements, resource_info)

    result = await verify_and_build_payment_info(
        resource_server, payment_payload, requirements, resource_info, logger=log
    )
    if isinstance(result, VerificationFailure):
        return result.response

    payment_info = result.payment_info
    set_payment_info(request, payment_info)

    response = await call_next(request)

    if not is_success_status(response.status_code):
        return response

    return await handle_settlement(
        resource_server,
        payment_payload,
        result.matched_requirements,
        response,
        payment_info,
        logger=log,
    )
