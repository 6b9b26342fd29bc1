"""Payment lifecycle helpers for FastAPI/Starlette.

These are the building blocks the middleware composes; they are public so
custom middleware can reuse them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Optional, Union

from fastapi import Request
from fastapi.responses import JSONResponse, Response
from x402.http import HTTPRequestContext, PaymentOption
from x402.http.constants import (
    PAYMENT_REQUIRED_HEADER,
    PAYMENT_RESPONSE_HEADER,
    PAYMENT_SIGNATURE_HEADER,
)
from x402.http.utils import (
    decode_payment_signature_header,
    encode_payment_required_header,
    encode_payment_response_header,
)
from x402.schemas import (
    PaymentPayload,
    PaymentRequired,
    PaymentRequirements,
    ResourceConfig,
    ResourceInfo,
    SettleResponse,
)

from ..errors import ErrorMessages
from ..logger import get_logger, sanitize_error
from ..types import PaymentInfo
from ..utils import maybe_await, resolve_dynamic
from .adapter import FastAPIAdapter
from .constants import (
    LEGACY_PAYMENT_HEADER,
    LEGACY_PAYMENT_RESPONSE_HEADER,
    PAYMENT_REQUIRED_STATUS,
)
from .responses import clone_with_headers, is_body_consumed

if TYPE_CHECKING:
    from x402 import x402ResourceServer
    from x402.http import x402HTTPResourceServer

# request.state attribute holding the PaymentInfo
PAYMENT_INFO_STATE_KEY = "x402"

CallNext = Callable[[Request], Awaitable[Response]]


def get_payment_info(request: Request) -> PaymentInfo | None:
    """PaymentInfo recorded for this request, if payment was verified."""
    return getattr(request.state, PAYMENT_INFO_STATE_KEY, None)


def set_payment_info(request: Request, payment_info: PaymentInfo) -> None:
    """Attach PaymentInfo to ``request.state`` for downstream handlers."""
    setattr(request.state, PAYMENT_INFO_STATE_KEY, payment_info)


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


# ============================================================================
# Payment Header
# ============================================================================


class PaymentHeaderAdapter(FastAPIAdapter):
    """Adapter that serves a legacy ``X-PAYMENT`` proof as ``PAYMENT-SIGNATURE``.

    The legacy header is only consulted when ``PAYMENT-SIGNATURE`` is absent;
    a present but empty primary header is returned as is.
    """

    def get_header(self, name: str) -> str | None:
        value = super().get_header(name)
        if value is None and name.upper() == PAYMENT_SIGNATURE_HEADER:
            return super().get_header(LEGACY_PAYMENT_HEADER)
        return value


def read_payment_header(request: Request) -> str | None:
    """Raw payment proof header, primary name first."""
    return PaymentHeaderAdapter(request).get_header(PAYMENT_SIGNATURE_HEADER)


def create_request_context(request: Request) -> HTTPRequestContext:
    """Build the ``x402.http`` request context for a request."""
    return HTTPRequestContext(
        adapter=PaymentHeaderAdapter(request),
        path=request.url.path,
        method=request.method,
    )


def extract_payment_payload(request: Request) -> PaymentPayload | None:
    """Decode the payment proof from the request headers.

    Returns:
        The payload, or None when no payment header is present.

    Raises:
        ValueError: If a payment header is present but malformed.
    """
    header = read_payment_header(request)
    if not header:
        return None

    try:
        payload = decode_payment_signature_header(header)
    except Exception as e:
        raise ValueError(ErrorMessages.INVALID_SIGNATURE_HEADER) from e

    if not isinstance(payload, PaymentPayload):
        raise ValueError(ErrorMessages.INVALID_SIGNATURE_HEADER)
    return payload


def create_402_response(payment_required: PaymentRequired) -> JSONResponse:
    """402 response with the PaymentRequired body and its encoded header copy."""
    return JSONResponse(
        content=payment_required.model_dump(mode="json", by_alias=True, exclude_none=True),
        status_code=PAYMENT_REQUIRED_STATUS,
        headers={PAYMENT_REQUIRED_HEADER: encode_payment_required_header(payment_required)},
    )


def settlement_headers(settle_response: SettleResponse) -> dict[str, str]:
    """``PAYMENT-RESPONSE`` and its legacy mirror for a successful settlement."""
    encoded = encode_payment_response_header(settle_response)
    return {
        PAYMENT_RESPONSE_HEADER: encoded,
        LEGACY_PAYMENT_RESPONSE_HEADER: encoded,
    }


# ============================================================================
# Requirements
# ============================================================================


async def build_payment_requirements_from_options(
    resource_server: x402ResourceServer,
    options: list[PaymentOption],
    context: HTTPRequestContext,
) -> list[PaymentRequirements]:
    """Build requirements for each option, resolving callable payTo/price.

    Callables receive the request context and may be sync or async.
    """
    requirements: list[PaymentRequirements] = []

    for option in options:
        config = ResourceConfig(
            scheme=option.scheme,
            network=option.network,
            pay_to=await resolve_dynamic(option.pay_to, context),
            price=await resolve_dynamic(option.price, context),
            max_timeout_seconds=option.max_timeout_seconds,
        )
        built = await maybe_await(resource_server.build_payment_requirements(config))
        requirements.extend(built)

    return requirements


async def create_challenge(
    resource_server: x402ResourceServer,
    requirements: list[PaymentRequirements],
    resource_info: ResourceInfo,
    error: str | None = None,
) -> JSONResponse:
    """402 challenge listing ``requirements``, with an optional error message."""
    payment_required = await maybe_await(
        resource_server.create_payment_required_response(requirements, resource_info, error)
    )
    return create_402_response(payment_required)


# ============================================================================
# Verification
# ============================================================================


@dataclass
class VerificationSuccess:
    payment_info: PaymentInfo
    matched_requirements: PaymentRequirements


@dataclass
class VerificationFailure:
    response: Response


VerificationResult = Union[VerificationSuccess, VerificationFailure]


async def verify_and_build_payment_info(
    resource_server: x402ResourceServer,
    payment_payload: PaymentPayload,
    requirements: list[PaymentRequirements],
    resource_info: ResourceInfo,
    logger: Optional[logging.Logger] = None,
) -> VerificationResult:
    """Match and verify a payment, producing PaymentInfo on success.

    Args:
        resource_server: Resource server used for matching and verification.
        payment_payload: Decoded payment proof.
        requirements: Acceptable requirements for this request.
        resource_info: Resource descriptor for 402 challenges.
        logger: Logger for verifier exceptions.

    Returns:
        VerificationSuccess, or VerificationFailure carrying a 402 response.
    """
    log = get_logger(logger, __name__)

    async def challenge(error: str) -> VerificationFailure:
        return VerificationFailure(
            response=await create_challenge(resource_server, requirements, resource_info, error)
        )

    matched = await maybe_await(
        resource_server.find_matching_requirements(requirements, payment_payload)
    )
    if matched is None:
        return await challenge(ErrorMessages.NO_MATCHING_REQUIREMENTS)

    try:
        verify_result = await maybe_await(resource_server.verify_payment(payment_payload, matched))
    except Exception as e:
        log.error(f"{ErrorMessages.LOG_VERIFICATION_ERROR} {sanitize_error(e)}")
        return await challenge(ErrorMessages.VERIFICATION_FAILED)

    if not verify_result.is_valid:
        return await challenge(verify_result.invalid_reason or ErrorMessages.VERIFICATION_FAILED)

    return VerificationSuccess(
        payment_info=PaymentInfo(
            payer=verify_result.payer or "unknown",
            network=matched.network,
        ),
        matched_requirements=matched,
    )


# ============================================================================
# Settlement
# ============================================================================


def _log_settlement_failure(log: logging.Logger, reason: Any) -> None:
    log.error(f"{ErrorMessages.LOG_SETTLEMENT_FAILED} {reason}")


async def handle_settlement(
    resource_server: x402ResourceServer,
    payment_payload: PaymentPayload,
    requirements: PaymentRequirements,
    response: Response,
    payment_info: PaymentInfo,
    logger: Optional[logging.Logger] = None,
) -> Response:
    """Settle after a successful response.

    ``payment_info`` is updated in place with the transaction (and payer).
    A settlement failure never fails the request: the original response is
    returned untouched.

    Returns:
        A copy of the response with settlement headers, or the original
        response if settlement failed.
    """
    log = get_logger(logger, __name__)

    if is_body_consumed(response):
        log.warning(ErrorMessages.LOG_BODY_CONSUMED)

    try:
        settle_result = await maybe_await(
            resource_server.settle_payment(payment_payload, requirements)
        )
    except Exception as e:
        _log_settlement_failure(log, sanitize_error(e))
        return response

    if not settle_result.success:
        _log_settlement_failure(log, settle_result.error_reason)
        return response

    payment_info.transaction = settle_result.transaction
    if settle_result.payer:
        payment_info.payer = settle_result.payer

    return await clone_with_headers(response, settlement_headers(settle_result))


async def handle_static_route_verified(
    http_server: x402HTTPResourceServer,
    request: Request,
    call_next: CallNext,
    payment_payload: PaymentPayload,
    payment_requirements: PaymentRequirements,
    logger: Optional[logging.Logger] = None,
) -> Response:
    """Serve a verified static route: record payment, call the handler, settle on 2xx.

    Settlement goes through ``http_server.process_settlement``, which builds
    the settlement headers; ``X-PAYMENT-RESPONSE`` is added as a mirror.
    """
    log = get_logger(logger, __name__)

    payment_info = PaymentInfo(payer="unknown", network=payment_requirements.network)
    set_payment_info(request, payment_info)

    response = await call_next(request)
    if not is_success_status(response.status_code):
        return response

    if is_body_consumed(response):
        log.warning(ErrorMessages.LOG_BODY_CONSUMED)

    try:
        settle_result = await maybe_await(
            http_server.process_settlement(payment_payload, payment_requirements)
        )
    except Exception as e:
        _log_settlement_failure(log, sanitize_error(e))
        return response

    if not settle_result.success:
        _log_settlement_failure(log, settle_result.error_reason)
        return response

    payment_info.transaction = settle_result.transaction
    if settle_result.payer:
        payment_info.payer = settle_result.payer

    headers = dict(settle_result.headers or {})
    if PAYMENT_RESPONSE_HEADER in headers:
        headers.setdefault(LEGACY_PAYMENT_RESPONSE_HEADER, headers[PAYMENT_RESPONSE_HEADER])

    return await clone_with_headers(response, headers)


# ============================================================================
# Policy Request View
# ============================================================================


class PolicyRequest:
    """Request view handed to dynamic pricing functions.

    Everything is forwarded to the wrapped request except the body readers,
    which serve a buffered copy so the handler can still read the body.
    """

    def __init__(self, request: Request) -> None:
        self._request = request
        self._body: bytes | None = None

    def __getattr__(self, name: str) -> Any:
        return getattr(self._request, name)

    async def body(self) -> bytes:
        if self._body is None:
            # Starlette caches the body on the request and replays it downstream
            self._body = await self._request.body()
        return self._body

    async def json(self) -> Any:
        return json.loads(await self.body())

    async def stream(self) -> AsyncIterator[bytes]:
        yield await self.body()
        yield b""
