"""Error types and the messages surfaced to callers and logs."""

from __future__ import annotations


class ErrorMessages:
    """Messages used in protocol responses and log lines."""

    # Response bodies / PaymentRequired.error
    SERVICE_UNAVAILABLE = "Payment service temporarily unavailable"
    INVALID_SIGNATURE_HEADER = "Invalid payment signature header"
    NO_MATCHING_REQUIREMENTS = "No matching payment requirements"
    VERIFICATION_FAILED = "Payment verification failed"
    PAYMENT_REQUIREMENTS_FAILED = "Failed to resolve payment requirements"

    # Log prefixes
    LOG_INIT_FAILED = "[x402] Failed to initialize HTTP resource server:"
    LOG_SETTLEMENT_FAILED = "[x402] Settlement failed:"
    LOG_VERIFICATION_ERROR = "[x402] Verification error:"
    LOG_REQUIREMENTS_ERROR = "[x402] Failed to build payment requirements:"
    LOG_BODY_CONSUMED = (
        "[x402] Warning: Response body has already been consumed. "
        "Settlement response may have empty body."
    )


def network_validation_error(network: object) -> str:
    """Format the message for an invalid network identifier."""
    return (
        f'Invalid network format: "{network}". '
        'Expected format: "protocol:chainId" (e.g., "eip155:8453")'
    )


class X402GateError(Exception):
    """Base class for x402-gate errors."""


class NetworkValidationError(X402GateError, ValueError):
    """Network identifier does not match ``namespace:reference``."""

    def __init__(self, network: object) -> None:
        self.network = network
        super().__init__(network_validation_error(network))


class PriceRangeError(X402GateError, ValueError):
    """USD price is negative, non-finite or above the supported ceiling."""
