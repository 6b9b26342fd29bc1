"""Header names and status codes used by the middleware.

The v2 header names (``PAYMENT-SIGNATURE``, ``PAYMENT-REQUIRED``,
``PAYMENT-RESPONSE``) come from ``x402.http.constants``; the legacy names
below are still accepted and mirrored for older clients.
"""

# Read only when PAYMENT-SIGNATURE is absent
LEGACY_PAYMENT_HEADER = "X-PAYMENT"

# Sent alongside PAYMENT-RESPONSE on settled responses
LEGACY_PAYMENT_RESPONSE_HEADER = "X-PAYMENT-RESPONSE"

PAYMENT_REQUIRED_STATUS = 402
SERVICE_UNAVAILABLE_STATUS = 503
