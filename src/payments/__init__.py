"""
Payment Gateway Module

Adapter around the SSLCommerz hosted payment page. The rest of the application
only sees two operations:

- initiate: open a payment session and get the GatewayPageURL to redirect the
  customer to
- validate: confirm a val_id server-side before trusting a success callback

Key Components:
- gateway.py: httpx-based SSLCommerz client with bounded timeouts
- schemas.py: Pydantic models for session requests, validation results and IPNs
"""

from .gateway import SSLCommerzClient, get_payment_gateway
from .schemas import (
    PaymentRequest, PaymentValidation, IpnNotification, IpnStatus,
    GatewayValidationStatus
)

__all__ = [
    "SSLCommerzClient",
    "get_payment_gateway",
    "PaymentRequest",
    "PaymentValidation",
    "IpnNotification",
    "IpnStatus",
    "GatewayValidationStatus"
]
