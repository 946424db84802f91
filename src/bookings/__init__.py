"""
Booking & Payment Lifecycle Module

This module turns a tour booking form into a paid (or failed) booking through
the SSLCommerz hosted payment page. It includes:

- Pending booking creation with a unique transaction identifier
- Payment session initiation with per-transaction callback URLs
- Reconciliation of success / fail / cancel redirects and IPN notifications
- Read projections (booking details, user bookings, invoice)
- User cancellation of confirmed bookings within 48 hours

Key Components:
- store.py: Booking persistence with a pending-only compare-and-set update
- booking_service.py: Lifecycle state machine driven by gateway callbacks
- router.py: FastAPI endpoints for initiation, callbacks and reads
- schemas.py: Pydantic models for requests and camelCase responses

States:
- pending -> confirmed | failed | cancelled (the three outcomes are terminal)
"""

from .router import router, callback_router, invoice_router
from .booking_service import BookingService
from .store import BookingStore
from .schemas import (
    BookingStatus, PaymentOutcome, BookingInitiateRequest, BookingOut,
    InitiatedPayment, Invoice
)

__all__ = [
    "router",
    "callback_router",
    "invoice_router",
    "BookingService",
    "BookingStore",
    "BookingStatus",
    "PaymentOutcome",
    "BookingInitiateRequest",
    "BookingOut",
    "InitiatedPayment",
    "Invoice"
]
