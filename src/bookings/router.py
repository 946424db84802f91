from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy.orm import Session
from typing import Dict, Optional

from src.config import settings
from src.database import get_db
from src.bookings.schemas import (
    BookingInitiateRequest, BookingOut, BookingResponse, BookingListResponse,
    MessageResponse, InitiatePaymentResponse, Invoice, IpnAcknowledgement, PaymentOutcome
)
from src.bookings.booking_service import BookingService
from src.bookings.store import BookingStore
from src.exceptions import BookingNotFound
from src.payments.gateway import SSLCommerzClient, parse_amount, get_payment_gateway
from src.payments.schemas import IpnNotification

router = APIRouter()
callback_router = APIRouter()
invoice_router = APIRouter()


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: SSLCommerzClient = Depends(get_payment_gateway)
) -> BookingService:
    return BookingService(BookingStore(db), gateway, settings.booking_flow_config())


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


async def ipn_form_fields(request: Request) -> Dict[str, str]:
    """Every posted IPN field as text; verify_key may name any of them"""
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}

# Payment Initiation
@router.post("/initiate", response_model=InitiatePaymentResponse)
def initiate_payment(
    request: BookingInitiateRequest,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Create a pending booking and return the gateway payment page URL"""

    initiated = booking_service.initiate(request)
    return InitiatePaymentResponse(
        payment_url=initiated.payment_url,
        transaction_id=initiated.transaction_id
    )

# Gateway Callbacks
@callback_router.post("/success/{transaction_id}")
@callback_router.post("/success", include_in_schema=False)
def payment_success(
    transaction_id: Optional[str] = None,
    val_id: Optional[str] = Form(None),
    tran_id: Optional[str] = Form(None),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Customer returned from a completed payment; validate before confirming"""

    transaction_id = transaction_id or tran_id
    if not transaction_id:
        return _redirect(booking_service.status_page_url(PaymentOutcome.FAILURE))

    try:
        booking = booking_service.handle_success(transaction_id, val_id)
        outcome = booking_service.outcome_for(booking)
    except BookingNotFound:
        logger.warning(f"Success callback for unknown transaction {transaction_id}")
        outcome = PaymentOutcome.FAILURE
    except Exception:
        logger.exception(f"Success callback for {transaction_id} crashed")
        outcome = PaymentOutcome.FAILURE

    return _redirect(booking_service.status_page_url(outcome, transaction_id))

@callback_router.post("/fail/{transaction_id}")
@callback_router.post("/fail", include_in_schema=False)
def payment_fail(
    transaction_id: Optional[str] = None,
    tran_id: Optional[str] = Form(None),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Gateway reported a failed payment"""

    transaction_id = transaction_id or tran_id
    try:
        booking_service.handle_failure(transaction_id)
    except Exception:
        logger.exception(f"Fail callback for {transaction_id} crashed")

    return _redirect(booking_service.status_page_url(PaymentOutcome.FAILURE, transaction_id))

@callback_router.post("/cancel/{transaction_id}")
@callback_router.post("/cancel", include_in_schema=False)
def payment_cancel(
    transaction_id: Optional[str] = None,
    tran_id: Optional[str] = Form(None),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Customer abandoned the payment page"""

    transaction_id = transaction_id or tran_id
    try:
        booking_service.handle_cancel(transaction_id)
    except Exception:
        logger.exception(f"Cancel callback for {transaction_id} crashed")

    return _redirect(booking_service.status_page_url(PaymentOutcome.CANCELED, transaction_id))

@callback_router.post("/ipn/{transaction_id}", response_model=IpnAcknowledgement)
@callback_router.post("/ipn", response_model=IpnAcknowledgement, include_in_schema=False)
def payment_ipn(
    transaction_id: Optional[str] = None,
    fields: Dict[str, str] = Depends(ipn_form_fields),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Instant payment notification; the provider only needs a 200"""

    transaction_id = transaction_id or fields.get("tran_id")
    if not transaction_id:
        logger.warning("IPN without a transaction identifier")
        return IpnAcknowledgement()

    try:
        booking_service.handle_ipn(IpnNotification(
            tran_id=transaction_id,
            status=fields.get("status", ""),
            val_id=fields.get("val_id") or None,
            amount=parse_amount(fields.get("amount")),
            form_fields=fields
        ))
    except Exception:
        logger.exception(f"IPN for {transaction_id} crashed")

    return IpnAcknowledgement()

# Booking Read Endpoints
@router.get("", response_model=BookingListResponse)
def get_all_bookings(booking_service: BookingService = Depends(get_booking_service)):
    """Get all bookings, newest first"""

    bookings = booking_service.list_bookings()
    return BookingListResponse(data=[BookingOut.model_validate(b) for b in bookings])

@router.get("/details", response_model=BookingOut)
def get_booking_details(
    transaction_id: str = Query(..., alias="transactionId", description="Gateway transaction identifier"),
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get a booking by transaction identifier"""

    return BookingOut.model_validate(booking_service.get_by_transaction_id(transaction_id))

@router.get("/user/{user_id}", response_model=BookingListResponse)
def get_bookings_by_user(
    user_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get all bookings for a user"""

    bookings = booking_service.list_user_bookings(user_id)
    return BookingListResponse(data=[BookingOut.model_validate(b) for b in bookings])

@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Get booking details by ID"""

    return BookingResponse(data=BookingOut.model_validate(booking_service.get_booking(booking_id)))

@router.delete("/{booking_id}", response_model=MessageResponse)
def cancel_booking(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Cancel a confirmed booking within 48 hours of its date"""

    booking_service.cancel_confirmed_booking(booking_id)
    return MessageResponse(message="Booking cancelled successfully")

# Invoice
@invoice_router.get("/{transaction_id}", response_model=Invoice)
def get_invoice(
    transaction_id: str,
    booking_service: BookingService = Depends(get_booking_service)
):
    """Invoice projection of a booking"""

    return booking_service.get_invoice(transaction_id)
