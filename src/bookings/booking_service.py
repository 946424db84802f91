from typing import List, Optional
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from urllib.parse import urlencode

from loguru import logger

from src.bookings.schemas import (
    BookingInitiateRequest, BookingStatus, InitiatedPayment, Invoice,
    PaymentOutcome, TERMINAL_STATUSES
)
from src.bookings.store import BookingStore
from src.config import BookingFlowConfig
from src.exceptions import (
    BookingNotFound, CancellationNotAllowed, GatewayError, PaymentInitiationError
)
from src.models import Booking
from src.payments.gateway import SSLCommerzClient
from src.payments.schemas import IpnNotification, IpnStatus, PaymentRequest, PaymentValidation

CANCELLATION_WINDOW = timedelta(hours=48)

IPN_TERMINAL_STATUSES = {
    IpnStatus.FAILED.value: BookingStatus.FAILED,
    IpnStatus.UNATTEMPTED.value: BookingStatus.FAILED,
    IpnStatus.EXPIRED.value: BookingStatus.FAILED,
    IpnStatus.CANCELLED.value: BookingStatus.CANCELLED,
}


class BookingService:
    """Booking lifecycle: pending -> confirmed | failed | cancelled.

    Gateway callbacks are independent events. Each one looks the booking up by
    transaction identifier and asks the store for a pending-only transition,
    so duplicates, replays and redirect/IPN races all collapse into whichever
    callback got there first.
    """

    def __init__(self, store: BookingStore, gateway: SSLCommerzClient, config: BookingFlowConfig):
        self.store = store
        self.gateway = gateway
        self.config = config

    def initiate(self, request: BookingInitiateRequest) -> InitiatedPayment:
        """Create a pending booking and open a gateway session for it"""

        booking = self.store.create(request)
        payment = self._build_payment_request(booking)

        try:
            payment_url = self.gateway.initiate(payment)
        except GatewayError as e:
            # The booking stays pending; IPN or cleanup reconciles it later
            logger.warning(f"Payment initiation failed for {booking.transaction_id}: {e.message}")
            raise PaymentInitiationError(e.message, status_code=e.status_code) from e

        return InitiatedPayment(transaction_id=booking.transaction_id, payment_url=payment_url)

    def handle_success(self, transaction_id: str, val_id: Optional[str]) -> Booking:
        """Browser redirect after the customer paid.

        Without a val_id there is nothing to validate: the booking stays
        pending for the IPN to settle, and the caller reports failure.
        """

        booking = self.store.find_by_transaction_id(transaction_id)
        if self._is_terminal(booking):
            logger.info(f"Success callback for {transaction_id} ignored, booking already {booking.status}")
            return booking

        if not val_id:
            logger.warning(f"Success callback for {transaction_id} carried no val_id")
            return booking

        return self._settle_with_validation(booking, val_id)

    def handle_failure(self, transaction_id: str) -> Optional[Booking]:
        return self._close_pending(transaction_id, BookingStatus.FAILED)

    def handle_cancel(self, transaction_id: str) -> Optional[Booking]:
        return self._close_pending(transaction_id, BookingStatus.CANCELLED)

    def handle_ipn(self, notification: IpnNotification) -> Optional[Booking]:
        """Server-to-server notification; authoritative when the browser never returns"""

        try:
            booking = self.store.find_by_transaction_id(notification.tran_id)
        except BookingNotFound:
            logger.warning(f"IPN for unknown transaction {notification.tran_id}")
            return None

        if self._is_terminal(booking):
            logger.info(f"IPN for {notification.tran_id} ignored, booking already {booking.status}")
            return booking

        ipn_status = (notification.status or "").upper()

        if ipn_status in (IpnStatus.VALID.value, IpnStatus.VALIDATED.value):
            if not notification.val_id:
                logger.warning(f"IPN for {notification.tran_id} reported {ipn_status} without val_id")
                return booking
            return self._settle_with_validation(booking, notification.val_id)

        target = IPN_TERMINAL_STATUSES.get(ipn_status)
        if target is None:
            logger.warning(f"IPN for {notification.tran_id} has unknown status {ipn_status!r}")
            return booking

        # Nothing to validate with the gateway, so the notification itself must be signed
        if not self.gateway.verify_ipn(notification.form_fields):
            logger.warning(f"IPN {ipn_status} for {notification.tran_id} failed signature check, ignored")
            return booking

        return self.store.update_status(booking.transaction_id, target)

    def cancel_confirmed_booking(self, booking_id: str, now: Optional[datetime] = None) -> None:
        """User-initiated cancellation of a confirmed booking"""

        booking = self.store.find_by_id(booking_id)

        if booking.status != BookingStatus.CONFIRMED.value:
            raise CancellationNotAllowed(
                f"Only confirmed bookings can be cancelled. Status: {booking.status}"
            )

        now = now or datetime.now(timezone.utc)
        starts_at = datetime.combine(booking.date, datetime.min.time(), tzinfo=timezone.utc)
        if now - starts_at >= CANCELLATION_WINDOW:
            raise CancellationNotAllowed("Cancellation window of 48 hours has passed")

        self.store.delete(booking.id)

    # Read projections

    def get_booking(self, booking_id: str) -> Booking:
        return self.store.find_by_id(booking_id)

    def get_by_transaction_id(self, transaction_id: str) -> Booking:
        return self.store.find_by_transaction_id(transaction_id)

    def list_bookings(self) -> List[Booking]:
        bookings = self.store.list_all()
        if not bookings:
            raise BookingNotFound("No bookings found")
        return bookings

    def list_user_bookings(self, user_id: str) -> List[Booking]:
        bookings = self.store.list_by_user(user_id)
        if not bookings:
            raise BookingNotFound("No bookings found for this user")
        return bookings

    def get_invoice(self, transaction_id: str) -> Invoice:
        try:
            booking = self.store.find_by_transaction_id(transaction_id)
        except BookingNotFound:
            raise BookingNotFound("Invoice not found")

        return Invoice(
            transaction_id=booking.transaction_id,
            full_name=booking.full_name,
            tour_name=booking.tour_name,
            total_price=booking.total_price,
            booking_date=booking.date,
            payment_status=booking.status
        )

    # URLs

    def callback_url(self, kind: str, transaction_id: str) -> str:
        return f"{self.config.server_url}{self.config.api_prefix}/booking/{kind}/{transaction_id}"

    def status_page_url(self, outcome: PaymentOutcome, transaction_id: Optional[str] = None) -> str:
        params = {"status": outcome.value}
        if transaction_id:
            params["transactionId"] = transaction_id
        return f"{self.config.frontend_url}/booked?{urlencode(params)}"

    def outcome_for(self, booking: Optional[Booking]) -> PaymentOutcome:
        if booking is None:
            return PaymentOutcome.FAILURE
        if booking.status == BookingStatus.CONFIRMED.value:
            return PaymentOutcome.SUCCESS
        if booking.status == BookingStatus.CANCELLED.value:
            return PaymentOutcome.CANCELED
        return PaymentOutcome.FAILURE

    # Internals

    def _settle_with_validation(self, booking: Booking, val_id: str) -> Booking:
        try:
            validation = self.gateway.validate(val_id)
        except GatewayError as e:
            # Unverifiable payments are never confirmed
            logger.error(f"Validation of {booking.transaction_id} failed at the gateway: {e.message}")
            return self.store.update_status(booking.transaction_id, BookingStatus.FAILED)

        if self._payment_matches(booking, validation):
            return self.store.update_status(booking.transaction_id, BookingStatus.CONFIRMED)

        logger.warning(
            f"Validation rejected {booking.transaction_id}: status={validation.status} "
            f"tran_id={validation.tran_id} amount={validation.amount}"
        )
        return self.store.update_status(booking.transaction_id, BookingStatus.FAILED)

    def _payment_matches(self, booking: Booking, validation: PaymentValidation) -> bool:
        if not validation.valid:
            return False
        if validation.tran_id and validation.tran_id != booking.transaction_id:
            return False
        if validation.amount is not None and validation.amount != Decimal(booking.total_price):
            return False
        return True

    def _close_pending(self, transaction_id: Optional[str], target: BookingStatus) -> Optional[Booking]:
        if not transaction_id:
            logger.warning(f"{target.value} callback without a transaction identifier")
            return None

        try:
            booking = self.store.find_by_transaction_id(transaction_id)
        except BookingNotFound:
            logger.warning(f"{target.value} callback for unknown transaction {transaction_id}")
            return None

        if self._is_terminal(booking):
            logger.info(f"{target.value} callback for {transaction_id} ignored, booking already {booking.status}")
            return booking

        return self.store.update_status(transaction_id, target)

    def _build_payment_request(self, booking: Booking) -> PaymentRequest:
        transaction_id = booking.transaction_id
        return PaymentRequest(
            total_amount=booking.total_price,
            currency=self.config.currency,
            tran_id=transaction_id,
            success_url=self.callback_url("success", transaction_id),
            fail_url=self.callback_url("fail", transaction_id),
            cancel_url=self.callback_url("cancel", transaction_id),
            ipn_url=self.callback_url("ipn", transaction_id),
            product_name=booking.tour_name,
            cus_name=booking.full_name,
            cus_phone=booking.phone
        )

    @staticmethod
    def _is_terminal(booking: Booking) -> bool:
        return BookingStatus(booking.status) in TERMINAL_STATUSES
