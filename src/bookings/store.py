from typing import List
from datetime import datetime, timezone
from decimal import Decimal
import secrets

from loguru import logger
from sqlalchemy import update
from sqlalchemy.orm import Session

from src.bookings.schemas import BookingInitiateRequest, BookingStatus
from src.exceptions import BookingNotFound, ValidationError
from src.models import Booking

UNKNOWN_USER = "Unknown User"

PRICE_QUANTUM = Decimal("0.01")
MAX_TOTAL_PRICE = Decimal("10000000000")


def generate_transaction_id() -> str:
    """Merchant transaction identifier handed to the gateway"""
    return f"TRAN_{secrets.token_hex(12).upper()}"


class BookingStore:
    """Durable storage for bookings keyed by id and by transaction identifier"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, request: BookingInitiateRequest) -> Booking:
        """Validate a booking request and persist it as pending"""

        self._validate(request)

        now = datetime.now(timezone.utc)
        booking = Booking(
            transaction_id=generate_transaction_id(),
            user_id=(request.user_id or "").strip() or UNKNOWN_USER,
            full_name=request.full_name.strip(),
            phone=request.phone.strip(),
            tour_name=request.tour_name.strip(),
            date=request.booking_date or now.date(),
            total_price=request.total_price,
            max_group_size=request.max_group_size or 1,
            baby_count=request.baby_count or 0,
            status=BookingStatus.PENDING.value,
            created_at=now,
            updated_at=now
        )

        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)

        logger.info(f"Booking {booking.id} created pending with transaction {booking.transaction_id}")
        return booking

    def find_by_transaction_id(self, transaction_id: str) -> Booking:
        booking = self.db.query(Booking).filter(Booking.transaction_id == transaction_id).first()
        if not booking:
            raise BookingNotFound()
        return booking

    def find_by_id(self, booking_id: str) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if not booking:
            raise BookingNotFound()
        return booking

    def list_by_user(self, user_id: str) -> List[Booking]:
        return self.db.query(Booking).filter(
            Booking.user_id == user_id
        ).order_by(Booking.created_at.desc()).all()

    def list_all(self) -> List[Booking]:
        return self.db.query(Booking).order_by(Booking.created_at.desc()).all()

    def update_status(self, transaction_id: str, new_status: BookingStatus) -> Booking:
        """Move a pending booking to new_status.

        The write is a single conditional UPDATE, so concurrent callbacks for
        the same transaction cannot both win. The returned booking reflects
        whatever state won; callers compare it with new_status.
        """

        if new_status == BookingStatus.PENDING:
            raise ValueError("A booking can only leave the pending state")

        result = self.db.execute(
            update(Booking)
            .where(
                Booking.transaction_id == transaction_id,
                Booking.status == BookingStatus.PENDING.value
            )
            .values(status=new_status.value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

        booking = self.find_by_transaction_id(transaction_id)
        self.db.refresh(booking)

        if result.rowcount:
            logger.info(f"Booking {transaction_id} moved pending -> {new_status.value}")
        else:
            logger.info(f"Booking {transaction_id} already {booking.status}, {new_status.value} ignored")
        return booking

    def delete(self, booking_id: str) -> None:
        booking = self.find_by_id(booking_id)
        self.db.delete(booking)
        self.db.commit()
        logger.info(f"Booking {booking_id} ({booking.transaction_id}) deleted")

    @staticmethod
    def _validate(request: BookingInitiateRequest) -> None:
        missing = [
            name for name, value in (
                ("totalPrice", request.total_price),
                ("fullName", request.full_name),
                ("phone", request.phone),
                ("tourName", request.tour_name),
            )
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        price = request.total_price
        if not price.is_finite():
            raise ValidationError("totalPrice must be a number")

        if price < Decimal("0"):
            raise ValidationError("totalPrice must not be negative")

        # Must fit Numeric(12, 2) exactly
        if price >= MAX_TOTAL_PRICE:
            raise ValidationError("totalPrice must have at most 10 integer digits")
        if price != price.quantize(PRICE_QUANTUM):
            raise ValidationError("totalPrice must have at most 2 decimal places")

        if request.max_group_size is not None and request.max_group_size < 0:
            raise ValidationError("maxGroupSize must not be negative")

        if request.baby_count is not None and request.baby_count < 0:
            raise ValidationError("babyCount must not be negative")
