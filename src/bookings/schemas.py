from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking lifecycle status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    CANCELLED = "cancelled"

TERMINAL_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.FAILED, BookingStatus.CANCELLED})

class PaymentOutcome(str, Enum):
    """Value of the status query parameter on the frontend /booked page"""
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELED = "canceled"

class CamelModel(BaseModel):
    """Base for models exchanged with the frontend in camelCase"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

# Request Models
class BookingInitiateRequest(CamelModel):
    """Booking form submitted before redirecting to the payment page.

    Every field is optional at the schema level so that missing values are
    reported by the store's own validation with a single readable message.
    """
    user_id: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    tour_name: Optional[str] = None
    total_price: Optional[Decimal] = None
    max_group_size: Optional[int] = None
    baby_count: Optional[int] = None
    booking_date: Optional[date] = Field(None, alias="date")

# Response Models
class BookingOut(CamelModel):
    """Booking as returned by read endpoints"""
    id: str
    transaction_id: str
    user_id: str
    full_name: str
    phone: str
    tour_name: str
    booking_date: date = Field(..., alias="date")
    total_price: float
    max_group_size: int
    baby_count: int
    status: BookingStatus
    created_at: datetime
    updated_at: datetime

class BookingResponse(BaseModel):
    success: bool = True
    data: BookingOut

class BookingListResponse(BaseModel):
    success: bool = True
    data: List[BookingOut]

class MessageResponse(BaseModel):
    success: bool = True
    message: str

class InitiatedPayment(CamelModel):
    """Gateway session created for a pending booking"""
    transaction_id: str
    payment_url: str

class InitiatePaymentResponse(CamelModel):
    status: str = "success"
    payment_url: str
    transaction_id: str

class Invoice(CamelModel):
    """Read-only invoice projection keyed by transaction identifier"""
    transaction_id: str
    full_name: str
    tour_name: str
    total_price: float
    booking_date: date = Field(..., alias="date")
    payment_status: BookingStatus

class IpnAcknowledgement(BaseModel):
    received: bool = True
