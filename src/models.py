import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ================================
# Tours
# ================================
class Tour(Base):
    __tablename__ = "tours"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False, index=True)
    city = Column(String(100))
    price = Column(Numeric(12, 2), default=0)
    max_group_size = Column(Integer, default=1)
    featured = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    reviews = relationship("Review", back_populates="tour", cascade="all, delete-orphan")

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    transaction_id = Column(String(64), unique=True, nullable=False, index=True)
    user_id = Column(String(255), nullable=False, default="Unknown User", index=True)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    tour_name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    max_group_size = Column(Integer, nullable=False, default=1)
    baby_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_booking_total_price_non_negative"),
        CheckConstraint("max_group_size >= 1", name="ck_booking_group_size_positive"),
        CheckConstraint("baby_count >= 0", name="ck_booking_baby_count_non_negative"),
    )

    def __repr__(self):
        return f"<Booking {self.transaction_id} status={self.status}>"

# ================================
# Reviews
# ================================
class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tour_id = Column(String(36), ForeignKey("tours.id", ondelete="CASCADE"), nullable=False, index=True)
    username = Column(String(255), nullable=False)
    review_text = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 5", name="ck_review_rating_range"),
    )

    # Relationships
    tour = relationship("Tour", back_populates="reviews")
