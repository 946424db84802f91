"""
Shared fixtures: an in-memory SQLite database per test, a recording fake of
the payment gateway, and a TestClient wired to both through dependency
overrides.
"""

from collections.abc import Generator
from decimal import Decimal
from typing import Dict, List, Optional
import hashlib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import src.models  # noqa: F401
from src.bookings.booking_service import BookingService
from src.bookings.schemas import BookingInitiateRequest
from src.bookings.store import BookingStore
from src.config import settings
from src.database import Base, get_db
from src.exceptions import GatewayError
from src.main import app
from src.models import Tour
from src.payments.gateway import get_payment_gateway, ipn_signature_matches
from src.payments.schemas import PaymentRequest, PaymentValidation


GATEWAY_PAGE_URL = 'https://sandbox.sslcommerz.com/EasyCheckOut/testcde5f4c8'
STORE_PASSWORD = settings.SSL_STORE_PASSWD


def sign_ipn(fields: Dict[str, str], store_password: str = STORE_PASSWORD) -> Dict[str, str]:
    """Attach verify_key and verify_sign the way SSLCommerz signs an IPN"""
    keys = sorted(fields)
    signed = dict(fields, store_passwd=hashlib.md5(store_password.encode()).hexdigest())
    hash_string = '&'.join(f'{key}={signed[key]}' for key in sorted(signed))
    return {
        **fields,
        'verify_key': ','.join(keys),
        'verify_sign': hashlib.md5(hash_string.encode()).hexdigest(),
    }


class FakeGateway:
    """Records calls and answers like SSLCommerz would"""

    def __init__(self) -> None:
        self.initiated: List[PaymentRequest] = []
        self.validated: List[str] = []
        self.payment_url: Optional[str] = GATEWAY_PAGE_URL
        self.initiate_error: Optional[GatewayError] = None
        self.validate_error: Optional[GatewayError] = None
        self.validation_status = 'VALID'
        self.validation_tran_id: Optional[str] = None
        self.validation_amount: Optional[Decimal] = None
        self.verified_ipns: List[Dict[str, str]] = []

    def initiate(self, payment: PaymentRequest) -> str:
        self.initiated.append(payment)
        if self.initiate_error:
            raise self.initiate_error
        if not self.payment_url:
            raise GatewayError('Payment gateway error', status_code=400)
        return self.payment_url

    def verify_ipn(self, fields: Dict[str, str]) -> bool:
        self.verified_ipns.append(dict(fields))
        return ipn_signature_matches(fields, STORE_PASSWORD)

    def validate(self, val_id: str) -> PaymentValidation:
        self.validated.append(val_id)
        if self.validate_error:
            raise self.validate_error
        return PaymentValidation(
            valid=self.validation_status in ('VALID', 'VALIDATED'),
            status=self.validation_status,
            val_id=val_id,
            tran_id=self.validation_tran_id,
            amount=self.validation_amount,
        )


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store(db_session: Session) -> BookingStore:
    return BookingStore(db_session)


@pytest.fixture
def booking_service(store: BookingStore, gateway: FakeGateway) -> BookingService:
    return BookingService(store, gateway, settings.booking_flow_config())


@pytest.fixture
def client(db_session: Session, gateway: FakeGateway) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db_session

    def override_get_payment_gateway():
        yield gateway

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = override_get_payment_gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def booking_request() -> BookingInitiateRequest:
    return BookingInitiateRequest(
        full_name='Alice',
        phone='01712345678',
        tour_name='Sundarbans',
        total_price=Decimal('5000'),
    )


@pytest.fixture
def tour(db_session: Session) -> Tour:
    tour = Tour(title='Sundarbans', city='Khulna', price=Decimal('5000'), max_group_size=10)
    db_session.add(tour)
    db_session.commit()
    db_session.refresh(tour)
    return tour
