from pydantic import BaseModel, Field
from typing import Dict, Optional
from decimal import Decimal
from enum import Enum

class GatewayValidationStatus(str, Enum):
    """Validation statuses reported by the SSLCommerz validator API"""
    VALID = "VALID"
    VALIDATED = "VALIDATED"
    INVALID_TRANSACTION = "INVALID_TRANSACTION"

class IpnStatus(str, Enum):
    """Transaction statuses delivered in an IPN"""
    VALID = "VALID"
    VALIDATED = "VALIDATED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    UNATTEMPTED = "UNATTEMPTED"
    EXPIRED = "EXPIRED"

class PaymentRequest(BaseModel):
    """Session initiation payload sent to the gateway"""
    total_amount: Decimal = Field(..., ge=0)
    currency: str = "BDT"
    tran_id: str
    success_url: str
    fail_url: str
    cancel_url: str
    ipn_url: str
    product_name: str
    product_category: str = "Tourism"
    product_profile: str = "general"
    shipping_method: str = "NO"
    cus_name: str
    cus_phone: str
    cus_email: str = "customer@example.com"
    cus_add1: str = "Dhaka"
    cus_city: str = "Dhaka"
    cus_postcode: str = "1212"
    cus_country: str = "Bangladesh"

    def to_form(self) -> dict:
        data = self.model_dump()
        data["total_amount"] = str(self.total_amount)
        return data

class PaymentValidation(BaseModel):
    """Result of a server-side validation of a val_id"""
    valid: bool
    status: str
    val_id: str
    tran_id: Optional[str] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None

class IpnNotification(BaseModel):
    """Asynchronous notification posted by the gateway"""
    tran_id: str
    status: str
    val_id: Optional[str] = None
    amount: Optional[Decimal] = None
    # Raw form fields, needed for the verify_sign check
    form_fields: Dict[str, str] = Field(default_factory=dict)
