from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import List, Optional

SSLCOMMERZ_SANDBOX_URL = "https://sandbox.sslcommerz.com"
SSLCOMMERZ_LIVE_URL = "https://securepay.sslcommerz.com"


class PaymentGatewayConfig(BaseModel):
    """Credentials and transport settings for the SSLCommerz client"""
    store_id: str
    store_password: str
    is_live: bool = False
    timeout_seconds: float = 15.0

    @property
    def base_url(self) -> str:
        return SSLCOMMERZ_LIVE_URL if self.is_live else SSLCOMMERZ_SANDBOX_URL


class BookingFlowConfig(BaseModel):
    """URLs and currency used by the booking lifecycle"""
    server_url: str
    frontend_url: str
    api_prefix: str = "/api"
    currency: str = "BDT"


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./trips_travels.db"

    # Payment gateway (SSLCommerz sandbox credentials by default)
    SSL_STORE_ID: str = "testbox"
    SSL_STORE_PASSWD: str = "qwerty"
    SSL_IS_LIVE: bool = False
    GATEWAY_TIMEOUT_SECONDS: float = 15.0
    CURRENCY: str = "BDT"

    # Application
    PROJECT_NAME: str = "Trips & Travels API"
    API_PREFIX: str = "/api"
    SERVER_URL: str = "http://localhost:3050"
    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL

    def gateway_config(self, timeout_seconds: Optional[float] = None) -> PaymentGatewayConfig:
        return PaymentGatewayConfig(
            store_id=self.SSL_STORE_ID,
            store_password=self.SSL_STORE_PASSWD,
            is_live=self.SSL_IS_LIVE,
            timeout_seconds=timeout_seconds or self.GATEWAY_TIMEOUT_SECONDS
        )

    def booking_flow_config(self) -> BookingFlowConfig:
        return BookingFlowConfig(
            server_url=self.SERVER_URL.rstrip("/"),
            frontend_url=self.FRONTEND_URL.rstrip("/"),
            api_prefix=self.API_PREFIX,
            currency=self.CURRENCY
        )

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
