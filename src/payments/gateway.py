from typing import Mapping, Optional
from decimal import Decimal, InvalidOperation
import hashlib
import hmac

import httpx
from fastapi import status
from loguru import logger

from src.config import PaymentGatewayConfig, settings
from src.exceptions import GatewayError
from src.payments.schemas import GatewayValidationStatus, PaymentRequest, PaymentValidation

INITIATE_PATH = "/gwprocess/v4/api.php"
VALIDATE_PATH = "/validator/api/validationserverAPI.php"

VALID_STATUSES = {GatewayValidationStatus.VALID.value, GatewayValidationStatus.VALIDATED.value}


class SSLCommerzClient:
    """Thin adapter over the SSLCommerz session and validator APIs.

    Every call is a single blocking request bounded by the configured timeout.
    Nothing is retried: the provider deduplicates sessions by tran_id, so a
    repeated initiate needs a fresh transaction identifier anyway.
    """

    def __init__(self, config: PaymentGatewayConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self._client = http_client

    @property
    def client(self) -> httpx.Client:
        # Opened on first use
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds
            )
        return self._client

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def verify_ipn(self, fields: Mapping[str, str]) -> bool:
        """Check the verify_sign hash SSLCommerz attaches to notifications"""
        return ipn_signature_matches(fields, self.config.store_password)

    def initiate(self, payment: PaymentRequest) -> str:
        """Open a payment session and return the GatewayPageURL"""

        form = payment.to_form()
        form["store_id"] = self.config.store_id
        form["store_passwd"] = self.config.store_password

        body = self._request("POST", INITIATE_PATH, data=form)

        gateway_url = body.get("GatewayPageURL")
        if not gateway_url:
            reason = body.get("failedreason") or "Payment gateway error"
            logger.warning(f"Gateway refused session for {payment.tran_id}: {reason}")
            raise GatewayError(reason, status_code=status.HTTP_400_BAD_REQUEST)

        logger.info(f"Gateway session opened for {payment.tran_id}")
        return gateway_url

    def validate(self, val_id: str) -> PaymentValidation:
        """Confirm server-side that a val_id belongs to a completed payment"""

        params = {
            "val_id": val_id,
            "store_id": self.config.store_id,
            "store_passwd": self.config.store_password,
            "v": "1",
            "format": "json"
        }
        body = self._request("GET", VALIDATE_PATH, params=params)

        provider_status = str(body.get("status", "")).upper()
        return PaymentValidation(
            valid=provider_status in VALID_STATUSES,
            status=provider_status,
            val_id=val_id,
            tran_id=body.get("tran_id"),
            amount=parse_amount(body.get("amount")),
            currency=body.get("currency")
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Gateway timeout on {path}: {e}")
            raise GatewayError("Payment gateway timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Gateway returned {e.response.status_code} on {path}")
            raise GatewayError(f"Payment gateway returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Gateway transport error on {path}: {e}")
            raise GatewayError("Payment gateway unreachable") from e
        except ValueError as e:
            logger.error(f"Gateway sent an undecodable body on {path}")
            raise GatewayError("Payment gateway sent an invalid response") from e

        if not isinstance(body, dict):
            raise GatewayError("Payment gateway sent an invalid response")
        return body


def ipn_signature_matches(fields: Mapping[str, str], store_password: str) -> bool:
    """SSLCommerz IPN hash check.

    verify_key lists the signed field names. The signature is the md5 of those
    fields plus md5(store_passwd), sorted by key and joined as key=value&...
    """
    verify_sign = fields.get("verify_sign")
    verify_key = fields.get("verify_key")
    if not verify_sign or not verify_key:
        return False

    signed = {key: fields.get(key, "") for key in verify_key.split(",") if key}
    signed["store_passwd"] = hashlib.md5(store_password.encode()).hexdigest()

    hash_string = "&".join(f"{key}={signed[key]}" for key in sorted(signed))
    expected = hashlib.md5(hash_string.encode()).hexdigest()
    return hmac.compare_digest(expected.encode(), verify_sign.lower().encode())


def parse_amount(value) -> Optional[Decimal]:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def get_payment_gateway():
    """Provide a gateway client per request, closed afterwards"""
    gateway = SSLCommerzClient(settings.gateway_config())
    try:
        yield gateway
    finally:
        gateway.close()
