# fulfillment/services/payment_gateway.py
import hashlib
import hmac
from decimal import Decimal, ROUND_HALF_UP

import requests
from requests import RequestException

from fulfillment.domain.errors import UnavailableError
from fulfillment.domain.status import GATEWAY_RAZORPAY
from fulfillment.utils.retry import http_retry
from fulfillment.utils.settings import (
    GATEWAY_TIMEOUT_SECONDS,
    PAYMENT_CURRENCY,
    RAZORPAY_API_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
)
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    # 120.50 INR -> 12050 paise
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign_payment(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """HMAC-SHA256 nad `gateway_order_id|gateway_payment_id`."""
    return _hmac_hex(secret, f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8"))


def sign_webhook(secret: str, raw_body: bytes) -> str:
    return _hmac_hex(secret, raw_body)


def _same_digest(expected: str, signature: str) -> bool:
    # bajty, nie str: compare_digest na str z nie-ASCII rzuca TypeError
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8", "replace"))


def verify_payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    if not secret or not signature:
        return False
    return _same_digest(sign_payment(secret, gateway_order_id, gateway_payment_id), signature)


def verify_webhook_signature(secret: str, raw_body: bytes, signature: str | None) -> bool:
    if not secret or not signature:
        return False
    return _same_digest(sign_webhook(secret, raw_body), signature)


class RazorpayGateway:
    """
    Klient bramki: tworzenie intencji platnosci + weryfikacja podpisow.
    Sekrety nigdy nie wychodza poza ten obiekt, na zewnatrz tylko key_id.
    """

    name = GATEWAY_RAZORPAY

    def __init__(
        self,
        base_url: str | None = None,
        key_id: str | None = None,
        key_secret: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
        timeout: int = GATEWAY_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or RAZORPAY_API_URL).rstrip("/")
        self.key_id = key_id if key_id is not None else RAZORPAY_KEY_ID
        self._key_secret = key_secret if key_secret is not None else RAZORPAY_KEY_SECRET
        self._webhook_secret = webhook_secret if webhook_secret is not None else RAZORPAY_WEBHOOK_SECRET
        self.currency = currency or PAYMENT_CURRENCY
        self.timeout = timeout

        if not self.key_id or not self._key_secret:
            logger.warning("Razorpay credentials not configured, payment operations will fail")

    @property
    def public_key(self) -> str:
        return self.key_id

    def create_intent(self, amount_minor_units: int, receipt: str) -> dict:
        if not self.key_id or not self._key_secret:
            raise UnavailableError("Payment gateway is not configured")

        try:
            data = self._post_order(amount_minor_units, receipt)
        except RequestException as e:
            logger.error(f"Razorpay createOrder failed for receipt {receipt}: {e}")
            raise UnavailableError("Payment gateway is unavailable") from e

        logger.info(f"Razorpay Order created: {data['id']} (receipt {receipt})")
        return {"gateway_order_id": data["id"]}

    @http_retry()
    def _post_order(self, amount_minor_units: int, receipt: str) -> dict:
        url = f"{self.base_url}/orders"
        logger.info(f"RazorpayGateway POST {url}")

        resp = requests.post(
            url,
            json={
                "amount": amount_minor_units,
                "currency": self.currency,
                "receipt": receipt,
                "payment_capture": 1,
            },
            auth=(self.key_id, self._key_secret),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def verify_payment(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        return verify_payment_signature(self._key_secret, gateway_order_id, gateway_payment_id, signature)

    def verify_webhook(self, raw_body: bytes, signature: str | None) -> bool:
        # osobny sekret webhooka, nigdy key_secret
        return verify_webhook_signature(self._webhook_secret, raw_body, signature)
