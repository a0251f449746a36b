# payments/razorpay_utils.py - Razorpay REST client
import hashlib
import hmac
import logging
from django.conf import settings
import requests

from orders.exceptions import DependencyUnavailable

logger = logging.getLogger(__name__)


def to_paise(amount):
    return int(round(amount * 100))


class RazorpayGateway:
    """
    Thin Razorpay client. Built once at startup from settings; callers check
    ``is_available()`` before creating orders, settling or refunding.
    """

    DEFAULT_BASE_URL = "https://api.razorpay.com/v1"
    TIMEOUT = 10

    def __init__(self, key_id, key_secret, base_url=None):
        self.key_id = (key_id or "").strip()
        self.key_secret = (key_secret or "").strip()
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")

    @classmethod
    def from_settings(cls):
        gateway = cls(
            getattr(settings, "RAZORPAY_KEY_ID", ""),
            getattr(settings, "RAZORPAY_KEY_SECRET", ""),
            getattr(settings, "RAZORPAY_BASE_URL", None),
        )
        if gateway.is_available():
            logger.info("Razorpay initialized")
        else:
            logger.warning("Razorpay not configured - payment features disabled")
        return gateway

    def is_available(self):
        return bool(self.key_id and self.key_secret)

    def _require_available(self):
        if not self.is_available():
            raise DependencyUnavailable("Payment gateway not configured. Please contact administrator.")

    def _post(self, path, payload):
        self._require_available()
        url = f"{self.base_url}{path}"
        try:
            response = requests.post(url, json=payload, auth=(self.key_id, self.key_secret), timeout=self.TIMEOUT)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"Razorpay request to {path} failed: {str(e)}", exc_info=True)
            raise DependencyUnavailable("Payment gateway request failed") from e

    def create_order(self, amount, receipt, notes=None):
        """Create a gateway order for ``amount`` rupees; returns Razorpay's order dict."""
        data = self._post("/orders", {
            "amount": to_paise(amount),
            "currency": "INR",
            "receipt": receipt,
            "notes": notes or {},
        })
        logger.info(f"Razorpay order {data.get('id')} created for receipt {receipt}")
        return data

    def refund(self, payment_id, amount, notes=None):
        data = self._post(f"/payments/{payment_id}/refund", {
            "amount": to_paise(amount),
            "notes": notes or {},
        })
        logger.info(f"Razorpay refund {data.get('id')} created for payment {payment_id}")
        return data

    def signature_for(self, gateway_order_id, payment_id):
        message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
        return hmac.new(self.key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()

    def verify_signature(self, gateway_order_id, payment_id, signature):
        """HMAC-SHA256 check of ``"<order_id>|<payment_id>"`` with the key secret."""
        self._require_available()
        return hmac.compare_digest(self.signature_for(gateway_order_id, payment_id), signature or "")
