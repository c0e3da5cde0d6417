"""Razorpay payment signature verification.

The gateway signs every checkout confirmation with HMAC-SHA256 over
``order_id + "|" + payment_id`` keyed with the account's key secret and sends
the lowercase hex digest as ``razorpay_signature``. The message layout is
dictated by the gateway and must match byte for byte.
"""
import hashlib
import hmac

from mindful.billing.errors import PaymentConfigurationError
from mindful.config import PaymentConfig

SIGNATURE_DELIMITER = "|"


def compute_payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """Compute the signature the gateway would send for a payment.

    Args:
        order_id: The gateway order ID.
        payment_id: The gateway payment ID.
        secret: The shared key secret.

    Returns:
        The HMAC-SHA256 digest as lowercase hex.

    Raises:
        PaymentConfigurationError: If the secret is absent or empty.
    """
    if not secret:
        raise PaymentConfigurationError("Payment signing secret is not configured")

    message = f"{order_id}{SIGNATURE_DELIMITER}{payment_id}"
    return hmac.new(
        secret.encode("utf-8"),
        message.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_payment_signature(
    order_id: str,
    payment_id: str,
    provided_signature: str,
    secret: str,
) -> bool:
    """Check a payment confirmation signature.

    Raises:
        PaymentConfigurationError: If the secret is absent or empty.
    """
    expected = compute_payment_signature(order_id, payment_id, secret)
    if not isinstance(provided_signature, str):
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided_signature.encode("utf-8"))


class SignatureVerifier:
    """Verifies payment confirmations against an injected configuration."""

    def __init__(self, config: PaymentConfig):
        if not config.has_secret:
            raise PaymentConfigurationError("RAZORPAY_KEY_SECRET is not configured")
        self._secret = config.key_secret

    def __repr__(self) -> str:
        return "SignatureVerifier(secret=<redacted>)"

    def verify(self, order_id: str, payment_id: str, provided_signature: str) -> bool:
        return verify_payment_signature(order_id, payment_id, provided_signature, self._secret)
