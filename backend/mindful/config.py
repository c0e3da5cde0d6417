"""Payment gateway configuration loaded from the environment."""
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

DEFAULT_RAZORPAY_API_BASE = "https://api.razorpay.com/v1"


@dataclass(frozen=True)
class PaymentConfig:
    """Razorpay credentials and settings.

    Attributes:
        key_id: Public key id, handed to the checkout widget.
        key_secret: Shared secret used to sign payment confirmations.
        api_base: Base URL of the Razorpay REST API.
        currency: Currency code used for orders.
    """
    key_id: str | None = None
    key_secret: str | None = None
    api_base: str = DEFAULT_RAZORPAY_API_BASE
    currency: str = "INR"

    def __repr__(self) -> str:
        # Keep the secret out of logs and tracebacks
        return (
            f"PaymentConfig(key_id={self.key_id!r}, key_secret=<redacted>, "
            f"api_base={self.api_base!r}, currency={self.currency!r})"
        )

    @property
    def has_secret(self) -> bool:
        """Check whether a non-empty signing secret is configured."""
        return bool(self.key_secret)


def _env(name: str) -> str | None:
    value = os.environ.get(name, "").strip()
    return value or None


def load_payment_config() -> PaymentConfig:
    """Build a PaymentConfig from environment variables."""
    return PaymentConfig(
        key_id=_env("RAZORPAY_KEY_ID"),
        key_secret=_env("RAZORPAY_KEY_SECRET"),
        api_base=(_env("RAZORPAY_API_BASE") or DEFAULT_RAZORPAY_API_BASE).rstrip("/"),
        currency=(_env("RAZORPAY_CURRENCY") or "INR").upper(),
    )


@lru_cache
def get_payment_config() -> PaymentConfig:
    """Return the process-wide payment configuration.

    Used as a FastAPI dependency so tests can override it.
    """
    return load_payment_config()
