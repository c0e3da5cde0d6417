import logging
import secrets
from typing import Any, Dict

import requests

from mindful.billing.errors import GatewayError, PaymentConfigurationError
from mindful.billing.plans import BillingCycle, Plan, get_price
from mindful.config import PaymentConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 15


class RazorpayService:
    @staticmethod
    def _request(
        config: PaymentConfig,
        method: str,
        path: str,
        json_payload: Dict[str, Any] | None = None,
    ) -> Dict[str, Any]:
        if not config.key_id or not config.has_secret:
            raise PaymentConfigurationError("Razorpay credentials are not configured")

        url = f"{config.api_base}/{path.lstrip('/')}"
        try:
            response = requests.request(
                method=method.upper(),
                url=url,
                auth=(config.key_id, config.key_secret),
                json=json_payload,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"Failed to contact Razorpay: {exc}") from exc

        if response.status_code >= 400:
            logger.warning("Razorpay %s %s answered %s", method.upper(), path, response.status_code)
            raise GatewayError(f"Razorpay request failed with status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise GatewayError("Invalid response received from Razorpay") from exc

        if not isinstance(payload, dict):
            raise GatewayError("Unexpected response format from Razorpay")
        return payload

    @staticmethod
    def create_receipt(user_id: str | None) -> str:
        # Razorpay caps receipts at 40 characters
        owner = user_id or "guest"
        return f"mindful_{owner}_{secrets.token_hex(6)}"[:40]

    @staticmethod
    def create_order(
        config: PaymentConfig,
        plan: Plan,
        billing_cycle: BillingCycle,
        receipt: str,
        notes: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        price = get_price(plan, billing_cycle, currency=config.currency)
        order = RazorpayService._request(
            config,
            "POST",
            "/orders",
            json_payload={
                "amount": price["amount"] * 100,  # paise
                "currency": price["currency"],
                "receipt": receipt,
                "notes": {
                    "plan": plan.value,
                    "billing_cycle": billing_cycle.value,
                    **(notes or {}),
                },
            },
        )
        if not order.get("id"):
            raise GatewayError("Razorpay order response has no id")

        logger.info("Created Razorpay order %s for %s/%s", order["id"], plan.value, billing_cycle.value)
        return order
