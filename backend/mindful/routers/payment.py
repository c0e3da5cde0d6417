"""Checkout endpoints: order creation and payment verification."""
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindful.auth import get_user_id, require_user_id
from mindful.billing.errors import (
    GatewayError,
    InvalidPlanError,
    OrderMismatchError,
    PaymentConfigurationError,
    PaymentReplayConflictError,
    SubscriptionPersistenceError,
)
from mindful.billing.orders import mark_order_paid, record_order, validate_order_payment
from mindful.billing.plans import ensure_paid_plan, get_price
from mindful.billing.replay import check_processed_payment, record_processed_payment
from mindful.billing.signature import SignatureVerifier
from mindful.config import PaymentConfig, get_payment_config
from mindful.database import get_db
from mindful.responses import error_response
from mindful.schemas.subscription import (
    OrderCreateRequest,
    OrderResponse,
    PaymentVerifyRequest,
    SubscriptionResponse,
)
from mindful.services import subscription_service
from mindful.services.razorpay_service import RazorpayService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["payments"])

VERIFIED_MESSAGE = "Payment verified successfully"


@router.post("/create-order", response_model=OrderResponse)
def create_order(
    request: OrderCreateRequest,
    user_id: Annotated[str, Depends(require_user_id)],
    config: Annotated[PaymentConfig, Depends(get_payment_config)],
    db: Session = Depends(get_db),
):
    """Create a gateway order for a paid plan and remember who it is for."""
    try:
        price = get_price(request.plan, request.billing_cycle, currency=config.currency)
        order = RazorpayService.create_order(
            config,
            request.plan,
            request.billing_cycle,
            receipt=RazorpayService.create_receipt(user_id),
            notes={"user_id": user_id},
        )
        order.setdefault("amount", price["amount"] * 100)
        order.setdefault("currency", price["currency"])
        record_order(db, order, user_id, request.plan, request.billing_cycle)
        db.commit()
    except InvalidPlanError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))
    except PaymentConfigurationError:
        logger.error("Order requested but Razorpay credentials are not configured")
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Payment gateway is not configured")
    except GatewayError:
        logger.exception("Error creating order for %s/%s", request.plan.value, request.billing_cycle.value)
        return error_response(status.HTTP_502_BAD_GATEWAY, "Failed to create order")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error storing order for user %s", user_id)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to create order")

    return OrderResponse(
        order_id=order["id"],
        amount=int(order["amount"]),
        currency=order["currency"],
        key_id=config.key_id,
    )


@router.api_route(
    "/verify-payment",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
def verify_payment_method_not_allowed():
    response = error_response(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")
    response.headers["Allow"] = "POST"
    return response


@router.post("/verify-payment")
def verify_payment(
    request: PaymentVerifyRequest,
    user_id: Annotated[str | None, Depends(get_user_id)],
    config: Annotated[PaymentConfig, Depends(get_payment_config)],
    db: Session = Depends(get_db),
):
    """Verify a checkout confirmation and, when requested, activate the plan.

    The signature is checked before anything touches the database. A missing
    signing secret fails closed without attempting verification.
    """
    try:
        verifier = SignatureVerifier(config)
    except PaymentConfigurationError:
        logger.error("Payment verification requested but RAZORPAY_KEY_SECRET is not configured")
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Payment verification is not configured")

    try:
        if not verifier.verify(
            request.razorpay_order_id,
            request.razorpay_payment_id,
            request.razorpay_signature,
        ):
            logger.info("Rejected payment %s: invalid signature", request.razorpay_payment_id)
            return error_response(status.HTTP_400_BAD_REQUEST, "Invalid signature")

        if request.plan is None:
            return {"success": True, "message": VERIFIED_MESSAGE}

        if user_id is None:
            return error_response(
                status.HTTP_400_BAD_REQUEST,
                "Missing required header: X-User-ID",
            )

        return _activate_verified_payment(db, request, user_id)
    except InvalidPlanError as e:
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))
    except OrderMismatchError as e:
        logger.info("Rejected payment %s: %s", request.razorpay_payment_id, e)
        return error_response(status.HTTP_400_BAD_REQUEST, str(e))
    except PaymentReplayConflictError:
        logger.warning(
            "Payment %s for order %s replayed with a different request",
            request.razorpay_payment_id, request.razorpay_order_id,
        )
        return error_response(status.HTTP_409_CONFLICT, "Payment already processed")
    except Exception:
        logger.exception("Error verifying payment %s", request.razorpay_payment_id)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to verify payment")


def _activate_verified_payment(
    db: Session,
    request: PaymentVerifyRequest,
    user_id: str,
) -> dict[str, Any]:
    """Activate the subscription for a verified payment exactly once.

    A replay of the same confirmation for the same activation returns the
    response stored the first time without touching the subscription. A new
    payment may only activate the plan and cycle its order was created for.
    """
    plan = ensure_paid_plan(request.plan)
    activation = {
        "user_id": user_id,
        "plan": plan.value,
        "billing_cycle": request.billing_cycle.value,
    }

    cached_response = check_processed_payment(
        db,
        request.razorpay_order_id,
        request.razorpay_payment_id,
        activation,
    )
    if cached_response is not None:
        logger.info("Payment %s already processed; returning stored response", request.razorpay_payment_id)
        return cached_response

    payment_order = validate_order_payment(
        db,
        request.razorpay_order_id,
        request.razorpay_payment_id,
        user_id,
        plan,
        request.billing_cycle,
    )

    subscription = subscription_service.activate(
        db,
        user_id=user_id,
        plan=plan,
        billing_cycle=request.billing_cycle,
        razorpay_order_id=request.razorpay_order_id,
        razorpay_payment_id=request.razorpay_payment_id,
        razorpay_signature=request.razorpay_signature,
        commit=False,
    )
    response = {
        "success": True,
        "message": VERIFIED_MESSAGE,
        "subscription": SubscriptionResponse.model_validate(subscription).model_dump(
            mode="json", by_alias=True
        ),
    }

    try:
        mark_order_paid(db, payment_order, request.razorpay_payment_id)
        record_processed_payment(
            db,
            request.razorpay_order_id,
            request.razorpay_payment_id,
            user_id,
            activation,
            response,
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise SubscriptionPersistenceError(
            f"Failed to record payment '{request.razorpay_payment_id}'"
        ) from exc

    return response
