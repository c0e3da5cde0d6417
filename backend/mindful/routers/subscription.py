import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mindful.auth import get_user_id, require_user_id
from mindful.billing.errors import SubscriptionNotFoundError, SubscriptionPersistenceError
from mindful.billing.plans import PLAN_FEATURES, PLAN_PRICES, Plan, has_access
from mindful.config import PaymentConfig, get_payment_config
from mindful.database import get_db
from mindful.responses import error_response
from mindful.schemas.subscription import (
    AccessResponse,
    CurrentPlanResponse,
    PlanPrice,
    PlanResponse,
    SubscriptionResponse,
)
from mindful.services import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["subscription"])


@router.get("/plans", response_model=list[PlanResponse])
def list_plans(config: Annotated[PaymentConfig, Depends(get_payment_config)]):
    return [
        PlanResponse(
            plan=plan,
            prices={
                cycle: PlanPrice(amount=amount, currency=config.currency)
                for cycle, amount in PLAN_PRICES.get(plan, {}).items()
            },
            features=PLAN_FEATURES[plan],
        )
        for plan in Plan
    ]


@router.get("/subscription", response_model=CurrentPlanResponse)
def get_current_subscription(
    user_id: Annotated[str | None, Depends(get_user_id)],
    db: Session = Depends(get_db),
):
    current = subscription_service.get_current(db, user_id)
    subscription = current.subscription
    return CurrentPlanResponse(
        plan=current.plan,
        billing_cycle=current.billing_cycle,
        status=subscription.status if subscription else None,
        current_period_end=subscription.current_period_end if subscription else None,
        cancel_at_period_end=bool(subscription.cancel_at_period_end) if subscription else False,
        error=current.error,
    )


@router.post("/subscription/cancel", response_model=SubscriptionResponse)
def cancel_subscription(
    user_id: Annotated[str, Depends(require_user_id)],
    db: Session = Depends(get_db),
):
    try:
        subscription = subscription_service.cancel(db, user_id)
    except SubscriptionNotFoundError:
        return error_response(status.HTTP_404_NOT_FOUND, "Subscription not found")
    except SubscriptionPersistenceError:
        logger.exception("Error canceling subscription for user %s", user_id)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to cancel subscription")

    return SubscriptionResponse.model_validate(subscription)


@router.get("/subscription/access", response_model=AccessResponse)
def check_access(
    user_id: Annotated[str | None, Depends(get_user_id)],
    required_plan: Annotated[Plan, Query(alias="requiredPlan")] = Plan.PREMIUM,
    db: Session = Depends(get_db),
):
    current = subscription_service.get_current(db, user_id)
    return AccessResponse(
        plan=current.plan,
        required_plan=required_plan,
        has_access=has_access(current.plan, required_plan),
    )
