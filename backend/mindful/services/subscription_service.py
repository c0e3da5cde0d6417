"""Subscription state transitions and the effective-plan read path."""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mindful.billing.billing_period import get_period_end, utc_now
from mindful.billing.errors import (
    InvalidPlanError,
    SubscriptionNotFoundError,
    SubscriptionPersistenceError,
)
from mindful.billing.plans import BillingCycle, Plan, SubscriptionStatus, ensure_paid_plan
from mindful.models.subscription import Subscription

logger = logging.getLogger(__name__)

READ_FAILURE_MESSAGE = "Failed to load subscription status"


@dataclass
class CurrentPlan:
    """The plan a user is entitled to right now.

    Attributes:
        plan: Effective plan; FREE unless an active subscription exists.
        billing_cycle: Billing cycle of the active subscription, monthly otherwise.
        subscription: The stored row, if one could be read.
        error: Non-fatal error message when the store could not be read.
    """
    plan: Plan
    billing_cycle: BillingCycle
    subscription: Subscription | None = None
    error: str | None = None


def get_subscription(db: Session, user_id: str) -> Subscription | None:
    """Get a user's subscription row.

    Args:
        db: Database session.
        user_id: The user ID.

    Returns:
        The Subscription or None.
    """
    return db.query(Subscription).filter(Subscription.user_id == user_id).first()


def activate(
    db: Session,
    user_id: str,
    plan: Plan,
    billing_cycle: BillingCycle,
    razorpay_order_id: str,
    razorpay_payment_id: str,
    razorpay_signature: str,
    now: datetime | None = None,
    commit: bool = True,
) -> Subscription:
    """Activate or renew a user's subscription after a verified payment.

    Creates the row when absent and replaces plan, cycle, provenance and
    period when present. The caller must have verified the payment signature
    and is responsible for invoking this at most once per gateway callback.

    Args:
        db: Database session.
        user_id: The user ID.
        plan: PREMIUM or FAMILY.
        billing_cycle: Monthly or yearly.
        razorpay_order_id: Gateway order ID of the payment.
        razorpay_payment_id: Gateway payment ID.
        razorpay_signature: Signature the gateway sent for the payment.
        now: Period start (default: current UTC time).
        commit: Commit and re-read the row. When False the row is only
            flushed and the caller owns the transaction.

    Returns:
        The persisted Subscription.

    Raises:
        InvalidPlanError: If the plan cannot be purchased.
        SubscriptionPersistenceError: If the write fails.
    """
    try:
        plan = Plan(plan)
        billing_cycle = BillingCycle(billing_cycle)
    except ValueError as exc:
        raise InvalidPlanError(str(exc)) from exc
    ensure_paid_plan(plan)
    period_start = now or utc_now()

    try:
        subscription = get_subscription(db, user_id)
        if subscription is None:
            subscription = Subscription(user_id=user_id)
            db.add(subscription)

        subscription.plan = plan.value
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.billing_cycle = billing_cycle.value
        subscription.razorpay_order_id = razorpay_order_id
        subscription.razorpay_payment_id = razorpay_payment_id
        subscription.razorpay_signature = razorpay_signature
        subscription.current_period_start = period_start
        subscription.current_period_end = get_period_end(period_start, billing_cycle)
        subscription.cancel_at_period_end = False
        subscription.updated_at = period_start

        if commit:
            db.commit()
            db.refresh(subscription)
        else:
            db.flush()
    except SQLAlchemyError as exc:
        db.rollback()
        raise SubscriptionPersistenceError(
            f"Failed to activate subscription for user '{user_id}'"
        ) from exc

    logger.info(
        "Activated %s/%s subscription for user %s until %s",
        plan.value, billing_cycle.value, user_id, subscription.current_period_end,
    )
    return subscription


def cancel(db: Session, user_id: str) -> Subscription:
    """Cancel a user's subscription.

    Access is downgraded immediately: the row becomes canceled and is flagged
    to end with the current period.

    Raises:
        SubscriptionNotFoundError: If the user has no subscription.
        SubscriptionPersistenceError: If the write fails.
    """
    try:
        subscription = get_subscription(db, user_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"No subscription for user '{user_id}'")

        subscription.status = SubscriptionStatus.CANCELED.value
        subscription.cancel_at_period_end = True
        subscription.updated_at = utc_now()
        db.commit()
        db.refresh(subscription)
    except SQLAlchemyError as exc:
        db.rollback()
        raise SubscriptionPersistenceError(
            f"Failed to cancel subscription for user '{user_id}'"
        ) from exc

    logger.info("Canceled subscription for user %s", user_id)
    return subscription


def get_current(db: Session, user_id: str | None) -> CurrentPlan:
    """Resolve the plan a user is entitled to.

    Only an active subscription grants its stored plan. A missing row, a
    canceled row, or an unreadable store all yield FREE; read failures are
    reported through ``error`` instead of being raised.
    """
    if not user_id:
        return CurrentPlan(plan=Plan.FREE, billing_cycle=BillingCycle.MONTHLY)

    try:
        subscription = get_subscription(db, user_id)
    except SQLAlchemyError:
        logger.exception("Error fetching subscription for user %s", user_id)
        db.rollback()
        return CurrentPlan(
            plan=Plan.FREE,
            billing_cycle=BillingCycle.MONTHLY,
            error=READ_FAILURE_MESSAGE,
        )

    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE.value:
        return CurrentPlan(
            plan=Plan.FREE,
            billing_cycle=BillingCycle.MONTHLY,
            subscription=subscription,
        )

    try:
        plan = Plan(subscription.plan)
        billing_cycle = BillingCycle(subscription.billing_cycle)
    except ValueError:
        logger.warning(
            "Subscription for user %s has unknown plan %r or cycle %r",
            user_id, subscription.plan, subscription.billing_cycle,
        )
        return CurrentPlan(
            plan=Plan.FREE,
            billing_cycle=BillingCycle.MONTHLY,
            subscription=subscription,
            error=READ_FAILURE_MESSAGE,
        )

    return CurrentPlan(plan=plan, billing_cycle=billing_cycle, subscription=subscription)
