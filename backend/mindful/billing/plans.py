"""Subscription plans, prices and plan-based feature access."""
from enum import Enum

from mindful.billing.errors import InvalidPlanError


class Plan(str, Enum):
    """Available subscription plans."""
    FREE = "free"
    PREMIUM = "premium"
    FAMILY = "family"


class BillingCycle(str, Enum):
    """Recurrence basis for a paid plan."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    """Stored subscription status."""
    ACTIVE = "active"
    CANCELED = "canceled"


# Plans that can be bought through the payment flow
PAID_PLANS: frozenset[Plan] = frozenset({Plan.PREMIUM, Plan.FAMILY})

# Whole rupees; the gateway is charged in paise
PLAN_PRICES: dict[Plan, dict[BillingCycle, int]] = {
    Plan.PREMIUM: {
        BillingCycle.MONTHLY: 999,
        BillingCycle.YEARLY: 9999,
    },
    Plan.FAMILY: {
        BillingCycle.MONTHLY: 1999,
        BillingCycle.YEARLY: 19999,
    },
}

PLAN_FEATURES: dict[Plan, list[str]] = {
    Plan.FREE: [
        "Basic meditation sessions",
        "Basic habit tracking",
        "Mood tracking",
        "Basic journaling",
    ],
    Plan.PREMIUM: [
        "All meditation sessions",
        "Advanced analytics",
        "Custom habit templates",
        "Ad-free experience",
        "Priority support",
        "Guided journaling",
        "Progress insights",
    ],
    Plan.FAMILY: [
        "Everything in Premium",
        "Up to 5 family members",
        "Family progress tracking",
        "Family goals",
        "Shared resources",
    ],
}

# Plan to the plans whose features it unlocks. FAMILY is a superset of
# PREMIUM; every other plan only unlocks itself. A new tier needs an entry.
PLAN_GRANTS: dict[Plan, frozenset[Plan]] = {
    Plan.FREE: frozenset({Plan.FREE}),
    Plan.PREMIUM: frozenset({Plan.PREMIUM}),
    Plan.FAMILY: frozenset({Plan.FREE, Plan.PREMIUM, Plan.FAMILY}),
}


def has_access(current_plan: Plan, required_plan: Plan) -> bool:
    """Check if a plan unlocks features that require another plan.

    Args:
        current_plan: The user's effective plan.
        required_plan: The plan the feature requires.

    Returns:
        True if the current plan grants the required plan, False otherwise.
    """
    return required_plan in PLAN_GRANTS[current_plan]


def ensure_paid_plan(plan: Plan) -> Plan:
    """Reject plans that cannot be purchased.

    Raises:
        InvalidPlanError: If the plan is FREE.
    """
    if plan not in PAID_PLANS:
        raise InvalidPlanError(f"Plan '{plan.value}' cannot be purchased")
    return plan


def get_price(plan: Plan, billing_cycle: BillingCycle, currency: str = "INR") -> dict:
    """Get the list price of a paid plan for a billing cycle.

    Args:
        plan: The paid plan.
        billing_cycle: Monthly or yearly.
        currency: Currency code reported with the amount.

    Returns:
        Dict with amount (whole units) and currency.

    Raises:
        InvalidPlanError: If the plan has no price.
    """
    ensure_paid_plan(plan)
    return {
        "amount": PLAN_PRICES[plan][billing_cycle],
        "currency": currency,
    }
