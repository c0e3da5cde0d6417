"""Pydantic schemas for the payment and subscription API."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mindful.billing.billing_period import ensure_utc
from mindful.billing.plans import BillingCycle, Plan


class CamelModel(BaseModel):
    """Accepts and emits the camelCase field names the web client uses."""
    model_config = ConfigDict(populate_by_name=True)


# Payment schemas
class PaymentVerifyRequest(CamelModel):
    """Payment confirmation returned by the checkout widget."""
    razorpay_payment_id: str = Field(..., alias="razorpayPaymentId")
    razorpay_order_id: str = Field(..., alias="razorpayOrderId")
    razorpay_signature: str = Field(..., alias="razorpaySignature")
    # Optional activation details; when present the verified payment
    # also activates the caller's subscription.
    plan: Plan | None = None
    billing_cycle: BillingCycle = Field(BillingCycle.MONTHLY, alias="billingCycle")


class OrderCreateRequest(CamelModel):
    """Request schema for creating a gateway order."""
    plan: Plan
    billing_cycle: BillingCycle = Field(BillingCycle.MONTHLY, alias="billingCycle")


class OrderResponse(CamelModel):
    """Order details the checkout widget needs."""
    order_id: str = Field(..., serialization_alias="orderId")
    amount: int
    currency: str
    key_id: str = Field(..., serialization_alias="keyId")


# Subscription schemas
class SubscriptionResponse(CamelModel):
    """Stored subscription row."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    user_id: str = Field(..., serialization_alias="userId")
    plan: str
    status: str
    billing_cycle: str = Field(..., serialization_alias="billingCycle")
    razorpay_order_id: str | None = Field(None, serialization_alias="razorpayOrderId")
    razorpay_payment_id: str | None = Field(None, serialization_alias="razorpayPaymentId")
    current_period_start: datetime = Field(..., serialization_alias="currentPeriodStart")
    current_period_end: datetime = Field(..., serialization_alias="currentPeriodEnd")
    cancel_at_period_end: bool = Field(False, serialization_alias="cancelAtPeriodEnd")

    @field_validator("current_period_start", "current_period_end")
    @classmethod
    def normalize_to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class CurrentPlanResponse(CamelModel):
    """Effective plan of the caller."""
    plan: Plan
    billing_cycle: BillingCycle = Field(..., serialization_alias="billingCycle")
    status: str | None = None
    current_period_end: datetime | None = Field(None, serialization_alias="currentPeriodEnd")
    cancel_at_period_end: bool = Field(False, serialization_alias="cancelAtPeriodEnd")
    error: str | None = None

    @field_validator("current_period_end")
    @classmethod
    def normalize_to_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)


class AccessResponse(CamelModel):
    """Result of a feature gate check."""
    plan: Plan
    required_plan: Plan = Field(..., serialization_alias="requiredPlan")
    has_access: bool = Field(..., serialization_alias="hasAccess")


class PlanPrice(BaseModel):
    amount: int
    currency: str


class PlanResponse(BaseModel):
    """A plan in the catalog."""
    plan: Plan
    prices: dict[BillingCycle, PlanPrice]
    features: list[str]
