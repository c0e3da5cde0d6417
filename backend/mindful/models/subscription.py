"""Database models for subscriptions, gateway orders and processed payments."""
from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from mindful.billing.billing_period import utc_now
from mindful.database import Base


class Subscription(Base):
    """A user's subscription. At most one row per user."""
    __tablename__ = "subscriptions"

    user_id = Column(String(64), primary_key=True)
    plan = Column(String(20), nullable=False)  # "free" | "premium" | "family"
    status = Column(String(20), nullable=False)  # "active" | "canceled"
    billing_cycle = Column(String(20), nullable=False)  # "monthly" | "yearly"

    # Provenance of the transaction that last activated this subscription
    razorpay_order_id = Column(String(255), nullable=True)
    razorpay_payment_id = Column(String(255), nullable=True)
    razorpay_signature = Column(String(255), nullable=True)

    current_period_start = Column(DateTime(timezone=True), nullable=False)
    current_period_end = Column(DateTime(timezone=True), nullable=False)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class ProcessedPayment(Base):
    """Gateway transactions that already triggered an activation."""
    __tablename__ = "processed_payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    razorpay_order_id = Column(String(255), nullable=False)
    razorpay_payment_id = Column(String(255), nullable=False)
    user_id = Column(String(64), nullable=False)
    request_hash = Column(String(64), nullable=False)  # SHA-256 hex
    response_json = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "razorpay_order_id", "razorpay_payment_id",
            name="uq_processed_payment_order_payment"
        ),
        Index("ix_processed_payments_user", "user_id"),
    )


class PaymentOrder(Base):
    """A gateway order created for a user's checkout.

    Stores what the order was priced for so a payment against it can only
    activate that plan and cycle for that user.
    """
    __tablename__ = "payment_orders"

    razorpay_order_id = Column(String(255), primary_key=True)
    user_id = Column(String(64), nullable=False)
    plan = Column(String(20), nullable=False)
    billing_cycle = Column(String(20), nullable=False)
    amount_paise = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default="created")  # "created" | "paid"
    razorpay_payment_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_payment_orders_user", "user_id"),
    )
