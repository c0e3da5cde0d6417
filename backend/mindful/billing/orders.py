"""Local record of gateway orders and the checks a payment must pass against it."""
import logging

from sqlalchemy.orm import Session

from mindful.billing.errors import OrderMismatchError
from mindful.billing.plans import BillingCycle, Plan
from mindful.models.subscription import PaymentOrder

logger = logging.getLogger(__name__)

ORDER_CREATED = "created"
ORDER_PAID = "paid"


def record_order(
    db: Session,
    order: dict,
    user_id: str,
    plan: Plan,
    billing_cycle: BillingCycle,
) -> PaymentOrder:
    """Store a gateway order for the user who requested it.

    Note:
        This function does NOT commit the transaction.
    """
    payment_order = PaymentOrder(
        razorpay_order_id=order["id"],
        user_id=user_id,
        plan=plan.value,
        billing_cycle=billing_cycle.value,
        amount_paise=int(order["amount"]),
        currency=str(order["currency"]).upper(),
        status=ORDER_CREATED,
    )
    db.add(payment_order)
    db.flush()
    return payment_order


def get_order(db: Session, order_id: str) -> PaymentOrder | None:
    return db.query(PaymentOrder).filter(PaymentOrder.razorpay_order_id == order_id).first()


def validate_order_payment(
    db: Session,
    order_id: str,
    payment_id: str,
    user_id: str,
    plan: Plan,
    billing_cycle: BillingCycle,
) -> PaymentOrder:
    """Check that a verified payment may activate the claimed plan.

    The order must have been created here, for the same user, plan and
    billing cycle, and must not already be settled by another payment.

    Raises:
        OrderMismatchError: If any of those checks fails.
    """
    payment_order = get_order(db, order_id)
    if payment_order is None:
        raise OrderMismatchError(f"Unknown order '{order_id}'")
    if payment_order.user_id != user_id:
        logger.warning("Order %s claimed by user %s but belongs to %s", order_id, user_id, payment_order.user_id)
        raise OrderMismatchError("Payment order does not belong to this user")
    if payment_order.plan != plan.value or payment_order.billing_cycle != billing_cycle.value:
        logger.warning(
            "Order %s was created for %s/%s but %s/%s was claimed",
            order_id, payment_order.plan, payment_order.billing_cycle,
            plan.value, billing_cycle.value,
        )
        raise OrderMismatchError("Payment order does not match the requested plan")
    if payment_order.status == ORDER_PAID and payment_order.razorpay_payment_id != payment_id:
        raise OrderMismatchError("Payment order was already paid")
    return payment_order


def mark_order_paid(db: Session, payment_order: PaymentOrder, payment_id: str) -> None:
    """Settle an order with the payment that paid it. Does not commit."""
    payment_order.status = ORDER_PAID
    payment_order.razorpay_payment_id = payment_id
    db.flush()
