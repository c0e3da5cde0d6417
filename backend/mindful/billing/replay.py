"""Replay protection for payment confirmations."""
import hashlib
import json
from typing import Any

from sqlalchemy.orm import Session

from mindful.billing.errors import PaymentReplayConflictError
from mindful.models.subscription import ProcessedPayment


def compute_request_hash(request_body: dict[str, Any]) -> str:
    """Compute a SHA-256 hash of an activation request.

    Args:
        request_body: The activation request dictionary.

    Returns:
        A hex string of the SHA-256 hash.
    """
    canonical_json = json.dumps(request_body, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def check_processed_payment(
    db: Session,
    order_id: str,
    payment_id: str,
    request_body: dict[str, Any],
) -> dict[str, Any] | None:
    """Check if this gateway transaction was already processed.

    Args:
        db: Database session.
        order_id: The gateway order ID.
        payment_id: The gateway payment ID.
        request_body: The activation request for hash comparison.

    Returns:
        The stored response if found and hashes match, None if not found.

    Raises:
        PaymentReplayConflictError: If the transaction was processed for a different request.
    """
    existing = db.query(ProcessedPayment).filter(
        ProcessedPayment.razorpay_order_id == order_id,
        ProcessedPayment.razorpay_payment_id == payment_id,
    ).first()

    if existing is None:
        return None

    if existing.request_hash != compute_request_hash(request_body):
        raise PaymentReplayConflictError(
            f"Payment '{payment_id}' for order '{order_id}' was already processed"
        )

    return json.loads(existing.response_json)


def record_processed_payment(
    db: Session,
    order_id: str,
    payment_id: str,
    user_id: str,
    request_body: dict[str, Any],
    response: dict[str, Any],
) -> ProcessedPayment:
    """Record a processed gateway transaction.

    Note:
        This function does NOT commit the transaction. The caller commits so
        the record is stored atomically with the activation it guards.
    """
    record = ProcessedPayment(
        razorpay_order_id=order_id,
        razorpay_payment_id=payment_id,
        user_id=user_id,
        request_hash=compute_request_hash(request_body),
        response_json=json.dumps(response),
    )
    db.add(record)
    db.flush()  # Surface the unique constraint before the activation commits
    return record
