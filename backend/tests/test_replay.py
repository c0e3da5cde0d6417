"""Tests for processed-payment replay protection."""
import pytest
from sqlalchemy.exc import IntegrityError

from mindful.billing.errors import PaymentReplayConflictError
from mindful.billing.replay import (
    check_processed_payment,
    compute_request_hash,
    record_processed_payment,
)

ACTIVATION = {"user_id": "user-1", "plan": "premium", "billing_cycle": "monthly"}
RESPONSE = {"success": True, "message": "Payment verified successfully"}


class TestRequestHash:

    def test_key_order_does_not_matter(self):
        reordered = {"billing_cycle": "monthly", "plan": "premium", "user_id": "user-1"}
        assert compute_request_hash(ACTIVATION) == compute_request_hash(reordered)

    def test_different_values_differ(self):
        other = dict(ACTIVATION, plan="family")
        assert compute_request_hash(ACTIVATION) != compute_request_hash(other)


class TestProcessedPayments:

    def test_unknown_payment(self, db):
        assert check_processed_payment(db, "order_1", "pay_1", ACTIVATION) is None

    def test_same_request_returns_stored_response(self, db):
        record_processed_payment(db, "order_1", "pay_1", "user-1", ACTIVATION, RESPONSE)
        db.commit()

        assert check_processed_payment(db, "order_1", "pay_1", ACTIVATION) == RESPONSE

    def test_different_request_conflicts(self, db):
        record_processed_payment(db, "order_1", "pay_1", "user-1", ACTIVATION, RESPONSE)
        db.commit()

        with pytest.raises(PaymentReplayConflictError):
            check_processed_payment(db, "order_1", "pay_1", dict(ACTIVATION, user_id="user-2"))

    def test_duplicate_record_violates_constraint(self, db):
        record_processed_payment(db, "order_1", "pay_1", "user-1", ACTIVATION, RESPONSE)
        db.commit()

        with pytest.raises(IntegrityError):
            record_processed_payment(db, "order_1", "pay_1", "user-1", ACTIVATION, RESPONSE)
        db.rollback()
