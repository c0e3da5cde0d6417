#!/usr/bin/env python3
"""Seed demo subscriptions for local development."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'backend'))

from mindful.database import Base, SessionLocal, engine
from mindful.billing.plans import BillingCycle, Plan
from mindful.models.subscription import ProcessedPayment, Subscription
from mindful.services import subscription_service

DEMO_USERS = ("demo-premium", "demo-family", "demo-free")


def seed_database():
    """Create one active premium and one canceled family subscription."""

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        # Clear existing demo data
        db.query(Subscription).filter(Subscription.user_id.in_(DEMO_USERS)).delete(
            synchronize_session=False
        )
        db.query(ProcessedPayment).filter(ProcessedPayment.user_id.in_(DEMO_USERS)).delete(
            synchronize_session=False
        )
        db.commit()

        subscription_service.activate(
            db,
            user_id="demo-premium",
            plan=Plan.PREMIUM,
            billing_cycle=BillingCycle.MONTHLY,
            razorpay_order_id="order_demo_premium",
            razorpay_payment_id="pay_demo_premium",
            razorpay_signature="demo-signature",
        )

        subscription_service.activate(
            db,
            user_id="demo-family",
            plan=Plan.FAMILY,
            billing_cycle=BillingCycle.YEARLY,
            razorpay_order_id="order_demo_family",
            razorpay_payment_id="pay_demo_family",
            razorpay_signature="demo-signature",
        )
        subscription_service.cancel(db, "demo-family")

        print("\n" + "="*70)
        print("✓ DEMO SUBSCRIPTIONS CREATED")
        print("="*70)
        print("\nSend one of these as the X-User-ID header:\n")
        print("demo-premium  active premium (monthly)")
        print("demo-family   canceled family (yearly), resolves to free")
        print("demo-free     no subscription")
        print("\n" + "="*70 + "\n")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()

if __name__ == "__main__":
    seed_database()
