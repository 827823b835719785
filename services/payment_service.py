# ================================================================
# services/payment_service.py: Stripe calls used by company onboarding
# ================================================================
import json
import logging
import time
from datetime import datetime
from typing import Optional

import stripe

from core.config import settings  # ✅ Use centralized configuration
from models.models import PLAN_AMOUNTS

logger = logging.getLogger(__name__)

# ------------------------
# STRIPE CONFIG
# ------------------------
stripe.api_key = settings.STRIPE_SECRET_KEY
# Pinned so subscriptions keep current_period_end at the top level
stripe.api_version = "2023-10-16"

WEBHOOK_TOLERANCE_SECONDS = 300


def price_for_plan(plan_id: str) -> Optional[str]:
    return settings.PLAN_PRICE_MAP.get(plan_id)


def amount_for_plan(plan_id: str) -> int:
    return PLAN_AMOUNTS[plan_id]


def period_end(subscription) -> datetime:
    """current_period_end of a subscription (dict or StripeObject) as naive UTC."""
    try:
        ts = subscription["current_period_end"]
    except KeyError:
        ts = subscription["items"]["data"][0]["current_period_end"]
    return datetime.utcfromtimestamp(ts)


# ========================================
# 👤 Customers
# ========================================
def get_or_create_customer(email: str, name: str, customer_id: Optional[str] = None) -> str:
    """Reuse the stored customer unless it was deleted at Stripe; otherwise create one."""
    if customer_id:
        try:
            customer = stripe.Customer.retrieve(customer_id)
            if not getattr(customer, "deleted", False):
                return customer.id
            logger.info("Stripe customer %s was deleted, creating a new one", customer_id)
        except stripe.InvalidRequestError:
            logger.warning("Stripe customer %s not found, creating a new one", customer_id)

    customer = stripe.Customer.create(email=email, name=name)
    logger.info("💳 Created Stripe customer %s for %s", customer.id, email)
    return customer.id


def set_default_payment_method(customer_id: str, payment_method_id: str):
    return stripe.Customer.modify(
        customer_id,
        invoice_settings={"default_payment_method": payment_method_id},
    )


# ========================================
# 💰 Payment intents & methods
# ========================================
def create_payment_intent(customer_id: str, plan_id: str, metadata: Optional[dict] = None):
    return stripe.PaymentIntent.create(
        amount=amount_for_plan(plan_id),
        currency="usd",
        customer=customer_id,
        setup_future_usage="off_session",
        automatic_payment_methods={"enabled": True},
        metadata=metadata or {},
    )


def retrieve_payment_intent(payment_intent_id: str):
    return stripe.PaymentIntent.retrieve(payment_intent_id)


def attach_payment_method(payment_method_id: str, customer_id: str) -> None:
    try:
        stripe.PaymentMethod.attach(payment_method_id, customer=customer_id)
    except stripe.InvalidRequestError as e:
        # setup_future_usage already attaches the method on success
        if "already been attached" not in str(e):
            raise
        logger.info("Payment method %s already attached to %s", payment_method_id, customer_id)


def retrieve_payment_method(payment_method_id: str):
    return stripe.PaymentMethod.retrieve(payment_method_id)


# ========================================
# 🔁 Subscriptions
# ========================================
def create_subscription(customer_id: str, plan_id: str, payment_method_id: str):
    idempotency_key = f"sub_{customer_id}_{int(time.time() * 1000)}"
    subscription = stripe.Subscription.create(
        customer=customer_id,
        items=[{"price": price_for_plan(plan_id)}],
        default_payment_method=payment_method_id,
        metadata={"plan_id": plan_id},
        idempotency_key=idempotency_key,
    )
    logger.info("🔁 Created subscription %s for customer %s (%s)", subscription.id, customer_id, plan_id)
    return subscription


def retrieve_subscription(subscription_id: str):
    return stripe.Subscription.retrieve(subscription_id)


def change_subscription_plan(subscription_id: str, new_plan_id: str):
    subscription = stripe.Subscription.retrieve(subscription_id)
    item_id = subscription["items"]["data"][0]["id"]
    return stripe.Subscription.modify(
        subscription_id,
        items=[{"id": item_id, "price": price_for_plan(new_plan_id)}],
        proration_behavior="create_prorations",
        metadata={"plan_id": new_plan_id},
    )


def update_subscription_payment_method(subscription_id: str, payment_method_id: str):
    return stripe.Subscription.modify(subscription_id, default_payment_method=payment_method_id)


def cancel_subscription(subscription_id: str):
    subscription = stripe.Subscription.cancel(subscription_id)
    logger.info("🗑️ Subscription %s canceled", subscription_id)
    return subscription


# ========================================
# 📬 Webhooks
# ========================================
def verify_webhook(payload: bytes, sig_header: str, secret: str) -> dict:
    """
    Check the Stripe-Signature header (HMAC-SHA256 over "{t}.{payload}") and
    return the event as a plain dict.

    Raises stripe.SignatureVerificationError or ValueError.
    """
    body = payload.decode("utf-8")
    stripe.WebhookSignature.verify_header(body, sig_header, secret, WEBHOOK_TOLERANCE_SECONDS)
    return json.loads(body)
