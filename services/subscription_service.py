# ================================================================
# services/subscription_service.py: apply Stripe webhook events
# ================================================================
import json
import logging
from typing import Optional

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.models import Company, SubscriptionStatus, WebhookEvent
from services import payment_service

logger = logging.getLogger(__name__)

SUBSCRIPTION_EVENTS = ("customer.subscription.updated", "customer.subscription.deleted")


def _company_for_subscription(session: Session, subscription_id: Optional[str]) -> Optional[Company]:
    if not subscription_id:
        return None
    return session.exec(
        select(Company).where(Company.stripe_subscription_id == subscription_id)
    ).first()


def _is_stale(company: Company, created: int, event_type: str) -> bool:
    if created < company.subscription_synced_at:
        logger.info(
            "⏭️ Skipping %s for company %s: event time %s is older than last sync %s",
            event_type, company.id, created, company.subscription_synced_at,
        )
        return True
    return False


def _apply(session: Session, event_type: str, obj: dict, created: int) -> str:
    """Mutate the matching company (not committed). Returns the outcome label."""
    if event_type in SUBSCRIPTION_EVENTS:
        company = _company_for_subscription(session, obj.get("id"))
        if not company:
            logger.warning("No company for subscription %s (%s)", obj.get("id"), event_type)
            return "ignored"
        if _is_stale(company, created, event_type):
            return "stale"

        if event_type == "customer.subscription.deleted":
            company.subscription_status = SubscriptionStatus.CANCELED.value
        else:
            company.subscription_status = obj["status"]
        company.current_period_end = payment_service.period_end(obj)

    elif event_type == "invoice.payment_succeeded":
        company = _company_for_subscription(session, obj.get("subscription"))
        if not company:
            logger.info("Invoice %s has no known subscription", obj.get("id"))
            return "ignored"
        if _is_stale(company, created, event_type):
            return "stale"

        subscription = payment_service.retrieve_subscription(company.stripe_subscription_id)
        company.subscription_status = subscription["status"]
        company.current_period_end = payment_service.period_end(subscription)

    elif event_type == "invoice.payment_failed":
        company = _company_for_subscription(session, obj.get("subscription"))
        if not company:
            logger.info("Invoice %s has no known subscription", obj.get("id"))
            return "ignored"
        if _is_stale(company, created, event_type):
            return "stale"

        company.subscription_status = SubscriptionStatus.PAST_DUE.value
        logger.warning("⚠️ Payment failed for subscription %s", company.stripe_subscription_id)

    else:
        logger.info("ℹ️ Unhandled event type: %s", event_type)
        return "ignored"

    company.subscription_synced_at = created
    session.add(company)
    logger.info(
        "✅ Company %s subscription now %s (period end %s)",
        company.id, company.subscription_status, company.current_period_end,
    )
    return "processed"


def _record_failure(session: Session, event: dict, error: str) -> None:
    try:
        record = session.exec(
            select(WebhookEvent).where(WebhookEvent.stripe_event_id == event["id"])
        ).first()
        if not record:
            record = WebhookEvent(
                stripe_event_id=event["id"],
                event_type=event["type"],
                payload=json.dumps(event),
            )
        record.processed = False
        record.processing_error = error[:1000]
        session.add(record)
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not record failure for webhook event %s", event["id"])


def handle_event(session: Session, event: dict) -> str:
    """
    Apply a verified webhook event.

    Events older than the company's last applied event are skipped, and event
    ids already marked processed are acknowledged without being reapplied.
    Failures are logged and stored on the ledger row; they are never raised.
    """
    event_id = event["id"]
    event_type = event["type"]
    created = int(event.get("created") or 0)
    obj = event.get("data", {}).get("object", {})

    record = session.exec(
        select(WebhookEvent).where(WebhookEvent.stripe_event_id == event_id)
    ).first()
    if record and record.processed:
        logger.info("🔁 Webhook event %s already processed", event_id)
        return "duplicate"

    if not record:
        record = WebhookEvent(
            stripe_event_id=event_id,
            event_type=event_type,
            payload=json.dumps(event),
        )

    try:
        outcome = _apply(session, event_type, obj, created)
        record.processed = True
        record.processing_error = None
        session.add(record)
        session.commit()
        return outcome
    except (SQLAlchemyError, stripe.StripeError, KeyError) as e:
        session.rollback()
        logger.exception("❌ Error processing webhook event %s (%s)", event_id, event_type)
        _record_failure(session, event, str(e))
        return "failed"
