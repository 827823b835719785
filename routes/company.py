# routes/company.py
import logging
from datetime import datetime
from typing import List

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.config import settings
from core.database import get_session
from core.errors import provider_error
from core.security import get_current_user, get_current_admin, is_platform_admin, can_access_company
from models.models import (
    Company, User, Project, UserRole, SubscriptionStatus, PLAN_LIMITS, plan_limits,
)
from schemas.company_schema import (
    PaymentIntentRequest, PaymentIntentResponse, CompanyData, CompleteCreationRequest,
    CompanyRead, CompanyUpdate, UpdatePlanRequest, UpdatePaymentMethodRequest,
)
from services import payment_service, subscription_service

logger = logging.getLogger(__name__)

router = APIRouter()


# ==========================================================
# Helpers
# ==========================================================
def get_owned_company(session: Session, user: User) -> Company:
    company = session.exec(select(Company).where(Company.company_admin_id == user.id)).first()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def get_member_company(session: Session, user: User) -> Company:
    company = session.exec(select(Company).where(Company.company_admin_id == user.id)).first()
    if not company and user.company_id:
        company = session.get(Company, user.company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


# ==========================================================
# 💳 Step 1: payment intent for the chosen plan
# ==========================================================
@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
def create_payment_intent(
    data: PaymentIntentRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    plan_id = data.plan_id.value
    try:
        customer_id = payment_service.get_or_create_customer(
            current_user.email, current_user.name, current_user.stripe_customer_id
        )
        if customer_id != current_user.stripe_customer_id:
            current_user.stripe_customer_id = customer_id
            session.add(current_user)
            session.commit()

        intent = payment_service.create_payment_intent(
            customer_id, plan_id, metadata={"user_id": str(current_user.id), "plan_id": plan_id}
        )
    except stripe.StripeError as e:
        logger.exception("Stripe error creating payment intent for user_id=%s", current_user.id)
        raise provider_error(e, "Failed to create payment intent")

    company_data = CompanyData(
        **data.model_dump(exclude={"plan_id"}),
        plan_id=plan_id,
        company_admin=current_user.id,
        admin_verification=False,
        stripe_customer_id=customer_id,
        **plan_limits(plan_id),
    )
    logger.info("💳 Payment intent %s created for user_id=%s (%s)", intent.id, current_user.id, plan_id)
    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
        company_data=company_data,
    )


# ==========================================================
# ✅ Step 2: subscribe and persist the company
# ==========================================================
@router.post("/complete-creation", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def complete_company_creation(
    data: CompleteCreationRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company_data = data.company_data

    if current_user.company_id or session.exec(
        select(Company).where(Company.company_admin_id == current_user.id)
    ).first():
        raise HTTPException(status_code=400, detail="You already have a company")

    if company_data.company_admin != current_user.id:
        raise HTTPException(status_code=400, detail="Company data does not belong to the current user")
    if not current_user.stripe_customer_id or company_data.stripe_customer_id != current_user.stripe_customer_id:
        raise HTTPException(status_code=400, detail="Customer does not match the current user")

    customer_id = current_user.stripe_customer_id
    plan_id = company_data.plan_id.value

    try:
        intent = payment_service.retrieve_payment_intent(data.payment_intent_id)
    except stripe.StripeError as e:
        logger.exception("Stripe error retrieving payment intent %s", data.payment_intent_id)
        raise provider_error(e, "Failed to complete company creation")

    if intent.status != "succeeded":
        raise HTTPException(status_code=400, detail="Payment not completed")
    if intent.customer != customer_id:
        raise HTTPException(status_code=400, detail="Payment does not belong to the current user")
    payment_method_id = intent.payment_method
    if not payment_method_id:
        raise HTTPException(status_code=400, detail="No payment method found for this payment")

    try:
        payment_service.attach_payment_method(payment_method_id, customer_id)
        payment_service.set_default_payment_method(customer_id, payment_method_id)
        subscription = payment_service.create_subscription(customer_id, plan_id, payment_method_id)
    except stripe.StripeError as e:
        logger.exception("Stripe error subscribing customer %s", customer_id)
        raise provider_error(e, "Failed to complete company creation")

    company = Company(
        **company_data.model_dump(
            exclude={
                "company_admin", "admin_verification", "plan_id",
                "max_branches", "max_users", "max_meeting_participants",
            }
        ),
        company_admin_id=current_user.id,
        plan_id=plan_id,
        stripe_subscription_id=subscription.id,
        payment_method_id=payment_method_id,
        subscription_status=subscription.status,
        current_period_end=payment_service.period_end(subscription),
    )

    try:
        session.add(company)
        session.flush()
        current_user.role = UserRole.COMPANY_ADMIN.value
        current_user.company_id = company.id
        session.add(current_user)
        session.commit()
        session.refresh(company)
    except SQLAlchemyError:
        session.rollback()
        # No reconciliation job: the subscription id is the only trace left
        logger.exception(
            "❌ Company not saved; Stripe subscription %s for customer %s is orphaned",
            subscription.id, customer_id,
        )
        raise HTTPException(status_code=500, detail="Failed to complete company creation")

    logger.info("✅ Company %s created by user_id=%s on %s", company.id, current_user.id, plan_id)
    return CompanyRead.model_validate(company)


# ==========================================================
# 🔁 Subscription management (declared before /{company_id})
# ==========================================================
@router.get("/subscription/details")
def get_subscription_details(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company = get_member_company(session, current_user)
    try:
        subscription = payment_service.retrieve_subscription(company.stripe_subscription_id)
        payment_method = payment_service.retrieve_payment_method(company.payment_method_id)
    except stripe.StripeError as e:
        logger.exception("Stripe error loading subscription for company %s", company.id)
        raise provider_error(e, "Failed to get subscription details")

    card = getattr(payment_method, "card", None)
    return {
        "status": subscription.status,
        "current_period_end": payment_service.period_end(subscription).isoformat(),
        "plan": company.plan_id,
        "payment_method": {
            "brand": getattr(card, "brand", None),
            "last4": getattr(card, "last4", None),
            "exp_month": getattr(card, "exp_month", None),
            "exp_year": getattr(card, "exp_year", None),
        },
        "limits": {
            "max_branches": company.max_branches,
            "max_users": company.max_users,
            "max_meeting_participants": company.max_meeting_participants,
        },
    }


@router.post("/subscription/update-plan", response_model=CompanyRead)
def update_subscription_plan(
    data: UpdatePlanRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if data.new_plan_id not in PLAN_LIMITS:
        raise HTTPException(status_code=400, detail="Invalid plan selected")

    company = get_owned_company(session, current_user)
    if company.plan_id == data.new_plan_id:
        raise HTTPException(status_code=400, detail="Already on this plan")

    try:
        payment_service.change_subscription_plan(company.stripe_subscription_id, data.new_plan_id)
    except stripe.StripeError as e:
        logger.exception("Stripe error changing plan for company %s", company.id)
        raise provider_error(e, "Failed to update subscription")

    company.plan_id = data.new_plan_id  # limits follow via the before_update hook
    session.add(company)
    session.commit()
    session.refresh(company)

    logger.info("Company %s moved to plan %s", company.id, company.plan_id)
    return CompanyRead.model_validate(company)


@router.post("/subscription/cancel")
def cancel_subscription(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company = get_owned_company(session, current_user)
    try:
        payment_service.cancel_subscription(company.stripe_subscription_id)
    except stripe.StripeError as e:
        logger.exception("Stripe error canceling subscription for company %s", company.id)
        raise provider_error(e, "Failed to cancel subscription")

    company.subscription_status = SubscriptionStatus.CANCELED.value
    session.add(company)
    session.commit()
    return {"message": "Subscription canceled"}


@router.post("/subscription/update-payment-method")
def update_payment_method(
    data: UpdatePaymentMethodRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company = get_owned_company(session, current_user)
    if not current_user.stripe_customer_id:
        raise HTTPException(status_code=404, detail="Billing customer not found")

    try:
        payment_service.attach_payment_method(data.payment_method_id, current_user.stripe_customer_id)
        payment_service.set_default_payment_method(current_user.stripe_customer_id, data.payment_method_id)
        payment_service.update_subscription_payment_method(company.stripe_subscription_id, data.payment_method_id)
    except stripe.StripeError as e:
        logger.exception("Stripe error updating payment method for company %s", company.id)
        raise provider_error(e, "Failed to update payment method")

    company.payment_method_id = data.payment_method_id
    session.add(company)
    session.commit()
    return {"message": "Payment method updated"}


# ==========================================================
# 📬 Stripe webhook (no auth; signature checked instead)
# ==========================================================
@router.post("/webhook")
async def stripe_webhook(request: Request, session: Session = Depends(get_session)):
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    webhook_secret = settings.STRIPE_WEBHOOK_SECRET

    if not webhook_secret:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        return JSONResponse(status_code=500, content={"detail": "Webhook secret not configured"})

    if not sig_header:
        return JSONResponse(status_code=400, content={"detail": "Missing stripe-signature header"})

    try:
        event = payment_service.verify_webhook(payload, sig_header, webhook_secret)
    except stripe.SignatureVerificationError as e:
        logger.warning("❌ Invalid webhook signature: %s", e)
        return JSONResponse(status_code=400, content={"detail": "Invalid signature"})
    except ValueError as e:
        logger.warning("❌ Invalid webhook payload: %s", e)
        return JSONResponse(status_code=400, content={"detail": "Invalid payload"})

    logger.info("✅ Webhook received: %s (%s)", event.get("type"), event.get("id"))
    result = subscription_service.handle_event(session, event)
    return {"received": True, "event": event.get("type"), "result": result}


# ==========================================================
# 🏢 Company management
# ==========================================================
@router.get("/", response_model=List[CompanyRead])
def list_companies(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_admin),
):
    return session.exec(select(Company).order_by(Company.created_at.desc())).all()


@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company = session.get(Company, company_id)
    if not company or not can_access_company(current_user, company.id):
        raise HTTPException(status_code=404, detail="Company not found")
    return company


@router.put("/{company_id}", response_model=CompanyRead)
def update_company(
    company_id: int,
    data: CompanyUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    company = session.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    is_admin = is_platform_admin(current_user)
    if not is_admin and company.company_admin_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to update this company")

    updates = data.model_dump(exclude_unset=True)
    if "admin_verification" in updates and not is_admin:
        raise HTTPException(status_code=403, detail="Only admins can change admin verification")

    for key, value in updates.items():
        setattr(company, key, value)

    try:
        session.add(company)
        session.commit()
        session.refresh(company)
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=400, detail="Failed to update company")
    return company


@router.delete("/{company_id}")
def delete_company(
    company_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_admin),
):
    company = session.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    try:
        payment_service.cancel_subscription(company.stripe_subscription_id)
    except stripe.InvalidRequestError as e:
        # Already canceled or unknown at Stripe
        logger.warning("Subscription %s not canceled: %s", company.stripe_subscription_id, e)
    except stripe.StripeError as e:
        logger.exception("Stripe error canceling subscription for company %s", company.id)
        raise provider_error(e, "Failed to delete company")

    for member in session.exec(select(User).where(User.company_id == company.id)).all():
        member.company_id = None
        session.add(member)
    # Projects cascade to their tasks and comments
    for project in session.exec(select(Project).where(Project.company_id == company.id)).all():
        session.delete(project)
    session.delete(company)
    session.commit()

    logger.info("🗑️ Company %s deleted by admin %s", company_id, current_user.id)
    return {"message": "Company deleted successfully"}


@router.patch("/{company_id}/toggle-verification")
def toggle_admin_verification(
    company_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_admin),
):
    company = session.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    company.admin_verification = not company.admin_verification
    company.updated_at = datetime.utcnow()
    session.add(company)
    session.commit()
    session.refresh(company)

    state = "enabled" if company.admin_verification else "disabled"
    return {
        "message": f"Admin verification {state} successfully",
        "data": CompanyRead.model_validate(company).model_dump(mode="json"),
    }
