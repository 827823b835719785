# company_schema.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from models.models import PlanId


class CompanyDetails(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    company_type: str = Field(..., min_length=1, max_length=100)
    company_domain: str = Field(..., min_length=1, max_length=200)
    phone_number: str = Field(..., min_length=1, max_length=50)
    building_no: str = Field(..., min_length=1, max_length=50)
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)


class PaymentIntentRequest(CompanyDetails):
    plan_id: PlanId


class CompanyData(CompanyDetails):
    """Provisional company payload handed back to the client between the two onboarding steps."""

    company_admin: int
    admin_verification: bool = False
    plan_id: PlanId
    stripe_customer_id: str
    max_branches: int
    max_users: int
    max_meeting_participants: int


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    company_data: CompanyData


class CompleteCreationRequest(BaseModel):
    company_data: CompanyData
    payment_intent_id: str = Field(..., min_length=1)


class CompanyUpdate(BaseModel):
    company_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    company_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    company_domain: Optional[str] = Field(default=None, min_length=1, max_length=200)
    phone_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    building_no: Optional[str] = Field(default=None, min_length=1, max_length=50)
    street: Optional[str] = Field(default=None, min_length=1, max_length=200)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    country: Optional[str] = Field(default=None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(default=None, min_length=1, max_length=20)
    admin_verification: Optional[bool] = None


class CompanyRead(BaseModel):
    id: int
    company_name: str
    company_type: str
    company_domain: str
    phone_number: str
    building_no: str
    street: str
    city: str
    state: str
    country: str
    postal_code: str
    company_admin_id: int
    admin_verification: bool
    plan_id: str
    stripe_customer_id: str
    stripe_subscription_id: str
    subscription_status: str
    current_period_end: datetime
    max_branches: int
    max_users: int
    max_meeting_participants: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UpdatePlanRequest(BaseModel):
    new_plan_id: str


class UpdatePaymentMethodRequest(BaseModel):
    payment_method_id: str = Field(..., min_length=1)
