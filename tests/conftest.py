import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("FRONTEND_URL", "http://localhost:5173")

from datetime import datetime, timedelta  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import SQLModel, Session, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from main import app  # noqa: E402
from core.database import get_session  # noqa: E402
from core.security import hash_password, create_token_for_user  # noqa: E402
from models.models import Company, User, Project, Task, UserRole  # noqa: E402
from services.email_service import email_service  # noqa: E402


class StripeStub(dict):
    """Dict with attribute access, like the SDK's StripeObject."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def emails(monkeypatch):
    """Capture outgoing email instead of calling SendGrid."""
    mocks = MagicMock()
    mocks.send_otp_email.return_value = True
    mocks.send_password_setup_email.return_value = True
    monkeypatch.setattr(email_service, "send_otp_email", mocks.send_otp_email)
    monkeypatch.setattr(email_service, "send_password_setup_email", mocks.send_password_setup_email)
    return mocks


@pytest.fixture
def make_user(session: Session):
    counter = {"n": 0}

    def _make_user(role: str = UserRole.DEVELOPER.value, password: str = "secret123", **fields) -> User:
        counter["n"] += 1
        data = {
            "name": f"{role} {counter['n']}",
            "email": f"{role.lower()}{counter['n']}@example.com",
            "password_hash": hash_password(password) if password else None,
            "role": role,
            # Everyone but the platform admin belongs to a tenant unless told otherwise
            "company_id": None if role == UserRole.ADMIN.value else 1,
        }
        data.update(fields)
        user = User(**data)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_company(session: Session):
    def _make_company(admin: User, plan_id: str = "basic", subscription_id: str = "sub_test", **fields) -> Company:
        data = {
            "company_name": "Acme",
            "company_type": "Software",
            "company_domain": "acme.test",
            "phone_number": "555-0100",
            "building_no": "1",
            "street": "Main St",
            "city": "Springfield",
            "state": "IL",
            "country": "US",
            "postal_code": "62701",
            "company_admin_id": admin.id,
            "plan_id": plan_id,
            "stripe_customer_id": "cus_test",
            "stripe_subscription_id": subscription_id,
            "payment_method_id": "pm_test",
            "subscription_status": "active",
            "current_period_end": datetime.utcnow() + timedelta(days=30),
        }
        data.update(fields)
        company = Company(**data)
        session.add(company)
        session.commit()
        session.refresh(company)

        admin.company_id = company.id
        session.add(admin)
        session.commit()
        session.refresh(admin)
        return company

    return _make_company


@pytest.fixture
def make_project(session: Session):
    def _make_project(manager: User, **fields) -> Project:
        now = datetime.utcnow()
        data = {
            "name": "Website",
            "description": "Company website rebuild",
            "client_name": "Globex",
            "budget": 5000,
            "start_date": now - timedelta(days=5),
            "end_date": now + timedelta(days=25),
            "project_manager_id": manager.id,
            "goal": "Launch",
            "company_id": manager.company_id,
        }
        data.update(fields)
        project = Project(**data)
        session.add(project)
        session.commit()
        session.refresh(project)
        return project

    return _make_project


@pytest.fixture
def make_task(session: Session):
    def _make_task(project: Project, assignee: User, creator: User, **fields) -> Task:
        data = {
            "title": "Build page",
            "description": "Landing page",
            "project_id": project.id,
            "assignee_id": assignee.id,
            "created_by_id": creator.id,
            "due_date": datetime.utcnow() + timedelta(days=3),
        }
        data.update(fields)
        task = Task(**data)
        session.add(task)
        session.commit()
        session.refresh(task)
        return task

    return _make_task


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for_user(user)}"}


@pytest.fixture
def headers():
    return auth_headers
