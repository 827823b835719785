from datetime import datetime, timedelta

from models.models import OTP, PendingSignup, UserRole, plan_limits


def test_plan_limits_table():
    assert plan_limits("basic") == {"max_branches": 1, "max_users": 10, "max_meeting_participants": 3}
    assert plan_limits("pro") == {"max_branches": 3, "max_users": 30, "max_meeting_participants": 5}
    assert plan_limits("business") == {"max_branches": 5, "max_users": 50, "max_meeting_participants": 10}


def test_unknown_plan_falls_back_to_basic():
    assert plan_limits("enterprise") == plan_limits("basic")


def test_limits_follow_plan_on_insert(make_user, make_company):
    company = make_company(make_user(UserRole.COMPANY_ADMIN.value), plan_id="pro", max_users=999)
    assert company.max_users == 30


def test_limits_follow_plan_change(session, make_user, make_company):
    company = make_company(make_user(UserRole.COMPANY_ADMIN.value), plan_id="basic")

    company.plan_id = "business"
    session.add(company)
    session.commit()
    session.refresh(company)

    assert (company.max_branches, company.max_users, company.max_meeting_participants) == (5, 50, 10)


def test_other_updates_keep_limits(session, make_user, make_company):
    company = make_company(make_user(UserRole.COMPANY_ADMIN.value), plan_id="pro")

    company.city = "Shelbyville"
    session.add(company)
    session.commit()
    session.refresh(company)

    assert company.max_users == 30


def test_otp_expiry():
    fresh = OTP(email="a@example.com", otp="123456")
    stale = OTP(email="a@example.com", otp="123456", created_at=datetime.utcnow() - timedelta(minutes=11))

    assert fresh.is_expired(600) is False
    assert stale.is_expired(600) is True


def test_pending_signup_expiry():
    pending = PendingSignup(
        email="a@example.com", name="A", password_hash="x", role="companyAdmin",
        expires_at=datetime.utcnow() - timedelta(seconds=1),
    )
    assert pending.is_expired() is True
