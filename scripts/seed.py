# scripts/seed.py

import os
import sys
import argparse
from datetime import datetime, timedelta

from dotenv import load_dotenv

# Ensure root path for relative imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ✅ Load environment variables before settings are read
load_dotenv()

from sqlmodel import Session, select  # noqa: E402

from core.database import engine, init_db_or_exit  # noqa: E402
from core.security import hash_password  # noqa: E402
from models.models import Company, User, UserRole, Project, ProjectStatus  # noqa: E402


def get_or_create_user(session: Session, email: str, name: str, role: str, password: str) -> User:
    user = session.exec(select(User).where(User.email == email)).first()
    if user:
        print(f"ℹ️ {role} {email} already exists")
        return user

    user = User(name=name, email=email, role=role, password_hash=hash_password(password))
    session.add(user)
    session.commit()
    session.refresh(user)
    print(f"✅ Added {role} {email}")
    return user


def get_or_create_company(session: Session, owner: User) -> Company:
    company = session.exec(select(Company).where(Company.company_admin_id == owner.id)).first()
    if company:
        print(f"ℹ️ Company {company.company_name} already exists")
        return company

    company = Company(
        company_name="Demo Company",
        company_type="Software",
        company_domain="demo.com",
        phone_number="+10000000000",
        building_no="1",
        street="Demo Street",
        city="Demo City",
        state="Demo State",
        country="Demoland",
        postal_code="00000",
        company_admin_id=owner.id,
        admin_verification=True,
        stripe_customer_id="cus_demo",
        stripe_subscription_id="sub_demo",
        payment_method_id="pm_demo",
        current_period_end=datetime.utcnow() + timedelta(days=30),
    )
    session.add(company)
    session.commit()
    session.refresh(company)
    print(f"✅ Added company {company.company_name}")
    return company


def seed_admin(email: str, password: str):
    """Platform admin; the only account that can provision company admins."""
    with Session(engine) as session:
        get_or_create_user(session, email, "Platform Admin", UserRole.ADMIN.value, password)


def seed_dev_data():
    """Demo company with its owner, a manager, a developer and one project."""
    print("🌱 Seeding development data...")

    with Session(engine) as session:
        get_or_create_user(session, "admin@demo.com", "Admin User", UserRole.ADMIN.value, "admin123")
        company_admin = get_or_create_user(
            session, "owner@demo.com", "Demo Owner", UserRole.COMPANY_ADMIN.value, "owner123"
        )
        manager = get_or_create_user(
            session, "manager@demo.com", "Demo Manager", UserRole.MANAGER.value, "manager123"
        )
        developer = get_or_create_user(
            session, "dev@demo.com", "Demo Developer", UserRole.DEVELOPER.value, "dev123"
        )

        company = get_or_create_company(session, company_admin)
        for member in (company_admin, manager, developer):
            if member.company_id is None:
                member.company_id = company.id
                session.add(member)
        session.commit()

        if not session.exec(select(Project).where(Project.name == "Demo Project")).first():
            now = datetime.utcnow()
            session.add(Project(
                name="Demo Project",
                description="Sample project created by the seed script",
                client_name="Demo Client",
                budget=10000,
                start_date=now,
                end_date=now + timedelta(days=30),
                project_manager_id=manager.id,
                goal="Show the dashboard with some data",
                status=ProjectStatus.IN_PROGRESS.value,
                company_id=company.id,
            ))
            session.commit()
            print("✅ Added Demo Project")

    print("🌱 Development data seeding complete.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the ProjeX database.")
    parser.add_argument(
        "--env",
        choices=["dev", "admin"],
        default="admin",
        help="'admin' creates only the platform admin, 'dev' adds demo users and a project",
    )
    parser.add_argument("--email", default=os.getenv("ADMIN_EMAIL", "admin@projex.local"))
    parser.add_argument("--password", default=os.getenv("ADMIN_PASSWORD"))
    args = parser.parse_args()

    init_db_or_exit()

    if args.env == "dev":
        seed_dev_data()
    else:
        if not args.password:
            parser.error("--password (or ADMIN_PASSWORD) is required")
        seed_admin(args.email, args.password)
