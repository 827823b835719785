from sqlmodel import select

import scripts.seed as seed
from models.models import Company, Project, User, UserRole


def test_dev_seed_puts_demo_data_in_one_company(monkeypatch, session):
    monkeypatch.setattr(seed, "engine", session.get_bind())

    seed.seed_dev_data()
    session.expire_all()

    company = session.exec(select(Company)).one()
    owner = session.exec(select(User).where(User.email == "owner@demo.com")).one()
    assert company.company_admin_id == owner.id

    members = session.exec(select(User).where(User.role != UserRole.ADMIN.value)).all()
    assert {m.company_id for m in members} == {company.id}
    admin = session.exec(select(User).where(User.role == UserRole.ADMIN.value)).one()
    assert admin.company_id is None

    project = session.exec(select(Project)).one()
    assert project.company_id == company.id


def test_dev_seed_is_idempotent(monkeypatch, session):
    monkeypatch.setattr(seed, "engine", session.get_bind())

    seed.seed_dev_data()
    seed.seed_dev_data()
    session.expire_all()

    assert len(session.exec(select(Company)).all()) == 1
    assert len(session.exec(select(Project)).all()) == 1
    assert len(session.exec(select(User)).all()) == 4
