from sqlmodel import select

from core.security import hash_reset_token
from models.models import User, UserRole

DEVELOPERS = "/api/manager/developers/"
MANAGERS = "/api/companyadmin/managers/"
COMPANY_ADMINS = "/api/admin/companyadmins/"


def test_create_developer_sends_setup_link(client, session, make_user, headers, emails):
    manager = make_user(UserRole.MANAGER.value, company_id=1)

    response = client.post(DEVELOPERS, headers=headers(manager), json={
        "name": "Dev One", "email": "Dev.One@Example.com", "phone_number": "555-0199",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "developer"
    assert body["email"] == "dev.one@example.com"
    assert body["company_id"] == 1

    emails.send_password_setup_email.assert_called_once()
    to_email, name, label, link = emails.send_password_setup_email.call_args[0]
    assert to_email == "dev.one@example.com"
    assert "/developer/set-password/" in link

    raw = link.rsplit("/", 1)[1]
    created = session.get(User, body["id"])
    assert created.password_hash is None
    assert created.password_reset_token == hash_reset_token(raw)


def test_create_duplicate_email(client, make_user, headers, emails):
    manager = make_user(UserRole.MANAGER.value)
    existing = make_user(UserRole.DEVELOPER.value)

    response = client.post(DEVELOPERS, headers=headers(manager), json={
        "name": "Dup", "email": existing.email,
    })

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already in use"


def test_create_rolls_back_when_email_fails(client, session, make_user, headers, emails):
    emails.send_password_setup_email.return_value = False
    manager = make_user(UserRole.MANAGER.value)

    response = client.post(DEVELOPERS, headers=headers(manager), json={
        "name": "Ghost", "email": "ghost@example.com",
    })

    assert response.status_code == 500
    assert "not created" in response.json()["detail"]
    assert session.exec(select(User).where(User.email == "ghost@example.com")).first() is None


def test_developer_cannot_create_developers(client, make_user, headers, emails):
    developer = make_user(UserRole.DEVELOPER.value)
    response = client.post(DEVELOPERS, headers=headers(developer), json={
        "name": "X", "email": "x@example.com",
    })
    assert response.status_code == 403


def test_only_admin_manages_company_admins(client, make_user, headers, emails):
    company_admin = make_user(UserRole.COMPANY_ADMIN.value)
    admin = make_user(UserRole.ADMIN.value)
    payload = {"name": "Owner", "email": "owner@example.com"}

    assert client.post(COMPANY_ADMINS, headers=headers(company_admin), json=payload).status_code == 403
    response = client.post(COMPANY_ADMINS, headers=headers(admin), json=payload)
    assert response.status_code == 201
    assert "/companyadmin/set-password/" in emails.send_password_setup_email.call_args[0][3]


def test_list_is_scoped_to_company(client, make_user, headers):
    manager_a = make_user(UserRole.MANAGER.value, company_id=1)
    dev_a = make_user(UserRole.DEVELOPER.value, company_id=1)
    make_user(UserRole.DEVELOPER.value, company_id=2)
    make_user(UserRole.PROJECT_MANAGER.value, company_id=1)

    response = client.get(DEVELOPERS, headers=headers(manager_a))

    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [dev_a.id]


def test_admin_lists_every_company(client, make_user, headers):
    admin = make_user(UserRole.ADMIN.value)
    make_user(UserRole.DEVELOPER.value, company_id=1)
    make_user(UserRole.DEVELOPER.value, company_id=2)

    response = client.get(DEVELOPERS, headers=headers(admin))
    assert len(response.json()) == 2


def test_get_by_id_filters_role(client, make_user, headers):
    viewer = make_user(UserRole.DEVELOPER.value, company_id=1)
    manager = make_user(UserRole.MANAGER.value, company_id=1)
    developer = make_user(UserRole.DEVELOPER.value, company_id=1)

    assert client.get(f"{DEVELOPERS}{developer.id}", headers=headers(viewer)).status_code == 200
    response = client.get(f"{DEVELOPERS}{manager.id}", headers=headers(viewer))
    assert response.status_code == 404
    assert response.json()["detail"] == "Developer not found"


def test_get_by_id_hides_other_company(client, make_user, headers):
    viewer = make_user(UserRole.MANAGER.value, company_id=1)
    other = make_user(UserRole.DEVELOPER.value, company_id=2)

    assert client.get(f"{DEVELOPERS}{other.id}", headers=headers(viewer)).status_code == 404


def test_update_checks_email_uniqueness(client, session, make_user, headers):
    company_admin = make_user(UserRole.COMPANY_ADMIN.value)
    manager = make_user(UserRole.MANAGER.value)
    other = make_user(UserRole.DEVELOPER.value)

    clash = client.put(f"{MANAGERS}{manager.id}", headers=headers(company_admin), json={"email": other.email})
    assert clash.status_code == 400
    assert clash.json()["detail"] == "Email already in use"

    ok = client.put(f"{MANAGERS}{manager.id}", headers=headers(company_admin), json={"name": "Renamed"})
    assert ok.status_code == 200
    assert ok.json()["name"] == "Renamed"


def test_toggle_status_blocks_and_unblocks(client, session, make_user, headers):
    company_admin = make_user(UserRole.COMPANY_ADMIN.value)
    manager = make_user(UserRole.MANAGER.value)

    first = client.patch(f"{MANAGERS}{manager.id}/toggle-status", headers=headers(company_admin))
    assert first.status_code == 200
    assert first.json()["message"] == "Manager blocked successfully"
    session.refresh(manager)
    assert manager.is_active is False

    second = client.patch(f"{MANAGERS}{manager.id}/toggle-status", headers=headers(company_admin))
    assert second.json()["message"] == "Manager unblocked successfully"


def test_blocked_user_cannot_use_token(client, make_user, headers):
    blocked = make_user(UserRole.DEVELOPER.value, is_active=False)
    assert client.get("/api/auth/me", headers=headers(blocked)).status_code == 403


def test_delete_member(client, session, make_user, headers):
    manager = make_user(UserRole.MANAGER.value)
    developer = make_user(UserRole.DEVELOPER.value)
    developer_id = developer.id

    response = client.delete(f"{DEVELOPERS}{developer_id}", headers=headers(manager))

    assert response.status_code == 200
    assert session.get(User, developer_id) is None


def test_dashboard_counts_projects_per_manager(client, make_user, make_project, headers):
    company_admin = make_user(UserRole.COMPANY_ADMIN.value, company_id=1)
    busy = make_user(UserRole.MANAGER.value, company_id=1)
    idle = make_user(UserRole.MANAGER.value, company_id=1)
    make_user(UserRole.MANAGER.value, company_id=2)
    make_project(busy)
    make_project(busy, name="Second")

    response = client.get("/api/companyadmin/dashboard", headers=headers(company_admin))

    assert response.status_code == 200
    body = response.json()
    counts = {m["id"]: m["project_count"] for m in body["managers"]}
    assert counts == {busy.id: 2, idle.id: 0}
    assert body["total_projects"] == 2


def test_dashboard_forbidden_for_developers(client, make_user, headers):
    developer = make_user(UserRole.DEVELOPER.value)
    assert client.get("/api/companyadmin/dashboard", headers=headers(developer)).status_code == 403
