from datetime import datetime, timedelta

from sqlmodel import select

from models.models import Project, ProjectComment, Task, UserRole

PROJECTS = "/api/project/"


def project_payload(manager_id, **overrides):
    data = {
        "name": "Portal",
        "description": "Customer portal",
        "client_name": "Initech",
        "budget": 12000,
        "start_date": "2030-01-01T00:00:00",
        "end_date": "2030-01-31T00:00:00",
        "project_manager": manager_id,
        "goal": "Self-service billing",
    }
    data.update(overrides)
    return data


def field_names(response):
    return [err["field"] for err in response.json()["detail"]]


def test_create_project(client, make_user, headers):
    manager = make_user(UserRole.MANAGER.value, company_id=1)

    response = client.post(PROJECTS, headers=headers(manager), json=project_payload(manager.id))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "planned"
    assert body["company_id"] == 1
    assert body["duration_days"] == 30
    assert body["completion_percentage"] == 0
    assert body["project_manager"]["id"] == manager.id
    assert body["company_admin_is_verified"] is False


def test_create_rejects_start_after_end(client, make_user, headers):
    manager = make_user(UserRole.MANAGER.value)

    response = client.post(PROJECTS, headers=headers(manager), json=project_payload(
        manager.id, start_date="2030-02-01T00:00:00", end_date="2030-01-01T00:00:00",
    ))

    assert response.status_code == 400
    assert field_names(response) == ["dates"]


def test_create_reports_missing_fields(client, make_user, headers):
    manager = make_user(UserRole.MANAGER.value)

    response = client.post(PROJECTS, headers=headers(manager), json={"name": "Only a name"})

    assert response.status_code == 400
    missing = set(field_names(response))
    assert {"description", "client_name", "budget", "start_date", "end_date", "project_manager", "goal"} <= missing


def test_create_requires_existing_manager(client, make_user, headers):
    manager = make_user(UserRole.MANAGER.value)

    response = client.post(PROJECTS, headers=headers(manager), json=project_payload(9999))

    assert response.status_code == 400
    assert field_names(response) == ["project_manager"]


def test_create_rejects_developer_as_manager(client, make_user, headers):
    manager = make_user(UserRole.MANAGER.value)
    developer = make_user(UserRole.DEVELOPER.value)

    response = client.post(PROJECTS, headers=headers(manager), json=project_payload(developer.id))

    assert response.status_code == 400
    assert field_names(response) == ["project_manager"]


def test_developer_cannot_create_project(client, make_user, headers):
    manager = make_user(UserRole.MANAGER.value)
    developer = make_user(UserRole.DEVELOPER.value)
    response = client.post(PROJECTS, headers=headers(developer), json=project_payload(manager.id))
    assert response.status_code == 403


def test_update_checks_merged_dates(client, make_user, make_project, headers):
    manager = make_user(UserRole.MANAGER.value)
    project = make_project(
        manager, start_date=datetime(2030, 1, 1), end_date=datetime(2030, 1, 31),
    )

    response = client.put(f"{PROJECTS}{project.id}", headers=headers(manager), json={
        "start_date": "2030-02-15T00:00:00",
    })

    assert response.status_code == 400
    assert field_names(response) == ["dates"]


def test_update_partial_fields(client, session, make_user, make_project, headers):
    manager = make_user(UserRole.MANAGER.value)
    project = make_project(manager)

    response = client.put(f"{PROJECTS}{project.id}", headers=headers(manager), json={
        "status": "in-progress", "budget": 99,
    })

    assert response.status_code == 200
    session.refresh(project)
    assert project.status == "in-progress"
    assert project.budget == 99
    assert project.name == "Website"


def test_list_paginates_and_filters(client, make_user, make_project, headers):
    manager = make_user(UserRole.MANAGER.value, company_id=1)
    for i in range(11):
        make_project(manager, name=f"P{i}", client_name="Globex")
    make_project(manager, name="Other", client_name="Umbrella Corp", status="completed")

    page_two = client.get(PROJECTS, headers=headers(manager), params={"page": 2, "limit": 10})
    assert page_two.status_code == 200
    body = page_two.json()
    assert body["total"] == 12
    assert body["count"] == 2
    assert body["pagination"] == {"current": 2, "pages": 2, "has_next": False, "has_prev": True}

    by_client = client.get(PROJECTS, headers=headers(manager), params={"client_name": "umbrella"})
    assert [p["name"] for p in by_client.json()["data"]] == ["Other"]

    by_status = client.get(PROJECTS, headers=headers(manager), params={"status": "completed"})
    assert by_status.json()["total"] == 1


def test_list_hides_other_companies(client, make_user, make_project, headers):
    manager_a = make_user(UserRole.MANAGER.value, company_id=1)
    manager_b = make_user(UserRole.MANAGER.value, company_id=2)
    make_project(manager_a)
    foreign = make_project(manager_b)

    listing = client.get(PROJECTS, headers=headers(manager_a))
    assert listing.json()["total"] == 1
    assert client.get(f"{PROJECTS}{foreign.id}", headers=headers(manager_a)).status_code == 404


def test_comment_author_is_the_caller(client, session, make_user, make_project, headers):
    manager = make_user(UserRole.MANAGER.value)
    developer = make_user(UserRole.DEVELOPER.value)
    project = make_project(manager)

    response = client.post(f"{PROJECTS}{project.id}/comments", headers=headers(developer), json={
        "text": "Looks good", "author": manager.id,
    })

    assert response.status_code == 201
    comments = response.json()["comments"]
    assert len(comments) == 1
    assert comments[0]["author"]["id"] == developer.id


def test_developer_cannot_toggle_verification(client, make_user, make_project, headers):
    manager = make_user(UserRole.MANAGER.value)
    developer = make_user(UserRole.DEVELOPER.value)
    project = make_project(manager)

    response = client.patch(f"{PROJECTS}{project.id}/toggle-verification", headers=headers(developer))
    assert response.status_code == 403


def test_company_admin_toggles_verification(client, make_user, make_project, headers):
    manager = make_user(UserRole.MANAGER.value)
    company_admin = make_user(UserRole.COMPANY_ADMIN.value)
    project = make_project(manager)

    response = client.patch(f"{PROJECTS}{project.id}/toggle-verification", headers=headers(company_admin))

    assert response.status_code == 200
    assert response.json()["company_admin_is_verified"] is True


def test_delete_removes_comments_and_tasks(client, session, make_user, make_project, make_task, headers):
    manager = make_user(UserRole.MANAGER.value)
    developer = make_user(UserRole.DEVELOPER.value)
    project = make_project(manager)
    make_task(project, developer, manager)
    session.add(ProjectComment(project_id=project.id, author_id=developer.id, text="hi"))
    session.commit()
    project_id = project.id

    response = client.delete(f"{PROJECTS}{project_id}", headers=headers(manager))

    assert response.status_code == 200
    assert session.get(Project, project_id) is None
    assert session.exec(select(Task).where(Task.project_id == project_id)).all() == []
    assert session.exec(select(ProjectComment).where(ProjectComment.project_id == project_id)).all() == []


def test_completion_percentage_midway(make_user, make_project):
    manager = make_user(UserRole.MANAGER.value)
    now = datetime.utcnow()
    project = make_project(manager, start_date=now - timedelta(days=10), end_date=now + timedelta(days=10))
    assert project.completion_percentage == 50
    assert project.duration_days == 20
