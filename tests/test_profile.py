PROFILE = "/api/profile/me"


def test_get_profile(client, make_user, headers):
    user = make_user(company_id=1)

    response = client.get(PROFILE, headers=headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == user.email
    assert body["company_id"] == 1
    assert "password_hash" not in body


def test_update_profile_fields(client, session, make_user, headers):
    user = make_user()

    response = client.put(PROFILE, headers=headers(user), data={
        "name": "  New Name ", "email": "New.Address@Example.com", "phone_number": "555-0177",
    })

    assert response.status_code == 200
    session.refresh(user)
    assert user.name == "New Name"
    assert user.email == "new.address@example.com"
    assert user.phone_number == "555-0177"


def test_update_profile_email_must_be_unique(client, make_user, headers):
    user = make_user()
    other = make_user()

    response = client.put(PROFILE, headers=headers(user), data={"email": other.email})

    assert response.status_code == 400
    assert response.json()["detail"] == "Email already in use"


def test_update_profile_rejects_invalid_email(client, make_user, headers):
    user = make_user()
    response = client.put(PROFILE, headers=headers(user), data={"email": "not-an-email"})
    assert response.status_code == 400
    assert response.json()["detail"][0]["field"] == "email"


def test_upload_profile_picture(client, session, make_user, headers, tmp_path, monkeypatch):
    monkeypatch.setattr("routes.profile.UPLOAD_DIR", tmp_path)
    user = make_user()

    response = client.put(
        PROFILE, headers=headers(user), files={"file": ("me.png", b"\x89PNG fake", "image/png")},
    )

    assert response.status_code == 200
    image = response.json()["profile_image"]
    assert image.startswith("/static/profile_pictures/user_")
    assert len(list(tmp_path.iterdir())) == 1


def test_upload_rejects_other_extensions(client, make_user, headers, tmp_path, monkeypatch):
    monkeypatch.setattr("routes.profile.UPLOAD_DIR", tmp_path)
    user = make_user()

    response = client.put(PROFILE, headers=headers(user), files={"file": ("me.gif", b"GIF89a", "image/gif")})

    assert response.status_code == 400
    assert list(tmp_path.iterdir()) == []
