import pytest
from sqlalchemy import inspect
from sqlmodel import create_engine
from sqlmodel.pool import StaticPool

from core import config, database


def test_invalid_settings_exit_with_status_one(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_DAYS", "thirty")

    with pytest.raises(SystemExit) as exc:
        config.load_settings()

    assert exc.value.code == 1


def test_missing_secret_key_exits(monkeypatch, tmp_path):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.chdir(tmp_path)  # no .env to fall back on

    with pytest.raises(SystemExit) as exc:
        config.load_settings()

    assert exc.value.code == 1


def test_valid_settings_load(monkeypatch):
    monkeypatch.setenv("OTP_EXPIRE_SECONDS", "120")
    assert config.load_settings().OTP_EXPIRE_SECONDS == 120


def test_init_db_exits_when_database_is_unreachable(monkeypatch, tmp_path):
    missing = tmp_path / "no-such-dir" / "projex.db"
    monkeypatch.setattr(database, "engine", create_engine(f"sqlite:///{missing}"))

    with pytest.raises(SystemExit) as exc:
        database.init_db_or_exit()

    assert exc.value.code == 1


def test_init_db_creates_tables(monkeypatch):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    monkeypatch.setattr(database, "engine", engine)

    database.init_db_or_exit()

    tables = set(inspect(engine).get_table_names())
    assert {"company", "user", "project", "task", "webhook_event"} <= tables


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200


def test_each_operation_is_tagged_once(client):
    paths = client.get("/openapi.json").json()["paths"]

    tags = {
        f"{method.upper()} {path}": operation.get("tags", [])
        for path, methods in paths.items()
        for method, operation in methods.items()
    }
    assert tags["POST /api/auth/login"] == ["Authentication"]
    assert tags["GET /api/project/"] == ["Projects"]
    assert all(len(t) <= 1 for t in tags.values())
