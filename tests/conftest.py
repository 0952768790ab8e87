from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def _configure_env(monkeypatch: pytest.MonkeyPatch, db_file: Path) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")
    monkeypatch.setenv("AUTO_CREATE_ADMIN", "true")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_LOGIN", "admin")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_PASSWORD", "admin123")
    monkeypatch.setenv("SCHOOL_TIMEZONE", "Asia/Jakarta")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")


@pytest.fixture()
def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _configure_env(monkeypatch, tmp_path / "services.db")

    import app.models  # noqa: F401
    from app.core.config import clear_settings_cache
    from app.db.base import Base
    from app.db.session import get_engine, get_session_factory, reset_engine

    clear_settings_cache()
    reset_engine()
    Base.metadata.create_all(bind=get_engine())

    session = get_session_factory()()
    yield session

    session.close()
    Base.metadata.drop_all(bind=get_engine())
    reset_engine()


@pytest.fixture()
def feed():
    from app.services.change_feed import ChangeFeed

    return ChangeFeed()


@pytest.fixture()
def admin_actor():
    from app.core.roles import AdminActor

    return AdminActor(id="admin-1", name="Admin Sekolah")


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    _configure_env(monkeypatch, tmp_path / "test.db")

    import app.models  # noqa: F401
    from app.core.config import clear_settings_cache
    from app.db.base import Base
    from app.db.session import get_engine, reset_engine
    from app.main import create_app

    clear_settings_cache()
    reset_engine()
    Base.metadata.create_all(bind=get_engine())

    app = create_app()
    with TestClient(app) as client:
        yield client

    Base.metadata.drop_all(bind=get_engine())
    reset_engine()


def auth_headers(client: TestClient, login: str = "admin", password: str = "admin123") -> dict[str, str]:
    response = client.post("/auth/login", json={"login": login, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}
