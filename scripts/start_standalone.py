import os
import subprocess
import sys
from pathlib import Path

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

ROOT = Path(__file__).resolve().parents[1]
LOCAL_SQLITE_URL = "sqlite+pysqlite:////data/sibudis.db"
TRUE_VALUES = {"1", "true", "yes", "on"}

STANDALONE_DEFAULTS = {
    "APP_PORT": "8000",
    "DATABASE_URL": LOCAL_SQLITE_URL,
    "AUTO_CREATE_ADMIN": "true",
    "BOOTSTRAP_ADMIN_LOGIN": "admin",
    "BOOTSTRAP_ADMIN_PASSWORD": "admin123",
    "SCHOOL_TIMEZONE": "Asia/Jakarta",
    "SEED_DEMO_DATA": "false",
    "STANDALONE_ALLOW_EXTERNAL_DB": "false",
}


def _flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in TRUE_VALUES


def _database_url() -> URL | None:
    try:
        return make_url(os.environ["DATABASE_URL"])
    except ArgumentError:
        return None


def _apply_defaults() -> None:
    for name, value in STANDALONE_DEFAULTS.items():
        if not os.environ.get(name, "").strip():
            os.environ[name] = value

    # a localhost Postgres is never reachable from inside the standalone container
    url = _database_url()
    if url is None or _flag("STANDALONE_ALLOW_EXTERNAL_DB"):
        return
    if url.drivername.startswith("postgres") and url.host in {"localhost", "127.0.0.1", "::1"}:
        print(
            f"DATABASE_URL points at a local Postgres; using {LOCAL_SQLITE_URL} instead. "
            "Set STANDALONE_ALLOW_EXTERNAL_DB=true to keep it.",
            flush=True,
        )
        os.environ["DATABASE_URL"] = LOCAL_SQLITE_URL


def _prepare_sqlite_dir() -> None:
    url = _database_url()
    if url is None or not url.drivername.startswith("sqlite"):
        return
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _step(*args: str) -> None:
    print(">", " ".join(args), flush=True)
    subprocess.run([sys.executable, *args], check=True, cwd=ROOT)


def main() -> None:
    _apply_defaults()
    _prepare_sqlite_dir()

    print("SIBUDIS standalone backend", flush=True)
    for name in ("DATABASE_URL", "SCHOOL_TIMEZONE", "APP_PORT"):
        print(f"  {name}={os.environ[name]}", flush=True)

    _step("-m", "alembic", "upgrade", "head")
    _step(
        "scripts/seed_admin.py",
        "--login",
        os.environ["BOOTSTRAP_ADMIN_LOGIN"],
        "--password",
        os.environ["BOOTSTRAP_ADMIN_PASSWORD"],
    )
    if _flag("SEED_DEMO_DATA"):
        _step("scripts/seed_demo_data.py")

    os.chdir(ROOT)
    os.execvp("uvicorn", ["uvicorn", "app.main:app", "--host", "0.0.0.0", "--port", os.environ["APP_PORT"]])


if __name__ == "__main__":
    main()
