import argparse
from pathlib import Path
import sys

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.core.config import get_settings
from app.db.session import session_scope
from app.services.accounts import ensure_admin


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create the admin account or reset its password.")
    parser.add_argument("--login", default=settings.bootstrap_admin_login)
    parser.add_argument("--password", default=settings.bootstrap_admin_password)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    with session_scope() as db:
        _, created = ensure_admin(db, args.login, args.password, reset_password=True)
    print(f"Admin {args.login} {'created' if created else 'updated'}.")


if __name__ == "__main__":
    main()
