from __future__ import annotations

from datetime import timedelta
from pathlib import Path
import sys

from sqlalchemy import select

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.core.config import get_settings
from app.core.roles import AdminActor
from app.db.session import session_scope
from app.models.savings_goal import SavingsGoal
from app.models.user import User
from app.services.goals import SavingsGoalService
from app.services.ledger import Ledger
from app.services.registry import StudentDraft, StudentRegistry
from app.services.schedule_gate import WEEKDAY_LABELS, school_today


DEMO_GOAL_PREFIX = "[DEMO]"
DEMO_STUDENTS = (
    ("Ahmad Fauzi", "1"),
    ("Bunga Lestari", "1"),
    ("Citra Dewi", "2"),
    ("Dimas Pratama", "3"),
    ("Eka Saputra", "3"),
    ("Fitri Handayani", "4"),
    ("Gilang Ramadhan", "5"),
    ("Hana Kartika", "6"),
)


def demo_nisn(index: int) -> str:
    return f"99{index:08d}"


def main() -> None:
    settings = get_settings()
    today = school_today()

    with session_scope() as db:
        admin = db.scalar(select(User).where(User.login == settings.bootstrap_admin_login))
        if not admin:
            raise RuntimeError("Admin user not found. Run seed_admin first.")
        actor = AdminActor(id=admin.id, name=admin.name)

        registry = StudentRegistry(db)
        drafts = [
            StudentDraft(name=name, class_label=class_label, external_id=demo_nisn(index))
            for index, (name, class_label) in enumerate(DEMO_STUDENTS, start=1)
            if registry.get_by_external_id(demo_nisn(index)) is None
        ]
        students = registry.import_many(drafts) if drafts else []

        goals = SavingsGoalService(db)
        existing = db.scalars(select(SavingsGoal.class_label).where(SavingsGoal.goal_name.like(f"{DEMO_GOAL_PREFIX}%"))).all()
        for offset, class_label in enumerate(settings.default_classes):
            if class_label in existing:
                continue
            goals.create(
                class_label=class_label,
                goal_name=f"{DEMO_GOAL_PREFIX} Study tour class {class_label}",
                goal_amount=500_000,
                target_date=today + timedelta(days=180),
                day_of_week=WEEKDAY_LABELS[offset % 6],
            )

        ledger = Ledger(db)
        for index, student in enumerate(students):
            ledger.record_transaction(student.id, "deposit", 20_000 + 5_000 * index, "Setoran awal", actor)
            if index % 3 == 0:
                ledger.record_transaction(student.id, "withdrawal", 5_000, "Penarikan", actor)

    print(f"Demo data seeded: {len(students)} students, class goals and opening transactions.")


if __name__ == "__main__":
    main()
