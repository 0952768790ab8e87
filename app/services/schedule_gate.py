"""Weekday-based deposit schedule per class.

Administrators schedule deposits by creating a class savings goal with a
``day_of_week``. Teachers may only record deposits for a class on one of the
scheduled days; administrators are never restricted, and withdrawals are not
gated at all.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import DepositNotScheduled
from app.models.savings_goal import SavingsGoal

WEEKDAY_LABELS = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")


def weekday_label(day: date) -> str:
    return WEEKDAY_LABELS[day.weekday()]


def school_today() -> date:
    return datetime.now(ZoneInfo(get_settings().school_timezone)).date()


def scheduled_days(db: Session, class_label: str) -> list[str]:
    rows = db.scalars(
        select(SavingsGoal.day_of_week).where(
            SavingsGoal.type == "class",
            SavingsGoal.class_label == class_label,
        )
    ).all()
    return list(dict.fromkeys(rows))


def is_deposit_allowed(db: Session, class_label: str, performer_role: str, as_of: date | None = None) -> bool:
    if performer_role == "admin":
        return True
    if performer_role != "teacher":
        return False

    day = as_of or school_today()
    match = db.scalar(
        select(SavingsGoal.id)
        .where(
            SavingsGoal.type == "class",
            SavingsGoal.class_label == class_label,
            SavingsGoal.day_of_week == weekday_label(day),
        )
        .limit(1)
    )
    return match is not None


def ensure_deposit_allowed(db: Session, class_label: str, performer_role: str, as_of: date | None = None) -> None:
    day = as_of or school_today()
    if not is_deposit_allowed(db, class_label, performer_role, day):
        raise DepositNotScheduled(class_label, weekday_label(day))
