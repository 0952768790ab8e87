import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.errors import GoalNotFound, InvalidWeekday
from app.models.savings_goal import SavingsGoal
from app.services.change_feed import ChangeEvent, ChangeFeed
from app.services.schedule_gate import WEEKDAY_LABELS

logger = logging.getLogger(__name__)

GoalStatus = Literal["on-track", "behind", "completed"]


@dataclass(frozen=True)
class GoalProgress:
    goal: object
    current_saved_amount: int
    status: GoalStatus


def goal_status(saved: int, goal_amount: int, behind_ratio: float | None = None) -> GoalStatus:
    if behind_ratio is None:
        behind_ratio = get_settings().goal_behind_ratio
    if saved >= goal_amount:
        return "completed"
    if saved < goal_amount * behind_ratio:
        return "behind"
    return "on-track"


def evaluate_goal(goal, students: Iterable, behind_ratio: float | None = None) -> GoalProgress:
    """Derive saved amount and status from the live balances of the goal's class."""
    saved = sum(student.balance for student in students if student.class_label == goal.class_label)
    return GoalProgress(goal=goal, current_saved_amount=saved, status=goal_status(saved, goal.goal_amount, behind_ratio))


def _check_day(day_of_week: str) -> str:
    if day_of_week not in WEEKDAY_LABELS:
        raise InvalidWeekday(day_of_week)
    return day_of_week


class SavingsGoalService:
    def __init__(self, db: Session, feed: ChangeFeed | None = None) -> None:
        self.db = db
        self.feed = feed

    def get(self, goal_id: str) -> SavingsGoal:
        goal = self.db.get(SavingsGoal, goal_id)
        if goal is None or goal.type != "class":
            raise GoalNotFound(goal_id)
        return goal

    def list_goals(self, class_labels: Iterable[str] | None = None) -> list[SavingsGoal]:
        stmt = select(SavingsGoal).where(SavingsGoal.type == "class").order_by(SavingsGoal.class_label, SavingsGoal.target_date)
        if class_labels is not None:
            stmt = stmt.where(SavingsGoal.class_label.in_(list(class_labels)))
        return list(self.db.scalars(stmt).all())

    def create(self, class_label: str, goal_name: str, goal_amount: int, target_date: date, day_of_week: str) -> SavingsGoal:
        goal = SavingsGoal(
            class_label=class_label,
            type="class",
            goal_name=goal_name,
            goal_amount=goal_amount,
            target_date=target_date,
            day_of_week=_check_day(day_of_week),
        )
        self.db.add(goal)
        self.db.commit()
        self.db.refresh(goal)
        logger.info("Savings goal %s scheduled for class %s on %s", goal.id, class_label, day_of_week)
        self._publish("insert", goal.id)
        return goal

    def update(
        self,
        goal_id: str,
        *,
        goal_name: str | None = None,
        goal_amount: int | None = None,
        target_date: date | None = None,
        day_of_week: str | None = None,
    ) -> SavingsGoal:
        goal = self.get(goal_id)
        if goal_name is not None:
            goal.goal_name = goal_name
        if goal_amount is not None:
            goal.goal_amount = goal_amount
        if target_date is not None:
            goal.target_date = target_date
        if day_of_week is not None:
            goal.day_of_week = _check_day(day_of_week)
        self.db.add(goal)
        self.db.commit()
        self.db.refresh(goal)
        self._publish("update", goal.id)
        return goal

    def delete(self, goal_id: str) -> None:
        goal = self.get(goal_id)
        self.db.delete(goal)
        self.db.commit()
        self._publish("delete", goal_id)

    def _publish(self, action: str, record_id: str) -> None:
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table="savings_goals", action=action, record_id=record_id))
