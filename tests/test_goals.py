from datetime import date

import pytest

from app.core.errors import GoalNotFound, InvalidWeekday
from app.services.goals import SavingsGoalService, evaluate_goal, goal_status


class _StudentStub:
    def __init__(self, class_label: str, balance: int):
        self.class_label = class_label
        self.balance = balance


@pytest.mark.parametrize(
    ("saved", "status"),
    [
        (0, "behind"),
        (79999, "behind"),
        (80000, "on-track"),
        (99999, "on-track"),
        (100000, "completed"),
        (150000, "completed"),
    ],
)
def test_goal_status_thresholds(saved, status):
    assert goal_status(saved, 100000, behind_ratio=0.8) == status


def test_goal_status_uses_configured_ratio(monkeypatch):
    from app.core.config import clear_settings_cache

    monkeypatch.setenv("GOAL_BEHIND_RATIO", "0.5")
    clear_settings_cache()
    try:
        assert goal_status(60000, 100000) == "on-track"
    finally:
        monkeypatch.delenv("GOAL_BEHIND_RATIO")
        clear_settings_cache()


def test_evaluate_goal_sums_class_balances(db):
    goal = SavingsGoalService(db).create("3", "Study tour", 100000, date(2027, 5, 1), "Senin")
    students = [_StudentStub("3", 40000), _StudentStub("3", 45000), _StudentStub("4", 90000)]

    progress = evaluate_goal(goal, students, behind_ratio=0.8)

    assert progress.current_saved_amount == 85000
    assert progress.status == "on-track"


def test_unknown_weekday_is_rejected(db):
    service = SavingsGoalService(db)
    with pytest.raises(InvalidWeekday):
        service.create("3", "Tour", 100000, date(2027, 5, 1), "Monday")

    goal = service.create("3", "Tour", 100000, date(2027, 5, 1), "Senin")
    with pytest.raises(InvalidWeekday):
        service.update(goal.id, day_of_week="Funday")
    assert service.get(goal.id).day_of_week == "Senin"


def test_update_list_and_delete(db, feed):
    events = []
    feed.subscribe(events.append)
    service = SavingsGoalService(db, feed)
    first = service.create("3", "Tour", 100000, date(2027, 5, 1), "Senin")
    service.create("5", "Books", 50000, date(2027, 2, 1), "Rabu")

    updated = service.update(first.id, goal_amount=120000, day_of_week="Jumat")
    assert (updated.goal_amount, updated.day_of_week, updated.goal_name) == (120000, "Jumat", "Tour")
    assert [goal.class_label for goal in service.list_goals()] == ["3", "5"]
    assert [goal.class_label for goal in service.list_goals(["5"])] == ["5"]

    service.delete(first.id)
    with pytest.raises(GoalNotFound):
        service.get(first.id)
    assert [(e.table, e.action) for e in events] == [
        ("savings_goals", "insert"),
        ("savings_goals", "insert"),
        ("savings_goals", "update"),
        ("savings_goals", "delete"),
    ]
