from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_change_feed, get_current_actor, get_snapshot_cache, require_roles
from app.core.errors import DepositNotScheduled
from app.core.roles import Actor, AdminActor, ParentActor, TeacherActor
from app.db.session import get_db
from app.schemas.goals import DepositAllowedResponse, GoalCreateRequest, GoalOut, GoalUpdateRequest
from app.services.cache import LedgerSnapshotCache
from app.services.change_feed import ChangeFeed
from app.services.goals import SavingsGoalService, evaluate_goal
from app.services.schedule_gate import is_deposit_allowed, school_today, scheduled_days, weekday_label

router = APIRouter(prefix="/savings-goals", tags=["savings-goals"])


def _goal_out(goal, students) -> GoalOut:
    progress = evaluate_goal(goal, students)
    return GoalOut(
        id=goal.id,
        class_label=goal.class_label,
        goal_name=goal.goal_name,
        goal_amount=goal.goal_amount,
        target_date=goal.target_date,
        day_of_week=goal.day_of_week,
        current_saved_amount=progress.current_saved_amount,
        status=progress.status,
    )


@router.get("", response_model=list[GoalOut])
def list_goals(
    cache: LedgerSnapshotCache = Depends(get_snapshot_cache),
    actor: Actor = Depends(get_current_actor),
):
    students = cache.students()
    goals = cache.goals()
    if isinstance(actor, TeacherActor):
        goals = [goal for goal in goals if goal.class_label == actor.class_label]
    elif isinstance(actor, ParentActor):
        classes = {student.class_label for student in students if student.parent_id == actor.id}
        goals = [goal for goal in goals if goal.class_label in classes]
    goals.sort(key=lambda goal: (goal.class_label, goal.target_date))
    return [_goal_out(goal, students) for goal in goals]


@router.get("/deposit-allowed", response_model=DepositAllowedResponse)
def deposit_allowed(
    class_label: str | None = Query(default=None),
    on: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles("admin", "teacher")),
):
    if isinstance(actor, TeacherActor):
        class_label = actor.class_label
    label = class_label or ""
    day = on or school_today()
    allowed = is_deposit_allowed(db, label, actor.role, day)
    reason = None if allowed else DepositNotScheduled(label, weekday_label(day)).message
    return DepositAllowedResponse(
        class_label=label,
        date=day,
        weekday=weekday_label(day),
        allowed=allowed,
        scheduled_days=scheduled_days(db, label),
        reason=reason,
    )


@router.post("", response_model=GoalOut)
def create_goal(
    payload: GoalCreateRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    cache: LedgerSnapshotCache = Depends(get_snapshot_cache),
    _: AdminActor = Depends(require_roles("admin")),
):
    goal = SavingsGoalService(db, feed).create(
        class_label=payload.class_label,
        goal_name=payload.goal_name,
        goal_amount=payload.goal_amount,
        target_date=payload.target_date,
        day_of_week=payload.day_of_week,
    )
    return _goal_out(goal, cache.students())


@router.patch("/{goal_id}", response_model=GoalOut)
def update_goal(
    goal_id: str,
    payload: GoalUpdateRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    cache: LedgerSnapshotCache = Depends(get_snapshot_cache),
    _: AdminActor = Depends(require_roles("admin")),
):
    goal = SavingsGoalService(db, feed).update(
        goal_id,
        goal_name=payload.goal_name,
        goal_amount=payload.goal_amount,
        target_date=payload.target_date,
        day_of_week=payload.day_of_week,
    )
    return _goal_out(goal, cache.students())


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: str,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: AdminActor = Depends(require_roles("admin")),
):
    SavingsGoalService(db, feed).delete(goal_id)
    return {"ok": True}
