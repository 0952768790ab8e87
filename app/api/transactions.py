from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_change_feed, get_current_actor, require_roles
from app.core.roles import Actor, AdminActor, ParentActor, scoped_class
from app.db.session import get_db
from app.schemas.transactions import BalanceMismatchOut, ResetResponse, TransactionCreateRequest, TransactionOut
from app.services.change_feed import ChangeFeed
from app.services.ledger import Ledger
from app.services.registry import StudentRegistry

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    student_id: str | None = Query(default=None),
    type_value: Literal["deposit", "withdrawal"] | None = Query(default=None, alias="type"),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    student_ids = None
    if not isinstance(actor, AdminActor):
        parent_id = actor.id if isinstance(actor, ParentActor) else None
        visible = StudentRegistry(db).list_students(class_label=scoped_class(actor, None), parent_id=parent_id)
        student_ids = [student.id for student in visible]
    if student_id:
        student_ids = [student_id] if student_ids is None or student_id in student_ids else []

    rows = Ledger(db).history(student_ids, kind=type_value, date_from=date_from, date_to=date_to, limit=limit)
    return [TransactionOut.model_validate(row) for row in rows]


@router.post("", response_model=TransactionOut)
def create_transaction(
    payload: TransactionCreateRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    actor: Actor = Depends(require_roles("admin", "teacher")),
):
    transaction = Ledger(db, feed).record_transaction(
        student_id=payload.student_id,
        kind=payload.type,
        amount=payload.amount,
        description=payload.description,
        actor=actor,
    )
    return TransactionOut.model_validate(transaction)


@router.post("/reset", response_model=ResetResponse)
def reset_transactions(
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: Actor = Depends(require_roles("admin")),
):
    result = Ledger(db, feed).reset_ledger()
    return ResetResponse(ok=True, transactions_deleted=result.transactions_deleted, students_reset=result.students_reset)


@router.get("/consistency", response_model=list[BalanceMismatchOut], dependencies=[Depends(require_roles("admin"))])
def balance_consistency(db: Session = Depends(get_db)):
    return Ledger(db).find_inconsistencies()
