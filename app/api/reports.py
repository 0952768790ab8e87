from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_current_actor, get_snapshot_cache, require_roles
from app.core.config import get_settings
from app.core.roles import Actor, AdminActor, ParentActor, TeacherActor, scoped_class
from app.schemas.reports import (
    ClassSummaryOut,
    DashboardResponse,
    RecapResponse,
    RecapTotalsOut,
    StudentSummaryOut,
)
from app.schemas.students import StudentOut
from app.schemas.transactions import TransactionOut
from app.services.cache import LedgerSnapshotCache
from app.services.recap import RecapFilters, class_summary, summarize, totals

router = APIRouter(prefix="/reports", tags=["reports"])

RECENT_TRANSACTIONS = 3


@router.get("/recap", response_model=RecapResponse)
def recap(
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    class_label: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=255),
    cache: LedgerSnapshotCache = Depends(get_snapshot_cache),
    actor: Actor = Depends(require_roles("admin", "teacher")),
):
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=400, detail="date_from must not be after date_to")

    filters = RecapFilters(
        date_from=date_from,
        date_to=date_to,
        class_label=scoped_class(actor, class_label),
        search_text=search,
    )
    summaries = summarize(cache.students(), cache.transactions(), filters)
    overall = totals(summaries)
    return RecapResponse(
        students=[
            StudentSummaryOut(
                student=StudentOut.model_validate(item.student),
                total_deposits=item.total_deposits,
                total_withdrawals=item.total_withdrawals,
                current_balance=item.current_balance,
            )
            for item in summaries
        ],
        totals=RecapTotalsOut(
            total_deposits=overall.total_deposits,
            total_withdrawals=overall.total_withdrawals,
            net_amount=overall.net_amount,
            total_balance=overall.total_balance,
            student_count=overall.student_count,
        ),
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    cache: LedgerSnapshotCache = Depends(get_snapshot_cache),
    actor: Actor = Depends(get_current_actor),
):
    students = cache.students()
    if isinstance(actor, TeacherActor):
        students = [student for student in students if student.class_label == actor.class_label]
        classes = [actor.class_label] if actor.class_label else []
    elif isinstance(actor, ParentActor):
        students = [student for student in students if student.parent_id == actor.id]
        classes = sorted({student.class_label for student in students})
    else:
        classes = get_settings().default_classes

    visible_ids = {student.id for student in students}
    transactions = cache.transactions()
    if not isinstance(actor, AdminActor):
        transactions = [item for item in transactions if item.student_id in visible_ids]

    return DashboardResponse(
        total_students=len(students),
        total_balance=sum(student.balance for student in students),
        total_deposits=sum(item.amount for item in transactions if item.kind == "deposit"),
        total_withdrawals=sum(item.amount for item in transactions if item.kind == "withdrawal"),
        recent_transactions=[TransactionOut.model_validate(item) for item in transactions[:RECENT_TRANSACTIONS]],
        classes=[
            ClassSummaryOut(class_label=row.class_label, student_count=row.student_count, total_balance=row.total_balance)
            for row in class_summary(students, classes)
        ],
    )
