from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.api.deps import get_change_feed, get_current_actor, require_roles
from app.core.errors import NotPermitted
from app.core.roles import Actor, ParentActor, TeacherActor, can_view_student, scoped_class
from app.db.session import get_db
from app.schemas.students import StudentCreateRequest, StudentImportRequest, StudentOut, StudentUpdateRequest
from app.services.change_feed import ChangeFeed
from app.services.registry import StudentDraft, StudentRegistry

router = APIRouter(prefix="/students", tags=["students"])


def _ensure_own_class(actor: Actor, class_label: str) -> None:
    if isinstance(actor, TeacherActor) and class_label != actor.class_label:
        raise NotPermitted(f"Teachers can only manage students of class {actor.class_label}")


@router.get("", response_model=list[StudentOut])
def list_students(
    class_label: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    registry = StudentRegistry(db)
    parent_id = actor.id if isinstance(actor, ParentActor) else None
    return registry.list_students(class_label=scoped_class(actor, class_label), search=search, parent_id=parent_id)


@router.post("", response_model=StudentOut)
def create_student(
    payload: StudentCreateRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    actor: Actor = Depends(require_roles("admin", "teacher")),
):
    _ensure_own_class(actor, payload.class_label)
    return StudentRegistry(db, feed).create(payload.name, payload.class_label, payload.external_id)


@router.post("/import", response_model=list[StudentOut])
def import_students(
    payload: StudentImportRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    actor: Actor = Depends(require_roles("admin", "teacher")),
):
    for item in payload.students:
        _ensure_own_class(actor, item.class_label)
    drafts = [StudentDraft(item.name, item.class_label, item.external_id) for item in payload.students]
    return StudentRegistry(db, feed).import_many(drafts)


@router.get("/{student_id}", response_model=StudentOut)
def get_student(
    student_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    student = StudentRegistry(db).get(student_id)
    if not can_view_student(actor, student):
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@router.patch("/{student_id}", response_model=StudentOut)
def update_student(
    student_id: str,
    payload: StudentUpdateRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: Actor = Depends(require_roles("admin")),
):
    return StudentRegistry(db, feed).edit(
        student_id,
        name=payload.name,
        class_label=payload.class_label,
        external_id=payload.external_id,
    )


@router.delete("/{student_id}")
def delete_student(
    student_id: str,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: Actor = Depends(require_roles("admin")),
):
    StudentRegistry(db, feed).delete(student_id)
    return {"ok": True}
