from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_change_feed, require_roles
from app.core.roles import Actor
from app.db.session import get_db
from app.schemas.users import PasswordResetRequest, UserCreateRequest, UserOut
from app.services.accounts import AccountService
from app.services.change_feed import ChangeFeed
from app.services.registry import StudentRegistry

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserOut], dependencies=[Depends(require_roles("admin"))])
def list_users(
    role: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    return AccountService(db).list_users(role)


@router.post("", response_model=UserOut)
def create_user(
    payload: UserCreateRequest,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    _: Actor = Depends(require_roles("admin")),
):
    service = AccountService(db, StudentRegistry(db, feed))
    return service.create(
        login=payload.login,
        name=payload.name,
        password=payload.password,
        role=payload.role,
        class_label=payload.class_label,
        nisn=payload.nisn,
    )


@router.post("/{user_id}/password")
def reset_password(
    user_id: str,
    payload: PasswordResetRequest,
    db: Session = Depends(get_db),
    _: Actor = Depends(require_roles("admin")),
):
    AccountService(db).set_password(user_id, payload.password)
    return {"ok": True}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    feed: ChangeFeed = Depends(get_change_feed),
    admin: Actor = Depends(require_roles("admin")),
):
    AccountService(db, StudentRegistry(db, feed)).delete(user_id, acting_user_id=admin.id)
    return {"ok": True}
