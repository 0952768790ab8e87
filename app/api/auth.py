from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_actor
from app.core.roles import Actor, ParentActor, TeacherActor
from app.core.security import create_access_token
from app.db.session import get_db
from app.schemas.auth import LoginRequest, MeResponse, StudentInfoOut, TokenResponse
from app.services.accounts import authenticate

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, payload.login, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid login or password")

    token = create_access_token(user.id, user.role)
    return TokenResponse(access_token=token, role=user.role)


@router.get("/me", response_model=MeResponse)
def me(actor: Actor = Depends(get_current_actor)):
    response = MeResponse(id=actor.id, name=actor.name, role=actor.role)
    if isinstance(actor, TeacherActor):
        response.class_label = actor.class_label
    elif isinstance(actor, ParentActor) and actor.student_info is not None:
        response.student_info = StudentInfoOut.model_validate(actor.student_info)
    return response
