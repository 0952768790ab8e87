from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import get_db
from app.models.student import Student
from app.models.transaction import Transaction

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    settings = get_settings()
    return {"status": "ok", "version": settings.app_version}


@router.get("/system/info")
def system_info(request: Request, db: Session = Depends(get_db)):
    settings = get_settings()
    students_count = db.scalar(select(func.count()).select_from(Student)) or 0
    transactions_count = db.scalar(select(func.count()).select_from(Transaction)) or 0
    return {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "app_version": settings.app_version,
        "school_timezone": settings.school_timezone,
        "students": students_count,
        "transactions": transactions_count,
        "change_feed_subscribers": request.app.state.change_feed.subscriber_count,
    }
