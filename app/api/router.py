from fastapi import APIRouter

from app.api import auth, reports, savings_goals, students, system, transactions, users

api_router = APIRouter()
api_router.include_router(system.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(students.router)
api_router.include_router(transactions.router)
api_router.include_router(savings_goals.router)
api_router.include_router(reports.router)
