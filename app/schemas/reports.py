from pydantic import BaseModel

from app.schemas.students import StudentOut
from app.schemas.transactions import TransactionOut


class StudentSummaryOut(BaseModel):
    student: StudentOut
    total_deposits: int
    total_withdrawals: int
    current_balance: int


class RecapTotalsOut(BaseModel):
    total_deposits: int
    total_withdrawals: int
    net_amount: int
    total_balance: int
    student_count: int


class RecapResponse(BaseModel):
    students: list[StudentSummaryOut]
    totals: RecapTotalsOut


class ClassSummaryOut(BaseModel):
    class_label: str
    student_count: int
    total_balance: int


class DashboardResponse(BaseModel):
    total_students: int
    total_balance: int
    total_deposits: int
    total_withdrawals: int
    recent_transactions: list[TransactionOut]
    classes: list[ClassSummaryOut]
