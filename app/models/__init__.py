from app.models.savings_goal import SavingsGoal
from app.models.student import Student
from app.models.transaction import Transaction
from app.models.user import User

__all__ = [
    "User",
    "Student",
    "Transaction",
    "SavingsGoal",
]
