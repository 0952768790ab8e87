"""Error taxonomy for the savings ledger.

Every error carries a stable ``code`` that API clients can switch on and a
message that can be shown to the user as-is.
"""

from typing import Any, Literal

PersistenceStep = Literal["transaction", "balance"]
ResetPhase = Literal["clear_transactions", "zero_balances"]


class SavingsError(Exception):
    code = "savings_error"
    status_code = 400

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, **self.extra}


class StudentNotFound(SavingsError):
    code = "student_not_found"
    status_code = 404

    def __init__(self, student_id: str) -> None:
        super().__init__(f"Student {student_id} not found", student_id=student_id)


class InvalidAmount(SavingsError):
    code = "invalid_amount"
    status_code = 422

    def __init__(self, amount: Any) -> None:
        super().__init__("Amount must be a positive whole number", amount=amount)


class InsufficientBalance(SavingsError):
    code = "insufficient_balance"
    status_code = 409

    def __init__(self, balance: int, amount: int) -> None:
        super().__init__(
            f"Withdrawal of {amount} exceeds the student's balance of {balance}",
            balance=balance,
            amount=amount,
        )


class DepositNotScheduled(SavingsError):
    code = "deposit_not_scheduled"
    status_code = 409

    def __init__(self, class_label: str, weekday: str) -> None:
        super().__init__(
            f"Deposits for class {class_label} can only be recorded on the day scheduled by the admin",
            class_label=class_label,
            weekday=weekday,
        )


class DuplicateExternalId(SavingsError):
    code = "duplicate_external_id"
    status_code = 409

    def __init__(self, external_id: str) -> None:
        super().__init__(f"NISN {external_id} is already registered to another student", external_id=external_id)


class InvalidExternalId(SavingsError):
    code = "invalid_external_id"
    status_code = 422

    def __init__(self, external_id: str) -> None:
        super().__init__("NISN must be exactly 10 digits", external_id=external_id)


class GoalNotFound(SavingsError):
    code = "goal_not_found"
    status_code = 404

    def __init__(self, goal_id: str) -> None:
        super().__init__(f"Savings goal {goal_id} not found", goal_id=goal_id)


class InvalidWeekday(SavingsError):
    code = "invalid_weekday"
    status_code = 422

    def __init__(self, day_of_week: str) -> None:
        super().__init__(f"Unknown weekday {day_of_week!r}", day_of_week=day_of_week)


class NotPermitted(SavingsError):
    code = "not_permitted"
    status_code = 403


class PersistenceFailure(SavingsError):
    """A store write failed.

    ``step="transaction"`` means nothing was written. ``step="balance"`` means
    the ledger row exists but the student's stored balance is stale and has to
    be reconciled by hand.
    """

    code = "persistence_failure"
    status_code = 500

    def __init__(self, step: PersistenceStep, message: str, **extra: Any) -> None:
        super().__init__(message, step=step, **extra)
        self.step = step


class ResetFailure(SavingsError):
    code = "reset_failure"
    status_code = 500

    def __init__(self, phase: ResetPhase) -> None:
        if phase == "clear_transactions":
            message = "Failed to clear the transaction history; balances were not touched"
        else:
            message = "Transaction history was cleared, but student balances could not be reset"
        super().__init__(message, phase=phase)
        self.phase = phase


class BalanceConflict(SavingsError):
    """The stored balance changed between read and write."""

    code = "balance_conflict"
    status_code = 409

    def __init__(self, student_id: str, expected: int) -> None:
        super().__init__(
            f"Balance of student {student_id} changed concurrently",
            student_id=student_id,
            expected_balance=expected,
        )


class UserNotFound(SavingsError):
    code = "user_not_found"
    status_code = 404

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found", user_id=user_id)


class LoginTaken(SavingsError):
    code = "login_taken"
    status_code = 409

    def __init__(self, login: str) -> None:
        super().__init__(f"Login {login} is already in use", login=login)
