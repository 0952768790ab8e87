"""Deposit and withdrawal ledger.

Recording a transaction is a read-modify-write of the student's balance
followed by two separate commits:

1. the transaction row, carrying the post-transaction balance snapshot;
2. the new balance on the student row.

The second commit is conditional on the balance still being the value read
before step 1, so a concurrent writer is detected instead of silently
overwritten. A failure in step 2 leaves the transaction row in place and is
reported as ``PersistenceFailure(step="balance")``; it is never retried or
rolled back here.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Literal

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import (
    BalanceConflict,
    InsufficientBalance,
    InvalidAmount,
    NotPermitted,
    PersistenceFailure,
    ResetFailure,
    StudentNotFound,
)
from app.core.roles import Actor, ParentActor, TeacherActor
from app.models.common import utcnow
from app.models.student import Student
from app.models.transaction import Transaction
from app.services.change_feed import ChangeEvent, ChangeFeed
from app.services.recap import window_bounds
from app.services.registry import StudentRegistry
from app.services.schedule_gate import ensure_deposit_allowed, school_today

logger = logging.getLogger(__name__)

TransactionKind = Literal["deposit", "withdrawal"]
KINDS: tuple[str, ...] = ("deposit", "withdrawal")


@dataclass(frozen=True)
class ResetResult:
    transactions_deleted: int
    students_reset: int


@dataclass(frozen=True)
class BalanceMismatch:
    student_id: str
    stored_balance: int
    snapshot_balance: int


def next_balance(current: int, kind: str, amount: int) -> int:
    if kind == "deposit":
        return current + amount
    if kind == "withdrawal":
        return current - amount
    raise ValueError(f"Unknown transaction kind {kind!r}")


def _check_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)
    return amount


class Ledger:
    def __init__(self, db: Session, feed: ChangeFeed | None = None) -> None:
        self.db = db
        self.feed = feed
        self.registry = StudentRegistry(db, feed)

    def record_transaction(
        self,
        student_id: str,
        kind: TransactionKind,
        amount: int,
        description: str,
        actor: Actor,
        as_of: date | None = None,
    ) -> Transaction:
        if isinstance(actor, ParentActor):
            raise NotPermitted("Parents cannot record transactions")
        if kind not in KINDS:
            raise ValueError(f"Unknown transaction kind {kind!r}")
        amount = _check_amount(amount)

        student = self.registry.get(student_id)
        if isinstance(actor, TeacherActor) and student.class_label != actor.class_label:
            raise NotPermitted(f"Teachers can only record transactions for their own class ({actor.class_label})")

        previous = student.balance
        if kind == "withdrawal" and amount > previous:
            raise InsufficientBalance(previous, amount)
        if kind == "deposit":
            ensure_deposit_allowed(self.db, student.class_label, actor.role, as_of or school_today())

        balance = next_balance(previous, kind, amount)
        transaction = Transaction(
            student_id=student.id,
            kind=kind,
            amount=amount,
            description=description,
            performed_by=actor.name,
            performed_by_role=actor.role,
            date=utcnow(),
            balance=balance,
        )

        try:
            self.db.add(transaction)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to save %s of %d for student %s: %s", kind, amount, student_id, exc)
            raise PersistenceFailure("transaction", "Failed to save the transaction; nothing was recorded") from exc

        self.db.refresh(transaction)
        self._publish("transactions", "insert", transaction.id)

        try:
            self.registry.apply_balance(student.id, balance, expected_balance=previous)
        except (SQLAlchemyError, BalanceConflict, StudentNotFound) as exc:
            self.db.rollback()
            logger.error(
                "Transaction %s saved but balance of student %s was not updated (%d -> %d): %s",
                transaction.id,
                student_id,
                previous,
                balance,
                exc,
            )
            raise PersistenceFailure(
                "balance",
                "Transaction saved, but the student's balance could not be updated; manual reconciliation required",
                transaction_id=transaction.id,
                student_id=student_id,
                expected_balance=balance,
            ) from exc

        logger.info(
            "%s of %d recorded for student %s by %s (%s): balance %d -> %d",
            kind.capitalize(),
            amount,
            student_id,
            actor.name,
            actor.role,
            previous,
            balance,
        )
        return transaction

    def reset_ledger(self) -> ResetResult:
        try:
            deleted = self.db.execute(delete(Transaction)).rowcount or 0
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Ledger reset failed while clearing transactions: %s", exc)
            raise ResetFailure("clear_transactions") from exc
        self._publish("transactions", "reset")

        try:
            reset = self.registry.zero_all_balances()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Ledger reset cleared %d transactions but failed to zero balances: %s", deleted, exc)
            raise ResetFailure("zero_balances") from exc
        self._publish("students", "reset")

        logger.warning("Ledger reset: %d transactions deleted, %d balances zeroed", deleted, reset)
        return ResetResult(transactions_deleted=deleted, students_reset=reset)

    def history(
        self,
        student_ids: list[str] | None = None,
        kind: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int | None = None,
    ) -> list[Transaction]:
        stmt = select(Transaction).order_by(Transaction.date.desc())
        if student_ids is not None:
            stmt = stmt.where(Transaction.student_id.in_(student_ids))
        if kind:
            stmt = stmt.where(Transaction.kind == kind)
        start, end = window_bounds(date_from, date_to)
        if start is not None:
            stmt = stmt.where(Transaction.date >= start)
        if end is not None:
            stmt = stmt.where(Transaction.date < end)
        if limit:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt).all())

    def last_snapshot(self, student_id: str) -> int:
        latest = self.db.scalar(
            select(Transaction.balance)
            .where(Transaction.student_id == student_id)
            .order_by(Transaction.date.desc())
            .limit(1)
        )
        return latest or 0

    def find_inconsistencies(self) -> list[BalanceMismatch]:
        """Students whose stored balance differs from their latest snapshot."""
        mismatches = []
        for student in self.db.scalars(select(Student).order_by(Student.name)).all():
            snapshot = self.last_snapshot(student.id)
            if snapshot != student.balance:
                mismatches.append(BalanceMismatch(student.id, student.balance, snapshot))
        return mismatches

    def _publish(self, table: str, action: str, record_id: str | None = None) -> None:
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table=table, action=action, record_id=record_id))
