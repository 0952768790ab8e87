import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.common import as_utc
from app.models.savings_goal import SavingsGoal
from app.models.student import Student
from app.models.transaction import Transaction
from app.services.change_feed import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudentRecord:
    id: str
    name: str
    class_label: str
    external_id: str
    parent_id: str | None
    balance: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: Student) -> "StudentRecord":
        return cls(
            id=row.id,
            name=row.name,
            class_label=row.class_label,
            external_id=row.external_id,
            parent_id=row.parent_id,
            balance=row.balance,
            created_at=as_utc(row.created_at),
        )


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    student_id: str
    kind: str
    amount: int
    description: str
    performed_by: str
    performed_by_role: str
    date: datetime
    balance: int

    @classmethod
    def from_row(cls, row: Transaction) -> "TransactionRecord":
        return cls(
            id=row.id,
            student_id=row.student_id,
            kind=row.kind,
            amount=row.amount,
            description=row.description,
            performed_by=row.performed_by,
            performed_by_role=row.performed_by_role,
            date=as_utc(row.date),
            balance=row.balance,
        )


@dataclass(frozen=True)
class GoalRecord:
    id: str
    class_label: str
    goal_name: str
    goal_amount: int
    target_date: date
    day_of_week: str

    @classmethod
    def from_row(cls, row: SavingsGoal) -> "GoalRecord":
        return cls(
            id=row.id,
            class_label=row.class_label,
            goal_name=row.goal_name,
            goal_amount=row.goal_amount,
            target_date=row.target_date,
            day_of_week=row.day_of_week,
        )


class LedgerSnapshotCache:
    """Read-side snapshot of students, transactions and goals.

    The cache is attached to a :class:`ChangeFeed` at startup. Every event
    only marks its table stale; the next read reloads that table, so
    duplicate or out-of-order events cost at most an extra reload.
    """

    TABLES = ("students", "transactions", "savings_goals")

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._lock = threading.RLock()
        self._data: dict[str, list] = {}
        self._stale: set[str] = set(self.TABLES)
        self._unsubscribe: Callable[[], None] | None = None
        self.reloads = 0

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self, feed: ChangeFeed) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = feed.subscribe(self.handle_event)
        logger.info("Snapshot cache subscribed to change feed.")

    def detach(self) -> None:
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        with self._lock:
            self._data.clear()
            self._stale = set(self.TABLES)
        logger.info("Snapshot cache unsubscribed from change feed.")

    def handle_event(self, event: ChangeEvent) -> None:
        self.invalidate(event.table)

    def invalidate(self, table: str | None = None) -> None:
        with self._lock:
            if table is None:
                self._stale = set(self.TABLES)
            else:
                self._stale.add(table)

    def is_stale(self, table: str) -> bool:
        return table in self._stale

    def students(self) -> list[StudentRecord]:
        return list(self._get("students"))

    def transactions(self) -> list[TransactionRecord]:
        return list(self._get("transactions"))

    def goals(self) -> list[GoalRecord]:
        return list(self._get("savings_goals"))

    def _get(self, table: str) -> list:
        with self._lock:
            if table in self._stale or table not in self._data:
                self._data[table] = self._load(table)
                self._stale.discard(table)
                self.reloads += 1
            return self._data[table]

    def _load(self, table: str) -> list:
        with self._session_factory() as db:
            if table == "students":
                rows = db.scalars(select(Student).order_by(Student.name)).all()
                return [StudentRecord.from_row(row) for row in rows]
            if table == "transactions":
                rows = db.scalars(select(Transaction).order_by(Transaction.date.desc())).all()
                return [TransactionRecord.from_row(row) for row in rows]
            rows = db.scalars(select(SavingsGoal).where(SavingsGoal.type == "class")).all()
            return [GoalRecord.from_row(row) for row in rows]
