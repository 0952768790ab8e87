"""Read-only recapitulation over students and transactions.

Everything here is a pure function of its inputs. ``current_balance`` in a
summary is the student's stored balance, not the net of the filtered
transactions: when the date window does not cover a student's whole history
the two legitimately differ.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from app.core.config import get_settings
from app.models.common import as_utc


@dataclass(frozen=True)
class RecapFilters:
    date_from: date | None = None
    date_to: date | None = None
    class_label: str | None = None
    search_text: str | None = None


@dataclass(frozen=True)
class StudentSummary:
    student: object
    total_deposits: int
    total_withdrawals: int
    current_balance: int

    @property
    def net_amount(self) -> int:
        return self.total_deposits - self.total_withdrawals


@dataclass(frozen=True)
class RecapTotals:
    total_deposits: int
    total_withdrawals: int
    net_amount: int
    total_balance: int
    student_count: int


@dataclass(frozen=True)
class ClassSummary:
    class_label: str
    student_count: int
    total_balance: int


def window_bounds(
    date_from: date | None,
    date_to: date | None,
    timezone: str | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Translate an inclusive local-date window into a half-open UTC range."""
    zone = ZoneInfo(timezone or get_settings().school_timezone)
    start = end = None
    if date_from is not None:
        start = as_utc(datetime.combine(date_from, time.min, tzinfo=zone))
    if date_to is not None:
        end = as_utc(datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=zone))
    return start, end


def _student_matches(student, filters: RecapFilters) -> bool:
    if filters.class_label and student.class_label != filters.class_label:
        return False
    if filters.search_text and filters.search_text.casefold() not in student.name.casefold():
        return False
    return True


def summarize(
    students: Iterable,
    transactions: Iterable,
    filters: RecapFilters | None = None,
    timezone: str | None = None,
) -> list[StudentSummary]:
    filters = filters or RecapFilters()
    in_scope = [student for student in students if _student_matches(student, filters)]
    start, end = window_bounds(filters.date_from, filters.date_to, timezone)

    deposits: dict[str, int] = defaultdict(int)
    withdrawals: dict[str, int] = defaultdict(int)
    for transaction in transactions:
        moment = as_utc(transaction.date)
        if start is not None and moment < start:
            continue
        if end is not None and moment >= end:
            continue
        if transaction.kind == "deposit":
            deposits[transaction.student_id] += transaction.amount
        elif transaction.kind == "withdrawal":
            withdrawals[transaction.student_id] += transaction.amount

    summaries = [
        StudentSummary(
            student=student,
            total_deposits=deposits.get(student.id, 0),
            total_withdrawals=withdrawals.get(student.id, 0),
            current_balance=student.balance,
        )
        for student in in_scope
    ]
    summaries.sort(key=lambda item: item.student.name.casefold())
    return summaries


def totals(summaries: Iterable[StudentSummary]) -> RecapTotals:
    summaries = list(summaries)
    deposited = sum(item.total_deposits for item in summaries)
    withdrawn = sum(item.total_withdrawals for item in summaries)
    return RecapTotals(
        total_deposits=deposited,
        total_withdrawals=withdrawn,
        net_amount=deposited - withdrawn,
        total_balance=sum(item.current_balance for item in summaries),
        student_count=len(summaries),
    )


def class_summary(students: Iterable, classes: Iterable[str] | None = None) -> list[ClassSummary]:
    counts: dict[str, int] = defaultdict(int)
    balances: dict[str, int] = defaultdict(int)
    for student in students:
        counts[student.class_label] += 1
        balances[student.class_label] += student.balance

    labels = list(classes) if classes is not None else sorted(counts)
    return [ClassSummary(label, counts.get(label, 0), balances.get(label, 0)) for label in labels]
