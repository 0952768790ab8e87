import logging
import re
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import BalanceConflict, DuplicateExternalId, InvalidExternalId, StudentNotFound
from app.models.student import Student
from app.services.change_feed import ChangeEvent, ChangeFeed

logger = logging.getLogger(__name__)

NISN_PATTERN = re.compile(r"^\d{10}$")


@dataclass(frozen=True)
class StudentDraft:
    name: str
    class_label: str
    external_id: str
    parent_id: str | None = None


def validate_external_id(external_id: str) -> str:
    value = (external_id or "").strip()
    if not NISN_PATTERN.fullmatch(value):
        raise InvalidExternalId(external_id)
    return value


class StudentRegistry:
    """Authoritative store of students and their current balances.

    ``apply_balance`` and ``zero_all_balances`` are reserved for the ledger;
    every other write leaves the balance alone.
    """

    def __init__(self, db: Session, feed: ChangeFeed | None = None) -> None:
        self.db = db
        self.feed = feed

    def get(self, student_id: str) -> Student:
        student = self.db.get(Student, student_id)
        if student is None:
            raise StudentNotFound(student_id)
        return student

    def get_by_external_id(self, external_id: str) -> Student | None:
        return self.db.scalar(select(Student).where(Student.external_id == external_id))

    def list_students(
        self,
        class_label: str | None = None,
        search: str | None = None,
        parent_id: str | None = None,
    ) -> list[Student]:
        stmt = select(Student).order_by(Student.name)
        if class_label:
            stmt = stmt.where(Student.class_label == class_label)
        if parent_id:
            stmt = stmt.where(Student.parent_id == parent_id)
        if search:
            stmt = stmt.where(func.lower(Student.name).contains(search.lower()))
        return list(self.db.scalars(stmt).all())

    def class_labels(self) -> list[str]:
        return sorted(self.db.scalars(select(Student.class_label).distinct()).all())

    def create(self, name: str, class_label: str, external_id: str, parent_id: str | None = None) -> Student:
        external_id = validate_external_id(external_id)
        self._ensure_external_id_free(external_id)

        student = Student(name=name, class_label=class_label, external_id=external_id, parent_id=parent_id, balance=0)
        self.db.add(student)
        self._commit_unique(external_id)
        self.db.refresh(student)
        logger.info("Student %s created in class %s", student.id, student.class_label)
        self._publish("insert", student.id)
        return student

    def import_many(self, drafts: list[StudentDraft]) -> list[Student]:
        seen: set[str] = set()
        cleaned: list[StudentDraft] = []
        for draft in drafts:
            external_id = validate_external_id(draft.external_id)
            if external_id in seen:
                raise DuplicateExternalId(external_id)
            seen.add(external_id)
            cleaned.append(StudentDraft(draft.name, draft.class_label, external_id, draft.parent_id))

        if seen:
            taken = self.db.scalars(select(Student.external_id).where(Student.external_id.in_(seen))).first()
            if taken:
                raise DuplicateExternalId(taken)

        students = [
            Student(name=d.name, class_label=d.class_label, external_id=d.external_id, parent_id=d.parent_id, balance=0)
            for d in cleaned
        ]
        self.db.add_all(students)
        self._commit_unique(next(iter(seen), ""))
        for student in students:
            self.db.refresh(student)
        logger.info("Imported %d students", len(students))
        for student in students:
            self._publish("insert", student.id)
        return students

    def edit(
        self,
        student_id: str,
        *,
        name: str | None = None,
        class_label: str | None = None,
        external_id: str | None = None,
    ) -> Student:
        student = self.get(student_id)
        if external_id is not None:
            external_id = validate_external_id(external_id)
            self._ensure_external_id_free(external_id, exclude_id=student.id)
            student.external_id = external_id
        if name is not None:
            student.name = name
        if class_label is not None:
            student.class_label = class_label

        self.db.add(student)
        self._commit_unique(student.external_id)
        self.db.refresh(student)
        self._publish("update", student.id)
        return student

    def delete(self, student_id: str) -> None:
        student = self.get(student_id)
        self.db.delete(student)
        self.db.commit()
        logger.info("Student %s deleted", student_id)
        self._publish("delete", student_id)
        # the student's transactions went with it
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table="transactions", action="delete", record_id=student_id))

    def notify_updated(self, student_ids: list[str]) -> None:
        for student_id in student_ids:
            self._publish("update", student_id)

    def link_parent(self, external_id: str, parent_id: str) -> Student:
        student = self.get_by_external_id(validate_external_id(external_id))
        if student is None:
            raise StudentNotFound(external_id)
        student.parent_id = parent_id
        self.db.add(student)
        self.db.commit()
        self.db.refresh(student)
        self._publish("update", student.id)
        return student

    def apply_balance(self, student_id: str, new_balance: int, expected_balance: int | None = None) -> Student:
        if new_balance < 0:
            raise ValueError("balance cannot be negative")

        stmt = update(Student).where(Student.id == student_id).values(balance=new_balance)
        if expected_balance is not None:
            stmt = stmt.where(Student.balance == expected_balance)
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            self.db.rollback()
            if self.db.get(Student, student_id) is None:
                raise StudentNotFound(student_id)
            raise BalanceConflict(student_id, expected_balance)
        self.db.commit()

        student = self.get(student_id)
        self.db.refresh(student)
        self._publish("update", student_id)
        return student

    def zero_all_balances(self) -> int:
        result = self.db.execute(update(Student).values(balance=0).execution_options(synchronize_session=False))
        self.db.commit()
        self.db.expire_all()
        return result.rowcount or 0

    def _ensure_external_id_free(self, external_id: str, exclude_id: str | None = None) -> None:
        existing = self.get_by_external_id(external_id)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateExternalId(external_id)

    def _commit_unique(self, external_id: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateExternalId(external_id) from exc

    def _publish(self, action: str, record_id: str | None) -> None:
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table="students", action=action, record_id=record_id))
