from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.models.common import CreatedAtMixin, UUIDPrimaryKeyMixin


class Student(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "students"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_students_balance_non_negative"),)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    class_label: Mapped[str] = mapped_column("class", String(16), nullable=False, index=True)
    external_id: Mapped[str] = mapped_column("student_id", String(10), nullable=False, unique=True, index=True)
    parent_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    parent = relationship("User", back_populates="children")
    transactions = relationship("Transaction", back_populates="student", cascade="all, delete-orphan")
