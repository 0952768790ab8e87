from datetime import date

from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.common import UUIDPrimaryKeyMixin


class SavingsGoal(UUIDPrimaryKeyMixin, Base):
    __tablename__ = "savings_goals"

    class_label: Mapped[str] = mapped_column("class_id", String(16), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="class")
    goal_name: Mapped[str] = mapped_column(String(255), nullable=False)
    goal_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    target_date: Mapped[date] = mapped_column(Date, nullable=False)
    day_of_week: Mapped[str] = mapped_column(String(16), nullable=False)
