from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

DayOfWeek = Literal["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]


class GoalCreateRequest(BaseModel):
    class_label: str = Field(..., min_length=1, max_length=16)
    goal_name: str = Field(..., min_length=1, max_length=255)
    goal_amount: int = Field(..., gt=0)
    target_date: date
    day_of_week: DayOfWeek


class GoalUpdateRequest(BaseModel):
    goal_name: str | None = Field(default=None, min_length=1, max_length=255)
    goal_amount: int | None = Field(default=None, gt=0)
    target_date: date | None = None
    day_of_week: DayOfWeek | None = None


class GoalOut(BaseModel):
    id: str
    class_label: str
    type: str = "class"
    goal_name: str
    goal_amount: int
    target_date: date
    day_of_week: str
    current_saved_amount: int
    status: Literal["on-track", "behind", "completed"]


class DepositAllowedResponse(BaseModel):
    class_label: str
    date: date
    weekday: str
    allowed: bool
    scheduled_days: list[str]
    reason: str | None = None
