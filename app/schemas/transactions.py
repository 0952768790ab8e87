from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, StrictFloat, StrictInt, StrictStr


class TransactionCreateRequest(BaseModel):
    student_id: str
    type: Literal["deposit", "withdrawal"]
    amount: StrictInt | StrictFloat | StrictStr
    description: str = Field(..., min_length=1, max_length=512)


class TransactionOut(BaseModel):
    id: str
    student_id: str
    type: str = Field(validation_alias="kind")
    amount: int
    description: str
    performed_by: str
    performed_by_role: str
    date: datetime
    balance: int

    model_config = {"from_attributes": True, "populate_by_name": True}


class ResetResponse(BaseModel):
    ok: bool
    transactions_deleted: int
    students_reset: int


class BalanceMismatchOut(BaseModel):
    student_id: str
    stored_balance: int
    snapshot_balance: int

    model_config = {"from_attributes": True}
