from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class UserCreateRequest(BaseModel):
    login: str = Field(..., min_length=3, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=6, max_length=256)
    role: Literal["teacher", "parent"]
    class_label: str | None = Field(default=None, max_length=16)
    nisn: str | None = Field(default=None, min_length=10, max_length=10)

    @model_validator(mode="after")
    def validate_role_fields(self):
        if self.role == "teacher" and not self.class_label:
            raise ValueError("teacher account requires class_label")
        if self.role == "parent" and not self.nisn:
            raise ValueError("parent account requires nisn")
        return self


class PasswordResetRequest(BaseModel):
    password: str = Field(..., min_length=6, max_length=256)


class UserOut(BaseModel):
    id: str
    login: str
    name: str
    role: str
    class_label: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
