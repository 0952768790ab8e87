from datetime import datetime

from pydantic import BaseModel, Field


class StudentCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    class_label: str = Field(..., min_length=1, max_length=16)
    external_id: str = Field(..., description="10-digit NISN")


class StudentImportRequest(BaseModel):
    students: list[StudentCreateRequest] = Field(..., min_length=1, max_length=1000)


class StudentUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    class_label: str | None = Field(default=None, min_length=1, max_length=16)
    external_id: str | None = None


class StudentOut(BaseModel):
    id: str
    name: str
    class_label: str
    external_id: str
    parent_id: str | None
    balance: int
    created_at: datetime

    model_config = {"from_attributes": True}
