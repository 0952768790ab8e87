from pydantic import BaseModel, Field

from app.core.roles import Role


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1, max_length=256)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


class StudentInfoOut(BaseModel):
    id: str
    name: str
    class_label: str
    external_id: str

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    id: str
    name: str
    role: Role
    class_label: str | None = None
    student_info: StudentInfoOut | None = None
