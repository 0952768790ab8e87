from dataclasses import dataclass
from typing import Literal, Union

from app.core.errors import NotPermitted

Role = Literal["admin", "teacher", "parent"]
PerformerRole = Literal["admin", "teacher"]

ROLES: tuple[Role, ...] = ("admin", "teacher", "parent")


@dataclass(frozen=True)
class StudentInfo:
    id: str
    name: str
    class_label: str
    external_id: str


@dataclass(frozen=True)
class AdminActor:
    id: str
    name: str
    role: Literal["admin"] = "admin"


@dataclass(frozen=True)
class TeacherActor:
    id: str
    name: str
    class_label: str | None
    role: Literal["teacher"] = "teacher"


@dataclass(frozen=True)
class ParentActor:
    id: str
    name: str
    student_info: StudentInfo | None
    role: Literal["parent"] = "parent"


Actor = Union[AdminActor, TeacherActor, ParentActor]


def build_actor(user, child=None) -> Actor:
    """Build the role-specific actor for a user row.

    ``child`` is the student linked to a parent account, if any.
    """
    if user.role == "admin":
        return AdminActor(id=user.id, name=user.name)
    if user.role == "teacher":
        return TeacherActor(id=user.id, name=user.name, class_label=user.class_label)
    if user.role == "parent":
        info = None
        if child is not None:
            info = StudentInfo(id=child.id, name=child.name, class_label=child.class_label, external_id=child.external_id)
        return ParentActor(id=user.id, name=user.name, student_info=info)
    raise ValueError(f"Unknown role {user.role!r}")


def can_view_student(actor: Actor, student) -> bool:
    if isinstance(actor, AdminActor):
        return True
    if isinstance(actor, TeacherActor):
        return student.class_label == actor.class_label
    return student.parent_id == actor.id


def scoped_class(actor: Actor, requested: str | None) -> str | None:
    """Class filter an actor is allowed to query; teachers are pinned to their own class."""
    if isinstance(actor, TeacherActor):
        if not actor.class_label:
            raise NotPermitted("Teacher account has no class assigned")
        return actor.class_label
    return requested
