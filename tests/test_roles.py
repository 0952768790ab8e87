import pytest

from app.core.errors import NotPermitted
from app.core.roles import AdminActor, ParentActor, TeacherActor, can_view_student, scoped_class


class _StudentStub:
    def __init__(self, class_label: str, parent_id: str | None = None):
        self.class_label = class_label
        self.parent_id = parent_id


def test_teacher_is_pinned_to_own_class():
    teacher = TeacherActor(id="t-1", name="Bu Rina", class_label="3")
    assert scoped_class(teacher, "5") == "3"
    assert scoped_class(teacher, None) == "3"
    assert scoped_class(AdminActor(id="a-1", name="Admin"), "5") == "5"


def test_teacher_without_class_sees_nothing():
    teacher = TeacherActor(id="t-2", name="Pak Joko", class_label=None)

    with pytest.raises(NotPermitted):
        scoped_class(teacher, None)
    assert can_view_student(teacher, _StudentStub("3")) is False


def test_parent_sees_only_linked_children():
    parent = ParentActor(id="p-1", name="Ibu Siti", student_info=None)
    assert can_view_student(parent, _StudentStub("3", parent_id="p-1")) is True
    assert can_view_student(parent, _StudentStub("3", parent_id="p-2")) is False
