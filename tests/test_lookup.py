"""Tests for lookup indexes."""

from campusdesk.lookup import (
    LookupIndex,
    batch_name,
    course_for_batch,
    course_name,
    student_name,
    teacher_name,
)
from campusdesk.models import Batch, Course, Student, Teacher


def make_student(id: int, first: str, last: str) -> Student:
    return Student(
        id=id, first_name=first, last_name=last, email=f"{first.lower()}@example.com",
        phone="5551234567",
    )


class TestLookupIndex:
    """Tests for LookupIndex."""

    def test_get(self) -> None:
        index = LookupIndex([make_student(1, "Ada", "Lovelace")])
        assert index.get(1) is not None
        assert index.get(2) is None
        assert index.get(None) is None
        assert 1 in index
        assert len(index) == 1

    def test_label_fallback(self) -> None:
        index = LookupIndex([make_student(1, "Ada", "Lovelace")])
        assert index.label(1, lambda s: s.first_name) == "Ada"
        assert index.label(9, lambda s: s.first_name) == "Unknown"

    def test_later_record_wins(self) -> None:
        index = LookupIndex([make_student(1, "Ada", "Lovelace"), make_student(1, "Bob", "Ross")])
        assert [s.first_name for s in index] == ["Bob"]


class TestAccessors:
    """Tests for the typed name accessors."""

    def test_names(self) -> None:
        students = LookupIndex([make_student(1, "Ada", "Lovelace")])
        teachers = LookupIndex(
            [
                Teacher(
                    id=4, first_name="Grace", last_name="Hopper",
                    email="grace@example.com", phone="5551234567",
                )
            ]
        )
        assert student_name(students, 1) == "Ada Lovelace"
        assert student_name(students, 2) == "Unknown Student"
        assert teacher_name(teachers, 4) == "Grace Hopper"
        assert teacher_name(teachers, None) == "Unknown Teacher"

    def test_batch_to_course(self) -> None:
        batches = LookupIndex(
            [Batch(id=1, name="Morning", course_id=10), Batch(id=2, name="Evening", course_id=99)]
        )
        courses = LookupIndex([Course(id=10, name="Algebra")])

        assert batch_name(batches, 1) == "Morning"
        assert batch_name(batches, 3) == "Unknown Batch"
        assert course_for_batch(batches, courses, 1) == Course(id=10, name="Algebra")
        assert course_for_batch(batches, courses, 2) is None
        assert course_name(batches, courses, 1) == "Algebra"
        assert course_name(batches, courses, 2) == "Unknown Course"
