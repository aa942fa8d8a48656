"""Client-side joins over fetched collections."""

from collections.abc import Callable, Iterable, Iterator
from typing import Generic, Protocol, TypeVar

from campusdesk.models import Batch, Course, Student, Teacher


class _HasId(Protocol):
    id: int


T = TypeVar("T", bound=_HasId)


class LookupIndex(Generic[T]):
    """Map from id to record, built once per fetched collection.

    A reference to a record that is not loaded resolves to None (or to the
    fallback label), never to an error.

    Example:
        students = LookupIndex(await api.students.list())
        students.label(fee.student_id, lambda s: s.full_name)  # "Ada Lovelace"
        students.label(999, lambda s: s.full_name)              # "Unknown"
    """

    __slots__ = ("_records",)

    def __init__(self, records: Iterable[T] | None = None) -> None:
        self._records: dict[int, T] = {}
        for record in records or ():
            self._records[record.id] = record

    def get(self, id: int | None) -> T | None:
        if id is None:
            return None
        return self._records.get(id)

    def label(
        self,
        id: int | None,
        render: Callable[[T], str],
        fallback: str = "Unknown",
    ) -> str:
        """Render the referenced record, or the fallback when it is missing."""
        record = self.get(id)
        if record is None:
            return fallback
        return render(record)

    def __contains__(self, id: object) -> bool:
        return id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(self._records.values())


def student_name(
    students: LookupIndex[Student], id: int | None, fallback: str = "Unknown Student"
) -> str:
    return students.label(id, lambda s: s.full_name, fallback)


def teacher_name(
    teachers: LookupIndex[Teacher], id: int | None, fallback: str = "Unknown Teacher"
) -> str:
    return teachers.label(id, lambda t: t.full_name, fallback)


def batch_name(
    batches: LookupIndex[Batch], id: int | None, fallback: str = "Unknown Batch"
) -> str:
    return batches.label(id, lambda b: b.name, fallback)


def course_for_batch(
    batches: LookupIndex[Batch],
    courses: LookupIndex[Course],
    batch_id: int | None,
) -> Course | None:
    """Follow batch -> course, returning None if either link is missing."""
    batch = batches.get(batch_id)
    if batch is None:
        return None
    return courses.get(batch.course_id)


def course_name(
    batches: LookupIndex[Batch],
    courses: LookupIndex[Course],
    batch_id: int | None,
    fallback: str = "Unknown Course",
) -> str:
    course = course_for_batch(batches, courses, batch_id)
    return course.name if course is not None else fallback


__all__ = [
    "LookupIndex",
    "batch_name",
    "course_for_batch",
    "course_name",
    "student_name",
    "teacher_name",
]
