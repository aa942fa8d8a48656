"""In-memory storage with sequential integer ids."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any, Generic, TypeVar

from campusdesk.models import (
    Attendance,
    CampusModel,
    DashboardMetrics,
    Fee,
    Student,
    Teacher,
)
from campusdesk.resources import (
    ATTENDANCE,
    BATCHES,
    ENROLLMENTS,
    FEES,
    MESSAGES,
    RESOURCES,
    STUDENTS,
    TEACHERS,
)
from campusdesk.views import dashboard_metrics

M = TypeVar("M", bound=CampusModel)

Defaults = Callable[[], dict[str, Any]]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# Fields the server assigns on create, overriding whatever was submitted
_SERVER_DEFAULTS: dict[str, Defaults] = {
    STUDENTS.path: lambda: {"enrollment_date": _now(), "is_active": True},
    TEACHERS.path: lambda: {"join_date": _now()},
    BATCHES.path: lambda: {"current_enrollment": 0},
    ENROLLMENTS.path: lambda: {"enrollment_date": _now(), "status": "active"},
    MESSAGES.path: lambda: {"sent_at": _now(), "status": "sent"},
}


class Table(Generic[M]):
    """One collection of records keyed by id."""

    def __init__(self, model: type[M], defaults: Defaults | None = None) -> None:
        self._model = model
        self._defaults = defaults
        self._rows: dict[int, M] = {}
        self._next_id = 1

    def list(self) -> list[M]:
        return list(self._rows.values())

    def get(self, id: int) -> M | None:
        return self._rows.get(id)

    def insert(self, values: dict[str, Any]) -> M:
        """Store a new record; ``values`` are keyed by field name."""
        id = self._next_id
        assigned = self._defaults() if self._defaults is not None else {}
        record = self._model.model_validate({**values, **assigned, "id": id})
        self._next_id += 1
        self._rows[id] = record
        return record

    def update(self, id: int, changes: dict[str, Any]) -> M:
        """Merge ``changes`` into a stored record.

        Raises:
            KeyError: no record with this id
        """
        existing = self._rows[id]
        record = self._model.model_validate({**existing.model_dump(), **changes, "id": id})
        self._rows[id] = record
        return record

    def delete(self, id: int) -> bool:
        return self._rows.pop(id, None) is not None

    def clear(self) -> None:
        self._rows.clear()
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._rows)


class MemStorage:
    """All collections of the dashboard, kept in process memory."""

    def __init__(self) -> None:
        self._tables: dict[str, Table[Any]] = {
            resource.path: Table(resource.model, _SERVER_DEFAULTS.get(resource.path))
            for resource in RESOURCES
        }

    def table(self, path: str) -> Table[Any]:
        return self._tables[path]

    def dashboard_metrics(self, today: date | None = None) -> DashboardMetrics:
        students: list[Student] = self.table(STUDENTS.path).list()
        teachers: list[Teacher] = self.table(TEACHERS.path).list()
        fees: list[Fee] = self.table(FEES.path).list()
        attendance: list[Attendance] = self.table(ATTENDANCE.path).list()
        return dashboard_metrics(students, teachers, fees, attendance, today)

    def clear(self) -> None:
        for table in self._tables.values():
            table.clear()
