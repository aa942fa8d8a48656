"""Derived views over loaded collections: searches, filters and statistics.

Everything here is a pure function of lists that were already fetched.
Related records are resolved through LookupIndex, so a dangling reference
simply fails to match a search instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from campusdesk.lookup import LookupIndex, course_for_batch
from campusdesk.models import (
    Attendance,
    Batch,
    Course,
    DashboardMetrics,
    Fee,
    Message,
    Student,
    Teacher,
)


@dataclass(frozen=True, slots=True)
class Lookups:
    """Indexes over the collections a page joins against."""

    students: LookupIndex[Student] = field(default_factory=LookupIndex)
    teachers: LookupIndex[Teacher] = field(default_factory=LookupIndex)
    batches: LookupIndex[Batch] = field(default_factory=LookupIndex)
    courses: LookupIndex[Course] = field(default_factory=LookupIndex)

    @classmethod
    def build(
        cls,
        *,
        students: Iterable[Student] = (),
        teachers: Iterable[Teacher] = (),
        batches: Iterable[Batch] = (),
        courses: Iterable[Course] = (),
    ) -> Lookups:
        return cls(
            students=LookupIndex(students),
            teachers=LookupIndex(teachers),
            batches=LookupIndex(batches),
            courses=LookupIndex(courses),
        )


def _matches(term: str, *fields: str | None) -> bool:
    """Case-insensitive substring match; an empty term matches everything."""
    needle = term.strip().lower()
    if not needle:
        return True
    return any(value is not None and needle in value.lower() for value in fields)


def _day(value: datetime) -> date:
    # Aware timestamps are compared on their UTC calendar day
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def _same_month(value: datetime | None, today: date) -> bool:
    if value is None:
        return False
    day = _day(value)
    return day.year == today.year and day.month == today.month


# =============================================================================
# Students and teachers
# =============================================================================


@dataclass(frozen=True, slots=True)
class StudentStats:
    total: int
    active: int
    inactive: int
    new_this_month: int


def search_students(students: Iterable[Student], term: str) -> list[Student]:
    """Students whose full name or email contains ``term``, ignoring case."""
    return [s for s in students if _matches(term, s.full_name, s.email)]


def student_stats(students: Sequence[Student], today: date | None = None) -> StudentStats:
    today = today or date.today()
    active = sum(1 for s in students if s.is_active)
    return StudentStats(
        total=len(students),
        active=active,
        inactive=len(students) - active,
        new_this_month=sum(1 for s in students if _same_month(s.enrollment_date, today)),
    )


def filter_teachers(teachers: Iterable[Teacher], term: str) -> list[Teacher]:
    return [
        t
        for t in teachers
        if _matches(term, t.full_name, t.email, t.specialization, t.qualification)
    ]


# =============================================================================
# Courses and batches
# =============================================================================


def filter_courses(courses: Iterable[Course], term: str) -> list[Course]:
    return [c for c in courses if _matches(term, c.name, c.description)]


def filter_batches(
    batches: Iterable[Batch],
    lookups: Lookups,
    term: str,
    *,
    course_id: int | None = None,
) -> list[Batch]:
    result = []
    for batch in batches:
        course = lookups.courses.get(batch.course_id)
        if course_id is not None and batch.course_id != course_id:
            continue
        if _matches(term, batch.name, course.name if course else None):
            result.append(batch)
    return result


# =============================================================================
# Attendance
# =============================================================================


@dataclass(frozen=True, slots=True)
class AttendanceSummary:
    present: int
    absent: int
    late: int
    total: int
    rate: float  # percent of present or late, one decimal


def attendance_for_date(records: Iterable[Attendance], day: date) -> list[Attendance]:
    return [r for r in records if r.date is not None and _day(r.date) == day]


def attendance_summary(records: Sequence[Attendance]) -> AttendanceSummary:
    present = sum(1 for r in records if r.status == "present")
    absent = sum(1 for r in records if r.status == "absent")
    late = sum(1 for r in records if r.status == "late")
    total = len(records)
    rate = round((present + late) / total * 100, 1) if total else 0.0
    return AttendanceSummary(
        present=present, absent=absent, late=late, total=total, rate=rate
    )


def filter_attendance(
    records: Iterable[Attendance],
    lookups: Lookups,
    term: str = "",
    *,
    batch_id: int | None = None,
    status: str | None = None,
) -> list[Attendance]:
    """Search by student, batch or course name, then narrow by batch and status."""
    result = []
    for record in records:
        if batch_id is not None and record.batch_id != batch_id:
            continue
        if status is not None and record.status != status:
            continue
        student = lookups.students.get(record.student_id)
        batch = lookups.batches.get(record.batch_id)
        course = course_for_batch(lookups.batches, lookups.courses, record.batch_id)
        if _matches(
            term,
            student.first_name if student else None,
            student.last_name if student else None,
            batch.name if batch else None,
            course.name if course else None,
        ):
            result.append(record)
    return result


# =============================================================================
# Fees
# =============================================================================


@dataclass(frozen=True, slots=True)
class FeeSummary:
    total: int
    paid: int
    pending: int
    overdue: int
    revenue: Decimal


def is_overdue(fee: Fee, today: date | None = None) -> bool:
    """A fee is overdue when marked so, or still pending past its due date."""
    if fee.status == "overdue":
        return True
    if fee.status != "pending" or fee.due_date is None:
        return False
    return _day(fee.due_date) < (today or date.today())


def fee_summary(fees: Sequence[Fee], today: date | None = None) -> FeeSummary:
    """Counts per status and revenue from paid fees.

    Pending fees past their due date are counted as overdue, not pending.
    """
    today = today or date.today()
    overdue = [f for f in fees if is_overdue(f, today)]
    paid = [f for f in fees if f.status == "paid"]
    return FeeSummary(
        total=len(fees),
        paid=len(paid),
        pending=sum(
            1 for f in fees if f.status == "pending" and not is_overdue(f, today)
        ),
        overdue=len(overdue),
        revenue=sum((f.amount or Decimal(0) for f in paid), Decimal(0)),
    )


def filter_fees(
    fees: Iterable[Fee],
    lookups: Lookups,
    term: str = "",
    *,
    status: str | None = None,
    today: date | None = None,
) -> list[Fee]:
    """Search by student, batch or course name; ``status="overdue"`` uses is_overdue."""
    result = []
    for fee in fees:
        if status == "overdue":
            if not is_overdue(fee, today):
                continue
        elif status is not None and fee.status != status:
            continue
        student = lookups.students.get(fee.student_id)
        batch = lookups.batches.get(fee.batch_id)
        course = course_for_batch(lookups.batches, lookups.courses, fee.batch_id)
        if _matches(
            term,
            student.first_name if student else None,
            student.last_name if student else None,
            batch.name if batch else None,
            course.name if course else None,
        ):
            result.append(fee)
    return result


# =============================================================================
# Messages and dashboard
# =============================================================================


def filter_messages(
    messages: Iterable[Message],
    term: str = "",
    *,
    type: str | None = None,
) -> list[Message]:
    return [
        m
        for m in messages
        if (type is None or m.type == type) and _matches(term, m.subject, m.content)
    ]


def dashboard_metrics(
    students: Sequence[Student],
    teachers: Sequence[Teacher],
    fees: Iterable[Fee],
    attendance: Iterable[Attendance],
    today: date | None = None,
) -> DashboardMetrics:
    """Headline numbers: head counts, this month's revenue and attendance rate."""
    today = today or date.today()
    revenue = sum(
        (
            f.amount or Decimal(0)
            for f in fees
            if f.status == "paid" and _same_month(f.paid_date, today)
        ),
        Decimal(0),
    )
    monthly = [a for a in attendance if _same_month(a.date, today)]
    present = sum(1 for a in monthly if a.status == "present")
    return DashboardMetrics(
        total_students=len(students),
        total_teachers=len(teachers),
        monthly_revenue=float(revenue),
        attendance_rate=present / len(monthly) * 100 if monthly else 0.0,
    )
