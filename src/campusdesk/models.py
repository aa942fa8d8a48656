"""Domain records and form schemas.

Records mirror what the API returns; ``*Create`` schemas are what a form
submits, without the fields the server assigns. Field names are snake_case
in Python and camelCase on the wire.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    StringConstraints,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from campusdesk.errors import FormValidationError

M = TypeVar("M", bound=BaseModel)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, min_length=10)]
Count = Annotated[int, Field(ge=0)]
ForeignKey = Annotated[int, Field(ge=1)]
# decimal(10, 2) columns travel as strings
Money = Annotated[
    Decimal,
    Field(ge=0, max_digits=10, decimal_places=2),
    PlainSerializer(lambda v: f"{v:.2f}", return_type=str, when_used="json"),
]

AttendanceStatus = Literal["present", "absent", "late"]
FeeStatus = Literal["pending", "paid", "overdue"]
EnrollmentStatus = Literal["active", "completed", "dropped"]
ExamType = Literal["quiz", "midterm", "final"]
RecipientType = Literal["student", "parent", "teacher", "batch"]
MessageType = Literal["announcement", "reminder", "alert"]
MessageStatus = Literal["sent", "delivered", "read"]


class CampusModel(BaseModel):
    """Base model: camelCase aliases, population by field name too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class _EmailMixin(CampusModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def _check_email(cls, value: str) -> str:
        value = value.strip()
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email address")
        return value


# =============================================================================
# People
# =============================================================================


class StudentCreate(_EmailMixin):
    first_name: Name
    last_name: Name
    email: str
    phone: Phone
    date_of_birth: datetime | None = None
    address: str | None = None
    parent_name: str | None = None
    parent_phone: str | None = None
    profile_photo: str | None = None
    is_active: bool | None = True


class Student(StudentCreate):
    id: int
    enrollment_date: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class TeacherCreate(_EmailMixin):
    first_name: Name
    last_name: Name
    email: str
    phone: Phone
    qualification: str | None = None
    experience: Count | None = None
    specialization: str | None = None
    salary: Money | None = None
    is_active: bool | None = True


class Teacher(TeacherCreate):
    id: int
    join_date: datetime | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# =============================================================================
# Academics
# =============================================================================


class CourseCreate(CampusModel):
    name: Name
    description: str | None = None
    duration: Count | None = None  # weeks
    fee: Money | None = None
    is_active: bool | None = True


class Course(CourseCreate):
    id: int


class BatchCreate(CampusModel):
    name: Name
    course_id: ForeignKey | None = None
    teacher_id: ForeignKey | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    capacity: Count | None = 30
    schedule: str | None = None
    is_active: bool | None = True


class Batch(BatchCreate):
    id: int
    current_enrollment: Count | None = 0


class EnrollmentCreate(CampusModel):
    student_id: ForeignKey | None = None
    batch_id: ForeignKey | None = None
    status: EnrollmentStatus | None = "active"


class Enrollment(EnrollmentCreate):
    id: int
    enrollment_date: datetime | None = None


class ExamCreate(CampusModel):
    title: Name
    batch_id: ForeignKey | None = None
    exam_date: datetime | None = None
    total_marks: Count | None = None
    duration: Count | None = None  # minutes
    type: ExamType | None = None
    instructions: str | None = None


class Exam(ExamCreate):
    id: int


class ExamResultCreate(CampusModel):
    exam_id: ForeignKey | None = None
    student_id: ForeignKey | None = None
    marks_obtained: Count | None = None
    grade: str | None = None
    remarks: str | None = None


class ExamResult(ExamResultCreate):
    id: int


class AttendanceCreate(CampusModel):
    student_id: ForeignKey | None = None
    batch_id: ForeignKey | None = None
    date: datetime | None = None
    status: AttendanceStatus | None = None
    remarks: str | None = None


class Attendance(AttendanceCreate):
    id: int


# =============================================================================
# Finance and messaging
# =============================================================================


class FeeCreate(CampusModel):
    student_id: ForeignKey | None = None
    batch_id: ForeignKey | None = None
    amount: Money | None = None
    due_date: datetime | None = None
    paid_date: datetime | None = None
    status: FeeStatus | None = "pending"
    payment_method: str | None = None
    receipt_number: str | None = None


class Fee(FeeCreate):
    id: int


class MessageCreate(CampusModel):
    recipient_type: RecipientType | None = None
    recipient_id: int | None = None
    subject: str | None = None
    content: str | None = None
    sent_by: str | None = None
    type: MessageType | None = None


class Message(MessageCreate):
    id: int
    sent_at: datetime | None = None
    status: MessageStatus | None = "sent"


class DashboardMetrics(CampusModel):
    total_students: int = 0
    total_teachers: int = 0
    monthly_revenue: float = 0
    attendance_rate: float = 0


# =============================================================================
# Validation
# =============================================================================


def _field_errors(model: type[BaseModel], error: ValidationError) -> dict[str, str]:
    """Map each failing field to its first message, keyed by wire name."""
    aliases = {
        name: info.alias or name for name, info in model.model_fields.items()
    }
    errors: dict[str, str] = {}
    for item in error.errors():
        loc = item["loc"]
        field = str(loc[0]) if loc else "__root__"
        field = aliases.get(field, field)
        message = item["msg"].removeprefix("Value error, ")
        errors.setdefault(field, message)
    return errors


def _provided(model: type[BaseModel], data: dict[str, Any]) -> set[str]:
    """Wire names of the fields present in ``data``."""
    names: set[str] = set()
    for name, info in model.model_fields.items():
        alias = info.alias or name
        if alias in data or name in data:
            names.add(alias)
    return names


def validate_form(model: type[M], data: Any) -> M:
    """Validate complete form input, raising FormValidationError on failure."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True, exclude_unset=True)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise FormValidationError(_field_errors(model, e)) from e


def validate_partial(model: type[BaseModel], data: dict[str, Any]) -> dict[str, Any]:
    """Validate only the fields present in ``data`` (partial update).

    Missing required fields are not an error here; the server merges the
    changes into the stored record. Returns the changes keyed by wire name.
    """
    provided = _provided(model, data)
    unknown = set(data) - provided - set(model.model_fields)
    if unknown:
        raise FormValidationError({name: "Unknown field" for name in sorted(unknown)})
    try:
        model.model_validate(data)
    except ValidationError as e:
        errors = {
            field: message
            for field, message in _field_errors(model, e).items()
            if field in provided
        }
        if errors:
            raise FormValidationError(errors) from e
    aliases = {name: info.alias or name for name, info in model.model_fields.items()}
    return {aliases.get(key, key): value for key, value in data.items()}


__all__ = [
    "Attendance",
    "AttendanceCreate",
    "Batch",
    "BatchCreate",
    "CampusModel",
    "Course",
    "CourseCreate",
    "DashboardMetrics",
    "Enrollment",
    "EnrollmentCreate",
    "Exam",
    "ExamCreate",
    "ExamResult",
    "ExamResultCreate",
    "Fee",
    "FeeCreate",
    "Message",
    "MessageCreate",
    "Student",
    "StudentCreate",
    "Teacher",
    "TeacherCreate",
    "validate_form",
    "validate_partial",
]
