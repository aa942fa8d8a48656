"""The REST collections the dashboard works with."""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from campusdesk.keys import resource_key
from campusdesk.models import (
    Attendance,
    AttendanceCreate,
    Batch,
    BatchCreate,
    CampusModel,
    Course,
    CourseCreate,
    Enrollment,
    EnrollmentCreate,
    Exam,
    ExamCreate,
    ExamResult,
    ExamResultCreate,
    Fee,
    FeeCreate,
    Message,
    MessageCreate,
    Student,
    StudentCreate,
    Teacher,
    TeacherCreate,
)
from campusdesk.types import ResourceKey

M = TypeVar("M", bound=CampusModel)


@dataclass(frozen=True, slots=True)
class Resource(Generic[M]):
    """A REST collection: where it lives and what its records look like."""

    name: str  # singular, used in messages
    path: str
    model: type[M]
    create_model: type[CampusModel]

    @property
    def key(self) -> ResourceKey:
        return resource_key(self.path)

    @property
    def title(self) -> str:
        return self.name[:1].upper() + self.name[1:]


STUDENTS = Resource("student", "/api/students", Student, StudentCreate)
TEACHERS = Resource("teacher", "/api/teachers", Teacher, TeacherCreate)
COURSES = Resource("course", "/api/courses", Course, CourseCreate)
BATCHES = Resource("batch", "/api/batches", Batch, BatchCreate)
ENROLLMENTS = Resource("enrollment", "/api/enrollments", Enrollment, EnrollmentCreate)
EXAMS = Resource("exam", "/api/exams", Exam, ExamCreate)
RESULTS = Resource("exam result", "/api/exam-results", ExamResult, ExamResultCreate)
ATTENDANCE = Resource(
    "attendance record", "/api/attendance", Attendance, AttendanceCreate
)
FEES = Resource("fee", "/api/fees", Fee, FeeCreate)
MESSAGES = Resource("message", "/api/messages", Message, MessageCreate)

RESOURCES: tuple[Resource[Any], ...] = (
    STUDENTS,
    TEACHERS,
    COURSES,
    BATCHES,
    ENROLLMENTS,
    EXAMS,
    RESULTS,
    ATTENDANCE,
    FEES,
    MESSAGES,
)

DASHBOARD_METRICS_PATH = "/api/dashboard/metrics"
DASHBOARD_METRICS_KEY = resource_key(DASHBOARD_METRICS_PATH)
