"""Tests for domain models and form validation."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from campusdesk.errors import FormValidationError
from campusdesk.models import (
    Batch,
    Fee,
    Student,
    StudentCreate,
    TeacherCreate,
    validate_form,
    validate_partial,
)

ADA = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "phone": "5551234567",
}


class TestWireFormat:
    """Tests for camelCase aliases and JSON encoding."""

    def test_parse_camel_case(self) -> None:
        student = Student.model_validate({"id": 1, **ADA, "dateOfBirth": "2008-05-01T00:00:00Z"})
        assert student.first_name == "Ada"
        assert student.date_of_birth is not None
        assert student.date_of_birth.year == 2008
        assert student.full_name == "Ada Lovelace"

    def test_populate_by_field_name(self) -> None:
        """Test that snake_case names are accepted too."""
        data = StudentCreate(
            first_name="Ada", last_name="Lovelace", email="ada@example.com", phone="5551234567"
        )
        assert data.to_wire()["firstName"] == "Ada"

    def test_money_travels_as_string(self) -> None:
        """Test that decimal amounts serialize with two places."""
        fee = Fee.model_validate({"id": 1, "amount": "1500", "studentId": 2})
        assert fee.amount == Decimal("1500")
        wire = fee.to_wire()
        assert wire["amount"] == "1500.00"
        assert wire["studentId"] == 2
        assert wire["status"] == "pending"

    def test_defaults(self) -> None:
        batch = Batch.model_validate({"id": 1, "name": "Morning"})
        assert batch.capacity == 30
        assert batch.current_enrollment == 0
        assert batch.is_active is True

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Fee.model_validate({"id": 1, "status": "lost"})


class TestValidateForm:
    """Tests for validate_form."""

    def test_valid(self) -> None:
        data = validate_form(StudentCreate, ADA)
        assert isinstance(data, StudentCreate)
        assert data.email == "ada@example.com"

    def test_errors_keyed_by_wire_name(self) -> None:
        """Test that each failing field reports its first message."""
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(
                StudentCreate,
                {"firstName": "", "lastName": "Lovelace", "email": "nope", "phone": "123"},
            )

        errors = exc_info.value.field_errors
        assert set(errors) == {"firstName", "email", "phone"}
        assert errors["email"] == "Invalid email address"
        assert "10" in errors["phone"]

    def test_missing_fields(self) -> None:
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(TeacherCreate, {"firstName": "Grace"})
        errors = exc_info.value.field_errors
        assert errors["lastName"] == "Field required"
        assert "firstName" not in errors

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(FormValidationError) as exc_info:
            validate_form(TeacherCreate, {**ADA, "experience": -1})
        assert set(exc_info.value.field_errors) == {"experience"}

    def test_email_whitespace_stripped(self) -> None:
        data = validate_form(StudentCreate, {**ADA, "email": "  ada@example.com "})
        assert data.email == "ada@example.com"

    def test_model_instance_passes_through(self) -> None:
        data = StudentCreate.model_validate(ADA)
        assert validate_form(StudentCreate, data) is data


class TestValidatePartial:
    """Tests for validate_partial."""

    def test_only_listed_fields_checked(self) -> None:
        """Test that missing required fields are fine in an update."""
        assert validate_partial(StudentCreate, {"phone": "5559876543"}) == {
            "phone": "5559876543"
        }

    def test_field_names_become_aliases(self) -> None:
        assert validate_partial(StudentCreate, {"first_name": "Augusta"}) == {
            "firstName": "Augusta"
        }

    def test_invalid_listed_field(self) -> None:
        with pytest.raises(FormValidationError) as exc_info:
            validate_partial(StudentCreate, {"email": "nope"})
        assert exc_info.value.field_errors == {"email": "Invalid email address"}

    def test_unknown_field(self) -> None:
        with pytest.raises(FormValidationError) as exc_info:
            validate_partial(StudentCreate, {"nickname": "Ada"})
        assert exc_info.value.field_errors == {"nickname": "Unknown field"}
