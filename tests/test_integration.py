"""End-to-end flows: cache, mutations and the REST server together."""

from datetime import datetime, timezone

from campusdesk import CampusApi
from campusdesk.server import MemStorage
from campusdesk.views import search_students


class TestCreateThenList:
    """A created record shows up in the refreshed collection."""

    async def test_created_student_is_listed(self, api: CampusApi) -> None:
        students = api.students.subscribe()
        await students.wait()

        created = await api.students.create(
            {
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "phone": "5551234567",
            }
        )
        assert created is not None
        assert created.id is not None

        await api.client.wait_idle()
        listed = {s.id: s for s in students.data}
        assert listed[created.id].first_name == "Ada"
        assert listed[created.id].email == "ada@example.com"

        # A view over the loaded list
        assert [s.id for s in search_students(students.data, "ada")] == [created.id]


class TestStatusUpdate:
    """A partial update changes only the listed field."""

    async def test_attendance_status_round_trip(
        self, api: CampusApi, storage: MemStorage
    ) -> None:
        table = storage.table("/api/attendance")
        for n in range(1, 8):
            table.insert(
                {
                    "student_id": n,
                    "batch_id": 1,
                    "date": datetime(2024, 3, n, tzinfo=timezone.utc),
                    "status": "present",
                }
            )

        attendance = api.attendance.subscribe()
        await attendance.wait()
        before = {r.id: r for r in attendance.data}[7]

        updated = await api.attendance.update(7, {"status": "absent"})
        assert updated is not None
        await api.client.wait_idle()

        after = {r.id: r for r in attendance.data}[7]
        assert after.status == "absent"
        assert after.model_dump(exclude={"status"}) == before.model_dump(exclude={"status"})


class TestDeleteThenList:
    """A deleted record is gone from the next fetch."""

    async def test_deleted_teacher_is_gone(
        self, api: CampusApi, storage: MemStorage
    ) -> None:
        table = storage.table("/api/teachers")
        for n in range(1, 5):
            table.insert(
                {
                    "first_name": f"Teacher{n}",
                    "last_name": "Smith",
                    "email": f"t{n}@example.com",
                    "phone": "5551234567",
                }
            )

        teachers = api.teachers.subscribe()
        await teachers.wait()
        assert 3 in {t.id for t in teachers.data}

        assert await api.teachers.delete(3) is True
        await api.client.wait_idle()
        assert {t.id for t in teachers.data} == {1, 2, 4}
