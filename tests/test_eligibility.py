"""Students still assignable to a batch for a subject (GET /students/batch/subject/{id})."""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.api.v1.students import service as student_service
from eduadmin.core.exceptions import NotFoundError


def _eligible_url(subject_id) -> str:
    return f"/api/v1/students/batch/subject/{subject_id}"


@pytest.mark.asyncio
async def test_batched_student_drops_out_for_that_subject_only(client: AsyncClient, factory) -> None:
    physics = await factory.subject("Physics")
    chemistry = await factory.subject("Chemistry")
    pkg = await factory.package([physics, chemistry])
    school_class = await factory.school_class()
    teacher = await factory.teacher()
    user = await factory.user(name="Student A")

    response = await client.post(
        "/api/v1/students/createStudent",
        json={"auth_id": "a1", "user_id": str(user.id), "student_id": str(uuid.uuid4()), "role": "student"},
    )
    student_pk = response.json()["student"]["id"]
    response = await client.put(
        f"/api/v1/students/update/{student_pk}",
        json={"subscribed_package_id": str(pkg.id), "is_paid": True},
    )
    assert response.status_code == 200

    response = await client.get(_eligible_url(physics.id))
    assert [s["auth_id"] for s in response.json()["data"]] == ["a1"]

    response = await client.post(
        "/api/v1/batches",
        json={
            "batch_name": "B",
            "subject_id": str(physics.id),
            "class_id": str(school_class.id),
            "teacher_id": str(teacher.id),
            "students": [student_pk],
            "date": "2024-06-01T09:00:00",
            "type_of_batch": "regular",
        },
    )
    assert response.status_code == 201

    response = await client.get(_eligible_url(physics.id))
    assert response.status_code == 404
    assert response.json()["error"] == "No eligible students found for this subject"

    response = await client.get(_eligible_url(chemistry.id))
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Students retrieved successfully"
    assert [s["auth_id"] for s in data["data"]] == ["a1"]
    assert data["data"][0]["user"]["name"] == "Student A"
    assert data["data"][0]["subscribed_package"]["package_name"] == "Science Pack"


@pytest.mark.asyncio
async def test_unpaid_and_unsubscribed_students_are_excluded(db_session: AsyncSession, factory) -> None:
    physics = await factory.subject("Physics")
    maths = await factory.subject("Maths")
    science = await factory.package([physics], package_name="Science")
    maths_only = await factory.package([maths], package_name="Maths")
    await factory.student(auth_id="paid", package=science, is_paid=True)
    await factory.student(auth_id="unpaid", package=science, is_paid=False)
    await factory.student(auth_id="other-pack", package=maths_only, is_paid=True)
    await factory.student(auth_id="no-pack", package=None, is_paid=True)

    students = await student_service.get_students_eligible_for_batch(db_session, physics.id)
    assert [s.auth_id for s in students] == ["paid"]


@pytest.mark.asyncio
async def test_stale_false_marker_does_not_block(db_session: AsyncSession, factory) -> None:
    physics = await factory.subject("Physics")
    maths = await factory.subject("Maths")
    pkg = await factory.package([physics, maths])
    stale = await factory.student(auth_id="stale", package=pkg)
    placed = await factory.student(auth_id="placed", package=pkg)
    elsewhere = await factory.student(auth_id="elsewhere", package=pkg)
    await factory.marker(stale.id, physics.id, status=False)
    await factory.marker(placed.id, physics.id, status=True)
    await factory.marker(elsewhere.id, maths.id, status=True)

    students = await student_service.get_students_eligible_for_batch(db_session, physics.id)
    assert sorted(s.auth_id for s in students) == ["elsewhere", "stale"]


@pytest.mark.asyncio
async def test_unknown_subject_and_subject_without_packages(client: AsyncClient, factory) -> None:
    response = await client.get(_eligible_url(uuid.uuid4()))
    assert response.status_code == 404
    assert response.json()["error"] == "Subject not found"

    orphan = await factory.subject("Latin")
    response = await client.get(_eligible_url(orphan.id))
    assert response.status_code == 404
    assert response.json()["error"] == "No packages found for this subject"

    response = await client.get(_eligible_url("not-a-uuid"))
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_no_eligible_students_raises_not_found(db_session: AsyncSession, factory) -> None:
    physics = await factory.subject("Physics")
    pkg = await factory.package([physics])
    await factory.student(package=pkg, is_paid=False)

    with pytest.raises(NotFoundError):
        await student_service.get_students_eligible_for_batch(db_session, physics.id)
