"""Batch registry: transactional batch creation and the batch read paths."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eduadmin.auth.rbac import authorize
from eduadmin.auth.schemas import CurrentUser
from eduadmin.core.enums import BatchSort, UserRole
from eduadmin.core.exceptions import NotFoundError, ServiceError, ValidationError
from eduadmin.core.models import (
    Batch,
    SchoolClass,
    Student,
    StudentBatchMarker,
    Subject,
    Teacher,
    batch_students,
)
from eduadmin.core.schemas import ClassBrief, SubjectBrief, UserBrief

from .schemas import BatchCreate, BatchResponse, BatchStudentBrief, TeacherBrief

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    BatchSort.NEWEST: Batch.date.desc(),
    BatchSort.OLDEST: Batch.date.asc(),
    BatchSort.START_DATE_ASC: Batch.start_date.asc(),
    BatchSort.START_DATE_DESC: Batch.start_date.desc(),
}


def _batch_options():
    return (
        selectinload(Batch.teacher).selectinload(Teacher.user),
        selectinload(Batch.students).selectinload(Student.user),
        selectinload(Batch.subject),
        selectinload(Batch.school_class),
    )


def _to_response(b: Batch) -> BatchResponse:
    teacher = None
    if b.teacher:
        teacher = TeacherBrief(
            id=b.teacher.id,
            user=UserBrief.model_validate(b.teacher.user) if b.teacher.user else None,
        )
    return BatchResponse(
        id=b.id,
        batch_name=b.batch_name,
        batch_image=b.batch_image,
        subject_id=b.subject_id,
        class_id=b.class_id,
        teacher_id=b.teacher_id,
        subject=SubjectBrief.model_validate(b.subject) if b.subject else None,
        school_class=ClassBrief.model_validate(b.school_class) if b.school_class else None,
        teacher=teacher,
        students=[
            BatchStudentBrief(
                id=s.id,
                student_id=s.student_id,
                auth_id=s.auth_id,
                user=UserBrief.model_validate(s.user) if s.user else None,
            )
            for s in b.students
        ],
        date=b.date,
        start_date=b.start_date,
        type_of_batch=b.type_of_batch,
        created_at=b.created_at,
        studentcount=len(b.students),
    )


def _marker_insert(db: AsyncSession):
    """Marker INSERT that skips rows already present, so concurrent batches for a subject never collide."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(StudentBatchMarker.__table__)
    elif dialect == "sqlite":
        stmt = sqlite.insert(StudentBatchMarker.__table__)
    else:
        raise ServiceError(f"Unsupported database dialect: {dialect}", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return stmt.on_conflict_do_nothing(index_elements=["student_id", "subject_id", "status"])


async def _require(db: AsyncSession, model, pk: UUID, message: str) -> None:
    if await db.get(model, pk) is None:
        raise ValidationError(message)


async def create_batch(db: AsyncSession, payload: BatchCreate) -> BatchResponse:
    """
    Insert the batch and mark every rostered student as placed for the subject, atomically.

    Markers use add-if-absent semantics on the exact (subject_id, status=True) pair;
    a marker committed concurrently by another batch is left as is.
    Any failure rolls back both the batch and the markers.
    """
    roster = list(payload.students)
    try:
        valid_count = await db.scalar(
            select(func.count(Student.id)).where(Student.id.in_(roster))
        )
        if valid_count != len(roster):
            raise ValidationError("One or more student IDs are invalid")
        await _require(db, Subject, payload.subject_id, "Invalid subject_id")
        await _require(db, SchoolClass, payload.class_id, "Invalid class_id")
        await _require(db, Teacher, payload.teacher_id, "Invalid teacher_id")

        batch = Batch(
            batch_name=payload.batch_name,
            batch_image=payload.batch_image,
            subject_id=payload.subject_id,
            class_id=payload.class_id,
            teacher_id=payload.teacher_id,
            date=payload.date,
            start_date=payload.start_date or payload.date,
            type_of_batch=payload.type_of_batch,
        )
        db.add(batch)
        await db.flush()
        batch_id = batch.id

        await db.execute(
            insert(batch_students),
            [
                {"batch_id": batch_id, "student_id": student_id, "position": position}
                for position, student_id in enumerate(roster)
            ],
        )

        await db.execute(
            _marker_insert(db),
            [
                {"student_id": student_id, "subject_id": payload.subject_id, "status": True}
                for student_id in roster
            ],
        )

        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error creating batch %r, transaction rolled back", payload.batch_name)
        raise ServiceError("Failed to create batch", status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.info(
        "Created batch %s for subject %s with %d students",
        batch_id,
        payload.subject_id,
        len(roster),
    )
    return await get_batch(db, batch_id)


async def get_batch(db: AsyncSession, batch_id: UUID) -> BatchResponse:
    result = await db.execute(
        select(Batch)
        .where(Batch.id == batch_id)
        .options(*_batch_options())
        .execution_options(populate_existing=True)
    )
    batch = result.scalar_one_or_none()
    if not batch:
        raise NotFoundError("Batch not found")
    return _to_response(batch)


async def list_batches(
    db: AsyncSession,
    *,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    teacher_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
    sort_by: Optional[BatchSort] = None,
    page: int = 1,
    limit: int = 100,
) -> Tuple[List[BatchResponse], int, int]:
    """Filtered, sorted page of batches. Returns (items, total, total_pages)."""
    stmt = select(Batch)
    # Date bounds are inclusive on start_date
    if start_date is not None:
        stmt = stmt.where(Batch.start_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Batch.start_date <= end_date)
    if teacher_id is not None:
        stmt = stmt.where(Batch.teacher_id == teacher_id)
    if student_id is not None:
        stmt = stmt.where(Batch.students.any(Student.id == student_id))

    total = await db.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    if sort_by is not None:
        stmt = stmt.order_by(_SORT_COLUMNS[sort_by], Batch.id)
    else:
        stmt = stmt.order_by(Batch.created_at, Batch.id)

    offset = (page - 1) * limit
    result = await db.execute(stmt.options(*_batch_options()).offset(offset).limit(limit))
    items = [_to_response(b) for b in result.scalars().all()]
    total_pages = (total + limit - 1) // limit if limit else 0
    return items, total, total_pages


async def list_all_batches(db: AsyncSession) -> List[BatchResponse]:
    result = await db.execute(
        select(Batch).options(*_batch_options()).order_by(Batch.start_date.asc(), Batch.id)
    )
    return [_to_response(b) for b in result.scalars().all()]


async def get_batches_by_teacher(
    db: AsyncSession,
    teacher_id: UUID,
    current_user: CurrentUser,
) -> List[BatchResponse]:
    authorize(current_user, UserRole.TEACHER.value)
    result = await db.execute(
        select(Batch)
        .where(Batch.teacher_id == teacher_id)
        .options(*_batch_options())
        .order_by(Batch.date, Batch.id)
    )
    batches = result.scalars().all()
    if not batches:
        raise NotFoundError("No batches found for this teacher")
    return [_to_response(b) for b in batches]


async def get_batches_by_student(db: AsyncSession, student_id: UUID) -> List[BatchResponse]:
    """Batches whose roster contains the student. Empty list when none."""
    result = await db.execute(
        select(Batch)
        .where(Batch.students.any(Student.id == student_id))
        .options(*_batch_options())
        .order_by(Batch.date, Batch.id)
    )
    return [_to_response(b) for b in result.scalars().all()]
