import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, delete, exists, extract, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eduadmin.auth.models import User
from eduadmin.core.enums import StudentRole
from eduadmin.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from eduadmin.core.models import (
    Board,
    Package,
    SchoolClass,
    Student,
    StudentBatchMarker,
    Subject,
    batch_students,
    package_subjects,
    student_subjects,
)
from eduadmin.core.schemas import BoardBrief, ClassSnapshot, PackageBrief, SubjectBrief, UserBrief

from .schemas import (
    BatchMarker,
    PaymentStatusChartResponse,
    PaymentStatusPoint,
    StudentCreate,
    StudentResponse,
    StudentUpdate,
    SubscriptionStats,
)

logger = logging.getLogger(__name__)

DUPLICATE_STUDENT_MESSAGE = "Student with this auth_id or student_id already exists."

# Plain fields copied from StudentUpdate when present in the request body
_UPDATABLE_FIELDS = (
    "auth_id",
    "student_id",
    "user_id",
    "subscription_id",
    "payment_id",
    "last_online",
    "phone_number",
)


def _to_uuid(value) -> Optional[UUID]:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _student_options():
    return (
        selectinload(Student.user),
        selectinload(Student.board),
        selectinload(Student.subscribed_package),
        selectinload(Student.subjects),
        selectinload(Student.batch_markers),
    )


def to_student_response(s: Student) -> StudentResponse:
    """Build the resolved view. Relationships must already be loaded (see _student_options)."""
    snapshot = None
    if s.class_id is not None:
        snapshot = ClassSnapshot(
            id=s.class_id,
            name=s.class_name,
            class_level=s.class_level,
            synced_at=s.class_synced_at,
        )
    return StudentResponse(
        id=s.id,
        student_id=s.student_id,
        auth_id=s.auth_id,
        role=s.role,
        user_id=s.user_id,
        user=UserBrief.model_validate(s.user) if s.user else None,
        school_class=snapshot,
        subjects=[SubjectBrief.model_validate(sub) for sub in s.subjects],
        board=BoardBrief.model_validate(s.board) if s.board else None,
        subscribed_package=PackageBrief.model_validate(s.subscribed_package) if s.subscribed_package else None,
        is_paid=s.is_paid,
        payment_id=s.payment_id,
        subscription_id=s.subscription_id,
        phone_number=s.phone_number,
        last_online=s.last_online,
        created_at=s.created_at,
        batch_creation=[BatchMarker(subject_id=m.subject_id, status=m.status) for m in s.batch_markers],
    )


async def _load_student(db: AsyncSession, student_pk: UUID) -> Optional[Student]:
    result = await db.execute(
        select(Student)
        .where(Student.id == student_pk)
        .options(*_student_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _identifier_taken(
    db: AsyncSession,
    auth_id: Optional[str],
    student_id: Optional[UUID],
    exclude_pk: Optional[UUID] = None,
) -> bool:
    """Single combined existence query on auth_id OR student_id."""
    clauses = []
    if auth_id is not None:
        clauses.append(Student.auth_id == auth_id)
    if student_id is not None:
        clauses.append(Student.student_id == student_id)
    if not clauses:
        return False
    stmt = select(Student.id).where(or_(*clauses))
    if exclude_pk is not None:
        stmt = stmt.where(Student.id != exclude_pk)
    result = await db.execute(stmt.limit(1))
    return result.first() is not None


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    if payload.role not in {r.value for r in StudentRole}:
        raise ValidationError("Invalid role. Must be student or admin.")
    student_uuid = _to_uuid(payload.student_id)
    if student_uuid is None:
        raise ValidationError("Invalid student_id format.")
    user_uuid = _to_uuid(payload.user_id)
    if user_uuid is None:
        raise ValidationError("Invalid user_id format.")

    if await _identifier_taken(db, payload.auth_id, student_uuid):
        raise ConflictError(DUPLICATE_STUDENT_MESSAGE)
    if await db.get(User, user_uuid) is None:
        raise ValidationError("user_id does not reference an existing user.")

    obj = Student(
        auth_id=payload.auth_id,
        student_id=student_uuid,
        user_id=user_uuid,
        role=payload.role,
        is_paid=False,
    )
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race against a concurrent registration with the same identifiers
        await db.rollback()
        raise ConflictError(DUPLICATE_STUDENT_MESSAGE)
    logger.info("Created student %s (auth_id=%s)", obj.id, payload.auth_id)
    return await get_student(db, obj.id)


async def get_student(db: AsyncSession, student_pk: UUID) -> StudentResponse:
    student = await _load_student(db, student_pk)
    if not student:
        raise NotFoundError("Student not found.")
    return to_student_response(student)


async def get_student_by_auth_id(db: AsyncSession, auth_id: Optional[str]) -> StudentResponse:
    if not auth_id:
        raise BadRequestError("auth_id header is required")
    result = await db.execute(
        select(Student).where(Student.auth_id == auth_id).options(*_student_options())
    )
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError("Student not found")
    return to_student_response(student)


async def list_students(db: AsyncSession) -> List[StudentResponse]:
    result = await db.execute(
        select(Student).options(*_student_options()).order_by(Student.created_at, Student.id)
    )
    return [to_student_response(s) for s in result.scalars().all()]


async def update_student(db: AsyncSession, student_pk: UUID, payload: StudentUpdate) -> StudentResponse:
    student = await _load_student(db, student_pk)
    if not student:
        raise NotFoundError("Student not found")

    data = payload.model_dump(exclude_unset=True)
    try:
        await _apply_update(db, student, data)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_STUDENT_MESSAGE)
    return await get_student(db, student_pk)


async def _apply_update(db: AsyncSession, student: Student, data: dict) -> None:
    if data.get("class_id") is not None:
        class_info = await db.get(SchoolClass, data["class_id"])
        if not class_info:
            raise NotFoundError("Class not found")
        student.class_id = class_info.id
        student.class_name = class_info.class_name
        student.class_level = class_info.class_level
        student.class_synced_at = datetime.utcnow()

    if await _identifier_taken(db, data.get("auth_id"), data.get("student_id"), exclude_pk=student.id):
        raise ConflictError(DUPLICATE_STUDENT_MESSAGE)
    if data.get("user_id") is not None and await db.get(User, data["user_id"]) is None:
        raise NotFoundError("User not found")
    if data.get("subscribed_package_id") is not None:
        if await db.get(Package, data["subscribed_package_id"]) is None:
            raise NotFoundError("Package not found")
        student.subscribed_package_id = data["subscribed_package_id"]
    if data.get("board_id") is not None:
        if await db.get(Board, data["board_id"]) is None:
            raise NotFoundError("Board not found")
        student.board_id = data["board_id"]
    if data.get("subject_ids") is not None:
        wanted = list(dict.fromkeys(data["subject_ids"]))
        subjects = []
        if wanted:
            result = await db.execute(select(Subject).where(Subject.id.in_(wanted)))
            subjects = list(result.scalars().all())
        if len(subjects) != len(wanted):
            raise ValidationError("One or more subject IDs are invalid")
        student.subjects = subjects

    for field in _UPDATABLE_FIELDS:
        if data.get(field) is not None:
            setattr(student, field, data[field])
    # Explicit false must win over the stored value; only absence/null keeps it
    if data.get("is_paid") is not None:
        student.is_paid = data["is_paid"]


async def delete_student(db: AsyncSession, student_pk: UUID) -> None:
    """Delete the student with its markers, subject links and batch roster entries."""
    student = await db.get(Student, student_pk)
    if not student:
        raise NotFoundError("Student not found")
    await db.execute(delete(batch_students).where(batch_students.c.student_id == student_pk))
    await db.execute(delete(student_subjects).where(student_subjects.c.student_id == student_pk))
    await db.execute(delete(StudentBatchMarker).where(StudentBatchMarker.student_id == student_pk))
    await db.execute(delete(Student).where(Student.id == student_pk))
    await db.commit()
    logger.info("Deleted student %s", student_pk)


async def get_students_by_class(db: AsyncSession, class_id: UUID) -> List[StudentResponse]:
    result = await db.execute(
        select(Student)
        .where(Student.class_id == class_id)
        .options(*_student_options())
        .order_by(Student.created_at, Student.id)
    )
    students = result.scalars().all()
    if not students:
        raise NotFoundError("No students found for this class")
    return [to_student_response(s) for s in students]


async def get_students_by_subject_and_class(
    db: AsyncSession,
    subject_id: UUID,
    class_id: UUID,
) -> List[StudentResponse]:
    result = await db.execute(
        select(Student)
        .where(
            Student.subjects.any(Subject.id == subject_id),
            Student.class_id == class_id,
        )
        .options(*_student_options())
        .order_by(Student.created_at, Student.id)
    )
    students = result.scalars().all()
    if not students:
        raise NotFoundError("No students found for this subject and class")
    return [to_student_response(s) for s in students]


async def get_students_eligible_for_batch(db: AsyncSession, subject_id: UUID) -> List[StudentResponse]:
    """
    Paid students subscribed to a package containing the subject and not yet placed
    in a batch for it. Only a status=true marker for this subject blocks eligibility.
    """
    if await db.get(Subject, subject_id) is None:
        raise NotFoundError("Subject not found")

    result = await db.execute(
        select(package_subjects.c.package_id).where(package_subjects.c.subject_id == subject_id)
    )
    package_ids = list(result.scalars().all())
    if not package_ids:
        raise NotFoundError("No packages found for this subject")

    placed = exists().where(
        StudentBatchMarker.student_id == Student.id,
        StudentBatchMarker.subject_id == subject_id,
        StudentBatchMarker.status.is_(True),
    )
    result = await db.execute(
        select(Student)
        .where(
            Student.subscribed_package_id.in_(package_ids),
            Student.is_paid.is_(True),
            ~placed,
        )
        .options(*_student_options())
        .order_by(Student.created_at, Student.id)
    )
    students = result.scalars().all()
    if not students:
        raise NotFoundError("No eligible students found for this subject")
    return [to_student_response(s) for s in students]


async def get_subscription_stats(db: AsyncSession) -> SubscriptionStats:
    subscribed = await db.scalar(
        select(func.count()).select_from(Student).where(Student.is_paid.is_(True))
    )
    not_subscribed = await db.scalar(
        select(func.count()).select_from(Student).where(Student.is_paid.is_(False))
    )
    return SubscriptionStats(subscribed=subscribed or 0, not_subscribed=not_subscribed or 0)


def _chart_window(
    year: Optional[int],
    month: Optional[int],
    day: Optional[int],
) -> Tuple[Optional[datetime], Optional[datetime], Tuple[str, ...]]:
    """Return (start, end, bucket parts) for the payment chart. start/end are None when unbounded."""
    try:
        if year and month and day:
            start = datetime(year, month, day)
            return start, start + timedelta(days=1), ("year", "month", "day")
        if year and month:
            start = datetime(year, month, 1)
            end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
            return start, end, ("year", "month", "day")
        if year:
            return datetime(year, 1, 1), datetime(year + 1, 1, 1), ("year", "month")
    except ValueError:
        raise ValidationError("Invalid year, month or day")
    return None, None, ("month",)


def _chart_label(parts: Tuple) -> str:
    # EXTRACT yields numeric on PostgreSQL, integer on SQLite
    values = [int(p) for p in parts]
    if len(values) == 1:
        return f"{values[0]:02d}"
    return "-".join([f"{values[0]:04d}"] + [f"{v:02d}" for v in values[1:]])


async def get_payment_status_chart(
    db: AsyncSession,
    year: Optional[int] = None,
    month: Optional[int] = None,
    day: Optional[int] = None,
) -> PaymentStatusChartResponse:
    """Paid / unpaid student counts grouped by creation date (day, month or month-of-year buckets)."""
    start, end, bucket_parts = _chart_window(year, month, day)
    keys = [extract(part, Student.created_at) for part in bucket_parts]
    paid = func.sum(case((Student.is_paid.is_(True), 1), else_=0))
    unpaid = func.sum(case((Student.is_paid.is_(True), 0), else_=1))

    stmt = select(*keys, paid, unpaid).group_by(*keys).order_by(*keys)
    if start is not None:
        stmt = stmt.where(Student.created_at >= start, Student.created_at < end)
    elif month:
        # Month without year: that calendar month in every year
        stmt = stmt.where(extract("month", Student.created_at) == month)
    result = await db.execute(stmt)

    x_data, y_data = [], []
    for row in result.all():
        x_data.append(_chart_label(tuple(row[: len(keys)])))
        y_data.append(PaymentStatusPoint(paid=int(row[-2] or 0), unpaid=int(row[-1] or 0)))
    return PaymentStatusChartResponse(
        message="Chart data fetched successfully",
        x_data=x_data,
        y_data=y_data,
    )
