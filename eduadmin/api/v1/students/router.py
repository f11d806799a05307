from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.auth.rbac import require_role
from eduadmin.core.enums import UserRole
from eduadmin.core.exceptions import ServiceError
from eduadmin.core.schemas import MessageResponse
from eduadmin.db.session import get_db

from .schemas import (
    EligibleStudentsResponse,
    PaymentStatusChartResponse,
    StudentCreate,
    StudentEnvelope,
    StudentListEnvelope,
    StudentUpdate,
    SubscriptionStatsResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.post(
    "/createStudent",
    response_model=StudentEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentEnvelope:
    try:
        student = await service.create_student(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentEnvelope(message="Student created successfully", student=student)


@router.get("", response_model=StudentListEnvelope)
async def list_students(
    db: AsyncSession = Depends(get_db),
) -> StudentListEnvelope:
    students = await service.list_students(db)
    return StudentListEnvelope(message="Students fetched successfully", students=students)


@router.get(
    "/subscription/stats",
    response_model=SubscriptionStatsResponse,
    dependencies=[Depends(require_role(UserRole.ADMIN.value))],
)
async def subscription_stats(
    db: AsyncSession = Depends(get_db),
) -> SubscriptionStatsResponse:
    data = await service.get_subscription_stats(db)
    return SubscriptionStatsResponse(
        message="Student subscription statistics fetched successfully",
        data=data,
    )


@router.get(
    "/payment/statusChart",
    response_model=PaymentStatusChartResponse,
    dependencies=[Depends(require_role(UserRole.ADMIN.value))],
)
async def payment_status_chart(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    day: Optional[int] = Query(None, ge=1, le=31),
    db: AsyncSession = Depends(get_db),
) -> PaymentStatusChartResponse:
    """Paid vs unpaid students bucketed by registration date."""
    try:
        return await service.get_payment_status_chart(db, year=year, month=month, day=day)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/getstudent/getbyAuthId", response_model=StudentEnvelope)
async def get_student_by_auth_id(
    auth_id: Optional[str] = Header(None, convert_underscores=False),
    db: AsyncSession = Depends(get_db),
) -> StudentEnvelope:
    """Look a student up by the external auth identifier sent in the `auth_id` header."""
    try:
        student = await service.get_student_by_auth_id(db, auth_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentEnvelope(message="Student retrieved successfully by auth_id", student=student)


@router.get("/class/{class_id}", response_model=StudentListEnvelope)
async def get_students_by_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentListEnvelope:
    try:
        students = await service.get_students_by_class(db, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentListEnvelope(message="Students retrieved successfully", students=students)


@router.get("/subject/{subject_id}/class/{class_id}", response_model=StudentListEnvelope)
async def get_students_by_subject_and_class(
    subject_id: UUID,
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentListEnvelope:
    try:
        students = await service.get_students_by_subject_and_class(db, subject_id, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentListEnvelope(message="Students retrieved successfully", students=students)


@router.get("/batch/subject/{subject_id}", response_model=EligibleStudentsResponse)
async def get_students_for_batch_by_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> EligibleStudentsResponse:
    """Paid, subscribed students that can still be placed in a batch for this subject."""
    try:
        students = await service.get_students_eligible_for_batch(db, subject_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return EligibleStudentsResponse(message="Students retrieved successfully", data=students)


@router.put("/update/{student_id}", response_model=StudentEnvelope)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
) -> StudentEnvelope:
    try:
        student = await service.update_student(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentEnvelope(message="Student updated successfully", student=student)


@router.get("/{student_id}", response_model=StudentEnvelope)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentEnvelope:
    try:
        student = await service.get_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentEnvelope(message="Student fetched successfully", student=student)


@router.delete("/{student_id}", response_model=MessageResponse)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        await service.delete_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Student deleted successfully")
