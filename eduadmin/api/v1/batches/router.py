from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eduadmin.auth.dependencies import get_current_user
from eduadmin.auth.schemas import CurrentUser
from eduadmin.core.config import settings
from eduadmin.core.enums import BatchSort
from eduadmin.core.exceptions import ServiceError
from eduadmin.db.session import get_db

from .schemas import (
    BatchAllResponse,
    BatchCreate,
    BatchEnvelope,
    BatchListEnvelope,
    BatchPageResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/batches", tags=["batches"])


@router.post(
    "",
    response_model=BatchEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_batch(
    payload: BatchCreate,
    db: AsyncSession = Depends(get_db),
) -> BatchEnvelope:
    """Create a batch and mark every rostered student as placed for its subject (single transaction)."""
    try:
        batch = await service.create_batch(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return BatchEnvelope(message="Batch created successfully", batch=batch)


@router.get("", response_model=BatchPageResponse)
async def list_batches(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    teacher_id: Optional[UUID] = Query(None),
    students: Optional[UUID] = Query(None, description="Only batches whose roster contains this student"),
    sort_by: Optional[BatchSort] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
) -> BatchPageResponse:
    limit = limit or settings.batch_page_limit_default
    items, total, total_pages = await service.list_batches(
        db,
        start_date=start_date,
        end_date=end_date,
        teacher_id=teacher_id,
        student_id=students,
        sort_by=sort_by,
        page=page,
        limit=limit,
    )
    return BatchPageResponse(
        message="Batches fetched successfully",
        batches=items,
        total=total,
        total_pages=total_pages,
        current_page=page,
    )


@router.get("/all", response_model=BatchAllResponse)
async def list_all_batches(
    db: AsyncSession = Depends(get_db),
) -> BatchAllResponse:
    """Every batch, oldest start_date first, without filters or pagination."""
    batches = await service.list_all_batches(db)
    return BatchAllResponse(success=True, message="Batches fetched successfully", data=batches)


@router.get("/teacher/{teacher_id}", response_model=BatchListEnvelope)
async def get_batches_by_teacher(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BatchListEnvelope:
    try:
        batches = await service.get_batches_by_teacher(db, teacher_id, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return BatchListEnvelope(message="Batches fetched successfully", batches=batches)


@router.get("/student/{student_id}", response_model=BatchListEnvelope)
async def get_batches_by_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> BatchListEnvelope:
    batches = await service.get_batches_by_student(db, student_id)
    return BatchListEnvelope(message="Batches fetched successfully", batches=batches)


@router.get("/{batch_id}", response_model=BatchEnvelope)
async def get_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> BatchEnvelope:
    try:
        batch = await service.get_batch(db, batch_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return BatchEnvelope(message="Batch fetched successfully", batch=batch)
