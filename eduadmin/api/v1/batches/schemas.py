from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from eduadmin.core.schemas import ClassBrief, SubjectBrief, UserBrief


class BatchCreate(BaseModel):
    """students: ordered, non-empty list of student ids; every id must exist."""

    batch_name: str = Field(..., min_length=1)
    batch_image: Optional[str] = None
    subject_id: UUID
    class_id: UUID
    teacher_id: UUID
    students: List[UUID] = Field(..., min_length=1)
    date: datetime
    type_of_batch: str = Field(..., min_length=1)
    start_date: Optional[datetime] = Field(None, description="Defaults to `date` when omitted")


class TeacherBrief(BaseModel):
    id: UUID
    user: Optional[UserBrief] = None


class BatchStudentBrief(BaseModel):
    id: UUID
    student_id: UUID
    auth_id: str
    user: Optional[UserBrief] = None


class BatchResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    batch_name: str
    batch_image: Optional[str] = None
    subject_id: UUID
    class_id: UUID
    teacher_id: UUID
    subject: Optional[SubjectBrief] = None
    school_class: Optional[ClassBrief] = Field(None, alias="class")
    teacher: Optional[TeacherBrief] = None
    students: List[BatchStudentBrief] = Field(default_factory=list)
    date: datetime
    start_date: Optional[datetime] = None
    type_of_batch: str
    created_at: datetime
    # Roster size, computed at read time
    studentcount: int


class BatchEnvelope(BaseModel):
    message: str
    batch: BatchResponse


class BatchListEnvelope(BaseModel):
    message: str
    batches: List[BatchResponse]


class BatchPageResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    batches: List[BatchResponse]
    total: int
    total_pages: int = Field(..., alias="totalPages")
    current_page: int = Field(..., alias="currentPage")


class BatchAllResponse(BaseModel):
    success: bool
    message: str
    data: List[BatchResponse]
