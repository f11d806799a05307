from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from eduadmin.core.schemas import BoardBrief, ClassSnapshot, PackageBrief, SubjectBrief, UserBrief


class StudentCreate(BaseModel):
    """role must be 'student' or 'admin'. Ids are checked in the service so callers get a precise message."""

    auth_id: str = Field(..., min_length=1)
    user_id: str
    student_id: str
    role: str


class StudentUpdate(BaseModel):
    """Partial update. Omitted fields keep their value; is_paid=false is applied as sent."""

    auth_id: Optional[str] = Field(None, min_length=1)
    student_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    class_id: Optional[UUID] = None  # Re-copied into the class snapshot
    board_id: Optional[UUID] = None
    subject_ids: Optional[List[UUID]] = None
    subscribed_package_id: Optional[UUID] = Field(
        None,
        validation_alias=AliasChoices("subscribed_package_id", "subscribed_Package"),
    )
    is_paid: Optional[bool] = None
    subscription_id: Optional[str] = None
    payment_id: Optional[str] = None
    last_online: Optional[datetime] = None
    phone_number: Optional[str] = None


class BatchMarker(BaseModel):
    """One entry of the student's batch_creation set."""

    subject_id: UUID
    status: bool


class StudentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    student_id: UUID
    auth_id: str
    role: str
    user_id: UUID
    user: Optional[UserBrief] = None
    school_class: Optional[ClassSnapshot] = Field(None, alias="class")
    subjects: List[SubjectBrief] = Field(default_factory=list)
    board: Optional[BoardBrief] = None
    subscribed_package: Optional[PackageBrief] = None
    is_paid: bool
    payment_id: Optional[str] = None
    subscription_id: Optional[str] = None
    phone_number: Optional[str] = None
    last_online: Optional[datetime] = None
    created_at: datetime
    batch_creation: List[BatchMarker] = Field(default_factory=list)


class StudentEnvelope(BaseModel):
    message: str
    student: StudentResponse


class StudentListEnvelope(BaseModel):
    message: str
    students: List[StudentResponse]


class EligibleStudentsResponse(BaseModel):
    message: str
    data: List[StudentResponse]


class SubscriptionStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscribed: int
    not_subscribed: int = Field(..., alias="notSubscribed")


class SubscriptionStatsResponse(BaseModel):
    message: str
    data: SubscriptionStats


class PaymentStatusPoint(BaseModel):
    paid: int
    unpaid: int


class PaymentStatusChartResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    x_data: List[str] = Field(..., alias="xData")
    y_data: List[PaymentStatusPoint] = Field(..., alias="yData")
