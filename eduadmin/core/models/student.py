"""Student directory records and their per-subject batch placement markers."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from eduadmin.db.session import Base


student_subjects = Table(
    "student_subjects",
    Base.metadata,
    Column("student_id", UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("subject_id", UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
)


class Student(Base):
    __tablename__ = "students"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # External identifiers; unique so concurrent registrations cannot both insert
    student_id = Column(UUID(as_uuid=True), nullable=False, unique=True)
    auth_id = Column(String(255), nullable=False, unique=True)
    # student | admin
    role = Column(String(20), nullable=False, default="student")

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    board_id = Column(UUID(as_uuid=True), ForeignKey("boards.id"), nullable=True)
    subscribed_package_id = Column(UUID(as_uuid=True), ForeignKey("packages.id"), nullable=True)

    # Snapshot of classes row, copied on update. class_synced_at tells how stale it may be.
    class_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    class_name = Column(String(100), nullable=True)
    class_level = Column(String(50), nullable=True)
    class_synced_at = Column(DateTime(timezone=True), nullable=True)

    is_paid = Column(Boolean, nullable=False, default=False)
    payment_id = Column(String(255), nullable=True)
    subscription_id = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    last_online = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    user = relationship("User")
    board = relationship("Board")
    subscribed_package = relationship("Package")
    subjects = relationship("Subject", secondary=student_subjects, passive_deletes=True)
    batch_markers = relationship(
        "StudentBatchMarker",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StudentBatchMarker.created_at",
    )


class StudentBatchMarker(Base):
    """One {subject_id, status} entry of a student's batch_creation set.

    Unique on the full (student, subject, status) triple: re-adding the same pair is a no-op,
    while {S, false} and {S, true} can coexist for the same subject.
    """

    __tablename__ = "student_batch_markers"
    __table_args__ = (
        UniqueConstraint("student_id", "subject_id", "status", name="uq_student_batch_marker"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False)
    status = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="batch_markers")
