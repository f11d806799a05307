"""Batches: one teacher, one subject, one class and a fixed roster of students."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from eduadmin.db.session import Base


# position keeps the roster in the order the caller submitted it
batch_students = Table(
    "batch_students",
    Base.metadata,
    Column("batch_id", UUID(as_uuid=True), ForeignKey("batches.id", ondelete="CASCADE"), primary_key=True),
    Column("student_id", UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True),
    Column("position", Integer, nullable=False, default=0),
)


class Batch(Base):
    __tablename__ = "batches"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    batch_name = Column(String(255), nullable=False)
    # URL or storage key, stored as given
    batch_image = Column(String(1024), nullable=True)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id"), nullable=False, index=True)
    class_id = Column(UUID(as_uuid=True), ForeignKey("classes.id"), nullable=False)
    teacher_id = Column(UUID(as_uuid=True), ForeignKey("teachers.id"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True, index=True)
    type_of_batch = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    subject = relationship("Subject")
    school_class = relationship("SchoolClass", foreign_keys=[class_id])
    teacher = relationship("Teacher")
    students = relationship(
        "Student",
        secondary=batch_students,
        order_by=batch_students.c.position,
        viewonly=True,
    )
