"""Compact views of catalog / profile records embedded in student and batch responses."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


class UserBrief(BaseModel):
    id: UUID
    name: str
    email: str
    phone_number: Optional[str] = None

    class Config:
        from_attributes = True


class SubjectBrief(BaseModel):
    id: UUID
    subject_name: str

    class Config:
        from_attributes = True


class BoardBrief(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class PackageBrief(BaseModel):
    id: UUID
    package_name: str

    class Config:
        from_attributes = True


class ClassBrief(BaseModel):
    """Live classes row (batches reference the class directly)."""

    id: UUID
    class_name: str
    class_level: Optional[str] = None
    curriculum: Optional[str] = None

    class Config:
        from_attributes = True


class ClassSnapshot(BaseModel):
    """Class fields copied onto a student; synced_at is when the copy was taken."""

    id: UUID
    name: Optional[str] = None
    class_level: Optional[str] = None
    synced_at: Optional[datetime] = None
