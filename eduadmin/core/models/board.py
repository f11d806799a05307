"""Curriculum boards (CBSE, ICSE, State board ...). Read-only catalog data for the student directory."""

import uuid

from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID

from eduadmin.db.session import Base


class Board(Base):
    __tablename__ = "boards"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
