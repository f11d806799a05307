import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import uuid
from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eduadmin.main import app
from eduadmin.auth.models import User
from eduadmin.auth.security import create_access_token
from eduadmin.core.models import (
    Board,
    Package,
    SchoolClass,
    Student,
    StudentBatchMarker,
    Subject,
    Teacher,
)
from eduadmin.db.session import Base, get_db


# One shared in-memory database per test: StaticPool keeps a single connection alive
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create all tables in a fresh in-memory SQLite DB for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class Factory:
    """Inserts catalog and directory rows straight into the test database."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._seq = 0

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def user(self, name: Optional[str] = None, role: str = "student") -> User:
        n = self._next()
        return await self._save(
            User(
                name=name or f"User {n}",
                email=f"user{n}@example.com",
                phone_number=f"+91900000{n:04d}",
                role=role,
            )
        )

    async def board(self, name: str = "CBSE") -> Board:
        return await self._save(Board(name=name))

    async def school_class(self, class_name: str = "10th", class_level: str = "secondary") -> SchoolClass:
        return await self._save(SchoolClass(class_name=class_name, class_level=class_level, curriculum="NCERT"))

    async def subject(self, subject_name: str = "Physics") -> Subject:
        return await self._save(Subject(subject_name=subject_name))

    async def package(self, subjects: List[Subject], package_name: str = "Science Pack") -> Package:
        pkg = Package(package_name=package_name)
        pkg.subjects = list(subjects)
        return await self._save(pkg)

    async def teacher(self, name: str = "Teacher T") -> Teacher:
        user = await self.user(name=name, role="teacher")
        return await self._save(Teacher(user_id=user.id))

    async def student(
        self,
        auth_id: Optional[str] = None,
        package: Optional[Package] = None,
        is_paid: bool = True,
        school_class: Optional[SchoolClass] = None,
        subjects: Optional[List[Subject]] = None,
        created_at: Optional[datetime] = None,
    ) -> Student:
        user = await self.user()
        student = Student(
            auth_id=auth_id or f"auth-{uuid.uuid4().hex[:8]}",
            student_id=uuid.uuid4(),
            user_id=user.id,
            role="student",
            subscribed_package_id=package.id if package else None,
            is_paid=is_paid,
        )
        if school_class is not None:
            student.class_id = school_class.id
            student.class_name = school_class.class_name
            student.class_level = school_class.class_level
            student.class_synced_at = datetime.utcnow()
        if subjects:
            student.subjects = list(subjects)
        if created_at is not None:
            student.created_at = created_at
        return await self._save(student)

    async def marker(self, student_id: uuid.UUID, subject_id: uuid.UUID, status: bool) -> StudentBatchMarker:
        return await self._save(StudentBatchMarker(student_id=student_id, subject_id=subject_id, status=status))


@pytest.fixture()
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_auth_headers():
    return auth_headers
