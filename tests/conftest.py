"""Pytest fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pandas as pd
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from src.provider_portal.db.session import get_db, Base
from src.provider_portal.main import app
from src.provider_portal.services.email_service import get_email_service
from src.provider_portal.services.upload_storage_service import (
    LocalUploadStorage,
    get_upload_storage,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Test database URL (in-memory SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_SECRET = "test-secret-key-with-at-least-32-characters"

XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def make_reviews_workbook(rows: list[dict], columns: list[str] | None = None) -> bytes:
    """Build an .xlsx file in memory from a list of row dicts."""
    frame = pd.DataFrame(rows, columns=columns)
    buffer = BytesIO()
    frame.to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


@pytest.fixture
def make_workbook():
    """Factory building .xlsx bytes from row dicts."""
    return make_reviews_workbook


@pytest.fixture
def reviews_xlsx() -> bytes:
    """Twelve well-formed reviews."""
    return make_reviews_workbook(
        [
            {"Client Name": f"Client {i}", "Review": f"Great visit number {i}", "Satisfaction Rating": (i % 5) + 1}
            for i in range(1, 13)
        ]
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def local_storage(tmp_path: Path) -> LocalUploadStorage:
    """Signed-URL storage rooted in a temporary directory."""
    return LocalUploadStorage(
        base_path=tmp_path / "blobs",
        public_base_url="http://test",
        base_url="/api/v1/blobs",
        secret_key=TEST_SECRET,
        prefix="providers",
        url_expiry=300,
        max_file_size=1024 * 1024,
    )


@pytest.fixture
def mock_email_service() -> AsyncMock:
    """Email service double; records calls instead of talking to SMTP."""
    service = AsyncMock()
    service.send_provider_signup = AsyncMock(return_value=None)
    return service


@pytest_asyncio.fixture(scope="function")
async def client(
    test_engine: AsyncEngine,
    local_storage: LocalUploadStorage,
    mock_email_service: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client with overridden dependencies."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async_session_factory = async_sessionmaker(
            test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        async with async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_upload_storage] = lambda: local_storage
    app.dependency_overrides[get_email_service] = lambda: mock_email_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sample_provider_data() -> dict:
    """Provider details as collected by the practice-information step."""
    return {
        "provider_name": "Dr. Jane Doe",
        "email": "Jane.Doe@Clinic.com",
        "practice_name": "Doe Family Practice",
        "phone": "+1-555-0100",
        "address": "1 Main St, Springfield",
        "specialties": ["Family Medicine"],
        "board_certifications": ["ABFM"],
        "npi_number": "1234567890",
        "hospital_affiliations": ["Springfield General"],
        "education_and_training": [{"institution": "State University", "degree": "MD"}],
    }
