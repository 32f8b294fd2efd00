"""
Pytest configuration and fixtures
"""

import os
from datetime import datetime, timedelta

# Settings are read at import time, so point them at test values first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import fitz  # PyMuPDF
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from occ_library.config import settings
from occ_library.database import Base, get_db
from occ_library.main import app
from occ_library.models import User, Program, Ebook
from occ_library.services.storage_service import StorageService, get_storage


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no database)")
    config.addinivalue_line("markers", "api: API tests against the app and a temporary SQLite database")


def make_pdf(pages: int = 1, width: float = 612, height: float = 792, text: str = "Intro to Computing") -> bytes:
    """Build a small PDF in memory."""
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"{text} - page {i + 1}", fontsize=24)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_bytes():
    """A valid three-page PDF."""
    return make_pdf(pages=3)


@pytest.fixture
def storage(tmp_path):
    """Storage rooted in a temporary directory."""
    service = StorageService(tmp_path / "uploads")
    service.ensure_dirs()
    return service


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory, storage):
    """HTTP client for the app with the test database and storage wired in."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


async def _add_user(db, firstname, lastname, email) -> User:
    user = User(firstname=firstname, lastname=lastname, email=email, password_hash="not-a-real-hash")
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def user(db):
    return await _add_user(db, "Maria", "Santos", "maria@occ.edu.ph")


@pytest_asyncio.fixture
async def other_user(db):
    return await _add_user(db, "Jose", "Reyes", "jose@occ.edu.ph")


def token_for(user: User) -> str:
    return jwt.encode(
        {"sub": str(user.id), "exp": datetime.utcnow() + timedelta(hours=1)},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def other_auth_headers(other_user):
    return {"Authorization": f"Bearer {token_for(other_user)}"}


@pytest_asyncio.fixture
async def program(db, user):
    program = Program(name="Bachelor of Science in Information Technology", acronym="BSIT", created_by=user.id)
    db.add(program)
    await db.commit()
    return program


@pytest_asyncio.fixture
async def make_ebook(db, user, program, storage):
    """Insert an ebook row backed by a real PDF file."""
    counter = {"n": 0}

    async def _make(
        title="Intro to Computing",
        year_level=1,
        downloads=0,
        program_id=None,
        uploaded_by=None,
        created_at=None,
        with_cover=False,
    ) -> Ebook:
        counter["n"] += 1
        pdf_path = storage.ebooks_dir / f"book-{counter['n']}.pdf"
        pdf_path.write_bytes(make_pdf())
        cover_path = None
        if with_cover:
            cover_path = storage.covers_dir / f"cover-book-{counter['n']}.jpg"
            cover_path.write_bytes(b"\xff\xd8\xff\xd9")

        ebook = Ebook(
            title=title,
            program_id=program_id or program.id,
            year_level=year_level,
            file_name=f"{title}.pdf",
            file_path=str(pdf_path),
            file_size=pdf_path.stat().st_size,
            cover_image_path=str(cover_path) if cover_path else None,
            downloads=downloads,
            uploaded_by=uploaded_by or user.id,
            created_at=created_at or datetime(2024, 6, 1) + timedelta(days=counter["n"]),
        )
        db.add(ebook)
        await db.commit()
        return ebook

    return _make
