"""
Ebook service layer.

Handles the upload flow (store PDF, extract cover, persist record) and
the catalog queries used by the browse and search pages.
"""
import asyncio
import logging
import math
from pathlib import Path
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, update
from sqlalchemy.orm import selectinload

from ..models.library import Program, Ebook
from ..models.user import User
from .cover_extractor import extract_cover
from .errors import NotFoundError, ValidationError
from .storage_service import StorageService

logger = logging.getLogger(__name__)

YEAR_LEVELS = (1, 2, 3, 4)
DEFAULT_PER_PAGE = 12
MAX_PER_PAGE = 100

SORT_ALIASES = {
    "recent": "newest",
    "popular": "most-downloaded",
    "title": "title-asc",
}

SORT_ORDERS = {
    "newest": (Ebook.created_at.desc(), Ebook.id.desc()),
    "oldest": (Ebook.created_at.asc(), Ebook.id.asc()),
    "most-downloaded": (Ebook.downloads.desc(), Ebook.id.desc()),
    "least-downloaded": (Ebook.downloads.asc(), Ebook.id.asc()),
    "title-asc": (func.lower(Ebook.title).asc(), Ebook.id.asc()),
    "title-desc": (func.lower(Ebook.title).desc(), Ebook.id.desc()),
}


def _ebook_query():
    return select(Ebook).options(selectinload(Ebook.program), selectinload(Ebook.uploader))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# =============================================================================
# Upload
# =============================================================================

async def upload_ebook(
    db: AsyncSession,
    storage: StorageService,
    uploader: User,
    pdf_bytes: bytes,
    original_filename: str,
    title: Optional[str],
    program_id: Optional[int],
    year_level: Optional[int],
) -> Ebook:
    """
    Store an uploaded PDF, create its cover and persist the ebook.

    A missing cover is not an error: the ebook is saved with a null
    cover_image_path. If anything else fails, the stored PDF and the
    cover are deleted before the exception propagates.

    Raises:
        ValidationError: Missing fields, bad year level or unknown program
    """
    pdf_path = await storage.save_pdf(pdf_bytes, original_filename)
    cover_path: Optional[Path] = None

    try:
        if not title or not title.strip() or program_id is None or year_level is None:
            raise ValidationError("Please fill in all required fields")
        if year_level not in YEAR_LEVELS:
            raise ValidationError(f"Year level must be one of {', '.join(map(str, YEAR_LEVELS))}")

        cover_path = await asyncio.to_thread(
            extract_cover, pdf_path, storage.covers_dir, original_filename
        )
        if cover_path is None:
            logger.warning(f"No cover for {original_filename}, saving ebook without one")

        if await db.get(Program, program_id) is None:
            raise ValidationError("Program not found")

        ebook = Ebook(
            title=title.strip(),
            program_id=program_id,
            year_level=year_level,
            file_name=original_filename,
            file_path=str(pdf_path),
            file_size=len(pdf_bytes),
            cover_image_path=str(cover_path) if cover_path else None,
            uploaded_by=uploader.id,
        )
        db.add(ebook)
        await db.commit()
    except Exception:
        await db.rollback()
        storage.remove(pdf_path)
        storage.remove(cover_path)
        raise

    logger.info(f"Ebook {ebook.id} '{ebook.title}' uploaded by user {uploader.id}")
    return await get_ebook(db, ebook.id)


# =============================================================================
# Catalog queries
# =============================================================================

async def list_ebooks(
    db: AsyncSession,
    q: Optional[str] = None,
    program_id: Optional[int] = None,
    year_level: Optional[int] = None,
    sort: str = "newest",
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> Tuple[List[Ebook], int]:
    """
    Filter, sort and paginate the catalog.

    `q` matches title, uploader name, program name and program acronym,
    case-insensitively.

    Returns:
        (ebooks on the requested page, total matching ebooks)
    """
    sort = SORT_ALIASES.get(sort, sort)
    if sort not in SORT_ORDERS:
        raise ValidationError(f"Unknown sort option: {sort}")

    page = max(page, 1)
    per_page = min(max(per_page, 1), MAX_PER_PAGE)

    filtered = (
        select(Ebook.id)
        .outerjoin(Program, Ebook.program_id == Program.id)
        .join(User, Ebook.uploaded_by == User.id)
    )
    if q and q.strip():
        pattern = f"%{_escape_like(q.strip())}%"
        filtered = filtered.where(
            or_(
                Ebook.title.ilike(pattern, escape="\\"),
                (User.firstname + " " + User.lastname).ilike(pattern, escape="\\"),
                Program.name.ilike(pattern, escape="\\"),
                Program.acronym.ilike(pattern, escape="\\"),
            )
        )
    if program_id is not None:
        filtered = filtered.where(Ebook.program_id == program_id)
    if year_level is not None:
        filtered = filtered.where(Ebook.year_level == year_level)

    total = await db.scalar(select(func.count()).select_from(filtered.subquery()))

    query = (
        _ebook_query()
        .where(Ebook.id.in_(filtered))
        .order_by(*SORT_ORDERS[sort])
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total or 0


def total_pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page else 0


async def list_user_ebooks(db: AsyncSession, user_id: int) -> List[Ebook]:
    """Ebooks uploaded by a user, newest first."""
    query = _ebook_query().where(Ebook.uploaded_by == user_id).order_by(*SORT_ORDERS["newest"])
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_ebook(db: AsyncSession, ebook_id: int) -> Ebook:
    """
    Get an ebook with its program and uploader loaded.

    Raises:
        NotFoundError: If the ebook doesn't exist
    """
    query = _ebook_query().where(Ebook.id == ebook_id).execution_options(populate_existing=True)
    result = await db.execute(query)
    ebook = result.scalar_one_or_none()
    if ebook is None:
        raise NotFoundError("eBook not found")
    return ebook


async def record_download(db: AsyncSession, ebook_id: int) -> Ebook:
    """
    Count a download and return the ebook to send.

    Raises:
        NotFoundError: If the ebook or its file is missing
    """
    ebook = await get_ebook(db, ebook_id)

    if not Path(ebook.file_path).exists():
        logger.error(f"File for ebook {ebook_id} is missing: {ebook.file_path}")
        raise NotFoundError("File not found")

    await db.execute(
        update(Ebook).where(Ebook.id == ebook_id).values(downloads=Ebook.downloads + 1)
    )
    await db.commit()
    return ebook


async def delete_ebook(db: AsyncSession, storage: StorageService, user: User, ebook_id: int) -> None:
    """
    Delete an ebook uploaded by `user`, with its PDF and cover files.

    Raises:
        NotFoundError: If the ebook doesn't exist or wasn't uploaded by `user`
    """
    result = await db.execute(
        select(Ebook).where(Ebook.id == ebook_id, Ebook.uploaded_by == user.id)
    )
    ebook = result.scalar_one_or_none()
    if ebook is None:
        raise NotFoundError("eBook not found or unauthorized")

    file_path, cover_path = ebook.file_path, ebook.cover_image_path

    await db.delete(ebook)
    await db.commit()

    # Files go only once the row is gone
    storage.remove(file_path)
    storage.remove(cover_path)
    logger.info(f"Ebook {ebook_id} deleted by user {user.id}")


async def library_stats(db: AsyncSession) -> dict:
    """Totals for the dashboard."""
    total_ebooks = await db.scalar(select(func.count(Ebook.id)))
    total_downloads = await db.scalar(select(func.coalesce(func.sum(Ebook.downloads), 0)))
    total_programs = await db.scalar(select(func.count(Program.id)))

    result = await db.execute(
        select(Ebook.year_level, func.count(Ebook.id))
        .group_by(Ebook.year_level)
        .order_by(Ebook.year_level)
    )

    return {
        "total_ebooks": total_ebooks or 0,
        "total_downloads": total_downloads or 0,
        "total_programs": total_programs or 0,
        "by_year_level": [
            {"year_level": year_level, "total_ebooks": count}
            for year_level, count in result.all()
        ],
    }
