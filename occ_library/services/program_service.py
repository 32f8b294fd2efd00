"""
Program service layer.

CRUD for academic programs. Only the user who created a program may
change or delete it, and a program that still has ebooks can't be deleted.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..models.library import Program, Ebook, DEFAULT_PROGRAM_COLOR
from ..models.user import User
from .errors import NotFoundError, ConflictError

logger = logging.getLogger(__name__)


def _with_ebook_count():
    """Programs joined with their ebook count."""
    return (
        select(Program, func.count(Ebook.id).label("total_ebooks"))
        .outerjoin(Ebook, Ebook.program_id == Program.id)
        .group_by(Program.id)
        .options(selectinload(Program.creator))
    )


async def list_programs(db: AsyncSession) -> List[Tuple[Program, int]]:
    """All programs ordered by name, each with its ebook count."""
    result = await db.execute(_with_ebook_count().order_by(Program.name.asc()))
    return [(program, total) for program, total in result.all()]


async def list_program_stats(db: AsyncSession) -> List[dict]:
    """Programs with ebook and download totals, busiest first."""
    total_ebooks = func.count(Ebook.id)
    query = (
        select(
            Program.id,
            Program.name,
            Program.acronym,
            Program.color,
            total_ebooks.label("total_ebooks"),
            func.coalesce(func.sum(Ebook.downloads), 0).label("total_downloads"),
        )
        .outerjoin(Ebook, Ebook.program_id == Program.id)
        .group_by(Program.id, Program.name, Program.acronym, Program.color)
        .order_by(total_ebooks.desc(), Program.name.asc())
    )
    result = await db.execute(query)
    return [dict(row._mapping) for row in result.all()]


async def get_program(db: AsyncSession, program_id: int) -> Tuple[Program, int]:
    """
    Get a program with its ebook count.

    Raises:
        NotFoundError: If the program doesn't exist
    """
    query = (
        _with_ebook_count()
        .where(Program.id == program_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    row = result.first()
    if row is None:
        raise NotFoundError("Program not found")
    return row[0], row[1]


async def _get_owned_program(db: AsyncSession, program_id: int, user: User) -> Program:
    result = await db.execute(
        select(Program).where(Program.id == program_id, Program.created_by == user.id)
    )
    program = result.scalar_one_or_none()
    if program is None:
        raise NotFoundError("Program not found or unauthorized")
    return program


async def _ensure_acronym_free(db: AsyncSession, acronym: str, exclude_id: Optional[int] = None) -> None:
    query = select(Program.id).where(Program.acronym == acronym)
    if exclude_id is not None:
        query = query.where(Program.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError("Program acronym already exists")


async def _commit_unique(db: AsyncSession, acronym: str) -> None:
    """Commit, reporting a lost race on the unique acronym as a conflict."""
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Acronym {acronym} taken concurrently: {e.orig}")
        raise ConflictError("Program acronym already exists") from e


async def create_program(
    db: AsyncSession,
    user: User,
    name: str,
    acronym: str,
    color: Optional[str] = None,
) -> Program:
    """
    Create a program owned by `user`.

    Raises:
        ConflictError: If the acronym is taken
    """
    acronym = acronym.strip().upper()
    await _ensure_acronym_free(db, acronym)

    program = Program(
        name=name.strip(),
        acronym=acronym,
        color=color or DEFAULT_PROGRAM_COLOR,
        created_by=user.id,
    )
    db.add(program)
    await _commit_unique(db, acronym)

    logger.info(f"Program {program.id} ({acronym}) created by user {user.id}")
    return program


async def update_program(
    db: AsyncSession,
    user: User,
    program_id: int,
    name: Optional[str] = None,
    acronym: Optional[str] = None,
    color: Optional[str] = None,
) -> Program:
    """
    Update a program owned by `user`. Blank or omitted fields are kept.

    Raises:
        NotFoundError: If the program doesn't exist or isn't owned by `user`
        ConflictError: If the new acronym is taken
    """
    program = await _get_owned_program(db, program_id, user)

    if acronym and acronym.strip():
        acronym = acronym.strip().upper()
        if acronym != program.acronym:
            await _ensure_acronym_free(db, acronym, exclude_id=program.id)
            program.acronym = acronym

    if name and name.strip():
        program.name = name.strip()
    if color:
        program.color = color

    await _commit_unique(db, program.acronym)
    logger.info(f"Program {program.id} updated by user {user.id}")
    return program


async def delete_program(db: AsyncSession, user: User, program_id: int) -> None:
    """
    Delete a program owned by `user`.

    Raises:
        NotFoundError: If the program doesn't exist or isn't owned by `user`
        ConflictError: If ebooks still reference the program
    """
    program = await _get_owned_program(db, program_id, user)

    ebook_count = await db.scalar(
        select(func.count(Ebook.id)).where(Ebook.program_id == program.id)
    )
    if ebook_count:
        raise ConflictError(
            "Cannot delete program with existing ebooks. Please reassign or delete ebooks first."
        )

    await db.delete(program)
    await db.commit()
    logger.info(f"Program {program_id} deleted by user {user.id}")
