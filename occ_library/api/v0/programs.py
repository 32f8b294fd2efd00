"""
Program API endpoints - v0.

Listing and reading programs is public; changes need a signed-in user.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...database import get_db
from ...models.library import Program
from ...models.user import User
from ...services import program_service
from ...services.errors import LibraryError
from ...schemas.library import (
    ProgramCreateRequest,
    ProgramUpdateRequest,
    ProgramResponse,
    ProgramStatsResponse,
    MessageResponse,
    ErrorResponse,
)
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v0/programs", tags=["programs"])


def build_program_response(program: Program, total_ebooks: int) -> ProgramResponse:
    """Build ProgramResponse from Program model."""
    return ProgramResponse(
        id=program.id,
        name=program.name,
        acronym=program.acronym,
        color=program.color,
        created_by=program.created_by,
        created_by_name=program.creator.full_name if program.creator else None,
        total_ebooks=total_ebooks,
        created_at=program.created_at,
        updated_at=program.updated_at,
    )


# =============================================================================
# Public Endpoints
# =============================================================================

@router.get("", response_model=List[ProgramResponse])
async def list_programs(db: AsyncSession = Depends(get_db)) -> List[ProgramResponse]:
    """All programs ordered by name, with ebook counts."""
    programs = await program_service.list_programs(db)
    return [build_program_response(program, total) for program, total in programs]


# Declared before /{program_id} so the path isn't parsed as an id
@router.get("/with-ebook-counts", response_model=List[ProgramStatsResponse])
async def list_program_stats(db: AsyncSession = Depends(get_db)) -> List[ProgramStatsResponse]:
    """Programs with ebook and download totals, busiest first."""
    rows = await program_service.list_program_stats(db)
    return [ProgramStatsResponse(**row) for row in rows]


@router.get(
    "/{program_id}",
    response_model=ProgramResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_program(program_id: int, db: AsyncSession = Depends(get_db)) -> ProgramResponse:
    try:
        program, total = await program_service.get_program(db, program_id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return build_program_response(program, total)


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.post(
    "",
    response_model=ProgramResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_program(
    request: ProgramCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProgramResponse:
    """Create a program. The acronym is stored upper-case and must be unique."""
    try:
        program = await program_service.create_program(
            db, user, request.name, request.acronym, request.color
        )
        program, total = await program_service.get_program(db, program.id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return build_program_response(program, total)


@router.put(
    "/{program_id}",
    response_model=ProgramResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_program(
    program_id: int,
    request: ProgramUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ProgramResponse:
    """Update a program you created."""
    try:
        await program_service.update_program(
            db, user, program_id, request.name, request.acronym, request.color
        )
        program, total = await program_service.get_program(db, program_id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return build_program_response(program, total)


@router.delete(
    "/{program_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_program(
    program_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Delete a program you created. Programs with ebooks can't be deleted."""
    try:
        await program_service.delete_program(db, user, program_id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="Program deleted successfully")
