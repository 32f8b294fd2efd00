"""
Ebook API endpoints - v0.

Upload, browse, download and delete ebooks. Browsing and downloading are
public; uploading and deleting need a signed-in user.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, HTTPException, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...database import get_db
from ...models.library import Ebook
from ...models.user import User
from ...services import ebook_service
from ...services.errors import LibraryError
from ...services.storage_service import StorageService, get_storage
from ...schemas.library import (
    EbookResponse,
    EbookListResponse,
    UploadEbookResponse,
    LibraryStatsResponse,
    SortOption,
    MessageResponse,
    ErrorResponse,
)
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v0/ebooks", tags=["ebooks"])

PDF_CONTENT_TYPE = "application/pdf"


def build_ebook_response(ebook: Ebook, storage: StorageService) -> EbookResponse:
    """Build EbookResponse from Ebook model."""
    return EbookResponse(
        id=ebook.id,
        title=ebook.title,
        program_id=ebook.program_id,
        program_name=ebook.program.name if ebook.program else None,
        program_acronym=ebook.program.acronym if ebook.program else None,
        year_level=ebook.year_level,
        file_name=ebook.file_name,
        file_size=ebook.file_size,
        downloads=ebook.downloads,
        uploaded_by=ebook.uploaded_by,
        uploader_name=ebook.uploader.full_name if ebook.uploader else None,
        cover_url=storage.public_url(ebook.cover_image_path),
        file_url=storage.public_url(ebook.file_path),
        created_at=ebook.created_at,
        updated_at=ebook.updated_at,
    )


# =============================================================================
# Upload
# =============================================================================

@router.post(
    "/upload",
    response_model=UploadEbookResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload a PDF ebook",
    description="""
    Upload a PDF tagged with a program and year level.

    The cover thumbnail is rendered from page 1. PDFs that can't be rendered
    get a generated placeholder cover; if no cover can be written at all the
    ebook is saved without one (cover_url is null).
    """,
)
async def upload_ebook(
    ebook: UploadFile = File(..., description="PDF file"),
    title: Optional[str] = Form(None),
    program_id: Optional[int] = Form(None),
    year_level: Optional[int] = Form(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> UploadEbookResponse:
    try:
        filename = ebook.filename or ""
        if not filename.lower().endswith(".pdf") and ebook.content_type != PDF_CONTENT_TYPE:
            raise HTTPException(status_code=400, detail="Only PDF files are allowed")

        pdf_bytes = await ebook.read()

        if len(pdf_bytes) == 0:
            raise HTTPException(status_code=400, detail="Please upload a PDF file")

        max_bytes = settings.max_upload_mb * 1024 * 1024
        if len(pdf_bytes) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File is too large (max {settings.max_upload_mb}MB)",
            )

        logger.info(f"Processing upload: {filename}, size: {len(pdf_bytes)} bytes")

        created = await ebook_service.upload_ebook(
            db,
            storage,
            user,
            pdf_bytes,
            filename,
            title=title,
            program_id=program_id,
            year_level=year_level,
        )
        return UploadEbookResponse(ebook=build_ebook_response(created, storage))

    except HTTPException:
        raise
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Upload error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during upload")


# =============================================================================
# Catalog
# =============================================================================

@router.get("", response_model=EbookListResponse)
async def list_ebooks(
    q: Optional[str] = Query(None, description="Search title, uploader, program name or acronym"),
    program_id: Optional[int] = Query(None),
    year_level: Optional[int] = Query(None, ge=1, le=4),
    sort: SortOption = Query("newest"),
    page: int = Query(1, ge=1),
    per_page: int = Query(ebook_service.DEFAULT_PER_PAGE, ge=1, le=ebook_service.MAX_PER_PAGE),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> EbookListResponse:
    """Browse the catalog with search, filters, sorting and pagination."""
    try:
        ebooks, total = await ebook_service.list_ebooks(
            db,
            q=q,
            program_id=program_id,
            year_level=year_level,
            sort=sort,
            page=page,
            per_page=per_page,
        )
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return EbookListResponse(
        items=[build_ebook_response(ebook, storage) for ebook in ebooks],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=ebook_service.total_pages(total, per_page),
    )


@router.get("/my-ebooks", response_model=List[EbookResponse])
async def list_my_ebooks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> List[EbookResponse]:
    """Ebooks uploaded by the signed-in user, newest first."""
    ebooks = await ebook_service.list_user_ebooks(db, user.id)
    return [build_ebook_response(ebook, storage) for ebook in ebooks]


@router.get("/stats", response_model=LibraryStatsResponse)
async def get_library_stats(db: AsyncSession = Depends(get_db)) -> LibraryStatsResponse:
    """Totals for the dashboard."""
    return LibraryStatsResponse(**await ebook_service.library_stats(db))


@router.get(
    "/{ebook_id}",
    response_model=EbookResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_ebook(
    ebook_id: int,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> EbookResponse:
    try:
        ebook = await ebook_service.get_ebook(db, ebook_id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return build_ebook_response(ebook, storage)


@router.get(
    "/{ebook_id}/download",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse}},
)
async def download_ebook(ebook_id: int, db: AsyncSession = Depends(get_db)):
    """Send the PDF under its original filename and count the download."""
    try:
        ebook = await ebook_service.record_download(db, ebook_id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return FileResponse(ebook.file_path, media_type=PDF_CONTENT_TYPE, filename=ebook.file_name)


@router.delete(
    "/{ebook_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_ebook(
    ebook_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
) -> MessageResponse:
    """Delete an ebook you uploaded, with its PDF and cover."""
    try:
        await ebook_service.delete_ebook(db, storage, user, ebook_id)
    except LibraryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return MessageResponse(message="eBook deleted successfully")
