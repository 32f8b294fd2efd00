"""
Pydantic schemas for catalog API request/response validation.
"""
from datetime import datetime
from typing import List, Optional, Literal

from pydantic import BaseModel, Field, field_validator


HEX_COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}){1,2}$"

SortOption = Literal[
    "newest",
    "oldest",
    "most-downloaded",
    "least-downloaded",
    "title-asc",
    "title-desc",
    # Aliases used by the search page
    "recent",
    "popular",
    "title",
]


# =============================================================================
# Program Schemas
# =============================================================================

class ProgramCreateRequest(BaseModel):
    """Request to create a program."""
    name: str = Field(..., description="Program name, e.g. 'Bachelor of Science in Information Technology'")
    acronym: str = Field(..., description="Short code, stored upper-case (e.g. 'BSIT')")
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN, description="Badge color as hex")

    @field_validator("name", "acronym")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Program name and acronym are required")
        return value


class ProgramUpdateRequest(BaseModel):
    """Partial update of a program. Omitted fields keep their value."""
    name: Optional[str] = None
    acronym: Optional[str] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class ProgramResponse(BaseModel):
    """Response schema for a program."""
    id: int
    name: str
    acronym: str
    color: str
    created_by: int
    created_by_name: Optional[str] = None
    total_ebooks: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProgramStatsResponse(BaseModel):
    """Program with ebook and download totals."""
    id: int
    name: str
    acronym: str
    color: str
    total_ebooks: int
    total_downloads: int


# =============================================================================
# Ebook Schemas
# =============================================================================

class EbookResponse(BaseModel):
    """Response schema for an ebook."""
    id: int
    title: str
    program_id: Optional[int] = None
    program_name: Optional[str] = None
    program_acronym: Optional[str] = None
    year_level: int
    file_name: str
    file_size: int
    downloads: int
    uploaded_by: int
    uploader_name: Optional[str] = None
    cover_url: Optional[str] = Field(None, description="Public URL of the cover, null if the ebook has none")
    file_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class EbookListResponse(BaseModel):
    """One page of catalog results."""
    items: List[EbookResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class UploadEbookResponse(BaseModel):
    """Response after a successful upload."""
    message: str = "eBook uploaded successfully"
    ebook: EbookResponse


class YearLevelCount(BaseModel):
    year_level: int
    total_ebooks: int


class LibraryStatsResponse(BaseModel):
    """Dashboard numbers."""
    total_ebooks: int
    total_downloads: int
    total_programs: int
    by_year_level: List[YearLevelCount] = Field(default_factory=list)


# =============================================================================
# Common
# =============================================================================

class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int = 400
