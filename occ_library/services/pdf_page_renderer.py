"""
First-page rasterizer for uploaded PDFs.

Renders page 1 of a PDF with PyMuPDF onto an opaque white RGB frame.
Failures are returned as values, never raised, so the cover extractor
can decide what to do with them.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import fitz  # PyMuPDF
from PIL import Image

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rendered:
    """Page 1 was rasterized successfully."""
    frame: Image.Image


@dataclass(frozen=True)
class Failed:
    """Page 1 could not be obtained or rasterized."""
    reason: str


RenderResult = Union[Rendered, Failed]


def target_size(rect: fitz.Rect, scale: float) -> Tuple[int, int]:
    """Pixel size of a page rendered at `scale`, each side rounded to the nearest pixel."""
    return round(rect.width * scale), round(rect.height * scale)


def render_first_page(pdf_bytes: bytes, scale: Optional[float] = None) -> RenderResult:
    """
    Rasterize the first page of a PDF.

    Args:
        pdf_bytes: The PDF file as bytes
        scale: Render scale (defaults to settings.cover_render_scale)

    Returns:
        Rendered(frame) with size page_size * scale, or Failed(reason)
    """
    if scale is None:
        scale = settings.cover_render_scale

    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        return Failed(f"Could not open PDF: {e}")

    try:
        if doc.page_count == 0:
            return Failed("PDF has no pages")

        page = doc.load_page(0)
        target = target_size(page.rect, scale)
        if target[0] <= 0 or target[1] <= 0:
            return Failed(f"Page 1 is too small to render: {page.rect.width}x{page.rect.height}pt")

        # alpha=False paints the page onto white before drawing content
        matrix = fitz.Matrix(target[0] / page.rect.width, target[1] / page.rect.height)
        pix = page.get_pixmap(matrix=matrix, alpha=False)

        frame = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        # PyMuPDF rounds the pixmap bounds outward, which can add a pixel per side
        if frame.width >= target[0] and frame.height >= target[1]:
            frame = frame.crop((0, 0, target[0], target[1]))
        else:
            frame = frame.resize(target, Image.Resampling.LANCZOS)
        logger.debug(f"Rendered page 1 at {scale}x: {frame.width}x{frame.height}")
        return Rendered(frame)
    except Exception as e:
        return Failed(f"Could not render page 1: {e}")
    finally:
        doc.close()


def render_first_page_from_path(pdf_path: Path, scale: Optional[float] = None) -> RenderResult:
    """Read a PDF from disk and rasterize its first page."""
    try:
        pdf_bytes = Path(pdf_path).read_bytes()
    except OSError as e:
        return Failed(f"Could not read {pdf_path}: {e}")

    return render_first_page(pdf_bytes, scale=scale)
