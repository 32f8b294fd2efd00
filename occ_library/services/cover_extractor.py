"""
Cover extraction for uploaded ebooks.

Renders page 1 of the PDF as the cover. When that fails for any reason
the upload gets a generated placeholder cover instead. Only a failure to
write the final JPEG makes extraction return None.
"""
import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image

from .cover_finalizer import finalize_cover
from .cover_placeholder import build_placeholder_layout, render_placeholder
from .pdf_page_renderer import Failed, Rendered, RenderResult, render_first_page_from_path

logger = logging.getLogger(__name__)

MAX_STEM_LENGTH = 60


def cover_filename(source_name: str) -> str:
    """
    Unique cover filename for an upload.

    "Intro to Computing.pdf" -> "cover-Intro-to-Computing-<32 hex>.jpg"
    """
    stem = Path(source_name).stem if source_name else ""
    safe_stem = re.sub(r"[^0-9A-Za-z_-]+", "-", stem).strip("-")[:MAX_STEM_LENGTH] or "ebook"
    return f"cover-{safe_stem}-{uuid.uuid4().hex}.jpg"


def frame_for_result(result: RenderResult, source_name: str) -> Image.Image:
    """The rendered page, or the placeholder cover when rendering failed."""
    if isinstance(result, Rendered):
        return result.frame
    return render_placeholder(build_placeholder_layout(source_name))


def extract_cover(
    pdf_path: Path,
    output_dir: Path,
    source_name: Optional[str] = None,
) -> Optional[Path]:
    """
    Create a cover thumbnail for a PDF.

    Args:
        pdf_path: Saved PDF upload
        output_dir: Existing directory the cover is written into
        source_name: Original upload filename, used for the cover filename
            and the placeholder title (defaults to pdf_path's name)

    Returns:
        Absolute path of the new JPEG, or None if it could not be written
    """
    pdf_path = Path(pdf_path)
    source_name = source_name or pdf_path.name
    output_path = Path(output_dir).resolve() / cover_filename(source_name)

    result = render_first_page_from_path(pdf_path)
    if isinstance(result, Failed):
        logger.warning(f"Using placeholder cover for {source_name}: {result.reason}")

    frame = frame_for_result(result, source_name)

    try:
        finalize_cover(frame, output_path)
    except Exception as e:
        logger.error(f"Failed to write cover for {source_name} to {output_path}: {e}", exc_info=True)
        # Drop a partially written JPEG
        try:
            output_path.unlink(missing_ok=True)
        except OSError as cleanup_error:
            logger.warning(f"Could not remove partial cover {output_path}: {cleanup_error}")
        return None

    logger.info(f"Cover created: {output_path.name}")
    return output_path
