"""
Cover thumbnail finalizer.

Crops a rendered page or placeholder to the canonical cover size and
writes it as JPEG.
"""
import logging
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageOps

from ..config import settings

logger = logging.getLogger(__name__)

# Horizontal centre, vertical top: keep the top of the page when cropping
TOP_ANCHOR = (0.5, 0.0)


def fit_cover(frame: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """
    Scale `frame` to fill `size` and crop the excess, anchored to the top.

    Raises:
        ValueError: If the frame or the target size is empty
    """
    if frame.width <= 0 or frame.height <= 0:
        raise ValueError(f"Cannot finalize an empty {frame.width}x{frame.height} frame")
    if size[0] <= 0 or size[1] <= 0:
        raise ValueError(f"Invalid cover size {size}")

    return ImageOps.fit(
        frame.convert("RGB"),
        size,
        method=Image.Resampling.LANCZOS,
        centering=TOP_ANCHOR,
    )


def finalize_cover(
    frame: Image.Image,
    output_path: Path,
    size: Optional[Tuple[int, int]] = None,
    quality: Optional[int] = None,
) -> Path:
    """
    Fit a frame to the cover size and save it as JPEG.

    Args:
        frame: Rendered page or placeholder image
        output_path: Destination file (its directory must exist)
        size: Cover size (defaults to settings.cover_width x cover_height)
        quality: JPEG quality (defaults to settings.cover_jpeg_quality)

    Returns:
        The path written

    Raises:
        ValueError: If the frame is empty
        OSError: If the file cannot be encoded or written
    """
    size = size or (settings.cover_width, settings.cover_height)
    quality = quality or settings.cover_jpeg_quality

    cover = fit_cover(frame, size)
    cover.save(output_path, format="JPEG", quality=quality, optimize=True)

    logger.debug(f"Wrote {size[0]}x{size[1]} cover to {output_path}")
    return Path(output_path)
