"""
Placeholder cover generator.

Used when page 1 of an upload cannot be rendered. The cover is described
as an immutable list of draw commands (gradient, rings, text lines) built
from the upload's filename, then replayed onto a Pillow canvas:
- Layout is deterministic for a given filename
- Titles are word-wrapped inside a fixed margin and capped in line count
- Falls back to Pillow's bundled font when no system TrueType font exists
"""
import logging
import os
import platform
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageFont

from ..config import settings

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]
MeasureFn = Callable[[str, int, bool], float]

PLACEHOLDER_SIZE = (400, 600)
GRADIENT_START = "#2c3e50"
GRADIENT_END = "#3498db"

RING_COUNT = 5
RING_BASE_RADIUS = 100
RING_STEP = 40
RING_WIDTH = 3
RING_COLOR: Color = (255, 255, 255, 26)

HEADING_TEXT = "eBook"
HEADING_SIZE = 32
HEADING_TOP = 120

TITLE_SIZE = 24
TITLE_TOP = 220
TITLE_LINE_HEIGHT = 40
TITLE_MARGIN = 25
TITLE_MAX_LINES = 6
TITLE_COLOR: Color = (255, 255, 255, 230)
ELLIPSIS = "..."

FOOTER_SIZE = 18
FOOTER_TOP = 525
FOOTER_COLOR: Color = (255, 255, 255, 204)

WHITE: Color = (255, 255, 255, 255)

# (regular, bold) TrueType pairs, first match wins
FONT_SEARCH_PATHS = {
    "linux": [
        ("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
        ("/usr/share/fonts/TTF/DejaVuSans.ttf", "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf"),
        ("/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
         "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf"),
    ],
    "windows": [
        ("C:/Windows/Fonts/arial.ttf", "C:/Windows/Fonts/arialbd.ttf"),
        ("C:/Windows/Fonts/segoeui.ttf", "C:/Windows/Fonts/segoeuib.ttf"),
    ],
    "darwin": [
        ("/Library/Fonts/Arial.ttf", "/Library/Fonts/Arial Bold.ttf"),
        ("/System/Library/Fonts/Supplemental/Arial.ttf", "/System/Library/Fonts/Supplemental/Arial Bold.ttf"),
    ],
}


# =============================================================================
# Draw commands
# =============================================================================

@dataclass(frozen=True)
class FillGradient:
    """Two-stop linear gradient from the top-left to the bottom-right corner."""
    start: str
    end: str


@dataclass(frozen=True)
class StrokeRing:
    """Circle outline centred on (cx, cy)."""
    cx: int
    cy: int
    radius: int
    width: int
    color: Color


@dataclass(frozen=True)
class DrawText:
    """Single line of text horizontally centred on cx, top edge at y."""
    text: str
    cx: int
    y: int
    size: int
    color: Color
    bold: bool = False


@dataclass(frozen=True)
class PlaceholderLayout:
    size: Tuple[int, int]
    commands: Tuple[object, ...]

    @property
    def text_lines(self) -> List[str]:
        return [c.text for c in self.commands if isinstance(c, DrawText)]


# =============================================================================
# Fonts
# =============================================================================

def _font_candidates(bold: bool) -> List[str]:
    system = platform.system().lower()
    pairs = FONT_SEARCH_PATHS.get(system, FONT_SEARCH_PATHS["linux"])
    return [bold_path if bold else regular_path for regular_path, bold_path in pairs]


@lru_cache(maxsize=32)
def load_font(size: int, bold: bool = False) -> ImageFont.ImageFont:
    """Load a TrueType font at `size`, or Pillow's default font."""
    for path in _font_candidates(bold):
        if os.path.exists(path):
            try:
                return ImageFont.truetype(path, size)
            except OSError as e:
                logger.debug(f"Could not load font from {path}: {e}")

    logger.debug(f"No TrueType font found, using Pillow default at {size}px")
    return ImageFont.load_default(size=size)


def pillow_measure(text: str, size: int, bold: bool = False) -> float:
    """Rendered width of `text` in pixels."""
    return load_font(size, bold).getlength(text)


# =============================================================================
# Layout
# =============================================================================

def title_from_filename(filename: str) -> str:
    """
    Derive a display title from an upload's filename.

    "intro-to-computing.pdf" -> "intro to computing"
    """
    stem = Path(filename).stem if filename else ""
    title = re.sub(r"[\W_]+", " ", stem).strip()
    return title or "Untitled"


def _break_word(word: str, fits: Callable[[str], bool]) -> List[str]:
    """Hard-break a word that is wider than a line on its own."""
    pieces = []
    current = ""
    for char in word:
        if current and not fits(current + char):
            pieces.append(current)
            current = char
        else:
            current += char
    if current:
        pieces.append(current)
    return pieces


def wrap_title(
    title: str,
    measure: MeasureFn,
    max_width: int,
    max_lines: int = TITLE_MAX_LINES,
    size: int = TITLE_SIZE,
) -> List[str]:
    """
    Greedy word wrap.

    Lines never exceed max_width. When the text needs more than max_lines
    lines, the last kept line is cut and ends with an ellipsis.
    """
    def fits(text: str) -> bool:
        return measure(text, size, True) <= max_width

    lines: List[str] = []
    line = ""
    for word in title.split():
        candidate = f"{line} {word}" if line else word
        if fits(candidate):
            line = candidate
            continue
        if line:
            lines.append(line)
        if fits(word):
            line = word
        else:
            *full, line = _break_word(word, fits)
            lines.extend(full)
    if line:
        lines.append(line)

    if len(lines) <= max_lines:
        return lines

    kept = lines[:max_lines]
    last = kept[-1]
    while last and not fits(last + ELLIPSIS):
        last = last[:-1]
    kept[-1] = last.rstrip() + ELLIPSIS
    return kept


def build_placeholder_layout(
    filename: str,
    measure: Optional[MeasureFn] = None,
    library_name: Optional[str] = None,
) -> PlaceholderLayout:
    """
    Build the draw commands for a placeholder cover.

    Args:
        filename: Upload filename the title is derived from
        measure: Text width function (defaults to Pillow font metrics)
        library_name: Footer branding (defaults to settings.library_name)
    """
    measure = measure or pillow_measure
    width, height = PLACEHOLDER_SIZE
    cx, cy = width // 2, height // 2

    commands: List[object] = [FillGradient(GRADIENT_START, GRADIENT_END)]

    commands.extend(
        StrokeRing(cx, cy, RING_BASE_RADIUS + i * RING_STEP, RING_WIDTH, RING_COLOR)
        for i in range(RING_COUNT)
    )

    commands.append(DrawText(HEADING_TEXT, cx, HEADING_TOP, HEADING_SIZE, WHITE, bold=True))

    lines = wrap_title(
        title_from_filename(filename),
        measure,
        max_width=width - 2 * TITLE_MARGIN,
    )
    for i, line in enumerate(lines):
        commands.append(
            DrawText(line, cx, TITLE_TOP + i * TITLE_LINE_HEIGHT, TITLE_SIZE, TITLE_COLOR, bold=True)
        )

    footer = library_name or settings.library_name
    commands.append(DrawText(footer, cx, FOOTER_TOP, FOOTER_SIZE, FOOTER_COLOR))

    return PlaceholderLayout(size=PLACEHOLDER_SIZE, commands=tuple(commands))


# =============================================================================
# Rendering
# =============================================================================

def _gradient(size: Tuple[int, int], start: str, end: str) -> Image.Image:
    width, height = size
    vertical = Image.linear_gradient("L").resize(size)
    horizontal = Image.linear_gradient("L").transpose(Image.Transpose.ROTATE_90).resize(size)
    # Average of both ramps: 0 at the top-left corner, 255 at the bottom-right
    mask = ImageChops.add(vertical, horizontal, scale=2.0)
    return Image.composite(
        Image.new("RGB", (width, height), end),
        Image.new("RGB", (width, height), start),
        mask,
    )


def render_placeholder(layout: PlaceholderLayout) -> Image.Image:
    """Replay a layout onto a fresh canvas and return an opaque RGB frame."""
    base = Image.new("RGBA", layout.size, WHITE)
    overlay = Image.new("RGBA", layout.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)

    for command in layout.commands:
        if isinstance(command, FillGradient):
            base = _gradient(layout.size, command.start, command.end).convert("RGBA")
        elif isinstance(command, StrokeRing):
            draw.ellipse(
                (
                    command.cx - command.radius,
                    command.cy - command.radius,
                    command.cx + command.radius,
                    command.cy + command.radius,
                ),
                outline=command.color,
                width=command.width,
            )
        elif isinstance(command, DrawText):
            font = load_font(command.size, command.bold)
            left, _, right, _ = draw.textbbox((0, 0), command.text, font=font)
            x = command.cx - (right - left) / 2 - left
            draw.text((x, command.y), command.text, font=font, fill=command.color)
        else:
            raise TypeError(f"Unknown draw command: {command!r}")

    return Image.alpha_composite(base, overlay).convert("RGB")