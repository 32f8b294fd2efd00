"""
Unit tests for cover extraction.

Covers the render -> placeholder fallback -> finalize flow end to end on
real files in a temporary directory.
"""

import fitz  # PyMuPDF
import pytest
from PIL import Image

from conftest import make_pdf
from occ_library.services import cover_extractor
from occ_library.services.cover_extractor import cover_filename, extract_cover, frame_for_result
from occ_library.services.pdf_page_renderer import Failed, Rendered

pytestmark = pytest.mark.unit

COVER_SIZE = (300, 400)


@pytest.fixture
def covers_dir(tmp_path):
    directory = tmp_path / "covers"
    directory.mkdir()
    return directory


@pytest.fixture
def placeholder_spy(monkeypatch):
    """Record placeholder layouts built during extraction."""
    layouts = []
    real_build = cover_extractor.build_placeholder_layout

    def spy(filename, *args, **kwargs):
        layout = real_build(filename, *args, **kwargs)
        layouts.append(layout)
        return layout

    monkeypatch.setattr(cover_extractor, "build_placeholder_layout", spy)
    return layouts


class TestCoverFilename:
    """Unique, sanitized cover names."""

    def test_includes_sanitized_stem(self):
        name = cover_filename("Intro to Computing (2nd ed).pdf")
        assert name.startswith("cover-Intro-to-Computing-2nd-ed-")
        assert name.endswith(".jpg")

    def test_names_are_unique(self):
        assert cover_filename("book.pdf") != cover_filename("book.pdf")

    def test_unusable_stem_falls_back(self):
        assert cover_filename("???.pdf").startswith("cover-ebook-")


class TestFrameForResult:
    """Dispatch over the render result."""

    def test_rendered_frame_is_used_as_is(self):
        frame = Image.new("RGB", (10, 20))
        assert frame_for_result(Rendered(frame), "book.pdf") is frame

    def test_failure_uses_placeholder(self, placeholder_spy):
        frame = frame_for_result(Failed("broken"), "intro-to-computing.pdf")

        assert frame.size == (400, 600)
        assert "intro to computing" in placeholder_spy[0].text_lines


class TestExtractCover:
    """Full extraction against files on disk."""

    def test_valid_pdf_renders_first_page(self, tmp_path, covers_dir, placeholder_spy):
        pdf_path = tmp_path / "intro-to-computing.pdf"
        pdf_path.write_bytes(make_pdf(pages=3))

        cover_path = extract_cover(pdf_path, covers_dir)

        assert cover_path is not None
        assert cover_path.is_absolute()
        assert cover_path.parent == covers_dir.resolve()
        assert cover_path.name.startswith("cover-intro-to-computing-")
        with Image.open(cover_path) as cover:
            assert cover.format == "JPEG"
            assert cover.size == COVER_SIZE
        assert placeholder_spy == []

    def test_non_pdf_bytes_fall_back_to_placeholder(self, tmp_path, covers_dir, placeholder_spy, caplog):
        pdf_path = tmp_path / "intro-to-computing.pdf"
        pdf_path.write_bytes(b"definitely not a PDF")

        with caplog.at_level("WARNING"):
            cover_path = extract_cover(pdf_path, covers_dir)

        assert cover_path is not None and cover_path.exists()
        with Image.open(cover_path) as cover:
            assert cover.size == COVER_SIZE
        assert "intro to computing" in placeholder_spy[0].text_lines
        assert any("placeholder" in record.message for record in caplog.records)

    def test_source_name_overrides_stored_name(self, tmp_path, covers_dir, placeholder_spy):
        pdf_path = tmp_path / "a1b2c3.pdf"
        pdf_path.write_bytes(b"junk")

        cover_path = extract_cover(pdf_path, covers_dir, source_name="intro-to-computing.pdf")

        assert cover_path.name.startswith("cover-intro-to-computing-")
        assert "intro to computing" in placeholder_spy[0].text_lines

    def test_repeated_extraction_never_collides(self, tmp_path, covers_dir):
        pdf_path = tmp_path / "book.pdf"
        pdf_path.write_bytes(make_pdf())

        first = extract_cover(pdf_path, covers_dir)
        second = extract_cover(pdf_path, covers_dir)

        assert first != second
        assert first.exists() and second.exists()

    def test_writes_exactly_one_file(self, tmp_path, covers_dir):
        (covers_dir / "existing.jpg").write_bytes(b"keep me")
        pdf_path = tmp_path / "book.pdf"
        pdf_path.write_bytes(make_pdf())

        extract_cover(pdf_path, covers_dir)

        assert len(list(covers_dir.iterdir())) == 2
        assert (covers_dir / "existing.jpg").read_bytes() == b"keep me"

    def test_unwritable_output_returns_none(self, tmp_path, caplog):
        pdf_path = tmp_path / "book.pdf"
        pdf_path.write_bytes(make_pdf())
        missing_dir = tmp_path / "no-such-dir"

        with caplog.at_level("ERROR"):
            assert extract_cover(pdf_path, missing_dir) is None

        assert not missing_dir.exists()
        assert any(record.levelname == "ERROR" for record in caplog.records)

    def test_tall_page_is_cropped_from_the_top(self, tmp_path, covers_dir):
        # 300x800pt renders to 450x1200 and is cropped to the top 600 rows
        doc = fitz.open()
        page = doc.new_page(width=300, height=800)
        page.draw_rect(fitz.Rect(0, 0, 300, 100), color=(1, 0, 0), fill=(1, 0, 0))
        page.draw_rect(fitz.Rect(0, 700, 300, 800), color=(0, 0, 1), fill=(0, 0, 1))
        pdf_path = tmp_path / "tall.pdf"
        pdf_path.write_bytes(doc.tobytes())
        doc.close()

        cover_path = extract_cover(pdf_path, covers_dir)

        with Image.open(cover_path) as cover:
            red, green, blue = cover.getpixel((150, 20))
            assert red > 200 and green < 60 and blue < 60
            assert min(cover.getpixel((150, 390))) > 200  # white, not the blue bottom band
