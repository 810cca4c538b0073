# SPDX-License-Identifier: Apache-2.0
"""Tests for the document patcher."""

from io import BytesIO

import pikepdf
import pytest
from conftest import FakeFont

from pdf_text_editor.core.config import EditorConfig
from pdf_text_editor.core.extractor import TextRunExtractor
from pdf_text_editor.core.ledger import EditLedger
from pdf_text_editor.core.models import (
    BLACK,
    WHITE,
    Color,
    EditEntry,
    Overlay,
    Point,
    RunId,
    Size,
    TextContentItem,
    Transform,
)
from pdf_text_editor.core.patcher import DocumentPatcher, cover_rect, place_overlay
from pdf_text_editor.core.rasterizer import PdfiumRasterizer
from pdf_text_editor.errors import PatchError


def make_entry(
    new_text: str = "Invoice #002",
    page: int = 1,
    index: int = 0,
    position: Point = Point(50.0, 700.0),
) -> EditEntry:
    return EditEntry(
        run_id=RunId(page, index),
        new_text=new_text,
        original_text="Invoice #001",
        pdf_position=position,
        pdf_font_size=12.0,
        pdf_width=70.0,
        pdf_height=9.0,
    )


def make_overlay(**kwargs) -> Overlay:
    fields = {"id": "overlay-1", "screen_position": Point(100.0, 200.0), "page_number": 1}
    fields.update(kwargs)
    return Overlay(**fields)


class TestCoverRect:
    """Tests for the erasure rectangle geometry."""

    def test_geometry(self):
        """Test padding, ascent and substitute-font descent."""
        rect = cover_rect(make_entry(), FakeFont(), padding=1.0)
        descent = 0.207 * 12.0
        assert rect.x0 == pytest.approx(49.0)
        assert rect.y0 == pytest.approx(700.0 - descent - 1.0)
        assert rect.width == pytest.approx(72.0)
        assert rect.height == pytest.approx(9.0 + descent + 2.0)

    def test_zero_padding(self):
        """Test the rectangle hugs the run without padding."""
        rect = cover_rect(make_entry(), FakeFont(), padding=0.0)
        assert rect.x0 == pytest.approx(50.0)
        assert rect.width == pytest.approx(70.0)


class TestPlaceOverlay:
    """Tests for mapping overlays to PDF space."""

    def test_baseline(self):
        """Test the baseline sits one font size below the top-left corner."""
        placement = place_overlay(make_overlay(font_size=16.0), 792.0, 1.5)
        assert placement.baseline.x == pytest.approx(66.67, abs=0.01)
        assert placement.baseline.y == pytest.approx(648.0, abs=0.01)
        assert placement.font_size == pytest.approx(10.667, abs=1e-3)

    def test_background(self):
        """Test the background top aligns with baseline plus font size."""
        placement = place_overlay(make_overlay(), 792.0, 1.5)
        bg = placement.background
        assert bg is not None
        assert bg.y1 == pytest.approx(placement.baseline.y + placement.font_size)
        assert bg.x0 == pytest.approx(placement.baseline.x)
        assert bg.width == pytest.approx(120.0 / 1.5)
        assert bg.height == pytest.approx(22.0 / 1.5)

    def test_background_disabled(self):
        """Test no background geometry when disabled."""
        placement = place_overlay(make_overlay(background_enabled=False), 792.0, 1.0)
        assert placement.background is None


class TestPatch:
    """Tests for DocumentPatcher.patch with a recording document model."""

    def test_scenario_edit(self, fake_model):
        """Test an edit paints a white cover then redraws at the baseline."""
        patcher = DocumentPatcher(document_model=fake_model)
        result = patcher.patch(b"%PDF-original", [make_entry()], [], zoom=1.0)

        assert result.pdf_bytes == b"%PDF-patched"
        assert [c[0] for c in fake_model.calls] == ["rect", "text"]
        _, page, rect, color = fake_model.calls[0]
        assert page == 1
        assert color == WHITE
        assert rect == cover_rect(make_entry(), FakeFont(), 1.0)
        assert fake_model.calls[1] == ("text", 1, "Invoice #002", Point(50.0, 700.0), 12.0, BLACK)
        assert result.stats == {
            "pages": 1,
            "covers": 1,
            "redraws": 1,
            "overlays": 0,
            "backgrounds": 0,
        }

    def test_scenario_overlay(self, fake_model):
        """Test an overlay is converted with the save-time zoom."""
        overlay = make_overlay(text="PAID", text_color=Color(200, 0, 0))
        patcher = DocumentPatcher(document_model=fake_model)
        result = patcher.patch(b"%PDF", [], [overlay], zoom=1.5)

        assert [c[0] for c in fake_model.calls] == ["rect", "text"]
        _, _, text, position, size, color = fake_model.calls[1]
        assert text == "PAID"
        assert position.x == pytest.approx(66.67, abs=0.01)
        assert position.y == pytest.approx(648.0, abs=0.01)
        assert size == pytest.approx(16.0 / 1.5)
        assert color == Color(200, 0, 0)
        assert result.stats["backgrounds"] == 1

    def test_reverted_run_not_patched(self, fake_model):
        """Test a run reverted before save leaves no trace."""
        ledger = EditLedger()
        item = TextContentItem(
            text="Invoice #001",
            transform=Transform(a=12.0, d=12.0, e=50.0, f=700.0),
            width=70.0,
            height=9.0,
        )
        run = TextRunExtractor().extract(1, [item], 792.0, 1.0)[0]
        run.current_text = "Invoice #002"
        ledger.commit_edit(run)
        ledger.revert(run)

        patcher = DocumentPatcher(document_model=fake_model)
        result = patcher.patch(b"%PDF", ledger.snapshot(), [], zoom=1.0)
        assert fake_model.calls == []
        assert result.stats["covers"] == 0

    def test_two_edits_do_not_cross(self, fake_model):
        """Test two edits on one page keep disjoint covers."""
        first = make_entry("A", index=0, position=Point(50.0, 700.0))
        second = make_entry("B", index=1, position=Point(50.0, 650.0))
        patcher = DocumentPatcher(document_model=fake_model)
        patcher.patch(b"%PDF", [first, second], [], zoom=1.0)

        rects = [c[2] for c in fake_model.calls if c[0] == "rect"]
        texts = [(c[2], c[3]) for c in fake_model.calls if c[0] == "text"]
        assert len(rects) == 2
        assert not rects[0].intersects(rects[1])
        assert texts == [("A", Point(50.0, 700.0)), ("B", Point(50.0, 650.0))]

    def test_edits_before_overlays(self, fake_model):
        """Test all edits of a page are drawn before its overlays."""
        patcher = DocumentPatcher(document_model=fake_model)
        patcher.patch(
            b"%PDF",
            [make_entry("A", index=0), make_entry("B", index=1, position=Point(50, 600))],
            [make_overlay(text="O1"), make_overlay(id="overlay-2", text="O2")],
            zoom=1.0,
        )
        texts = [c[2] for c in fake_model.calls if c[0] == "text"]
        assert texts == ["A", "B", "O1", "O2"]

    def test_empty_replacement_erases_only(self, fake_model):
        """Test an emptied run gets a cover and no text."""
        patcher = DocumentPatcher(document_model=fake_model)
        result = patcher.patch(b"%PDF", [make_entry("")], [], zoom=1.0)
        assert [c[0] for c in fake_model.calls] == ["rect"]
        assert result.stats["covers"] == 1
        assert result.stats["redraws"] == 0

    def test_overlay_without_background(self, fake_model):
        """Test only text is drawn when the background is disabled."""
        patcher = DocumentPatcher(document_model=fake_model)
        patcher.patch(b"%PDF", [], [make_overlay(background_enabled=False)], zoom=1.0)
        assert [c[0] for c in fake_model.calls] == ["text"]

    def test_overlay_background_color(self, fake_model):
        """Test the background uses the overlay's color."""
        overlay = make_overlay(background_color=Color(255, 255, 0), background_size=Size(60, 20))
        patcher = DocumentPatcher(document_model=fake_model)
        patcher.patch(b"%PDF", [], [overlay], zoom=2.0)
        _, _, bbox, color = fake_model.calls[0]
        assert color == Color(255, 255, 0)
        assert bbox.width == pytest.approx(30.0)
        assert bbox.height == pytest.approx(10.0)

    def test_fresh_parse_of_original(self, fake_model):
        """Test every call re-parses the original bytes."""
        patcher = DocumentPatcher(document_model=fake_model)
        entries = (make_entry(),)
        patcher.patch(b"%PDF-original", entries, [], zoom=1.0)
        patcher.patch(b"%PDF-original", entries, [], zoom=1.0)
        assert fake_model.loaded == [b"%PDF-original", b"%PDF-original"]
        assert fake_model.closed == 2
        assert entries == (make_entry(),)


class TestPatchErrors:
    """Tests for patch failure modes."""

    def test_entry_page_out_of_range(self, fake_model):
        """Test an entry on a missing page fails before drawing."""
        patcher = DocumentPatcher(document_model=fake_model)
        with pytest.raises(PatchError) as exc_info:
            patcher.patch(b"%PDF", [make_entry(), make_entry(page=3)], [], zoom=1.0)
        assert exc_info.value.stage == "patch"
        assert fake_model.calls == []
        assert fake_model.closed == 1

    def test_overlay_page_out_of_range(self, fake_model):
        """Test an overlay on a missing page fails fast."""
        patcher = DocumentPatcher(document_model=fake_model)
        with pytest.raises(PatchError):
            patcher.patch(b"%PDF", [], [make_overlay(page_number=0)], zoom=1.0)
        assert fake_model.calls == []

    def test_malformed_original(self, fake_model):
        """Test a parse failure aborts the save."""
        fake_model.fail_load = True
        patcher = DocumentPatcher(document_model=fake_model)
        with pytest.raises(PatchError) as exc_info:
            patcher.patch(b"garbage", [make_entry()], [], zoom=1.0)
        assert isinstance(exc_info.value.cause, ValueError)

    def test_draw_failure_wrapped(self, fake_model):
        """Test drawing errors become PatchError and the handle is closed."""
        fake_model.fail_draw = True
        patcher = DocumentPatcher(document_model=fake_model)
        with pytest.raises(PatchError) as exc_info:
            patcher.patch(b"%PDF", [make_entry()], [], zoom=1.0)
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert fake_model.closed == 1

    def test_non_positive_zoom(self, fake_model):
        """Test zoom must be positive."""
        patcher = DocumentPatcher(document_model=fake_model)
        with pytest.raises(PatchError):
            patcher.patch(b"%PDF", [], [make_overlay()], zoom=0.0)


def page_operators(pdf_bytes: bytes, index: int) -> list[str]:
    with pikepdf.open(BytesIO(pdf_bytes)) as pdf:
        return [str(op) for _, op in pikepdf.parse_content_stream(pdf.pages[index])]


def page_content(pdf_bytes: bytes, index: int) -> bytes:
    with pikepdf.open(BytesIO(pdf_bytes)) as pdf:
        page = pdf.pages[index]
        page.contents_coalesce()
        return page.Contents.read_bytes()


def extract_page(pdf_bytes: bytes, page_number: int, ledger: EditLedger | None = None):
    with PdfiumRasterizer(pdf_bytes) as rasterizer:
        items = rasterizer.get_text_content(page_number)
        height = rasterizer.page_size(page_number).height
    return TextRunExtractor().extract(page_number, items, height, 1.0, ledger=ledger)


class TestPdfiumPatch:
    """End-to-end patching with the PDFium document model."""

    def edit_first_run(self, pdf_bytes: bytes, text: str) -> EditLedger:
        ledger = EditLedger()
        run = extract_page(pdf_bytes, 1)[0]
        ledger.begin_edit(run)
        run.current_text = text
        ledger.commit_edit(run)
        return ledger

    def test_replacement_text_written(self, single_page_pdf_bytes):
        """Test the new text lands at the original baseline."""
        ledger = self.edit_first_run(single_page_pdf_bytes, "Invoice #002")
        result = DocumentPatcher().patch(single_page_pdf_bytes, ledger.snapshot(), [], 1.0)

        with PdfiumRasterizer(result.pdf_bytes) as rasterizer:
            assert rasterizer.page_count == 1
            items = rasterizer.get_text_content(1)
        replaced = [i for i in items if i.text.strip() == "Invoice #002"]
        assert len(replaced) == 1
        assert replaced[0].transform.origin.x == pytest.approx(50.0, abs=0.01)
        assert replaced[0].transform.origin.y == pytest.approx(700.0, abs=0.01)
        assert replaced[0].transform.font_size == pytest.approx(12.0, abs=0.01)

        operators = page_operators(result.pdf_bytes, 0)
        assert "f" in operators

    def test_erased_region_is_white(self, single_page_pdf_bytes):
        """Test an emptied run is hidden under the cover rectangle."""
        ledger = self.edit_first_run(single_page_pdf_bytes, "")
        result = DocumentPatcher().patch(single_page_pdf_bytes, ledger.snapshot(), [], 1.0)

        # Inside the glyph box of "Invoice #001" at (50, 700)
        region = (52, 86, 100, 93)
        with PdfiumRasterizer(single_page_pdf_bytes) as rasterizer:
            before = rasterizer.render_page(1, 1.0).image.convert("L").crop(region)
        with PdfiumRasterizer(result.pdf_bytes) as rasterizer:
            after = rasterizer.render_page(1, 1.0).image.convert("L").crop(region)

        assert before.getextrema()[0] < 128
        assert after.getextrema() == (255, 255)

    def test_untouched_page_unchanged(self, sample_pdf_bytes):
        """Test pages without edits keep their content stream."""
        ledger = self.edit_first_run(sample_pdf_bytes, "Invoice #002")
        result = DocumentPatcher().patch(sample_pdf_bytes, ledger.snapshot(), [], 1.0)
        assert page_content(result.pdf_bytes, 1) == page_content(sample_pdf_bytes, 1)
        assert page_content(result.pdf_bytes, 0) != page_content(sample_pdf_bytes, 0)

    def test_overlay_written(self, single_page_pdf_bytes):
        """Test an overlay lands at the converted baseline."""
        overlay = make_overlay(text="PAID")
        result = DocumentPatcher().patch(single_page_pdf_bytes, [], [overlay], 1.5)

        with PdfiumRasterizer(result.pdf_bytes) as rasterizer:
            items = rasterizer.get_text_content(1)
        added = [i for i in items if i.text.strip() == "PAID"]
        assert len(added) == 1
        assert added[0].transform.origin.x == pytest.approx(66.67, abs=0.01)
        assert added[0].transform.origin.y == pytest.approx(648.0, abs=0.01)

    def test_original_bytes_untouched(self, single_page_pdf_bytes):
        """Test the input buffer is never modified."""
        original = bytes(single_page_pdf_bytes)
        ledger = self.edit_first_run(single_page_pdf_bytes, "X")
        DocumentPatcher(EditorConfig(substitute_font="Courier")).patch(
            single_page_pdf_bytes, ledger.snapshot(), [make_overlay()], 1.0
        )
        assert single_page_pdf_bytes == original

    def test_malformed_bytes(self):
        """Test garbage input raises PatchError."""
        with pytest.raises(PatchError):
            DocumentPatcher().patch(b"not a pdf", [], [], 1.0)
