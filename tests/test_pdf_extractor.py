import asyncio

import fitz
import pytest

from services.extraction.PdfExtractor import PdfExtractor, TextFragment, reconstruct_page_text
from shared.models.config import PipelineSettings
from shared.models.errors import OperationCancelledError
from tests.fakes import FakeOCRClient, make_config

LONG_LINE = "This page carries plenty of selectable text for the extractor."


def build_pdf(pages: list[list[tuple[float, float, str]]]) -> bytes:
    """One PDF page per entry; each entry lists (x, y, text) insertions."""
    doc = fitz.open()
    for insertions in pages:
        page = doc.new_page()
        for x, y, text in insertions:
            page.insert_text((x, y), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def make_extractor(ocr_text="Scanned invoice total 500 SAR", **settings) -> tuple[PdfExtractor, FakeOCRClient]:
    config = make_config()
    ocr = FakeOCRClient(helper_config=config, text=ocr_text)
    return PdfExtractor(helper_config=config, ocr_client=ocr, settings=PipelineSettings(**settings)), ocr


def test_reconstruct_orders_lines_and_columns():
    fragments = [
        TextFragment(x=100, y=50.0, text="World"),
        TextFragment(x=10, y=52.0, text="Hello"),
        TextFragment(x=10, y=80.0, text="Second"),
        TextFragment(x=200, y=49.0, text="!"),
    ]
    assert reconstruct_page_text(fragments, y_tolerance=10) == "Hello World !\nSecond"


def test_reconstruct_splits_lines_beyond_tolerance():
    fragments = [TextFragment(x=0, y=10, text="a"), TextFragment(x=0, y=21, text="b")]
    assert reconstruct_page_text(fragments, y_tolerance=10) == "a\nb"


def test_reconstruct_skips_blank_fragments():
    assert reconstruct_page_text([TextFragment(x=0, y=0, text="  ")], y_tolerance=5) == ""
    assert reconstruct_page_text([], y_tolerance=5) == ""


async def test_text_pages_are_marked_and_not_ocred():
    extractor, ocr = make_extractor()
    data = build_pdf([[(72, 72, LONG_LINE)], [(72, 72, LONG_LINE + " Two.")]])

    text = await extractor.do_extract(data)

    assert text.startswith(f"[Page 1]\n{LONG_LINE}")
    assert "[Page 2]\n" in text
    assert ocr.calls == []


async def test_fragments_on_one_baseline_are_joined_left_to_right():
    extractor, _ = make_extractor()
    data = build_pdf([[(300, 100, "right column text that is long enough"), (72, 100, "left column text")]])

    text = await extractor.do_extract(data)

    assert "left column text right column text that is long enough" in text


async def test_short_page_is_ocred():
    extractor, ocr = make_extractor()
    data = build_pdf([[(72, 72, "Page ten!!")]])

    text = await extractor.do_extract(data)

    assert text == "[Page 1]\n[OCR Result Page 1]\nScanned invoice total 500 SAR"
    assert len(ocr.calls) == 1
    assert ocr.calls[0][0].startswith(b"\x89PNG")
    assert ocr.calls[0][1] == ["ara", "eng"]


async def test_ocr_budget_limits_ocr_calls():
    extractor, ocr = make_extractor(max_ocr_pages=1)
    data = build_pdf([[], [], []])

    text = await extractor.do_extract(data)

    assert len(ocr.calls) == 1
    assert "[OCR Result Page 1]" in text
    assert text.count("[Scanned Page - OCR Skipped]") == 2


async def test_ocr_failure_keeps_extracted_text():
    extractor, _ = make_extractor(ocr_text=RuntimeError("tesseract is not installed"))
    data = build_pdf([[(72, 72, "Hi")]])

    assert await extractor.do_extract(data) == "[Page 1]\nHi"


async def test_page_cap_adds_skip_marker():
    extractor, _ = make_extractor(max_pdf_pages=2)
    data = build_pdf([[(72, 72, LONG_LINE)] for _ in range(4)])

    text = await extractor.do_extract(data)

    assert "[Page 2]" in text
    assert "[Page 3]" not in text
    assert text.endswith("[... Remaining 2 pages skipped ...]")


async def test_cancel_event_stops_extraction():
    extractor, _ = make_extractor()
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(OperationCancelledError):
        await extractor.do_extract(build_pdf([[(72, 72, LONG_LINE)]]), cancel_event=cancel)


async def test_invalid_pdf_raises():
    extractor, _ = make_extractor()
    with pytest.raises(Exception):
        await extractor.do_extract(b"definitely not a pdf")
