"""Layout-aware PDF text extraction with OCR escalation for scanned pages."""

import asyncio

import fitz
from pydantic import BaseModel

from shared.clients.ocr.OCRClientInterface import OCRClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings
from shared.models.errors import OperationCancelledError


class TextFragment(BaseModel):
    """A positioned run of text on a PDF page (baseline origin x/y)."""

    x: float
    y: float
    text: str


def reconstruct_page_text(fragments: list[TextFragment], y_tolerance: float) -> str:
    """Rebuild reading order from positioned fragments.

    Fragments are ordered top-to-bottom; fragments whose baseline lies within
    y_tolerance of the first fragment of the current line belong to that line
    and are ordered left-to-right, joined by one space. Each line change
    becomes a newline.

    Args:
        fragments (list[TextFragment]): The page's fragments, in any order.
        y_tolerance (float): Maximum baseline distance of fragments on one line.

    Returns:
        str: The page text ("" if there are no non-blank fragments).
    """
    ordered = sorted((f for f in fragments if f.text.strip()), key=lambda f: (f.y, f.x))
    lines: list[list[TextFragment]] = []
    line_y: float | None = None
    for fragment in ordered:
        if line_y is None or abs(fragment.y - line_y) > y_tolerance:
            lines.append([])
            line_y = fragment.y
        lines[-1].append(fragment)
    return "\n".join(
        " ".join(f.text.strip() for f in sorted(line, key=lambda f: f.x))
        for line in lines
    )


class PdfExtractor:
    """Extracts PDF text page by page using PyMuPDF.

    Pages whose reconstructed text is shorter than ``pdf_min_page_chars`` are
    treated as scanned: they are rendered to PNG and passed to the OCR client
    while the OCR budget (``max_ocr_pages`` calls per document) lasts.
    """

    def __init__(self, helper_config: HelperConfig, ocr_client: OCRClientInterface, settings: PipelineSettings):
        self.logging = helper_config.get_logger()
        self._ocr_client = ocr_client
        self._settings = settings

    ##########################################
    ############### PAGE ACCESS ##############
    ##########################################

    @staticmethod
    def _read_fragments(doc: fitz.Document, page_index: int) -> list[TextFragment]:
        page = doc.load_page(page_index)
        fragments: list[TextFragment] = []
        for block in page.get_text("dict").get("blocks", []):
            # type 1 blocks are images
            if block.get("type", 0) != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    x, y = span.get("origin", (0.0, 0.0))
                    fragments.append(TextFragment(x=x, y=y, text=span.get("text", "")))
        return fragments

    @staticmethod
    def _render_page(doc: fitz.Document, page_index: int, scale: float) -> bytes:
        page = doc.load_page(page_index)
        pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
        return pixmap.tobytes("png")

    ##########################################
    ############### EXTRACTION ###############
    ##########################################

    async def do_extract(self, data: bytes, cancel_event: asyncio.Event | None = None) -> str:
        """Extract the text of a PDF.

        Each page is emitted as ``[Page N]`` followed by its text; pages past
        ``max_pdf_pages`` are replaced by one ``[... Remaining N pages skipped ...]``
        marker.

        Args:
            data (bytes): The PDF file.
            cancel_event (asyncio.Event | None): Checked before every page.

        Returns:
            str: The page-marked document text.

        Raises:
            OperationCancelledError: If cancel_event is set.
            Exception: If PyMuPDF cannot open the file.
        """
        doc = await asyncio.to_thread(fitz.open, stream=data, filetype="pdf")
        try:
            total_pages = doc.page_count
            pages_to_read = min(total_pages, self._settings.max_pdf_pages)
            ocr_calls = 0
            parts: list[str] = []

            for page_index in range(pages_to_read):
                if cancel_event is not None and cancel_event.is_set():
                    raise OperationCancelledError("PDF extraction cancelled.", source=f"page {page_index + 1}")

                page_number = page_index + 1
                fragments = await asyncio.to_thread(self._read_fragments, doc, page_index)
                text = reconstruct_page_text(fragments, self._settings.pdf_line_tolerance)

                if len(text.strip()) < self._settings.pdf_min_page_chars:
                    if ocr_calls < self._settings.max_ocr_pages:
                        ocr_calls += 1
                        text = await self._ocr_page(doc, page_index, text)
                    else:
                        self.logging.debug("Page %d looks scanned but the OCR budget is used up.", page_number)
                        text = f"{text}\n[Scanned Page - OCR Skipped]" if text.strip() else "[Scanned Page - OCR Skipped]"

                parts.append(f"[Page {page_number}]\n{text}")

            if total_pages > pages_to_read:
                parts.append(f"[... Remaining {total_pages - pages_to_read} pages skipped ...]")

            self.logging.info(
                "Extracted %d of %d PDF page(s), %d via OCR.", pages_to_read, total_pages, ocr_calls,
            )
            return "\n\n".join(parts)
        finally:
            doc.close()

    async def _ocr_page(self, doc: fitz.Document, page_index: int, extracted_text: str) -> str:
        """OCR one rendered page; on failure or empty OCR output the extracted text is kept."""
        page_number = page_index + 1
        try:
            image = await asyncio.to_thread(self._render_page, doc, page_index, self._settings.pdf_ocr_scale)
            ocr_text = await self._ocr_client.do_recognize(image, timeout=self._settings.ocr_timeout)
        except Exception as exc:
            self.logging.warning("OCR failed for page %d, keeping extracted text: %s", page_number, exc)
            return extracted_text
        if not ocr_text:
            self.logging.debug("OCR returned no text for page %d.", page_number)
            return extracted_text
        return f"[OCR Result Page {page_number}]\n{ocr_text}"
