"""Converts uploaded files of any supported format into normalised text."""

import asyncio
import io
from enum import Enum
from pathlib import PurePath

import docx
import pandas as pd

from services.extraction.ContentNormalizer import normalize
from services.extraction.PdfExtractor import PdfExtractor
from shared.clients.ocr.OCRClientInterface import OCRClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings
from shared.models.document import UploadedFile
from shared.models.errors import ExtractionError, OperationCancelledError

DIAGNOSTIC_PREFIX = "⚠️ failed to extract"

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tif", ".tiff", ".webp"}
WORD_EXTENSIONS = {".docx", ".doc"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xlsm", ".xls", ".csv"}


class DocumentFormat(str, Enum):
    IMAGE = "image"
    PDF = "pdf"
    WORD = "word"
    SPREADSHEET = "spreadsheet"
    TEXT = "text"


def resolve_format(file: UploadedFile) -> DocumentFormat:
    """Decide which handler a file is routed to.

    Priority: images, PDF, Word-family, spreadsheet/CSV, then verbatim text.
    Word detection only matches Word MIME types and extensions, so OOXML
    spreadsheet types (which also contain "officedocument") are not misrouted.

    Args:
        file (UploadedFile): The upload.

    Returns:
        DocumentFormat: The resolved format.
    """
    mime = (file.mime_type or "").lower()
    ext = file.get_extension()

    if mime.startswith("image/") or ext in IMAGE_EXTENSIONS:
        return DocumentFormat.IMAGE
    if mime == "application/pdf" or ext == ".pdf":
        return DocumentFormat.PDF
    if "msword" in mime or "wordprocessingml" in mime or ext in WORD_EXTENSIONS:
        return DocumentFormat.WORD
    if "spreadsheetml" in mime or "ms-excel" in mime or mime == "text/csv" or ext in SPREADSHEET_EXTENSIONS:
        return DocumentFormat.SPREADSHEET
    return DocumentFormat.TEXT


def is_diagnostic(text: str) -> bool:
    """True if the text is an extraction diagnostic rather than document content."""
    return text.startswith(DIAGNOSTIC_PREFIX)


def _diagnostic(reason: str, cause: Exception | str) -> str:
    return f"{DIAGNOSTIC_PREFIX} {reason}: {cause}"


def _escape_cell(value) -> str:
    text = "" if value is None else str(value)
    return text.replace("\r", " ").replace("\n", " ").replace("|", "\\|").strip()


def render_sheet(name: str, frame: pd.DataFrame, rows_per_block: int) -> str:
    """Render one sheet as pipe tables in row groups.

    The first non-empty row is the header. Every group of ``rows_per_block``
    data rows gets a ``[Sheet: <name> (Rows a-b)]`` heading and repeats the
    header and separator rows so it stays self-describing.

    Args:
        name (str): Sheet name.
        frame (pd.DataFrame): Raw cell grid, read without header inference.
        rows_per_block (int): Data rows per group.

    Returns:
        str: The rendered sheet ("" for a sheet without any non-empty row).
    """
    frame = frame.fillna("")
    rows = [[_escape_cell(cell) for cell in row] for row in frame.itertuples(index=False, name=None)]
    rows = [row for row in rows if any(row)]
    if not rows:
        return ""

    header, data = rows[0], rows[1:]
    header_line = "| " + " | ".join(header) + " |"
    separator_line = "| " + " | ".join("---" for _ in header) + " |"

    if not data:
        return f"[Sheet: {name}]\n{header_line}\n{separator_line}"

    blocks: list[str] = []
    for start in range(0, len(data), rows_per_block):
        block = data[start:start + rows_per_block]
        lines = [
            f"[Sheet: {name} (Rows {start + 1}-{start + len(block)})]",
            header_line,
            separator_line,
        ]
        lines.extend("| " + " | ".join(row) + " |" for row in block)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class TextExtractor:
    """Dispatches uploads to format-specific handlers.

    Handlers never raise for a broken file; they return a short
    ``⚠️ failed to extract <reason>: <cause>`` diagnostic instead so that a bad
    file degrades to a stub document rather than failing the upload. Every
    handler's output is passed through the content normalizer.
    """

    def __init__(self, helper_config: HelperConfig, ocr_client: OCRClientInterface, settings: PipelineSettings):
        self.logging = helper_config.get_logger()
        self._ocr_client = ocr_client
        self._settings = settings
        self._pdf_extractor = PdfExtractor(helper_config=helper_config, ocr_client=ocr_client, settings=settings)

    async def extract(self, file: UploadedFile, cancel_event: asyncio.Event | None = None) -> str:
        """Extract and normalise the text of one upload.

        Args:
            file (UploadedFile): The upload.
            cancel_event (asyncio.Event | None): Checked before extraction and between PDF pages.

        Returns:
            str: The normalised text, or a diagnostic string.

        Raises:
            OperationCancelledError: If cancel_event is set.
            ExtractionError: If something fails outside the format handlers.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Extraction cancelled.", source=file.name)

        doc_format = resolve_format(file)
        self.logging.info("Extracting '%s' as %s (%d bytes).", file.name, doc_format.value, len(file.data))
        try:
            if doc_format is DocumentFormat.IMAGE:
                text = await self._extract_image(file)
            elif doc_format is DocumentFormat.PDF:
                text = await self._extract_pdf(file, cancel_event)
            elif doc_format is DocumentFormat.WORD:
                text = await self._extract_word(file)
            elif doc_format is DocumentFormat.SPREADSHEET:
                text = await self._extract_spreadsheet(file)
            else:
                text = self._extract_text(file)
            return normalize(text)
        except OperationCancelledError:
            raise
        except Exception as exc:
            raise ExtractionError(f"Could not extract '{file.name}': {exc}", source=file.name) from exc

    ##########################################
    ############### HANDLERS #################
    ##########################################

    async def _extract_image(self, file: UploadedFile) -> str:
        try:
            text = await self._ocr_client.do_recognize(file.data, timeout=self._settings.ocr_timeout)
        except Exception as exc:
            self.logging.warning("OCR failed for image '%s': %s", file.name, exc)
            return _diagnostic("image text", exc)
        if not text:
            return _diagnostic("image text", "no text recognised")
        return text

    async def _extract_pdf(self, file: UploadedFile, cancel_event: asyncio.Event | None) -> str:
        try:
            return await self._pdf_extractor.do_extract(file.data, cancel_event=cancel_event)
        except OperationCancelledError:
            raise
        except Exception as exc:
            self.logging.warning("PDF extraction failed for '%s': %s", file.name, exc)
            return _diagnostic("PDF", exc)

    async def _extract_word(self, file: UploadedFile) -> str:
        try:
            return await asyncio.to_thread(self._read_word, file.data)
        except Exception as exc:
            self.logging.warning("Word extraction failed for '%s': %s", file.name, exc)
            return _diagnostic("Word document", exc)

    @staticmethod
    def _read_word(data: bytes) -> str:
        document = docx.Document(io.BytesIO(data))
        parts = [p.text.strip() for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            rows = [" | ".join(cell.text.strip() for cell in row.cells) for row in table.rows]
            parts.append("\n".join(rows))
        return "\n\n".join(parts)

    async def _extract_spreadsheet(self, file: UploadedFile) -> str:
        try:
            sheets = await asyncio.to_thread(self._read_sheets, file)
        except Exception as exc:
            self.logging.warning("Spreadsheet extraction failed for '%s': %s", file.name, exc)
            return _diagnostic("spreadsheet", exc)
        rendered = [render_sheet(name, frame, self._settings.sheet_rows_per_block) for name, frame in sheets.items()]
        return "\n\n".join(block for block in rendered if block)

    @staticmethod
    def _read_sheets(file: UploadedFile) -> dict[str, pd.DataFrame]:
        if file.get_extension() == ".csv" or (file.mime_type or "").lower() == "text/csv":
            frame = pd.read_csv(io.BytesIO(file.data), header=None, dtype=str, keep_default_na=False)
            return {PurePath(file.name).stem: frame}
        return pd.read_excel(io.BytesIO(file.data), sheet_name=None, header=None, dtype=str)

    def _extract_text(self, file: UploadedFile) -> str:
        # utf-8-sig drops a leading BOM
        return file.data.decode("utf-8-sig", errors="replace")
