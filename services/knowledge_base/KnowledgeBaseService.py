"""Upload and deletion orchestration for an owner's knowledge base.

Files of one upload are processed sequentially; a file that fails
validation, extraction, storage or indexing is reported and its siblings
still proceed.
"""

import asyncio
from typing import Callable

from services.extraction.TextExtractor import DocumentFormat, TextExtractor, is_diagnostic, resolve_format
from services.indexing.IndexingService import IndexingService
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings
from shared.models.document import UploadedDocument, UploadedFile, compute_content_hash
from shared.models.errors import ExtractionError, OperationCancelledError, ValidationError
from shared.models.reports import FileError, IndexingReport, UploadReport
from shared.store.DocumentStoreInterface import DocumentStoreInterface

# bytes inspected when deciding whether a text-routed file is binary
BINARY_SNIFF_BYTES = 8192

UploadProgressCallback = Callable[[str, int, int], None]


class KnowledgeBaseService:
    def __init__(
        self,
        helper_config: HelperConfig,
        document_store: DocumentStoreInterface,
        extractor: TextExtractor,
        indexer: IndexingService,
        settings: PipelineSettings,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._document_store = document_store
        self._extractor = extractor
        self._indexer = indexer
        self._settings = settings

    ##########################################
    ############### VALIDATION ###############
    ##########################################

    def validate_file(self, file: UploadedFile) -> None:
        """Reject a file before extraction is attempted.

        Args:
            file (UploadedFile): The upload.

        Raises:
            ValidationError: If the file exceeds the size limit, is empty, or is
                binary data that would be routed to the verbatim-text fallback.
        """
        size = max(file.size_bytes, len(file.data))
        if size > self._settings.max_file_size_bytes:
            raise ValidationError(
                f"'{file.name}' is {size} bytes, the limit is {self._settings.max_file_size_bytes} bytes.",
                source=file.name,
            )
        if not file.data:
            raise ValidationError(f"'{file.name}' is empty.", source=file.name)
        if resolve_format(file) is DocumentFormat.TEXT and b"\x00" in file.data[:BINARY_SNIFF_BYTES]:
            raise ValidationError(
                f"'{file.name}' has an unsupported type ('{file.mime_type or file.get_extension() or 'unknown'}') and is not text.",
                source=file.name,
            )

    ##########################################
    ################# UPLOAD #################
    ##########################################

    async def do_upload(
        self,
        owner_id: str,
        files: list[UploadedFile],
        embedding_key: str | None = None,
        on_progress: UploadProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> UploadReport:
        """Validate, extract, store and index a batch of files.

        A stored document with the same name is replaced, including its chunks.

        Args:
            owner_id (str): Owner of the uploaded documents.
            files (list[UploadedFile]): The batch, processed in order.
            embedding_key (str | None): Per-call embedding API key.
            on_progress (UploadProgressCallback | None): Called with (file_name, processed, total) during indexing.
            cancel_event (asyncio.Event | None): Checked between files, pages and batches.

        Returns:
            UploadReport: Stored documents, per-file errors and per-document indexing results.

        Raises:
            ValueError: If owner_id is empty.
            OperationCancelledError: If cancel_event is set.
        """
        if not owner_id:
            raise ValueError("owner_id is required for uploads.")

        report = UploadReport()
        for file in files:
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError("Upload cancelled.", source=file.name)

            try:
                self.validate_file(file)
                content = await self._extractor.extract(file, cancel_event=cancel_event)
            except ValidationError as exc:
                self.logging.warning("Rejected '%s': %s", file.name, exc, extra={"owner_id": owner_id})
                report.errors.append(FileError(file_name=file.name, kind="validation", message=str(exc)))
                continue
            except ExtractionError as exc:
                self.logging.error("Extraction of '%s' failed: %s", file.name, exc, extra={"owner_id": owner_id})
                report.errors.append(FileError(file_name=file.name, kind="extraction", message=str(exc)))
                continue

            document = UploadedDocument(
                owner_id=owner_id,
                name=file.name,
                mime_type=file.mime_type,
                size_bytes=len(file.data),
                raw_content=content,
                content_hash=compute_content_hash(content),
            )
            try:
                await self._replace_document(document)
            except Exception as exc:
                # the previous version and its chunks stay as they were
                self.logging.error("Storing '%s' failed: %s", file.name, exc, extra={"owner_id": owner_id})
                report.errors.append(FileError(file_name=file.name, kind="storage", message=str(exc)))
                continue
            report.documents.append(document)

            if is_diagnostic(content):
                indexing = IndexingReport(document_name=document.name, status="skipped", reason=content)
            else:
                progress = None
                if on_progress is not None:
                    progress = lambda processed, total, name=document.name: on_progress(name, processed, total)
                try:
                    indexing = await self._indexer.do_index(
                        owner_id=owner_id,
                        document_name=document.name,
                        content=content,
                        embedding_key=embedding_key,
                        on_progress=progress,
                        cancel_event=cancel_event,
                        mime_type=document.mime_type,
                    )
                except OperationCancelledError:
                    raise
                except Exception as exc:
                    self.logging.error("Indexing of '%s' failed: %s", file.name, exc, extra={"owner_id": owner_id})
                    indexing = IndexingReport(document_name=document.name, status="failed", reason=str(exc))
            report.indexing.append(indexing)

        self.logging.info(
            "Upload finished: %d stored, %d rejected.", len(report.documents), len(report.errors),
            extra={"owner_id": owner_id}, color="green" if not report.errors else "yellow",
        )
        return report

    async def _replace_document(self, document: UploadedDocument) -> None:
        existing = await self._document_store.do_get(document.owner_id, document.name)
        if existing is not None and existing.content_hash != document.content_hash:
            self.logging.info("Replacing '%s' and its chunks.", document.name, extra={"owner_id": document.owner_id})
            await self._indexer.do_delete_document(document.owner_id, document.name)
            await self._document_store.do_delete(document.owner_id, document.name)
        await self._document_store.do_save(document)

    ##########################################
    ############ DOCUMENT ACCESS #############
    ##########################################

    async def get_documents(self, owner_id: str) -> list[UploadedDocument]:
        return await self._document_store.do_list(owner_id)

    async def get_document(self, owner_id: str, name: str) -> UploadedDocument | None:
        return await self._document_store.do_get(owner_id, name)

    async def do_delete_document(self, owner_id: str, name: str) -> bool:
        """Delete a document and its chunks.

        Returns:
            bool: True if the document existed.

        Raises:
            IndexingError: If its chunks could not be deleted; the document is then kept.
        """
        await self._indexer.do_delete_document(owner_id, name)
        deleted = await self._document_store.do_delete(owner_id, name)
        self.logging.info("Deleted document '%s' (existed: %s).", name, deleted, extra={"owner_id": owner_id})
        return deleted

    async def do_clear_documents(self, owner_id: str) -> int:
        """Delete all documents and chunks of an owner.

        Returns:
            int: Number of deleted documents.

        Raises:
            IndexingError: If the chunks could not be deleted; the documents are then kept.
        """
        await self._indexer.do_delete_owner(owner_id)
        count = await self._document_store.do_clear(owner_id)
        self.logging.info("Cleared %d document(s).", count, extra={"owner_id": owner_id})
        return count
