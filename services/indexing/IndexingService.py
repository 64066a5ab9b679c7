"""Embedding indexer.

Chunks a document, embeds the chunks in small concurrent batches and writes
them to the vector store in larger flushes. A failed embedding or flush is
recorded and skipped, never aborting the rest of the document.
"""

import asyncio
from typing import Callable

from services.indexing.Chunker import chunk_text
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint, make_point_id
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import PipelineSettings
from shared.models.document import TextChunk, compute_content_hash
from shared.models.errors import IndexingError, OperationCancelledError
from shared.models.reports import ChunkFailure, IndexingReport

ProgressCallback = Callable[[int, int], None]


class IndexingService:
    """Turns document text into owner-scoped chunk vectors."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        settings: PipelineSettings,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_client = embed_client
        self._rag_client = rag_client
        self._settings = settings

    ##########################################
    ################ INDEXING ################
    ##########################################

    async def do_index(
        self,
        owner_id: str,
        document_name: str,
        content: str,
        embedding_key: str | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
        mime_type: str | None = None,
    ) -> IndexingReport:
        """Index one document's text.

        Args:
            owner_id (str): The document owner; every point carries it.
            document_name (str): Name of the document, unique per owner.
            content (str): Normalised document text.
            embedding_key (str | None): Per-call embedding API key.
            on_progress (ProgressCallback | None): Called with (processed, total) after every batch.
            cancel_event (asyncio.Event | None): Checked between batches.
            mime_type (str | None): Stored with every point.

        Returns:
            IndexingReport: Outcome with per-chunk failures.

        Raises:
            ValueError: If owner_id or document_name is empty.
            OperationCancelledError: If cancel_event is set.
        """
        if not owner_id or not document_name:
            raise ValueError("owner_id and document_name are required for indexing.")

        if not self._embed_client.has_api_key(embedding_key):
            self.logging.warning("Indexing of '%s' skipped: no embedding key available.", document_name)
            return IndexingReport(document_name=document_name, status="skipped", reason="no embedding key")

        chunks = chunk_text(content, self._settings.max_chunk_size, self._settings.chunk_overlap)
        total = len(chunks)
        if not chunks:
            self.logging.info("Indexing of '%s' skipped: no content.", document_name)
            return IndexingReport(document_name=document_name, status="skipped", reason="no content")

        content_hash = compute_content_hash(content)
        try:
            existing = await self._rag_client.do_count(
                self._rag_client.get_owner_filter(owner_id, document_name, content_hash)
            )
            if existing >= total:
                self.logging.info("'%s' is already indexed with identical content; skipping.", document_name)
                return IndexingReport(
                    document_name=document_name, status="unchanged", total_chunks=total, indexed_chunks=existing,
                )

            # delete stale chunks of this document before writing the new ones
            await self._rag_client.do_delete_points_by_filter(
                self._rag_client.get_owner_filter(owner_id, document_name)
            )
        except Exception as exc:
            self.logging.error("Vector store unavailable while indexing '%s': %s", document_name, exc)
            return IndexingReport(
                document_name=document_name, status="failed", total_chunks=total, reason=f"vector store unavailable: {exc}",
            )

        self.logging.info("Indexing '%s': %d chunk(s).", document_name, total, extra={"owner_id": owner_id})
        failures: list[ChunkFailure] = []
        pending: list[TextChunk] = []
        indexed = 0
        processed = 0
        batch_size = self._settings.embed_batch_size
        flush_size = self._settings.upsert_batch_size

        for batch_start in range(0, total, batch_size):
            if cancel_event is not None and cancel_event.is_set():
                raise OperationCancelledError(f"Indexing of '{document_name}' cancelled.", source=document_name)

            # sequence indices are fixed before dispatch, completion order inside a batch is arbitrary
            batch = [
                TextChunk(owner_id=owner_id, source_document_name=document_name, content=text, sequence_index=batch_start + offset)
                for offset, text in enumerate(chunks[batch_start:batch_start + batch_size])
            ]
            results = await asyncio.gather(
                *[self._embed_chunk(chunk, embedding_key) for chunk in batch],
                return_exceptions=True,
            )
            for chunk, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, Exception):
                    self.logging.error("Embedding failed for chunk %d of '%s': %s", chunk.sequence_index, document_name, result)
                    failures.append(ChunkFailure(sequence_index=chunk.sequence_index, stage="embed", message=str(result)))
                    continue
                chunk.embedding = result
                pending.append(chunk)

            processed += len(batch)
            while len(pending) >= flush_size:
                indexed += await self._flush(pending[:flush_size], content_hash, mime_type, failures)
                pending = pending[flush_size:]
            if on_progress is not None:
                on_progress(processed, total)

        if pending:
            indexed += await self._flush(pending, content_hash, mime_type, failures)

        if indexed == total:
            status = "complete"
        elif indexed == 0:
            status = "failed"
        else:
            status = "partial"
        self.logging.info(
            "Indexed '%s': %d of %d chunk(s) stored, %d failure(s).", document_name, indexed, total, len(failures),
            extra={"owner_id": owner_id}, color="green" if status == "complete" else "yellow",
        )
        return IndexingReport(
            document_name=document_name,
            status=status,
            total_chunks=total,
            indexed_chunks=indexed,
            failures=sorted(failures, key=lambda f: f.sequence_index),
        )

    async def _embed_chunk(self, chunk: TextChunk, embedding_key: str | None) -> list[float]:
        try:
            return await self._embed_client.do_embed(chunk.content, api_key=embedding_key)
        except Exception as exc:
            raise IndexingError(f"embedding failed: {exc}", source=str(chunk.sequence_index)) from exc

    async def _flush(
        self,
        records: list[TextChunk],
        content_hash: str,
        mime_type: str | None,
        failures: list[ChunkFailure],
    ) -> int:
        """Upsert embedded chunks in one request.

        Returns:
            int: Number of chunks written (0 if the flush failed; the chunks are then recorded as failures).
        """
        points = [
            {
                "id": make_point_id(chunk.owner_id, chunk.source_document_name, chunk.sequence_index),
                "vector": chunk.embedding,
                "payload": VectorPoint(
                    owner_id=chunk.owner_id,
                    document_name=chunk.source_document_name,
                    chunk_index=chunk.sequence_index,
                    chunk_text=chunk.content,
                    mime_type=mime_type,
                    content_hash=content_hash,
                ).model_dump(),
            }
            for chunk in records
        ]
        try:
            await self._rag_client.do_upsert_points(points)
        except Exception as exc:
            self.logging.error("Flush of %d chunk(s) failed: %s", len(records), exc)
            failures.extend(
                ChunkFailure(sequence_index=chunk.sequence_index, stage="flush", message=str(exc)) for chunk in records
            )
            return 0
        return len(records)

    ##########################################
    ################ DELETION ################
    ##########################################

    async def do_delete_document(self, owner_id: str, document_name: str) -> None:
        """Delete every chunk of one document.

        Raises:
            IndexingError: If the vector store rejects the delete.
        """
        try:
            await self._rag_client.do_delete_points_by_filter(self._rag_client.get_owner_filter(owner_id, document_name))
        except Exception as exc:
            raise IndexingError(f"Could not delete chunks of '{document_name}': {exc}", source=document_name) from exc
        self.logging.info("Deleted chunks of '%s'.", document_name)

    async def do_delete_owner(self, owner_id: str) -> None:
        """Delete every chunk of an owner.

        Raises:
            IndexingError: If the vector store rejects the delete.
        """
        try:
            await self._rag_client.do_delete_points_by_filter(self._rag_client.get_owner_filter(owner_id))
        except Exception as exc:
            raise IndexingError(f"Could not delete chunks of owner: {exc}", source=owner_id) from exc
        self.logging.info("Deleted all chunks of the owner.")
