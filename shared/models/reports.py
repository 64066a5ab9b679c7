"""Pydantic models describing the outcome of upload, indexing and retrieval runs.

Failures inside a batch never abort siblings; they are collected here so
callers can surface partial success.
"""

from typing import Literal

from pydantic import BaseModel

from shared.models.document import RetrievedPassage, UploadedDocument

IndexingStatus = Literal["complete", "partial", "failed", "skipped", "unchanged"]


class ChunkFailure(BaseModel):
    """A chunk that could not be embedded or persisted."""

    sequence_index: int
    stage: Literal["embed", "flush"]
    message: str


class IndexingReport(BaseModel):
    """Result of indexing one document.

    Attributes:
        document_name: The indexed document.
        status:        "complete" when every chunk was persisted, "partial" when
                       some failed, "failed" when none was persisted, "skipped"
                       when indexing was not attempted (see reason), "unchanged"
                       when identical content is already indexed.
        total_chunks:  Number of chunks produced by the chunker.
        indexed_chunks: Number of chunks written to the vector store.
        failures:      Per-chunk failures.
        reason:        Why indexing was skipped or failed, if it was.
    """

    document_name: str
    status: IndexingStatus
    total_chunks: int = 0
    indexed_chunks: int = 0
    failures: list[ChunkFailure] = []
    reason: str | None = None


class FileError(BaseModel):
    """A file of an upload batch that could not be turned into a document."""

    file_name: str
    kind: Literal["validation", "extraction", "storage"]
    message: str


class UploadReport(BaseModel):
    """Result of one upload batch: processed documents, per-file errors and indexing results."""

    documents: list[UploadedDocument] = []
    errors: list[FileError] = []
    indexing: list[IndexingReport] = []


class RetrievalOutcome(BaseModel):
    """Passages chosen for a query and the strategy that produced them.

    Attributes:
        strategy:  Name of the strategy that served the query ("none" if all failed).
        passages:  Ranked passages, already fitted to the token budget.
        fallbacks: "<strategy>: <reason>" entries for every strategy that was skipped.
    """

    strategy: str
    passages: list[RetrievedPassage] = []
    fallbacks: list[str] = []
