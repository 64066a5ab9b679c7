"""Pydantic models for uploaded documents and their derived chunks.

Hierarchy:
  UploadedFile: raw upload as received from the caller.
  UploadedDocument: extracted, normalised text stored per owner.
  TextChunk: bounded segment of a document plus its embedding.
  RetrievedPassage: transient retrieval result, never persisted.
"""

import hashlib
from datetime import datetime, timezone
from pathlib import PurePath

from pydantic import BaseModel, Field


def compute_content_hash(content: str) -> str:
    """SHA-256 hex digest of a document's text, used as indexing idempotency key."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class UploadedFile(BaseModel):
    """A raw file handed to the pipeline.

    Attributes:
        name:       File name as uploaded; unique per owner once stored.
        mime_type:  Declared MIME type ("" when unknown).
        size_bytes: Declared size; validated against the configured limit.
        data:       The raw file bytes.
    """

    name: str
    mime_type: str = ""
    size_bytes: int = Field(default=0, ge=0)
    data: bytes = b""

    def get_extension(self) -> str:
        """Lower-cased file extension including the dot (e.g. ".pdf"), or ""."""
        return PurePath(self.name).suffix.lower()


class UploadedDocument(BaseModel):
    """Extracted text of one upload, owned by exactly one user.

    Immutable once created. Replacing a document means deleting it
    (including its chunks) and creating it again.
    """

    owner_id: str
    name: str
    mime_type: str = ""
    size_bytes: int = 0
    raw_content: str
    content_hash: str
    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


class TextChunk(BaseModel):
    """A bounded segment of a document's text, the unit of embedding and retrieval.

    sequence_index reflects the original document order and is assigned
    before the chunk is dispatched for embedding.
    """

    owner_id: str
    source_document_name: str
    content: str
    sequence_index: int = Field(ge=0)
    embedding: list[float] = []


class RetrievedPassage(BaseModel):
    """One ranked passage returned by a retrieval strategy."""

    content: str
    score: float = 0.0
    document_name: str | None = None
