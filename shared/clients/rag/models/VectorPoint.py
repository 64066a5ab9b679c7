"""VectorPoint model: metadata stored alongside each chunk vector in a RAG backend."""

import json
import uuid

from pydantic import BaseModel


def make_point_id(owner_id: str, document_name: str, chunk_index: int) -> str:
    """Build a deterministic UUID5 point ID for a chunk vector.

    The same chunk of the same owner's document always maps to the same
    point ID so that re-indexing overwrites rather than duplicates.

    Args:
        owner_id (str): Owner of the document.
        document_name (str): Name of the document, unique per owner.
        chunk_index (int): Zero-based chunk index within the document.

    Returns:
        str: UUID string usable as a point ID.
    """
    # JSON keeps the parts apart even when they contain separators
    name = json.dumps([owner_id, document_name, chunk_index], ensure_ascii=False)
    return str(uuid.uuid5(uuid.NAMESPACE_OID, name))


class VectorPoint(BaseModel):
    """Metadata payload stored alongside each chunk vector.

    The owner_id field is mandatory and enforced as a security invariant on
    every upsert, search and delete. It must never be absent or empty.

    Attributes:
        owner_id:       MANDATORY, the user the document belongs to.
        document_name:  Name of the source document, unique per owner.
        chunk_index:    Zero-based position of this chunk within the document.
        chunk_text:     Text content of this chunk.
        mime_type:      Declared MIME type of the source file.
        content_hash:   SHA-256 hex digest of the document text. Identical across
                        all chunks of the same document; used to skip
                        re-embedding unchanged content.
    """

    # never None
    owner_id: str

    # Core identity
    document_name: str
    chunk_index: int

    # Chunk content
    chunk_text: str

    mime_type: str | None = None

    # Change detection
    content_hash: str | None = None
