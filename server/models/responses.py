from datetime import datetime

from pydantic import BaseModel

from shared.models.document import UploadedDocument
from shared.models.reports import FileError, IndexingReport


class PassageItem(BaseModel):
    content: str
    score: float
    document_name: str | None


class QueryResponse(BaseModel):
    query: str
    strategy: str
    fallbacks: list[str]
    passages: list[PassageItem]
    context: str
    prompt: str


class DocumentItem(BaseModel):
    name: str
    mime_type: str
    size_bytes: int
    characters: int
    content_hash: str
    created: datetime

    @classmethod
    def from_document(cls, document: UploadedDocument) -> "DocumentItem":
        return cls(
            name=document.name,
            mime_type=document.mime_type,
            size_bytes=document.size_bytes,
            characters=len(document.raw_content),
            content_hash=document.content_hash,
            created=document.created,
        )


class DocumentListResponse(BaseModel):
    owner_id: str
    documents: list[DocumentItem]
    total: int


class UploadResponse(BaseModel):
    documents: list[DocumentItem]
    errors: list[FileError]
    indexing: list[IndexingReport]


class DeleteResponse(BaseModel):
    deleted: int
