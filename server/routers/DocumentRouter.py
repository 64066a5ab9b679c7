from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Query, Request, UploadFile

from server.dependencies.auth import verify_api_key
from server.models.responses import DeleteResponse, DocumentItem, DocumentListResponse, UploadResponse
from shared.models.document import UploadedFile
from shared.models.errors import IndexingError

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("")
async def upload_documents(
    request: Request,
    owner_id: str = Form(..., min_length=1),
    files: list[UploadFile] = File(...),
    x_embedding_key: str | None = Header(default=None),
    _: None = Depends(verify_api_key),
) -> UploadResponse:
    """Extract, store and index uploaded files for an owner.

    Files that fail validation or extraction are listed in ``errors``; the
    rest of the batch is still processed.

    Args:
        request (Request): FastAPI request (provides app.state.kb_service).
        owner_id (str): Owner of the documents (form field).
        files (list[UploadFile]): The uploaded files (multipart).
        x_embedding_key (str | None): The owner's embedding API key, if any.
        _ (None): Auth dependency result (unused).

    Returns:
        UploadResponse: Stored documents, per-file errors and indexing results.
    """
    kb_service = request.app.state.kb_service
    uploads: list[UploadedFile] = []
    for upload in files:
        data = await upload.read()
        uploads.append(UploadedFile(
            name=upload.filename or "upload",
            mime_type=upload.content_type or "",
            size_bytes=len(data),
            data=data,
        ))

    report = await kb_service.do_upload(owner_id=owner_id, files=uploads, embedding_key=x_embedding_key)
    return UploadResponse(
        documents=[DocumentItem.from_document(doc) for doc in report.documents],
        errors=report.errors,
        indexing=report.indexing,
    )


@router.get("")
async def list_documents(
    request: Request,
    owner_id: str = Query(..., min_length=1),
    _: None = Depends(verify_api_key),
) -> DocumentListResponse:
    """List an owner's documents, newest first."""
    documents = await request.app.state.kb_service.get_documents(owner_id)
    return DocumentListResponse(
        owner_id=owner_id,
        documents=[DocumentItem.from_document(doc) for doc in documents],
        total=len(documents),
    )


@router.delete("/{name}")
async def delete_document(
    request: Request,
    name: str,
    owner_id: str = Query(..., min_length=1),
    _: None = Depends(verify_api_key),
) -> DeleteResponse:
    """Delete one document and its indexed chunks.

    Raises:
        HTTPException: 404 if the owner has no such document, 502 if the
            vector store rejected the chunk delete.
    """
    kb_service = request.app.state.kb_service
    if await kb_service.get_document(owner_id, name) is None:
        raise HTTPException(status_code=404, detail=f"Document '{name}' not found")
    try:
        await kb_service.do_delete_document(owner_id, name)
    except IndexingError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return DeleteResponse(deleted=1)


@router.delete("")
async def clear_documents(
    request: Request,
    owner_id: str = Query(..., min_length=1),
    _: None = Depends(verify_api_key),
) -> DeleteResponse:
    """Delete all documents and indexed chunks of an owner.

    Raises:
        HTTPException: 502 if the vector store rejected the chunk delete.
    """
    try:
        deleted = await request.app.state.kb_service.do_clear_documents(owner_id)
    except IndexingError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return DeleteResponse(deleted=deleted)
