from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile

from ragchat.core.deps import get_document_service
from ragchat.rag.schemas import DocumentUploadResponse
from ragchat.rag.service import DocumentService

router = APIRouter()


@router.post("", response_model=DocumentUploadResponse)
async def upload_document(
    file: UploadFile = File(...),
    document_service: DocumentService = Depends(get_document_service),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")

    raw = await file.read()
    return document_service.ingest(filename=file.filename, raw=raw)


@router.post("/batch", response_model=list[DocumentUploadResponse])
async def upload_documents(
    files: list[UploadFile] = File(...),
    document_service: DocumentService = Depends(get_document_service),
):
    results: list[DocumentUploadResponse] = []
    for upload in files:
        if not upload.filename:
            results.append(DocumentUploadResponse.failure(None, "Missing filename"))
            continue
        raw = await upload.read()
        results.append(document_service.ingest(filename=upload.filename, raw=raw))
    return results


@router.delete("/{document_id}", status_code=204)
def delete_document(
    document_id: str,
    document_service: DocumentService = Depends(get_document_service),
):
    document_service.delete(document_id)
    return Response(status_code=204)
