"""Case documents router: multipart uploads to draft cases."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from caseportal.core.config import settings
from caseportal.core.deps import get_current_user, get_db, require_csrf_header
from caseportal.db.models import User
from caseportal.schemas.case import CaseDocumentRead, DocumentUploadResponse
from caseportal.services import case_service, document_service
from caseportal.services.case_service import CaseWorkflowError
from caseportal.utils.file_upload import (
    MAX_FILES_PER_REQUEST,
    content_length_exceeds_limit,
    read_uploads,
)

router = APIRouter()


@router.get("/{case_id}/documents", response_model=list[CaseDocumentRead])
def list_documents(
    case_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        case = case_service.get_case_for_viewer(db, case_id, user)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return document_service.list_documents(db, case)


@router.post(
    "/{case_id}/documents",
    response_model=DocumentUploadResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_documents(
    case_id: UUID,
    request: Request,
    files: list[UploadFile] | None = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Attach files to the owner's draft case.

    Files with a disallowed type or over the size limit are skipped and
    listed in the response; the rest are stored.
    """
    if content_length_exceeds_limit(
        request.headers.get("content-length"),
        max_size_bytes=settings.MAX_UPLOAD_BYTES * MAX_FILES_PER_REQUEST,
    ):
        raise HTTPException(status_code=413, detail="Upload too large")

    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    if len(files) > MAX_FILES_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"At most {MAX_FILES_PER_REQUEST} files per upload",
        )

    try:
        case = case_service.get_owned_case(db, case_id, user)
        incoming, oversized = await read_uploads(files, max_file_bytes=settings.MAX_UPLOAD_BYTES)
        created, skipped = document_service.upload_documents(
            db, case, user, incoming, request=request
        )
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return DocumentUploadResponse(documents=created, skipped=oversized + skipped)


@router.delete("/{case_id}/documents", dependencies=[Depends(require_csrf_header)])
def delete_document(
    case_id: UUID,
    request: Request,
    document_id: UUID | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if document_id is None:
        raise HTTPException(status_code=400, detail="Document ID is required")

    try:
        case = case_service.get_owned_case(db, case_id, user)
        document_service.delete_document(db, case, user, document_id, request=request)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    return {"success": True}
