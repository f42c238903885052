"""Case document uploads for draft cases."""

import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from caseportal.db.enums import AuditAction, AuditResource, CaseStatus
from caseportal.db.models import Case, CaseDocument, User
from caseportal.services import audit_service, storage_service
from caseportal.services.case_service import CaseNotFoundError, CaseWorkflowError
from caseportal.services.storage_service import IncomingFile

logger = logging.getLogger(__name__)


def list_documents(db: Session, case: Case) -> list[CaseDocument]:
    return (
        db.query(CaseDocument)
        .filter(CaseDocument.case_id == case.id)
        .order_by(CaseDocument.uploaded_at.desc())
        .all()
    )


def upload_documents(
    db: Session,
    case: Case,
    user: User,
    files: list[IncomingFile],
    request: Request | None = None,
) -> tuple[list[CaseDocument], list[str]]:
    """
    Store each acceptable file and record it against the draft case.

    Files with a disallowed type or size are skipped, not fatal.

    Returns:
        (created documents, names of skipped files)
    """
    if case.status != CaseStatus.DRAFT.value:
        raise CaseWorkflowError("Cannot add documents to submitted cases")

    created: list[CaseDocument] = []
    skipped: list[str] = []
    stored_keys: list[str] = []
    try:
        for incoming in files:
            is_valid, error = storage_service.validate_file(incoming.content_type, incoming.size)
            if not is_valid:
                logger.info("Skipping upload: %s", error)
                skipped.append(incoming.filename)
                continue

            storage_key = storage_service.case_document_key(case.id, incoming.filename)
            storage_service.store_file(storage_key, incoming.data, incoming.content_type)
            stored_keys.append(storage_key)

            document = CaseDocument(
                case_id=case.id,
                file_name=incoming.filename[:255],
                file_type=incoming.content_type,
                file_size=incoming.size,
                storage_key=storage_key,
                checksum_sha256=storage_service.calculate_checksum(incoming.data),
                uploaded_by_id=user.id,
            )
            db.add(document)
            created.append(document)

        audit_service.log_event(
            db,
            AuditAction.UPLOAD_DOCUMENTS,
            AuditResource.DOCUMENT,
            user_id=user.id,
            resource_id=case.id,
            details={"count": len(created), "skipped": len(skipped)},
            request=request,
        )
        db.commit()
    except Exception:
        db.rollback()
        for key in stored_keys:
            storage_service.delete_file(key)
        raise

    for document in created:
        db.refresh(document)
    return created, skipped


def delete_document(
    db: Session,
    case: Case,
    user: User,
    document_id: UUID,
    request: Request | None = None,
) -> None:
    """Remove a document (row and stored file) from a draft case."""
    if case.status != CaseStatus.DRAFT.value:
        raise CaseWorkflowError("Cannot delete documents from submitted cases")

    document = (
        db.query(CaseDocument)
        .filter(CaseDocument.id == document_id, CaseDocument.case_id == case.id)
        .first()
    )
    if not document:
        raise CaseNotFoundError("Document not found")

    storage_key = document.storage_key
    db.delete(document)
    audit_service.log_event(
        db,
        AuditAction.DELETE_DOCUMENT,
        AuditResource.DOCUMENT,
        user_id=user.id,
        resource_id=document_id,
        details={"case_id": str(case.id)},
        request=request,
    )
    db.commit()

    try:
        storage_service.delete_file(storage_key)
    except Exception:
        # Row is gone; an orphaned object is harmless
        logger.warning("Failed to delete stored document", exc_info=True)
