"""Case messaging router: threads, attachments and unread counts."""

from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile as StarletteUploadFile

from caseportal.core.config import settings
from caseportal.core.deps import get_current_user, get_db, require_csrf_header
from caseportal.db.enums import AuditAction, AuditResource, Role
from caseportal.db.models import Case, User
from caseportal.schemas.message import (
    MarkReadResponse,
    MessageCreate,
    MessageRead,
    MessageThread,
    ThreadCase,
    ThreadParticipant,
    UnreadCountResponse,
)
from caseportal.services import audit_service, message_service, notification_service, storage_service
from caseportal.services.case_service import CaseWorkflowError
from caseportal.utils.file_upload import (
    MAX_FILES_PER_REQUEST,
    content_length_exceeds_limit,
    read_uploads,
)

router = APIRouter()


def _thread_case(case: Case) -> ThreadCase:
    return ThreadCase(
        id=case.id,
        case_number=case.case_number,
        title=case.title,
        status=case.status,
        patient=ThreadParticipant.model_validate(case.owner),
        clinician=(
            ThreadParticipant.model_validate(case.assigned_clinician)
            if case.assigned_clinician
            else None
        ),
    )


def _load_case(db: Session, case_id: UUID, user: User) -> Case:
    try:
        return message_service.get_case_for_messaging(db, case_id, user)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


async def _parse_message_body(request: Request) -> tuple[MessageCreate, list]:
    """Accept JSON {content} or multipart with content and files."""
    content_type = request.headers.get("content-type", "")
    files: list = []
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        raw = {"content": form.get("content") or ""}
        files = [f for f in form.getlist("files") if isinstance(f, StarletteUploadFile)]
    else:
        try:
            raw = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid request body")
        if not isinstance(raw, dict):
            raise HTTPException(status_code=400, detail="Invalid request body")

    try:
        return MessageCreate.model_validate(raw), files
    except ValidationError as e:
        raise RequestValidationError(errors=jsonable_encoder(e.errors()))


# =============================================================================
# Threads
# =============================================================================

@router.get("/cases/{case_id}/messages", response_model=MessageThread)
def list_messages(
    case_id: UUID,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Thread in send order with the case header (patient and clinician)."""
    case = _load_case(db, case_id, user)
    messages = message_service.list_messages(db, case)
    thread = MessageThread(
        case=_thread_case(case),
        messages=[MessageRead.model_validate(m) for m in messages],
    )
    message_service.log_thread_viewed(db, case, user, len(messages), request=request)
    return thread


@router.post(
    "/cases/{case_id}/messages",
    response_model=MessageRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def send_message(
    case_id: UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Post a message, optionally with attachments.

    Patients can only write once a clinician has been assigned. The other
    party gets an email that a message is waiting (without its content).
    """
    if content_length_exceeds_limit(
        request.headers.get("content-length"),
        max_size_bytes=settings.MAX_UPLOAD_BYTES * MAX_FILES_PER_REQUEST,
    ):
        raise HTTPException(status_code=413, detail="Upload too large")

    case = _load_case(db, case_id, user)
    data, uploads = await _parse_message_body(request)
    if len(uploads) > MAX_FILES_PER_REQUEST:
        raise HTTPException(
            status_code=400,
            detail=f"At most {MAX_FILES_PER_REQUEST} files per message",
        )
    incoming, oversized = await read_uploads(uploads, max_file_bytes=settings.MAX_UPLOAD_BYTES)

    try:
        message, skipped = message_service.send_message(db, case, user, data.content, incoming)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    result = MessageRead.model_validate(message)
    audit_service.log_event_best_effort(
        db,
        AuditAction.SEND_MESSAGE,
        AuditResource.MESSAGE,
        user_id=user.id,
        resource_id=message.id,
        details={
            "case_id": str(case.id),
            "attachment_count": len(result.attachments),
            "skipped_files": len(oversized) + len(skipped),
        },
        request=request,
    )

    recipient = message_service.counterpart_for(case, user)
    if recipient and recipient.id != user.id:
        background_tasks.add_task(
            notification_service.send_new_message_notification,
            recipient_email=recipient.email,
            recipient_name=recipient.display_name,
            sender_name=user.display_name,
            case_number=case.case_number,
            case_id=str(case.id),
            recipient_is_patient=recipient.role == Role.PATIENT.value,
        )
    return result


@router.post(
    "/cases/{case_id}/messages/mark-read",
    response_model=MarkReadResponse,
    dependencies=[Depends(require_csrf_header)],
)
def mark_read(
    case_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark every unread message the caller did not send as read."""
    case = _load_case(db, case_id, user)
    return MarkReadResponse(marked_as_read=message_service.mark_thread_read(db, case, user))


# =============================================================================
# Attachments
# =============================================================================

@router.get("/cases/{case_id}/messages/attachments/{attachment_id}")
def download_attachment(
    case_id: UUID,
    attachment_id: UUID,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Return the attachment inline with its stored content type."""
    case = _load_case(db, case_id, user)
    try:
        attachment = message_service.get_attachment(db, case, attachment_id)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    data = storage_service.read_file(attachment.storage_key)
    if data is None:
        raise HTTPException(status_code=404, detail="File not found")

    file_name, file_type = attachment.file_name, attachment.file_type
    audit_service.log_event_best_effort(
        db,
        AuditAction.DOWNLOAD_MESSAGE_ATTACHMENT,
        AuditResource.MESSAGE_ATTACHMENT,
        user_id=user.id,
        resource_id=attachment_id,
        details={"case_id": str(case_id)},
        request=request,
    )
    return Response(
        content=data,
        media_type=file_type,
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{quote(file_name)}"},
    )


# =============================================================================
# Unread counts
# =============================================================================

@router.get("/messages/unread-count", response_model=UnreadCountResponse)
def unread_count(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    total, per_case = message_service.get_unread_counts(db, user)
    return UnreadCountResponse(unread_count=total, case_unread_counts=per_case)
