"""Case messaging between patient and assigned clinician.

Clients poll for new messages; there is no push channel. Threads are
ordered by insertion time.
"""

import logging
from uuid import UUID

from fastapi import Request
from sqlalchemy import func, update
from sqlalchemy.orm import Session, joinedload, selectinload

from caseportal.core.case_access import check_case_access
from caseportal.db.enums import AuditAction, AuditResource, Role
from caseportal.db.models import Case, Message, MessageAttachment, User
from caseportal.services import audit_service, storage_service
from caseportal.services.case_service import CaseNotFoundError, CaseWorkflowError
from caseportal.services.storage_service import IncomingFile

logger = logging.getLogger(__name__)


def get_case_for_messaging(db: Session, case_id: UUID, user: User) -> Case:
    """
    Case with patient and clinician loaded, for a thread participant.

    Raises:
        CaseNotFoundError: case missing
        HTTPException 403: not owner, assigned clinician or admin
    """
    case = (
        db.query(Case)
        .options(joinedload(Case.owner), joinedload(Case.assigned_clinician))
        .filter(Case.id == case_id)
        .first()
    )
    if not case:
        raise CaseNotFoundError()
    check_case_access(case, user)
    return case


def list_messages(db: Session, case: Case) -> list[Message]:
    """Thread in insertion order with senders and attachments."""
    return (
        db.query(Message)
        .options(joinedload(Message.sender), selectinload(Message.attachments))
        .filter(Message.case_id == case.id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def get_message(db: Session, message_id: UUID) -> Message:
    return (
        db.query(Message)
        .options(joinedload(Message.sender), selectinload(Message.attachments))
        .filter(Message.id == message_id)
        .one()
    )


def send_message(
    db: Session,
    case: Case,
    sender: User,
    content: str,
    files: list[IncomingFile],
) -> tuple[Message, list[str]]:
    """
    Add a message (and any acceptable attachments) to the case thread.

    Returns:
        (message, names of skipped files)

    Raises:
        CaseWorkflowError: patient writing before assignment, or nothing to send
    """
    if case.user_id == sender.id and case.assigned_clinician_id is None:
        raise CaseWorkflowError(
            "Cannot send messages until a clinician is assigned to your case"
        )

    content = content or ""
    if not content.strip() and not files:
        raise CaseWorkflowError("Message must have content or attachments")

    message = Message(case_id=case.id, sender_id=sender.id, content=content)
    db.add(message)
    db.flush()

    skipped: list[str] = []
    stored_keys: list[str] = []
    try:
        for incoming in files:
            is_valid, error = storage_service.validate_file(incoming.content_type, incoming.size)
            if not is_valid:
                logger.info("Skipping attachment: %s", error)
                skipped.append(incoming.filename)
                continue

            storage_key = storage_service.message_attachment_key(
                case.id, message.id, incoming.filename
            )
            storage_service.store_file(storage_key, incoming.data, incoming.content_type)
            stored_keys.append(storage_key)
            db.add(
                MessageAttachment(
                    message_id=message.id,
                    file_name=incoming.filename[:255],
                    file_type=incoming.content_type,
                    file_size=incoming.size,
                    storage_key=storage_key,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        for key in stored_keys:
            storage_service.delete_file(key)
        raise

    return get_message(db, message.id), skipped


def mark_thread_read(db: Session, case: Case, reader: User) -> int:
    """Mark every unread message the reader did not send as read."""
    result = db.execute(
        update(Message)
        .where(
            Message.case_id == case.id,
            Message.sender_id != reader.id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def get_attachment(db: Session, case: Case, attachment_id: UUID) -> MessageAttachment:
    attachment = (
        db.query(MessageAttachment)
        .join(Message, Message.id == MessageAttachment.message_id)
        .filter(MessageAttachment.id == attachment_id, Message.case_id == case.id)
        .first()
    )
    if not attachment:
        raise CaseNotFoundError("Attachment not found")
    return attachment


def get_unread_counts(db: Session, user: User) -> tuple[int, dict[str, int]]:
    """
    Unread messages addressed to the user.

    Patients: their own cases. Clinicians: cases assigned to them.
    Admins: every message they did not send, without a per-case breakdown.

    Returns:
        (total, {case_id: count})
    """
    base_filters = [Message.sender_id != user.id, Message.is_read.is_(False)]

    if user.role == Role.ADMIN.value:
        total = db.query(func.count(Message.id)).filter(*base_filters).scalar() or 0
        return total, {}

    if user.role == Role.PATIENT.value:
        case_filter = Case.user_id == user.id
    else:
        case_filter = Case.assigned_clinician_id == user.id

    rows = (
        db.query(Message.case_id, func.count(Message.id))
        .join(Case, Case.id == Message.case_id)
        .filter(case_filter, *base_filters)
        .group_by(Message.case_id)
        .all()
    )
    per_case = {str(case_id): count for case_id, count in rows}
    return sum(per_case.values()), per_case


def counterpart_for(case: Case, sender: User) -> User | None:
    """Who should be told about a new message from sender."""
    if sender.id == case.user_id:
        return case.assigned_clinician
    return case.owner


def log_thread_viewed(
    db: Session,
    case: Case,
    user: User,
    message_count: int,
    request: Request | None = None,
) -> None:
    audit_service.log_event_best_effort(
        db,
        AuditAction.VIEW_MESSAGES,
        AuditResource.MESSAGE,
        user_id=user.id,
        resource_id=case.id,
        details={"case_number": case.case_number, "message_count": message_count},
        request=request,
    )
