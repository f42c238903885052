"""Cases router: a patient's own cases through draft and submission."""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from caseportal.core.config import settings
from caseportal.core.deps import get_current_user, get_db, require_csrf_header, require_roles
from caseportal.db.enums import CaseStatus, Role
from caseportal.db.models import User
from caseportal.schemas.case import CaseCreate, CaseListItem, CaseListResponse, CaseRead, CaseUpdate
from caseportal.services import case_service, notification_service, storage_service
from caseportal.services.case_service import CaseWorkflowError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=CaseListResponse)
def list_cases(
    status: CaseStatus | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Own cases, most recently updated first. Optional status filter."""
    return CaseListResponse(cases=case_service.list_owned_cases(db, user, status))


@router.post(
    "",
    response_model=CaseListItem,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_case(
    data: CaseCreate,
    request: Request,
    user: User = Depends(require_roles([Role.PATIENT])),
    db: Session = Depends(get_db),
):
    """Start a new draft case."""
    return case_service.create_case(db, user, data, request=request)


@router.get("/{case_id}", response_model=CaseRead)
def get_case(
    case_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Case with documents and reports.

    Visible to the owner, the assigned clinician and admins; anyone else
    gets 404 so case ids cannot be probed.
    """
    try:
        return case_service.get_case_for_viewer(db, case_id, user)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.patch("/{case_id}", response_model=CaseListItem, dependencies=[Depends(require_csrf_header)])
def update_case(
    case_id: UUID,
    data: CaseUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        case = case_service.get_owned_case(db, case_id, user)
        return case_service.update_case(db, case, user, data, request=request)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


@router.delete("/{case_id}", dependencies=[Depends(require_csrf_header)])
def delete_case(
    case_id: UUID,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a draft case and its stored documents."""
    try:
        case = case_service.get_owned_case(db, case_id, user)
        storage_keys = case_service.delete_case(db, case, user, request=request)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    for key in storage_keys:
        try:
            storage_service.delete_file(key)
        except Exception:
            logger.warning("Failed to delete stored document", exc_info=True)
    return {"success": True}


@router.post("/{case_id}/submit", response_model=CaseListItem, dependencies=[Depends(require_csrf_header)])
def submit_case(
    case_id: UUID,
    request: Request,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Submit a draft for review.

    Confirmation emails go out after the response; a failed email never
    affects the submission.
    """
    try:
        case = case_service.submit_case(db, case_id, user, request=request)
    except CaseWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    background_tasks.add_task(
        notification_service.send_case_submitted_patient_notification,
        patient_email=user.email,
        patient_name=user.display_name,
        case_number=case.case_number,
        case_id=str(case.id),
        case_type=case.case_type,
    )
    if settings.NOTIFICATION_EMAIL:
        background_tasks.add_task(
            notification_service.send_case_submitted_team_notification,
            patient_name=user.display_name,
            patient_email=user.email,
            case_number=case.case_number,
            case_id=str(case.id),
            case_type=case.case_type,
            primary_diagnosis=case.primary_diagnosis,
        )
    return case
