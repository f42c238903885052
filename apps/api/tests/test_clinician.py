"""Tests for clinician case claiming, case lists and dashboard."""
import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from caseportal.db.enums import AuditAction, CaseStatus, ReportType
from caseportal.db.models import AuditLog, Case, CaseReport, User


# =============================================================================
# Claiming
# =============================================================================

@pytest.mark.asyncio
async def test_assign_submitted_case(
    clinician_client: AsyncClient, clinician: User, patient: User, make_case, db: Session
):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    response = await clinician_client.post(f"/api/cases/{case.id}/assign")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "UNDER_REVIEW"
    assert data["assigned_clinician_id"] == str(clinician.id)
    assert data["owner"]["id"] == str(patient.id)

    db.refresh(case)
    assert case.assigned_at is not None
    entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.CASE_ASSIGNED.value).one()
    assert entry.user_id == clinician.id


@pytest.mark.asyncio
async def test_second_claim_loses(
    clinician_client: AsyncClient,
    client_for,
    clinician: User,
    other_clinician: User,
    patient: User,
    make_case,
    db: Session,
):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    first = await clinician_client.post(f"/api/cases/{case.id}/assign")
    assert first.status_code == 200

    async with client_for(other_clinician) as c:
        second = await c.post(f"/api/cases/{case.id}/assign")
    assert second.status_code == 400
    assert second.json() == {"error": "Case is already assigned to a clinician"}

    db.refresh(case)
    assert case.assigned_clinician_id == clinician.id


@pytest.mark.asyncio
async def test_cannot_assign_draft(clinician_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    response = await clinician_client.post(f"/api/cases/{case.id}/assign")
    assert response.status_code == 400
    assert response.json() == {"error": "Case cannot be assigned in its current status"}


@pytest.mark.asyncio
async def test_cannot_assign_completed(clinician_client: AsyncClient, patient: User, make_case):
    case = make_case(patient, status=CaseStatus.COMPLETED)
    response = await clinician_client.post(f"/api/cases/{case.id}/assign")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_assign_missing_case(clinician_client: AsyncClient):
    response = await clinician_client.post(
        "/api/cases/00000000-0000-0000-0000-000000000000/assign"
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_pending_clinician_cannot_assign(
    client_for, pending_clinician: User, patient: User, make_case
):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    async with client_for(pending_clinician) as c:
        response = await c.post(f"/api/cases/{case.id}/assign")
    assert response.status_code == 403
    assert response.json() == {"error": "Your account is pending approval"}


@pytest.mark.asyncio
async def test_patient_cannot_assign(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    response = await patient_client.post(f"/api/cases/{case.id}/assign")
    assert response.status_code == 403
    assert response.json() == {"error": "Only clinicians can perform this action"}


# =============================================================================
# Lists and dashboard
# =============================================================================

@pytest.mark.asyncio
async def test_my_cases_split_active_and_completed(
    clinician_client: AsyncClient, clinician: User, patient: User, make_case
):
    active = make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=clinician)
    done = make_case(patient, status=CaseStatus.COMPLETED, clinician=clinician)
    make_case(patient, status=CaseStatus.SUBMITTED)

    response = await clinician_client.get("/api/clinician/cases")
    assert response.status_code == 200
    data = response.json()
    assert [c["id"] for c in data["active"]] == [str(active.id)]
    assert [c["id"] for c in data["completed"]] == [str(done.id)]


@pytest.mark.asyncio
async def test_case_board(
    clinician_client: AsyncClient,
    clinician: User,
    other_clinician: User,
    patient: User,
    make_case,
):
    open_case = make_case(patient, status=CaseStatus.SUBMITTED)
    make_case(patient)  # drafts never show on the board
    mine = make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=clinician)
    theirs = make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=other_clinician)

    response = await clinician_client.get("/api/clinician/cases/all")
    assert response.status_code == 200
    data = response.json()
    assert [c["id"] for c in data["unassigned"]] == [str(open_case.id)]
    assert [c["id"] for c in data["mine"]] == [str(mine.id)]
    assert [c["id"] for c in data["others"]] == [str(theirs.id)]
    assert data["others"][0]["assigned_clinician"]["id"] == str(other_clinician.id)


@pytest.mark.asyncio
async def test_case_board_hides_archived(
    clinician_client: AsyncClient,
    clinician: User,
    other_clinician: User,
    patient: User,
    make_case,
):
    done = make_case(patient, status=CaseStatus.COMPLETED, clinician=clinician)
    make_case(patient, status=CaseStatus.ARCHIVED, clinician=clinician)
    make_case(patient, status=CaseStatus.ARCHIVED, clinician=other_clinician)

    data = (await clinician_client.get("/api/clinician/cases/all")).json()
    assert [c["id"] for c in data["mine"]] == [str(done.id)]
    assert data["others"] == []


@pytest.mark.asyncio
async def test_pending_clinician_cannot_list_board(client_for, pending_clinician: User):
    async with client_for(pending_clinician) as c:
        response = await c.get("/api/clinician/cases/all")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_clinician_dashboard_stats(
    clinician_client: AsyncClient, clinician: User, patient: User, make_case, db: Session
):
    reviewing = make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=clinician)
    make_case(patient, status=CaseStatus.COMPLETED, clinician=clinician)
    make_case(patient, status=CaseStatus.SUBMITTED)
    db.add(
        CaseReport(
            case_id=reviewing.id,
            author_id=clinician.id,
            report_type=ReportType.AI_SYNTHESIS.value,
            content={"summary": "draft"},
        )
    )
    db.commit()

    response = await clinician_client.get("/api/clinician/dashboard")
    assert response.status_code == 200
    data = response.json()
    assert data["stats"] == {
        "total_assigned": 2,
        "active_reviews": 1,
        "completed_reviews": 1,
        "reports_written": 1,
        "pending_cases": 1,
    }
    assert len(data["recent_cases"]) == 2


@pytest.mark.asyncio
async def test_authored_reports(
    clinician_client: AsyncClient, clinician: User, patient: User, make_case, db: Session
):
    case = make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=clinician)
    db.add(
        CaseReport(
            case_id=case.id,
            author_id=clinician.id,
            report_type=ReportType.FINAL_REPORT.value,
            content={"summary": "ok"},
        )
    )
    db.commit()

    response = await clinician_client.get("/api/clinician/reports")
    assert response.status_code == 200
    reports = response.json()
    assert len(reports) == 1
    assert reports[0]["case"]["case_number"] == case.case_number
    assert reports[0]["report_type"] == "FINAL_REPORT"


@pytest.mark.asyncio
async def test_assign_leaves_other_cases_untouched(
    clinician_client: AsyncClient, patient: User, make_case, db: Session
):
    target = make_case(patient, status=CaseStatus.SUBMITTED)
    bystander = make_case(patient, status=CaseStatus.SUBMITTED)

    await clinician_client.post(f"/api/cases/{target.id}/assign")

    assert db.get(Case, bystander.id).assigned_clinician_id is None
