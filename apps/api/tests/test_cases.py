"""Tests for the patient case lifecycle: create, edit, delete, submit."""
import re
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from caseportal.db.enums import AuditAction, CaseStatus, Role
from caseportal.db.models import AuditLog, Case, User
from caseportal.services.case_service import generate_case_number


def test_case_number_format():
    number = generate_case_number(datetime(2025, 3, 7, tzinfo=timezone.utc))
    assert re.fullmatch(r"MF-250307-[A-Z0-9]{6}", number)


def test_case_numbers_are_random():
    assert len({generate_case_number() for _ in range(50)}) == 50


# =============================================================================
# Create / list
# =============================================================================

@pytest.mark.asyncio
async def test_create_case_starts_as_draft(patient_client: AsyncClient, patient: User, db: Session):
    response = await patient_client.post(
        "/api/cases", json={"title": "  Persistent cough  ", "case_type": "INFECTIOUS_DISEASE"}
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "DRAFT"
    assert data["title"] == "Persistent cough"
    assert data["case_number"].startswith("MF-")
    assert data["assigned_clinician_id"] is None

    case = db.query(Case).one()
    assert case.user_id == patient.id
    assert (
        db.query(AuditLog).filter(AuditLog.action == AuditAction.CREATE_CASE.value).count() == 1
    )


@pytest.mark.asyncio
async def test_create_case_validates_type(patient_client: AsyncClient):
    response = await patient_client.post(
        "/api/cases", json={"title": "Something", "case_type": "DENTAL"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_create_case_requires_title(patient_client: AsyncClient):
    response = await patient_client.post("/api/cases", json={"title": "", "case_type": "OTHER"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_clinician_cannot_create_case(clinician_client: AsyncClient):
    response = await clinician_client.post(
        "/api/cases", json={"title": "Not mine", "case_type": "OTHER"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_cases_only_own(
    patient_client: AsyncClient, patient: User, other_patient: User, make_case
):
    mine = make_case(patient)
    make_case(other_patient)

    response = await patient_client.get("/api/cases")
    assert response.status_code == 200
    ids = [c["id"] for c in response.json()["cases"]]
    assert ids == [str(mine.id)]


@pytest.mark.asyncio
async def test_list_cases_status_filter(patient_client: AsyncClient, patient: User, make_case):
    make_case(patient)
    submitted = make_case(patient, status=CaseStatus.SUBMITTED)

    response = await patient_client.get("/api/cases", params={"status": "SUBMITTED"})
    assert [c["id"] for c in response.json()["cases"]] == [str(submitted.id)]


@pytest.mark.asyncio
async def test_list_cases_requires_auth(client: AsyncClient):
    response = await client.get("/api/cases")
    assert response.status_code == 401


# =============================================================================
# Detail visibility
# =============================================================================

@pytest.mark.asyncio
async def test_owner_sees_case_detail(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient, symptoms="Fever")
    response = await patient_client.get(f"/api/cases/{case.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["symptoms"] == "Fever"
    assert data["owner"]["id"] == str(patient.id)
    assert data["documents"] == []
    assert data["reports"] == []


@pytest.mark.asyncio
async def test_other_patient_gets_404(client_for, other_patient: User, patient: User, make_case):
    case = make_case(patient)
    async with client_for(other_patient) as c:
        response = await c.get(f"/api/cases/{case.id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Case not found"}


@pytest.mark.asyncio
async def test_unassigned_clinician_gets_404(
    clinician_client: AsyncClient, patient: User, make_case
):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    response = await clinician_client.get(f"/api/cases/{case.id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assigned_clinician_and_admin_see_case(
    clinician_client: AsyncClient,
    admin_client: AsyncClient,
    patient: User,
    clinician: User,
    make_case,
):
    case = make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=clinician)

    response = await clinician_client.get(f"/api/cases/{case.id}")
    assert response.status_code == 200
    assert response.json()["assigned_clinician"]["specialty"] == "Oncology"

    response = await admin_client.get(f"/api/cases/{case.id}")
    assert response.status_code == 200


# =============================================================================
# Edit / delete
# =============================================================================

@pytest.mark.asyncio
async def test_update_draft(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    response = await patient_client.patch(
        f"/api/cases/{case.id}",
        json={
            "primary_diagnosis": "Lymphoma",
            "allergies": "Penicillin",
            "intake_data": {"weight_kg": 70},
        },
    )
    assert response.status_code == 200
    assert response.json()["primary_diagnosis"] == "Lymphoma"

    detail = (await patient_client.get(f"/api/cases/{case.id}")).json()
    assert detail["allergies"] == "Penicillin"
    assert detail["intake_data"] == {"weight_kg": 70}


@pytest.mark.asyncio
async def test_update_submitted_case_rejected(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    response = await patient_client.patch(f"/api/cases/{case.id}", json={"title": "New"})
    assert response.status_code == 400
    assert response.json() == {"error": "Only draft cases can be edited"}


@pytest.mark.asyncio
async def test_update_other_patients_case_is_404(
    patient_client: AsyncClient, other_patient: User, make_case
):
    case = make_case(other_patient)
    response = await patient_client.patch(f"/api/cases/{case.id}", json={"title": "Mine now"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_field_length_limit(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    response = await patient_client.patch(
        f"/api/cases/{case.id}", json={"symptoms": "x" * 2001}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_draft(patient_client: AsyncClient, patient: User, make_case, db: Session):
    case = make_case(patient)
    response = await patient_client.delete(f"/api/cases/{case.id}")
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert db.query(Case).count() == 0


@pytest.mark.asyncio
async def test_delete_submitted_rejected(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    response = await patient_client.delete(f"/api/cases/{case.id}")
    assert response.status_code == 400
    assert response.json() == {"error": "Only draft cases can be deleted"}


# =============================================================================
# Submit
# =============================================================================

@pytest.mark.asyncio
async def test_submit_draft(patient_client: AsyncClient, patient: User, make_case, db: Session):
    case = make_case(patient)
    response = await patient_client.post(f"/api/cases/{case.id}/submit")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "SUBMITTED"
    assert data["submitted_at"] is not None

    assert (
        db.query(AuditLog).filter(AuditLog.action == AuditAction.SUBMIT_CASE.value).count() == 1
    )


@pytest.mark.asyncio
async def test_submit_twice_fails(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    first = await patient_client.post(f"/api/cases/{case.id}/submit")
    assert first.status_code == 200

    second = await patient_client.post(f"/api/cases/{case.id}/submit")
    assert second.status_code == 400
    assert second.json() == {"error": "Only draft cases can be submitted"}


@pytest.mark.asyncio
async def test_submit_other_patients_case_is_404(
    patient_client: AsyncClient, other_patient: User, make_case
):
    case = make_case(other_patient)
    response = await patient_client.post(f"/api/cases/{case.id}/submit")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_submit_sends_confirmation_emails(
    patient_client: AsyncClient, patient: User, make_case, monkeypatch
):
    from caseportal.services import notification_service

    sent = []

    async def fake_patient(**kwargs):
        sent.append(("patient", kwargs["case_number"]))

    async def fake_team(**kwargs):
        sent.append(("team", kwargs["case_number"]))

    monkeypatch.setattr(notification_service, "send_case_submitted_patient_notification", fake_patient)
    monkeypatch.setattr(notification_service, "send_case_submitted_team_notification", fake_team)

    case = make_case(patient)
    response = await patient_client.post(f"/api/cases/{case.id}/submit")
    assert response.status_code == 200
    assert ("patient", case.case_number) in sent
    assert ("team", case.case_number) in sent


@pytest.mark.asyncio
async def test_admin_case_list(admin_client: AsyncClient, make_user, make_case):
    owner = make_user(Role.PATIENT)
    make_case(owner)
    make_case(owner, status=CaseStatus.SUBMITTED)

    response = await admin_client.get("/api/admin/cases")
    assert response.status_code == 200
    assert len(response.json()) == 2
    assert all(item["owner"]["id"] == str(owner.id) for item in response.json())
