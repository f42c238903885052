"""Tests for saved trials and the patient dashboard."""
import pytest
from httpx import AsyncClient

from caseportal.db.enums import CaseStatus
from caseportal.db.models import User


TRIAL = {
    "trial_id": "NCT01234567",
    "trial_title": "Immunotherapy in stage II lymphoma",
    "trial_data": {"phase": "2", "sites": ["Boston"]},
}


@pytest.mark.asyncio
async def test_save_and_list_trial(patient_client: AsyncClient):
    response = await patient_client.post("/api/trials/saved", json=TRIAL)
    assert response.status_code == 201
    assert response.json()["trial_data"] == {"phase": "2", "sites": ["Boston"]}

    listed = await patient_client.get("/api/trials/saved")
    assert [t["trial_id"] for t in listed.json()] == ["NCT01234567"]


@pytest.mark.asyncio
async def test_save_duplicate_conflicts(patient_client: AsyncClient):
    await patient_client.post("/api/trials/saved", json=TRIAL)
    response = await patient_client.post("/api/trials/saved", json=TRIAL)
    assert response.status_code == 409
    assert response.json() == {"error": "Trial already saved"}


@pytest.mark.asyncio
async def test_saved_trials_are_per_user(patient_client: AsyncClient, client_for, other_patient: User):
    await patient_client.post("/api/trials/saved", json=TRIAL)

    async with client_for(other_patient) as c:
        assert (await c.get("/api/trials/saved")).json() == []
        # Another user may save the same trial
        response = await c.post("/api/trials/saved", json=TRIAL)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_remove_saved_trial(patient_client: AsyncClient):
    await patient_client.post("/api/trials/saved", json=TRIAL)

    response = await patient_client.delete("/api/trials/saved/NCT01234567")
    assert response.status_code == 200
    assert (await patient_client.get("/api/trials/saved")).json() == []

    again = await patient_client.delete("/api/trials/saved/NCT01234567")
    assert again.status_code == 404
    assert again.json() == {"error": "Saved trial not found"}


@pytest.mark.asyncio
async def test_trials_require_auth(client: AsyncClient):
    response = await client.get("/api/trials/saved")
    assert response.status_code == 401


# =============================================================================
# Patient dashboard
# =============================================================================

@pytest.mark.asyncio
async def test_patient_dashboard(patient_client: AsyncClient, patient: User, clinician: User, make_case):
    make_case(patient)
    make_case(patient, status=CaseStatus.SUBMITTED)
    make_case(patient, status=CaseStatus.UNDER_REVIEW, clinician=clinician)
    make_case(patient, status=CaseStatus.COMPLETED, clinician=clinician)
    await patient_client.post("/api/trials/saved", json=TRIAL)

    response = await patient_client.get("/api/portal/dashboard")
    assert response.status_code == 200
    data = response.json()
    assert data["stats"] == {
        "total": 4,
        "draft": 1,
        "active": 2,
        "completed": 1,
        "saved_trials": 1,
    }
    assert len(data["recent_cases"]) == 4


@pytest.mark.asyncio
async def test_patient_dashboard_limits_recent_cases(patient_client: AsyncClient, patient: User, make_case):
    for _ in range(7):
        make_case(patient)

    data = (await patient_client.get("/api/portal/dashboard")).json()
    assert len(data["recent_cases"]) == 5
    assert data["stats"]["total"] == 7


@pytest.mark.asyncio
async def test_clinician_cannot_open_patient_dashboard(clinician_client: AsyncClient):
    response = await clinician_client.get("/api/portal/dashboard")
    assert response.status_code == 403
