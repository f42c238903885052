"""Tests for case document upload, listing and deletion."""
import hashlib

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from caseportal.db.enums import CaseStatus
from caseportal.db.models import CaseDocument, User
from caseportal.services import storage_service


PDF_BYTES = b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF"


@pytest.mark.asyncio
async def test_upload_pdf_to_draft(patient_client: AsyncClient, patient: User, make_case, db: Session):
    case = make_case(patient)
    response = await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[("files", ("labs.pdf", PDF_BYTES, "application/pdf"))],
    )
    assert response.status_code == 201
    data = response.json()
    assert data["skipped"] == []
    assert len(data["documents"]) == 1
    doc = data["documents"][0]
    assert doc["file_name"] == "labs.pdf"
    assert doc["file_size"] == len(PDF_BYTES)
    assert doc["checksum_sha256"] == hashlib.sha256(PDF_BYTES).hexdigest()

    stored = db.query(CaseDocument).one()
    assert stored.storage_key.startswith(f"cases/{case.id}/")
    assert stored.storage_key.endswith(".pdf")
    assert storage_service.read_file(stored.storage_key) == PDF_BYTES


@pytest.mark.asyncio
async def test_disallowed_type_is_skipped(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    response = await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[
            ("files", ("scan.png", b"\x89PNG\r\n\x1a\n0000", "image/png")),
            ("files", ("run.exe", b"MZ\x90\x00", "application/x-msdownload")),
        ],
    )
    assert response.status_code == 201
    data = response.json()
    assert [d["file_name"] for d in data["documents"]] == ["scan.png"]
    assert data["skipped"] == ["run.exe"]


@pytest.mark.asyncio
async def test_oversized_file_is_skipped(
    patient_client: AsyncClient, patient: User, make_case, monkeypatch
):
    from caseportal.core.config import settings

    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
    case = make_case(patient)
    response = await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[
            ("files", ("small.txt", b"ok", "text/plain")),
            ("files", ("big.txt", b"x" * 64, "text/plain")),
        ],
    )
    assert response.status_code == 201
    data = response.json()
    assert [d["file_name"] for d in data["documents"]] == ["small.txt"]
    assert data["skipped"] == ["big.txt"]


@pytest.mark.asyncio
async def test_upload_requires_files(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    response = await patient_client.post(
        f"/api/cases/{case.id}/documents", data={"note": "nothing attached"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "No files provided"}


@pytest.mark.asyncio
async def test_upload_file_count_limit(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    files = [("files", (f"f{i}.txt", b"x", "text/plain")) for i in range(11)]
    response = await patient_client.post(f"/api/cases/{case.id}/documents", files=files)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_to_submitted_case_rejected(
    patient_client: AsyncClient, patient: User, make_case
):
    case = make_case(patient, status=CaseStatus.SUBMITTED)
    response = await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[("files", ("labs.pdf", PDF_BYTES, "application/pdf"))],
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot add documents to submitted cases"}


@pytest.mark.asyncio
async def test_upload_to_other_patients_case_is_404(
    patient_client: AsyncClient, other_patient: User, make_case
):
    case = make_case(other_patient)
    response = await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[("files", ("labs.pdf", PDF_BYTES, "application/pdf"))],
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_list_and_delete_document(
    patient_client: AsyncClient, patient: User, make_case, db: Session
):
    case = make_case(patient)
    upload = await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[("files", ("notes.txt", b"history", "text/plain"))],
    )
    document_id = upload.json()["documents"][0]["id"]
    storage_key = db.query(CaseDocument).one().storage_key

    listed = await patient_client.get(f"/api/cases/{case.id}/documents")
    assert [d["id"] for d in listed.json()] == [document_id]

    response = await patient_client.delete(
        f"/api/cases/{case.id}/documents", params={"document_id": document_id}
    )
    assert response.status_code == 200
    assert db.query(CaseDocument).count() == 0
    assert storage_service.read_file(storage_key) is None


@pytest.mark.asyncio
async def test_delete_document_requires_id(patient_client: AsyncClient, patient: User, make_case):
    case = make_case(patient)
    response = await patient_client.delete(f"/api/cases/{case.id}/documents")
    assert response.status_code == 400
    assert response.json() == {"error": "Document ID is required"}


@pytest.mark.asyncio
async def test_delete_case_removes_stored_files(
    patient_client: AsyncClient, patient: User, make_case, db: Session
):
    case = make_case(patient)
    await patient_client.post(
        f"/api/cases/{case.id}/documents",
        files=[("files", ("notes.txt", b"history", "text/plain"))],
    )
    storage_key = db.query(CaseDocument).one().storage_key

    response = await patient_client.delete(f"/api/cases/{case.id}")
    assert response.status_code == 200
    assert storage_service.read_file(storage_key) is None
