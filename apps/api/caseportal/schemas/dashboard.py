"""Pydantic schemas for role dashboards."""

from pydantic import BaseModel

from caseportal.schemas.case import CaseListItem, CaseWithPatient


class PatientStats(BaseModel):
    total: int
    draft: int
    active: int
    completed: int
    saved_trials: int


class PatientDashboard(BaseModel):
    recent_cases: list[CaseListItem]
    stats: PatientStats


class ClinicianStats(BaseModel):
    total_assigned: int
    active_reviews: int
    completed_reviews: int
    reports_written: int
    pending_cases: int


class ClinicianDashboard(BaseModel):
    recent_cases: list[CaseWithPatient]
    stats: ClinicianStats


class ClinicianCaseGroups(BaseModel):
    active: list[CaseWithPatient]
    completed: list[CaseWithPatient]


class ClinicianCaseBoard(BaseModel):
    unassigned: list[CaseWithPatient]
    mine: list[CaseWithPatient]
    others: list[CaseWithPatient]


class AdminStats(BaseModel):
    total_users: int
    pending_approvals: int
    total_cases: int
    active_cases: int
    total_clinicians: int
    total_patients: int
