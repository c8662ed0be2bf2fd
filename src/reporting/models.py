# src/reporting/models.py - v1
"""Report snapshot models.

Snapshots are frozen: the same instance is handed to every caller that hits
the cache, so it must not be mutated after composition.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from credreports.store.models import DocumentType, StudentStatus


class ReportModel(BaseModel):
    """Frozen base for report payloads."""

    model_config = ConfigDict(frozen=True)


# === Search ===


class StudentSearchParams(ReportModel):
    """Filters and pagination for student search."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str | None = None
    status: StudentStatus | None = None
    department_id: int | None = None
    faculty_id: int | None = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)

    @field_validator("query")
    @classmethod
    def blank_query_is_none(cls, v: str | None) -> str | None:  # noqa: N805
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class StudentSummary(ReportModel):
    id: int
    registration_id: str
    certificate_id: str | None = None
    full_name: str
    status: str
    created_at: datetime | None = None
    department_id: int | None = None
    department_name: str | None = None
    faculty_id: int | None = None
    faculty_name: str | None = None
    document_count: int = 0


class StudentSearchResult(ReportModel):
    students: list[StudentSummary]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool
    generated_at: datetime


# === Dashboard ===


class StatusCount(ReportModel):
    status: str
    count: int
    percentage: int


class DepartmentCount(ReportModel):
    department_id: int | None
    name: str | None = None
    count: int


class DocumentTypeCount(ReportModel):
    document_type: str
    count: int


class MonthlyCount(ReportModel):
    month: str
    count: int


class ActivityCount(ReportModel):
    action: str
    count: int


class RecentRegistration(ReportModel):
    id: int
    registration_id: str
    full_name: str
    status: str
    created_at: datetime | None = None
    department_name: str | None = None


class DashboardMetrics(ReportModel):
    total_students: int
    cleared_students: int
    uncleared_students: int
    total_documents: int
    recent_registrations: list[RecentRegistration]
    department_breakdown: list[DepartmentCount]
    status_distribution: list[StatusCount]
    document_type_stats: list[DocumentTypeCount]
    monthly_registrations: list[MonthlyCount]
    recent_activity: list[ActivityCount]
    generated_at: datetime


class QuickStats(ReportModel):
    total_students: int
    total_departments: int
    male_students: int
    female_students: int
    male_percentage: int
    female_percentage: int
    last_year_graduates: int
    certificates_issued: int
    certificate_percentage: int
    perfect_gpa_students: int
    generated_at: datetime


# === Analytics ===


class GroupPerformance(ReportModel):
    """Count and average GPA for one status / department / faculty."""

    key: Any
    label: str | None = None
    count: int
    average_gpa: float | None = None


class GpaBucket(ReportModel):
    range: str
    lower: float
    upper: float
    count: int
    percentage: int


class StudentAnalytics(ReportModel):
    total_students: int
    status_breakdown: list[GroupPerformance]
    department_stats: list[GroupPerformance]
    faculty_stats: list[GroupPerformance]
    gpa_distribution: list[GpaBucket]
    registration_trend: list[MonthlyCount]
    generated_at: datetime


class DocumentTypeInsight(ReportModel):
    document_type: DocumentType | str
    count: int
    average_size_kb: int
    total_size_mb: int


class DocumentInsights(ReportModel):
    total_documents: int
    students_with_documents: int
    total_size_mb: int
    document_type_stats: list[DocumentTypeInsight]
    generated_at: datetime


# === Comprehensive reports ===


class ReportSummary(ReportModel):
    total_students: int
    total_departments: int
    total_faculties: int
    average_gpa: float
    certificate_rate: int


class DepartmentReport(ReportModel):
    id: int
    name: str
    faculty: str
    total_students: int
    male_students: int
    female_students: int
    certificates_issued: int
    average_gpa: float
    certificate_rate: int


class DepartmentAnalysis(ReportModel):
    distribution: list[DepartmentReport]
    top_performing: list[DepartmentReport]


class GradeCount(ReportModel):
    grade: str
    count: int
    percentage: int


class TopPerformer(ReportModel):
    name: str
    registration_id: str
    gpa: float
    department: str
    faculty: str


class AcademicPerformance(ReportModel):
    gpa_distribution: list[GpaBucket]
    grade_distribution: list[GradeCount]
    top_performers: list[TopPerformer]


class YearCount(ReportModel):
    year: str
    count: int


class ReportTrends(ReportModel):
    yearly_admissions: list[YearCount]
    monthly_registrations: list[MonthlyCount]


class GenderShare(ReportModel):
    gender: str
    count: int
    percentage: int


class CertificateByDepartment(ReportModel):
    department: str
    issued: int
    total: int
    rate: int


class CertificateSummary(ReportModel):
    total_issued: int
    total_pending: int
    issuance_rate: int
    by_department: list[CertificateByDepartment]


class ReportsData(ReportModel):
    summary: ReportSummary
    department_analysis: DepartmentAnalysis
    academic_performance: AcademicPerformance
    trends: ReportTrends
    gender_distribution: list[GenderShare]
    certificates: CertificateSummary
    generated_at: datetime
