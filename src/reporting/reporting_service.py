# src/reporting/reporting_service.py - v1
"""Read-through report engine over an AggregateDataStore.

Every report follows the same path: derive a CacheKey, return the cached
snapshot on a hit, otherwise run the independent data-store calls
concurrently, compose a frozen snapshot, cache it with the report's TTL tier
and return it. A failed sub-query rejects the whole report and nothing is
cached.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from credreports.cache.base_cache_store import BaseCacheStore
from credreports.cache.models import WRITE_CATEGORIES, CacheKey, CacheStats
from credreports.config.settings import Settings
from credreports.logging.context import reset_report_context, set_report_context
from credreports.reporting.aggregations import (
    GPA_RANGES,
    GRADE_THRESHOLDS,
    bucket_by_month,
    count_gpa_ranges,
    index_by,
    letter_grade,
    percentage,
    round_gpa,
    round_half_up,
    window_start,
)
from credreports.reporting.models import (
    AcademicPerformance,
    ActivityCount,
    CertificateByDepartment,
    CertificateSummary,
    DashboardMetrics,
    DepartmentAnalysis,
    DepartmentCount,
    DepartmentReport,
    DocumentInsights,
    DocumentTypeCount,
    DocumentTypeInsight,
    GenderShare,
    GpaBucket,
    GradeCount,
    GroupPerformance,
    MonthlyCount,
    QuickStats,
    RecentRegistration,
    ReportsData,
    ReportSummary,
    ReportTrends,
    StatusCount,
    StudentAnalytics,
    StudentSearchParams,
    StudentSearchResult,
    StudentSummary,
    TopPerformer,
    YearCount,
)
from credreports.store.base_data_store import AggregateDataStore
from credreports.store.models import (
    STUDENT_SEARCH_FIELDS,
    Aggregation,
    FieldRange,
    GroupRow,
    OrderBy,
    QueryFilter,
    TextSearch,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_NEWEST_FIRST = [OrderBy(field="created_at", direction="desc")]
_AVG_GPA = Aggregation(avg=["gpa"])
_UNKNOWN = "Unknown"


class ReportingError(Exception):
    """Base error for report generation."""


class ReportTimeoutError(ReportingError):
    """The concurrent phase of a report exceeded query_timeout_seconds."""

    def __init__(self, report: str, timeout: float) -> None:
        self.report = report
        self.timeout = timeout
        super().__init__(f"Report {report} timed out after {timeout}s")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportingService:
    """Cached dashboard, analytics and search reports.

    Args:
        store: Data store; usually an InstrumentedDataStore.
        cache: Cache store shared by every report.
        settings: TTL tiers, windows and limits.
        now: Wall clock used for trend windows and ``generated_at``.
    """

    def __init__(
        self,
        store: AggregateDataStore,
        cache: BaseCacheStore,
        settings: Settings | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._cache = cache
        self._settings = settings or Settings()
        self._now = now

    # === Read-through plumbing ===

    async def _read_through(
        self, key: CacheKey, ttl: float, build: Callable[[], Awaitable[T]]
    ) -> T:
        rendered = key.render()
        cached = self._cache.get(rendered)
        if cached is not None:
            return cached

        token = set_report_context(key.name)
        start = time.perf_counter()
        try:
            result = await build()
        except Exception as exc:
            logger.error(
                "Report %s failed after %.2fms: %s",
                rendered, (time.perf_counter() - start) * 1000.0, exc,
            )
            raise
        finally:
            reset_report_context(token)

        self._cache.set(rendered, result, ttl=ttl, tags={key.category})
        logger.info(
            "Generated %s in %.2fms", rendered, (time.perf_counter() - start) * 1000.0
        )
        return result

    async def _gather(self, report: str, *calls: Awaitable[Any]) -> list[Any]:
        """Run ``calls`` concurrently; the first failure rejects the batch.

        Sub-queries still pending when the batch is rejected (failure, timeout
        or cancellation) are cancelled and awaited before the error propagates.
        """
        timeout = self._settings.query_timeout_seconds
        if timeout is None:
            return await _join(calls)
        try:
            return await asyncio.wait_for(_join(calls), timeout)
        except asyncio.TimeoutError:
            raise ReportTimeoutError(report, timeout) from None

    async def _registration_timestamps(self, start: datetime) -> list[datetime | None]:
        rows = await self._store.find_many(
            "Student",
            where=QueryFilter(ranges={"created_at": FieldRange(gte=start)}),
            select=["created_at"],
        )
        return [r["created_at"] for r in rows]

    def _trend(
        self, timestamps: list[datetime | None], now: datetime, months: int
    ) -> list[MonthlyCount]:
        return [
            MonthlyCount(month=month, count=count)
            for month, count in bucket_by_month(timestamps, now, months)
        ]

    # === Dashboard ===

    async def get_dashboard_metrics(self) -> DashboardMetrics:
        """Headline counts, breakdowns, trend and recent activity."""
        return await self._read_through(
            CacheKey(category="dashboard", name="metrics"),
            self._settings.cache_ttl_seconds,
            self._build_dashboard_metrics,
        )

    async def _build_dashboard_metrics(self) -> DashboardMetrics:
        s = self._settings
        now = self._now()
        store = self._store

        (
            total_students,
            cleared,
            uncleared,
            total_documents,
            recent,
            by_department,
            departments,
            by_status,
            by_document_type,
            trend_timestamps,
            activity,
        ) = await self._gather(
            "dashboard_metrics",
            store.count("Student"),
            store.count("Student", QueryFilter(equals={"status": "CLEARED"})),
            store.count("Student", QueryFilter(equals={"status": "UN_CLEARED"})),
            store.count("Document"),
            store.find_many(
                "Student",
                select=[
                    "id", "registration_id", "full_name",
                    "status", "created_at", "department_id",
                ],
                order_by=_NEWEST_FIRST,
                take=s.recent_registrations_limit,
            ),
            store.group_by("Student", ["department_id"]),
            store.find_many("Department", select=["id", "name"]),
            store.group_by("Student", ["status"]),
            store.group_by("Document", ["document_type"]),
            self._registration_timestamps(window_start(now, s.dashboard_trend_months)),
            store.group_by(
                "AuditLog",
                ["action"],
                QueryFilter(ranges={
                    "timestamp": FieldRange(
                        gte=now - timedelta(hours=s.recent_activity_hours)
                    ),
                }),
            ),
        )

        dept_names = {d["id"]: d["name"] for d in departments}

        recent_activity = sorted(activity, key=lambda r: r.count, reverse=True)[:10]

        return DashboardMetrics(
            total_students=total_students,
            cleared_students=cleared,
            uncleared_students=uncleared,
            total_documents=total_documents,
            recent_registrations=[
                RecentRegistration(
                    id=r["id"],
                    registration_id=r["registration_id"],
                    full_name=r["full_name"],
                    status=r["status"],
                    created_at=r["created_at"],
                    department_name=dept_names.get(r["department_id"]),
                )
                for r in recent
            ],
            department_breakdown=[
                DepartmentCount(
                    department_id=row.keys["department_id"],
                    name=dept_names.get(row.keys["department_id"]),
                    count=row.count,
                )
                for row in by_department
            ],
            status_distribution=[
                StatusCount(
                    status=row.keys["status"],
                    count=row.count,
                    percentage=percentage(row.count, total_students),
                )
                for row in by_status
            ],
            document_type_stats=[
                DocumentTypeCount(document_type=row.keys["document_type"], count=row.count)
                for row in by_document_type
            ],
            monthly_registrations=self._trend(
                trend_timestamps, now, s.dashboard_trend_months
            ),
            recent_activity=[
                ActivityCount(action=row.keys["action"], count=row.count)
                for row in recent_activity
            ],
            generated_at=now,
        )

    async def get_quick_stats(self) -> QuickStats:
        """Lightweight headline figures, cached on the quick TTL tier."""
        return await self._read_through(
            CacheKey(category="dashboard", name="quick_stats"),
            self._settings.cache_quick_ttl_seconds,
            self._build_quick_stats,
        )

    async def _build_quick_stats(self) -> QuickStats:
        now = self._now()
        store = self._store
        last_year = now.year - 1

        (
            total_students,
            total_departments,
            male,
            female,
            certificates,
            graduates,
            perfect_gpa,
        ) = await self._gather(
            "quick_stats",
            store.count("Student"),
            store.count("Department"),
            store.count("Student", QueryFilter(equals={"gender": "MALE"})),
            store.count("Student", QueryFilter(equals={"gender": "FEMALE"})),
            store.count("Student", QueryFilter(not_null=["certificate_id"])),
            store.count("Student", QueryFilter(ranges={
                "graduation_date": FieldRange(
                    gte=datetime(last_year, 1, 1, tzinfo=timezone.utc),
                    lt=datetime(now.year, 1, 1, tzinfo=timezone.utc),
                ),
            })),
            store.count("Student", QueryFilter(equals={"gpa": 4.0})),
        )

        return QuickStats(
            total_students=total_students,
            total_departments=total_departments,
            male_students=male,
            female_students=female,
            male_percentage=percentage(male, total_students),
            female_percentage=percentage(female, total_students),
            last_year_graduates=graduates,
            certificates_issued=certificates,
            certificate_percentage=percentage(certificates, total_students),
            perfect_gpa_students=perfect_gpa,
            generated_at=now,
        )

    # === Comprehensive reports ===

    async def get_reports(self) -> ReportsData:
        """Department, academic, trend, gender and certificate reports."""
        return await self._read_through(
            CacheKey(category="dashboard", name="reports"),
            self._settings.cache_ttl_seconds,
            self._build_reports,
        )

    async def _build_reports(self) -> ReportsData:
        s = self._settings
        now = self._now()
        store = self._store

        (
            total_students,
            departments,
            faculties,
            dept_gpa,
            dept_gender,
            dept_certificates,
            graded,
            by_year,
            academic_years,
            by_gender,
            trend_timestamps,
        ) = await self._gather(
            "reports",
            store.count("Student"),
            store.find_many(
                "Department", select=["id", "name", "faculty_id"],
                order_by=[OrderBy(field="name")],
            ),
            store.find_many("Faculty", select=["id", "name"]),
            store.group_by("Student", ["department_id"], aggregate=_AVG_GPA),
            store.group_by("Student", ["department_id", "gender"]),
            store.group_by(
                "Student", ["department_id"],
                QueryFilter(not_null=["certificate_id"]),
            ),
            store.find_many(
                "Student",
                where=QueryFilter(not_null=["gpa"]),
                select=["full_name", "registration_id", "gpa", "department_id", "faculty_id"],
                order_by=[OrderBy(field="gpa", direction="desc")],
            ),
            store.group_by("Student", ["academic_year_id"]),
            store.find_many(
                "AcademicYear", select=["id", "academic_year"],
                order_by=[OrderBy(field="academic_year", direction="desc")],
            ),
            store.group_by("Student", ["gender"]),
            self._registration_timestamps(window_start(now, s.reports_trend_months)),
        )

        faculty_names = {f["id"]: f["name"] for f in faculties}
        dept_index = index_by(departments)

        distribution = self._department_reports(
            departments, faculty_names, dept_gpa, dept_gender, dept_certificates
        )
        top_departments = sorted(
            (d for d in distribution if d.total_students > 0),
            key=lambda d: d.average_gpa,
            reverse=True,
        )[:5]

        gpas = [row["gpa"] for row in graded]
        total_certificates = sum(d.certificates_issued for d in distribution)

        summary = ReportSummary(
            total_students=total_students,
            total_departments=len(departments),
            total_faculties=len(faculties),
            average_gpa=round(sum(gpas) / len(gpas), 2) if gpas else 0.0,
            certificate_rate=percentage(total_certificates, total_students),
        )

        grade_counts = dict.fromkeys((g for g, _ in GRADE_THRESHOLDS), 0)
        for gpa in gpas:
            grade_counts[letter_grade(gpa)] += 1

        top_performers = []
        for row in graded[:10]:
            dept = dept_index.get(row["department_id"]) or {}
            faculty_id = row.get("faculty_id") or dept.get("faculty_id")
            top_performers.append(TopPerformer(
                name=row["full_name"],
                registration_id=row["registration_id"],
                gpa=row["gpa"],
                department=dept.get("name") or _UNKNOWN,
                faculty=faculty_names.get(faculty_id) or _UNKNOWN,
            ))

        year_counts = {row.keys["academic_year_id"]: row.count for row in by_year}

        return ReportsData(
            summary=summary,
            department_analysis=DepartmentAnalysis(
                distribution=sorted(
                    distribution, key=lambda d: d.total_students, reverse=True
                ),
                top_performing=top_departments,
            ),
            academic_performance=AcademicPerformance(
                gpa_distribution=self._gpa_buckets(count_gpa_ranges(gpas)),
                grade_distribution=[
                    GradeCount(
                        grade=grade,
                        count=count,
                        percentage=percentage(count, len(gpas)),
                    )
                    for grade, count in grade_counts.items()
                ],
                top_performers=top_performers,
            ),
            trends=ReportTrends(
                yearly_admissions=[
                    YearCount(year=y["academic_year"], count=year_counts.get(y["id"], 0))
                    for y in academic_years
                ],
                monthly_registrations=self._trend(
                    trend_timestamps, now, s.reports_trend_months
                ),
            ),
            gender_distribution=[
                GenderShare(
                    gender=row.keys["gender"] or _UNKNOWN,
                    count=row.count,
                    percentage=percentage(row.count, total_students),
                )
                for row in sorted(by_gender, key=lambda r: r.count, reverse=True)
            ],
            certificates=CertificateSummary(
                total_issued=total_certificates,
                total_pending=max(total_students - total_certificates, 0),
                issuance_rate=percentage(total_certificates, total_students),
                by_department=[
                    CertificateByDepartment(
                        department=d.name,
                        issued=d.certificates_issued,
                        total=d.total_students,
                        rate=d.certificate_rate,
                    )
                    for d in distribution
                    if d.total_students > 0
                ],
            ),
            generated_at=now,
        )

    @staticmethod
    def _department_reports(
        departments: list[dict[str, Any]],
        faculty_names: dict[Any, str],
        dept_gpa: list[GroupRow],
        dept_gender: list[GroupRow],
        dept_certificates: list[GroupRow],
    ) -> list[DepartmentReport]:
        totals = {row.keys["department_id"]: row for row in dept_gpa}
        certificates = {
            row.keys["department_id"]: row.count for row in dept_certificates
        }
        genders: dict[Any, dict[str, int]] = {}
        for row in dept_gender:
            genders.setdefault(row.keys["department_id"], {})[row.keys["gender"]] = row.count

        reports = []
        for dept in departments:
            group = totals.get(dept["id"])
            total = group.count if group else 0
            avg = group.avg.get("gpa") if group else None
            issued = certificates.get(dept["id"], 0)
            by_gender = genders.get(dept["id"], {})
            reports.append(DepartmentReport(
                id=dept["id"],
                name=dept["name"],
                faculty=faculty_names.get(dept.get("faculty_id")) or _UNKNOWN,
                total_students=total,
                male_students=by_gender.get("MALE", 0),
                female_students=by_gender.get("FEMALE", 0),
                certificates_issued=issued,
                average_gpa=round(avg, 2) if avg is not None else 0.0,
                certificate_rate=percentage(issued, total),
            ))
        return reports

    @staticmethod
    def _gpa_buckets(counts: list[int]) -> list[GpaBucket]:
        graded = sum(counts)
        return [
            GpaBucket(
                range=rng.label,
                lower=rng.lower,
                upper=rng.upper,
                count=count,
                percentage=percentage(count, graded),
            )
            for rng, count in zip(GPA_RANGES, counts)
        ]

    # === Student search ===

    async def search_students(
        self, params: StudentSearchParams | dict[str, Any] | None = None
    ) -> StudentSearchResult:
        """Paginated student search, newest registrations first.

        Args:
            params: Search filters; a dict is validated into StudentSearchParams
                with ``search_default_limit`` as the default page size.

        Raises:
            ValueError: Invalid page/limit or an unknown filter name (pydantic
                ValidationError is a ValueError subclass).
        """
        if not isinstance(params, StudentSearchParams):
            params = StudentSearchParams(
                **{"limit": self._settings.search_default_limit, **(params or {})}
            )
        if params.limit > self._settings.search_max_limit:
            raise ValueError(
                f"limit must be <= {self._settings.search_max_limit}, got {params.limit}"
            )

        return await self._read_through(
            CacheKey(category="student", name="search", params=params.model_dump()),
            self._settings.cache_short_ttl_seconds,
            lambda: self._build_search(params),
        )

    async def _build_search(self, params: StudentSearchParams) -> StudentSearchResult:
        where = build_student_filter(params)
        store = self._store

        rows, total = await self._gather(
            "student_search",
            store.find_many(
                "Student",
                where=where,
                select=[
                    "id", "registration_id", "certificate_id", "full_name",
                    "status", "created_at", "department_id", "faculty_id",
                ],
                order_by=_NEWEST_FIRST,
                skip=params.skip,
                take=params.limit,
            ),
            store.count("Student", where),
        )

        students: list[StudentSummary] = []
        if rows:
            students = await self._enrich_students(rows)

        return StudentSearchResult(
            students=students,
            total=total,
            page=params.page,
            limit=params.limit,
            total_pages=math.ceil(total / params.limit),
            has_next=params.skip + params.limit < total,
            has_prev=params.page > 1,
            generated_at=self._now(),
        )

    async def _enrich_students(self, rows: list[dict[str, Any]]) -> list[StudentSummary]:
        ids = [r["id"] for r in rows]
        dept_ids = sorted({r["department_id"] for r in rows if r["department_id"] is not None})
        fac_ids = sorted({r["faculty_id"] for r in rows if r["faculty_id"] is not None})

        departments, faculties, documents = await self._gather(
            "student_search",
            self._store.find_many(
                "Department", QueryFilter(in_={"id": dept_ids}), select=["id", "name"]
            ),
            self._store.find_many(
                "Faculty", QueryFilter(in_={"id": fac_ids}), select=["id", "name"]
            ),
            self._store.group_by(
                "Document", ["student_id"], QueryFilter(in_={"student_id": ids})
            ),
        )

        dept_names = {d["id"]: d["name"] for d in departments}
        fac_names = {f["id"]: f["name"] for f in faculties}
        doc_counts = {row.keys["student_id"]: row.count for row in documents}

        return [
            StudentSummary(
                **r,
                department_name=dept_names.get(r["department_id"]),
                faculty_name=fac_names.get(r["faculty_id"]),
                document_count=doc_counts.get(r["id"], 0),
            )
            for r in rows
        ]

    # === Analytics ===

    async def get_student_analytics(self) -> StudentAnalytics:
        """Status / department / faculty performance, GPA histogram and trend."""
        return await self._read_through(
            CacheKey(category="student", name="analytics"),
            self._settings.cache_ttl_seconds,
            self._build_student_analytics,
        )

    async def _build_student_analytics(self) -> StudentAnalytics:
        s = self._settings
        now = self._now()
        store = self._store

        histogram = [
            store.count("Student", QueryFilter(ranges={"gpa": rng.as_field_range()}))
            for rng in GPA_RANGES
        ]
        (
            total,
            by_status,
            by_department,
            by_faculty,
            departments,
            faculties,
            trend_timestamps,
            *bucket_counts,
        ) = await self._gather(
            "student_analytics",
            store.count("Student"),
            store.group_by("Student", ["status"], aggregate=_AVG_GPA),
            store.group_by("Student", ["department_id"], aggregate=_AVG_GPA),
            store.group_by("Student", ["faculty_id"], aggregate=_AVG_GPA),
            store.find_many("Department", select=["id", "name"]),
            store.find_many("Faculty", select=["id", "name"]),
            self._registration_timestamps(window_start(now, s.analytics_trend_months)),
            *histogram,
        )

        dept_names = {d["id"]: d["name"] for d in departments}
        fac_names = {f["id"]: f["name"] for f in faculties}

        return StudentAnalytics(
            total_students=total,
            status_breakdown=_performance(by_status, "status"),
            department_stats=_performance(by_department, "department_id", dept_names),
            faculty_stats=_performance(by_faculty, "faculty_id", fac_names),
            gpa_distribution=self._gpa_buckets(list(bucket_counts)),
            registration_trend=self._trend(trend_timestamps, now, s.analytics_trend_months),
            generated_at=now,
        )

    async def get_document_insights(self) -> DocumentInsights:
        """Per-type document counts and sizes."""
        return await self._read_through(
            CacheKey(category="document", name="insights"),
            self._settings.cache_ttl_seconds,
            self._build_document_insights,
        )

    async def _build_document_insights(self) -> DocumentInsights:
        by_type, total, by_student = await self._gather(
            "document_insights",
            self._store.group_by(
                "Document", ["document_type"],
                aggregate=Aggregation(avg=["file_size"], sum=["file_size"]),
            ),
            self._store.count("Document"),
            self._store.group_by("Document", ["student_id"]),
        )

        stats = []
        total_bytes = 0.0
        for row in sorted(by_type, key=lambda r: r.count, reverse=True):
            avg = row.avg.get("file_size") or 0.0
            size = row.sum.get("file_size") or 0.0
            total_bytes += size
            stats.append(DocumentTypeInsight(
                document_type=row.keys["document_type"],
                count=row.count,
                average_size_kb=round_half_up(avg / 1024),
                total_size_mb=round_half_up(size / (1024 * 1024)),
            ))

        return DocumentInsights(
            total_documents=total,
            students_with_documents=len(by_student),
            total_size_mb=round_half_up(total_bytes / (1024 * 1024)),
            document_type_stats=stats,
            generated_at=self._now(),
        )

    # === Cache management ===

    def invalidate_related_cache(self, category: str) -> int:
        """Evict every report derived from ``category`` data, plus dashboards.

        Args:
            category: One of "student", "document", "audit".

        Returns:
            Number of evicted entries.

        Raises:
            ValueError: Unknown category.
        """
        if category not in WRITE_CATEGORIES:
            raise ValueError(
                f"Unknown cache category {category!r}; "
                f"expected one of {', '.join(WRITE_CATEGORIES)}"
            )
        evicted = self._cache.invalidate_tags(category, "dashboard")
        logger.info("Invalidated %d cache entries for %s writes", evicted, category)
        return evicted

    def clear_cache(self, key: str | None = None) -> None:
        self._cache.clear(key)

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()


def build_student_filter(params: StudentSearchParams) -> QueryFilter:
    """Translate search params into a QueryFilter (text search + exact filters)."""
    equals: dict[str, Any] = {}
    if params.status is not None:
        equals["status"] = params.status
    if params.department_id is not None:
        equals["department_id"] = params.department_id
    if params.faculty_id is not None:
        equals["faculty_id"] = params.faculty_id

    search = None
    if params.query:
        search = TextSearch(term=params.query, fields=STUDENT_SEARCH_FIELDS)

    return QueryFilter(equals=equals, search=search)


def _performance(
    rows: list[GroupRow], field: str, labels: dict[Any, str] | None = None
) -> list[GroupPerformance]:
    result = []
    for row in rows:
        key = row.keys[field]
        result.append(GroupPerformance(
            key=key,
            label=labels.get(key) if labels is not None else key,
            count=row.count,
            average_gpa=round_gpa(row.avg.get("gpa")),
        ))
    return result


async def _join(calls: Sequence[Awaitable[Any]]) -> list[Any]:
    """Await every call; on the first failure cancel and drain the rest."""
    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        return await asyncio.gather(*tasks)
    except (Exception, asyncio.CancelledError):
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
