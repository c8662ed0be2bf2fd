# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides a small credential-system dataset, a controllable cache clock and
a fully wired application context. No external dependencies; the data
store is in-memory.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest

from credreports.api.context import AppContext, build_context
from credreports.config.settings import Settings
from credreports.store.memory_store import InMemoryDataStore

# Reports are generated "at" this instant in tests.
FIXED_NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_student(i: int, **overrides: Any) -> dict[str, Any]:
    """Generic student record; ``i`` drives id, registration and created_at."""
    record = {
        "id": i,
        "registration_id": f"GEN{i:03d}",
        "certificate_id": None,
        "full_name": f"Student {i:03d}",
        "gender": "MALE" if i % 2 else "FEMALE",
        "status": "UN_CLEARED",
        "gpa": None,
        "grade": None,
        "department_id": 1,
        "faculty_id": 1,
        "academic_year_id": 1,
        "graduation_date": None,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc).replace(day=1 + i % 28),
    }
    record.update(overrides)
    return record


# === FIXTURES: Sample data ===


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def sample_dataset() -> dict[str, list[dict[str, Any]]]:
    """Six students across three populated departments, in JSON form."""
    return {
        "faculties": [
            {"id": 1, "name": "Engineering", "code": "ENG"},
            {"id": 2, "name": "Health Sciences", "code": "HSC"},
        ],
        "departments": [
            {"id": 1, "name": "Computer Science", "code": "CS", "faculty_id": 1},
            {"id": 2, "name": "Civil Engineering", "code": "CE", "faculty_id": 1},
            {"id": 3, "name": "Nursing", "code": "NUR", "faculty_id": 2},
            {"id": 4, "name": "Pharmacy", "code": "PHA", "faculty_id": 2},
        ],
        "academic_years": [
            {"id": 1, "academic_year": "2023/2024"},
            {"id": 2, "academic_year": "2024/2025"},
        ],
        "students": [
            {
                "id": 1, "registration_id": "REG001", "certificate_id": "CERT-001",
                "full_name": "Amina Hassan", "gender": "FEMALE", "status": "CLEARED",
                "gpa": 3.9, "grade": "A", "department_id": 1, "faculty_id": 1,
                "academic_year_id": 1, "graduation_date": "2025-07-01T00:00:00Z",
                "created_at": "2026-03-01T09:00:00Z",
            },
            {
                "id": 2, "registration_id": "REG002", "certificate_id": "CERT-002",
                "full_name": "Brian Otieno", "gender": "MALE", "status": "CLEARED",
                "gpa": 3.2, "grade": "B", "department_id": 1, "faculty_id": 1,
                "academic_year_id": 1, "graduation_date": "2025-07-01T00:00:00Z",
                "created_at": "2026-02-10T09:00:00Z",
            },
            {
                "id": 3, "registration_id": "REG003", "certificate_id": None,
                "full_name": "Carol Wanjiru", "gender": "FEMALE", "status": "UN_CLEARED",
                "gpa": 2.7, "grade": "C", "department_id": 2, "faculty_id": 1,
                "academic_year_id": 2, "graduation_date": None,
                "created_at": "2026-01-20T09:00:00Z",
            },
            {
                "id": 4, "registration_id": "REG004", "certificate_id": None,
                "full_name": "David Mutua", "gender": "MALE", "status": "UN_CLEARED",
                "gpa": 1.8, "grade": "D", "department_id": 3, "faculty_id": 2,
                "academic_year_id": 2, "graduation_date": None,
                "created_at": "2025-12-05T09:00:00Z",
            },
            {
                "id": 5, "registration_id": "REG005", "certificate_id": "CERT-005",
                "full_name": "Esther Njeri", "gender": "FEMALE", "status": "CLEARED",
                "gpa": 4.0, "grade": "A", "department_id": 3, "faculty_id": 2,
                "academic_year_id": 1, "graduation_date": "2024-07-01T00:00:00Z",
                "created_at": "2025-06-15T09:00:00Z",
            },
            {
                "id": 6, "registration_id": "REG006", "certificate_id": None,
                "full_name": "Felix Kamau", "gender": "MALE", "status": "UN_CLEARED",
                "gpa": None, "grade": None, "department_id": 2, "faculty_id": 1,
                "academic_year_id": 2, "graduation_date": None,
                "created_at": "2024-11-01T09:00:00Z",
            },
        ],
        "documents": [
            {"id": 1, "student_id": 1, "document_type": "PHOTO", "file_name": "a.jpg",
             "file_size": 102400, "upload_date": "2026-03-01T10:00:00Z"},
            {"id": 2, "student_id": 1, "document_type": "TRANSCRIPT", "file_name": "a.pdf",
             "file_size": 2097152, "upload_date": "2026-03-01T10:05:00Z"},
            {"id": 3, "student_id": 2, "document_type": "PHOTO", "file_name": "b.jpg",
             "file_size": 204800, "upload_date": "2026-02-11T10:00:00Z"},
            {"id": 4, "student_id": 3, "document_type": "CERTIFICATE", "file_name": "c.pdf",
             "file_size": 1048576, "upload_date": "2026-01-21T10:00:00Z"},
            {"id": 5, "student_id": 5, "document_type": "TRANSCRIPT", "file_name": "e.pdf",
             "file_size": 1048576, "upload_date": "2025-06-16T10:00:00Z"},
        ],
        "audit_logs": [
            {"id": 1, "user_id": 1, "action": "LOGIN", "timestamp": "2026-03-15T10:00:00Z"},
            {"id": 2, "user_id": 1, "action": "LOGIN", "timestamp": "2026-03-15T09:00:00Z"},
            {"id": 3, "user_id": 1, "action": "CREATE_STUDENT",
             "timestamp": "2026-03-15T08:00:00Z"},
            {"id": 4, "user_id": 1, "action": "LOGIN", "timestamp": "2026-03-13T08:00:00Z"},
        ],
        "users": [
            {"id": 1, "email": "admin@example.edu", "password_hash": "x", "role": "ADMIN"},
        ],
    }


@pytest.fixture
def memory_store(sample_dataset) -> InMemoryDataStore:
    return InMemoryDataStore.from_dataset(sample_dataset)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def app_context(memory_store, settings, fake_clock) -> AppContext:
    """Fresh context over the sample dataset with fixed wall and cache clocks."""
    return build_context(
        memory_store, settings, clock=fake_clock, now=lambda: FIXED_NOW,
    )


@pytest.fixture
def student_factory():
    """make_student, for tests that build their own stores."""
    return make_student
