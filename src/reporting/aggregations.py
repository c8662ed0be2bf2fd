# src/reporting/aggregations.py - v1
"""Pure helpers shared by report composition: percentages, month windows, GPA buckets."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from credreports.store.models import FieldRange


def percentage(part: float, whole: float) -> int:
    """Whole-number percentage, rounding halves up; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def round_gpa(value: float | None) -> float | None:
    return None if value is None else round(value, 2)


# --- Month windows ---


def month_keys(now: datetime, months: int) -> list[str]:
    """``months`` consecutive "YYYY-MM" keys ending with the month of ``now``."""
    index = now.year * 12 + now.month - 1
    keys = []
    for i in range(index - months + 1, index + 1):
        keys.append(f"{i // 12:04d}-{i % 12 + 1:02d}")
    return keys


def window_start(now: datetime, months: int) -> datetime:
    """First instant (UTC) of the oldest month in a ``months``-long window."""
    index = now.year * 12 + now.month - 1 - (months - 1)
    return datetime(index // 12, index % 12 + 1, 1, tzinfo=timezone.utc)


def bucket_by_month(
    timestamps: Iterable[datetime | None], now: datetime, months: int
) -> list[tuple[str, int]]:
    """Count timestamps per month over the window, zero-filled, oldest first."""
    counts = dict.fromkeys(month_keys(now, months), 0)
    for ts in timestamps:
        if ts is None:
            continue
        key = f"{ts.year:04d}-{ts.month:02d}"
        if key in counts:
            counts[key] += 1
    return list(counts.items())


# --- GPA buckets ---


@dataclass(frozen=True)
class GpaRange:
    label: str
    lower: float
    upper: float
    upper_inclusive: bool = False

    def contains(self, gpa: float) -> bool:
        if gpa < self.lower:
            return False
        return gpa <= self.upper if self.upper_inclusive else gpa < self.upper

    def as_field_range(self) -> FieldRange:
        if self.upper_inclusive:
            return FieldRange(gte=self.lower, lte=self.upper)
        return FieldRange(gte=self.lower, lt=self.upper)


GPA_RANGES: tuple[GpaRange, ...] = (
    GpaRange("Below 2.0", 0.0, 2.0),
    GpaRange("Poor (2.0-2.5)", 2.0, 2.5),
    GpaRange("Satisfactory (2.5-3.0)", 2.5, 3.0),
    GpaRange("Good (3.0-3.5)", 3.0, 3.5),
    GpaRange("Excellent (3.5-4.0)", 3.5, 4.0, upper_inclusive=True),
)

# (grade, lower bound); first match wins, so order matters.
GRADE_THRESHOLDS: tuple[tuple[str, float], ...] = (
    ("A", 3.7),
    ("B", 3.0),
    ("C", 2.0),
    ("D", float("-inf")),
)


def letter_grade(gpa: float) -> str:
    for grade, lower in GRADE_THRESHOLDS:
        if gpa >= lower:
            return grade
    return GRADE_THRESHOLDS[-1][0]


def count_gpa_ranges(gpas: Iterable[float]) -> list[int]:
    """Counts per GPA_RANGES entry (values outside 0-4 are ignored)."""
    counts = [0] * len(GPA_RANGES)
    for gpa in gpas:
        for i, rng in enumerate(GPA_RANGES):
            if rng.contains(gpa):
                counts[i] += 1
                break
    return counts


def index_by(rows: Iterable[dict[str, Any]], key: str = "id") -> dict[Any, dict[str, Any]]:
    return {row.get(key): row for row in rows}
