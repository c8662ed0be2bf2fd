# src/monitoring/recommendations.py - v1
"""Static optimisation hints for slow queries and analytics-level advice."""

from __future__ import annotations

from credreports.monitoring.models import ModelBreakdown

# (model, action) -> hint. Actions use the data-store method names.
QUERY_RECOMMENDATIONS: dict[str, dict[str, str]] = {
    "Student": {
        "find_many": "Add indexes on status, department_id, created_at. Use select to limit fields.",
        "find_first": "Add index on registration_id or certificate_id for unique lookups.",
        "find_unique": "Ensure unique indexes exist on registration_id and certificate_id.",
        "count": "Add partial indexes on status field for faster counting.",
        "group_by": "Add indexes on the grouped columns (status, department_id, faculty_id).",
        "create": "Consider batch operations for multiple inserts.",
        "update": "Add WHERE clause indexes. Avoid updating large result sets.",
        "delete": "Add indexes on deletion criteria fields.",
    },
    "Document": {
        "find_many": "Add compound index on (student_id, document_type).",
        "find_first": "Add index on student_id for student document lookups.",
        "group_by": "Add index on document_type for type breakdowns.",
        "create": "Consider batch document uploads for better performance.",
        "update": "Index document_type and upload_date for filtering.",
        "delete": "Add index on student_id for cascade deletions.",
    },
    "AuditLog": {
        "find_many": "Add compound index on (user_id, timestamp DESC).",
        "group_by": "Add compound index on (timestamp, action) for activity summaries.",
        "create": "Consider async logging to avoid blocking main operations.",
        "find_first": "Add index on action field for audit queries.",
    },
}


def get_recommendation(
    model: str | None,
    action: str | None,
    duration_ms: float | None = None,
    critical_threshold_ms: float = 5000.0,
) -> str:
    """Look up a hint for a slow ``model.action`` call.

    Order: specific table entry, then a CRITICAL message past
    ``critical_threshold_ms``, then a generic message.
    """
    if not model or not action:
        return "Consider adding appropriate indexes"

    specific = QUERY_RECOMMENDATIONS.get(model, {}).get(action)
    if specific:
        return specific

    if duration_ms is not None and duration_ms > critical_threshold_ms:
        return (
            f"CRITICAL: Query taking >{critical_threshold_ms / 1000:.0f}s. "
            "Review query structure and add appropriate indexes immediately."
        )

    return (
        f"Consider optimizing {model}.{action} with appropriate indexes "
        "and query optimization."
    )


def generate_performance_recommendations(
    model_breakdown: dict[str, ModelBreakdown],
    average_query_time: float,
) -> list[str]:
    """Turn window-level timings into prioritised advice."""
    recommendations: list[str] = []

    if average_query_time > 500:
        recommendations.append(
            "CRITICAL: Average query time >500ms. Immediate optimization needed."
        )
    elif average_query_time > 200:
        recommendations.append(
            "WARNING: Average query time >200ms. Consider optimization."
        )
    elif average_query_time < 50:
        recommendations.append(
            "EXCELLENT: Average query time <50ms. Performance is optimal."
        )

    for model, stats in model_breakdown.items():
        if stats.avg_time > 1000:
            recommendations.append(
                f"{model} queries averaging {stats.avg_time:.0f}ms. Add indexes immediately."
            )
        elif stats.avg_time > 500:
            recommendations.append(
                f"{model} queries averaging {stats.avg_time:.0f}ms. Consider optimization."
            )

        if stats.count > 20:
            recommendations.append(
                f"{model} has {stats.count} queries. Consider caching frequently accessed data."
            )

    if not recommendations:
        recommendations.append(
            "Performance looks good! Consider query result caching for even better performance."
        )

    return recommendations
