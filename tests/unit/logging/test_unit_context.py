# tests/unit/logging/test_context.py - v2
"""Tests for logging/context.py - contextual logging variables."""

from __future__ import annotations

from credreports.logging.context import (
    clear_context,
    get_context,
    reset_operation_context,
    reset_report_context,
    set_operation_context,
    set_report_context,
    set_request_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.report is None
        assert ctx.operation is None

    def test_set_request_context(self):
        set_request_context("req-1")
        assert get_context().request_id == "req-1"

    def test_report_context_token_reset(self):
        token = set_report_context("dashboard")
        assert get_context().report == "dashboard"
        reset_report_context(token)
        assert get_context().report is None

    def test_nested_operation_context(self):
        outer = set_operation_context("Student.count")
        inner = set_operation_context("Document.count")
        assert get_context().operation == "Document.count"
        reset_operation_context(inner)
        assert get_context().operation == "Student.count"
        reset_operation_context(outer)

    def test_as_dict_filters_none(self):
        set_request_context("req-1")
        d = get_context().as_dict()
        assert d == {"request_id": "req-1"}

    def test_clear(self):
        set_request_context("req-1")
        set_report_context("reports")
        clear_context()
        ctx = get_context()
        assert ctx.request_id is None
        assert ctx.report is None
