"""
Tests for the PII redaction policy and its audit trail.
"""
import asyncio

from perfsync.models.audit import AuditLog
from perfsync.services.redaction import (
    SENSITIVE_COLUMN_RULES,
    RedactionRule,
    apply_policy,
    policy_for,
    redact_tab,
)


def _run(coro):
    return asyncio.run(coro)


class _T:
    def __init__(self, is_sensitive):
        self.is_sensitive = is_sensitive


class TestPolicy:

    def test_sensitive_tenant_gets_rules(self):
        assert policy_for(_T(True)) == list(SENSITIVE_COLUMN_RULES)

    def test_regular_tenant_gets_nothing(self):
        assert policy_for(_T(False)) == []


class TestApplyPolicy:

    def test_strips_matching_columns_case_insensitive(self):
        rows = [{"date": "2024-01-01", "first name": "Ann", "EMAIL": "a@x.io", "Leads": 2}]
        outcome = apply_policy(rows, SENSITIVE_COLUMN_RULES)

        assert outcome.rows == [{"date": "2024-01-01", "Leads": 2}]
        assert outcome.removed_columns == {"first name", "EMAIL"}
        assert outcome.rows_affected == 1

    def test_input_rows_not_mutated(self):
        rows = [{"date": "2024-01-01", "Phone": "555"}]
        apply_policy(rows, SENSITIVE_COLUMN_RULES)
        assert rows == [{"date": "2024-01-01", "Phone": "555"}]

    def test_null_columns_dropped_but_not_reported(self):
        rows = [{"date": "2024-01-01", "Phone": None}, {"date": "2024-01-02", "Phone": None}]
        outcome = apply_policy(rows, SENSITIVE_COLUMN_RULES)
        assert all("Phone" not in r for r in outcome.rows)
        assert not outcome.redacted
        assert outcome.rows_affected == 0

    def test_rows_affected_counts_only_touched_rows(self):
        rows = [
            {"date": "2024-01-01", "Name": "Bo"},
            {"date": "2024-01-02", "Name": None},
            {"date": "2024-01-03"},
        ]
        outcome = apply_policy(rows, SENSITIVE_COLUMN_RULES)
        assert outcome.rows_affected == 1
        assert outcome.removed_columns == {"Name"}

    def test_empty_policy_is_noop(self):
        rows = [{"Name": "Bo"}]
        outcome = apply_policy(rows, [])
        assert outcome.rows == rows
        assert not outcome.redacted

    def test_unmatched_rule_is_noop(self):
        outcome = apply_policy([{"date": "x"}], [RedactionRule("SSN")])
        assert outcome.rows == [{"date": "x"}]
        assert not outcome.redacted


class TestRedactTab:

    def test_one_audit_entry_per_tab(self, db, audit):
        rows = [
            {"date": "2024-01-01", "Email": "a@x.io", "Phone": "1"},
            {"date": "2024-01-02", "Email": "b@x.io", "Phone": "2"},
        ]
        _run(redact_tab(audit, "t1", "Main sheet", "Leads", rows, SENSITIVE_COLUMN_RULES))

        entries = db.query(AuditLog).all()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.action == "PII_STRIPPED"
        assert entry.tenant_id == "t1"
        assert entry.details["tab_name"] == "Leads"
        assert entry.details["source"] == "Main sheet"
        assert entry.details["stripped_columns"] == ["Email", "Phone"]
        assert entry.details["rows_affected"] == 2
        assert entry.details["row_count"] == 2

    def test_nothing_removed_writes_no_entry(self, db, audit):
        _run(redact_tab(audit, "t1", "Main sheet", "Leads", [{"date": "x"}], SENSITIVE_COLUMN_RULES))
        assert db.query(AuditLog).count() == 0
