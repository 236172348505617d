"""
PII Redaction Policy

Sensitivity-flagged tenants (medical practices) must not have identifying
columns persisted in raw payloads or audit details. The policy is a static
rule table; rules that match nothing are no-ops.

Every non-empty removal is paired with exactly one PII_STRIPPED audit entry
per (tenant, source, tab) via `redact_tab`.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Sequence, Set

from perfsync.services.audit import AuditAction, AuditSink
from perfsync.services.column_resolver import find_column
from perfsync.utils.logger import log


class RedactionAction(str, enum.Enum):
    REMOVE = "remove"


@dataclass(frozen=True)
class RedactionRule:
    column_name: str
    action: RedactionAction = RedactionAction.REMOVE


SENSITIVE_COLUMN_RULES = (
    RedactionRule("First Name"),
    RedactionRule("Last Name"),
    RedactionRule("Full Name"),
    RedactionRule("Name"),
    RedactionRule("Phone"),
    RedactionRule("Phone Number"),
    RedactionRule("Email"),
    RedactionRule("Email Address"),
)


@dataclass
class RedactionOutcome:
    rows: List[Mapping[str, Any]]
    removed_columns: Set[str] = field(default_factory=set)
    rows_affected: int = 0

    @property
    def redacted(self) -> bool:
        return bool(self.removed_columns)


def policy_for(tenant) -> List[RedactionRule]:
    """Rules for a tenant: the sensitive column set, or nothing."""
    if getattr(tenant, "is_sensitive", False):
        return list(SENSITIVE_COLUMN_RULES)
    return []


def apply_policy(rows: Sequence[Mapping[str, Any]], policy: Sequence[RedactionRule]) -> RedactionOutcome:
    """Strip policy columns from every row.

    Input rows are never mutated. Matching uses the same case-insensitive
    lookup as column resolution. A column is reported as removed only if it
    held a non-null value in at least one row.
    """
    if not policy:
        return RedactionOutcome(rows=list(rows))

    removed: Set[str] = set()
    rows_affected = 0
    redacted_rows = []

    for row in rows:
        new_row = dict(row)
        touched = False
        for rule in policy:
            if rule.action != RedactionAction.REMOVE:
                continue
            column = find_column(new_row, (rule.column_name,))
            if column is None:
                continue
            value = new_row.pop(column)
            if value is not None:
                removed.add(column)
                touched = True
        if touched:
            rows_affected += 1
        redacted_rows.append(new_row)

    return RedactionOutcome(rows=redacted_rows, removed_columns=removed, rows_affected=rows_affected)


async def redact_tab(
    audit: AuditSink,
    tenant_id: str,
    source_label: str,
    tab_name: str,
    rows: Sequence[Mapping[str, Any]],
    policy: Sequence[RedactionRule],
) -> RedactionOutcome:
    """Apply the policy to one tab and audit what was removed."""
    outcome = apply_policy(rows, policy)

    if outcome.redacted:
        removed = sorted(outcome.removed_columns)
        log.info(
            f"Redacted {len(removed)} column(s) from {outcome.rows_affected} row(s) "
            f"in {source_label}/{tab_name} for tenant {tenant_id}"
        )
        await audit.record(
            tenant_id,
            AuditAction.PII_STRIPPED,
            {
                "source": source_label,
                "tab_name": tab_name,
                "stripped_columns": removed,
                "rows_affected": outcome.rows_affected,
                "row_count": len(outcome.rows),
                "timestamp": datetime.utcnow().isoformat(),
            },
        )

    return outcome
