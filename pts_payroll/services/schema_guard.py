from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger("pts_payroll.schema_guard")


@dataclass(frozen=True, slots=True)
class SchemaGuardResult:
    ok: bool
    checked_at_utc: datetime
    issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "checked_at_utc": self.checked_at_utc.isoformat(),
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "issue_count": len(self.issues),
            "warning_count": len(self.warnings),
        }


REQUIRED_TABLE_COLUMNS: dict[str, set[str]] = {
    "pts_master_rates": {"id", "amount", "is_active"},
    "pts_employee_eligibility": {"id", "citizen_id", "master_rate_id", "effective_date", "expiry_date", "is_active"},
    "pts_employee_movements": {"id", "citizen_id", "movement_type", "effective_date"},
    "pts_employee_licenses": {"id", "citizen_id", "valid_from", "valid_until", "status"},
    "pts_leave_requests": {
        "id",
        "citizen_id",
        "leave_type",
        "start_date",
        "end_date",
        "duration_days",
        "fiscal_year",
        "manual_start_date",
        "manual_end_date",
        "manual_duration_days",
        "is_adjusted",
    },
    "pts_leave_quotas": {"citizen_id", "fiscal_year", "quota_sick", "quota_personal", "quota_vacation"},
    "pts_holidays": {"holiday_date"},
    "pts_periods": {"id", "period_year", "period_month", "status", "total_amount", "total_headcount"},
    "pts_payouts": {"id", "period_id", "citizen_id", "calculated_amount", "retroactive_amount", "total_payable"},
    "pts_payout_items": {"id", "payout_id", "reference_month", "reference_year", "item_type", "amount"},
    "alembic_version": {"version_num"},
}

REQUIRED_ENUM_VALUES: dict[str, set[str]] = {
    "pts_period_status": {"OPEN", "WAITING_HR", "WAITING_HEAD_FINANCE", "WAITING_DIRECTOR", "CLOSED"},
    "pts_payout_item_type": {"RETROACTIVE_ADD", "RETROACTIVE_DEDUCT"},
}


def _check_tables(inspector: Any, issues: list[str]) -> None:
    for table_name, required_columns in REQUIRED_TABLE_COLUMNS.items():
        try:
            present = {str(column.get("name")) for column in inspector.get_columns(table_name)}
        except Exception as exc:
            issues.append(f"TABLE_UNREADABLE:{table_name}:{exc.__class__.__name__}")
            continue
        missing = sorted(required_columns - present)
        if missing:
            issues.append(f"MISSING_COLUMNS:{table_name}:{','.join(missing)}")


def _enum_labels(raw_enums: list[dict[str, Any]]) -> dict[str, set[str]]:
    labels_by_name: dict[str, set[str]] = {}
    for item in raw_enums:
        name = str(item.get("name") or "").strip()
        labels = item.get("labels")
        if name and isinstance(labels, list):
            labels_by_name[name] = {str(label) for label in labels}
    return labels_by_name


def _check_enums(inspector: Any, issues: list[str], warnings: list[str]) -> None:
    # Named enums exist only on PostgreSQL; other dialects skip this check.
    get_enums = getattr(inspector, "get_enums", None)
    if get_enums is None:
        warnings.append("ENUM_INSPECTION_UNSUPPORTED")
        return
    try:
        labels_by_name = _enum_labels(get_enums() or [])
    except Exception as exc:
        warnings.append(f"ENUM_INSPECTION_FAILED:{exc.__class__.__name__}")
        return

    for enum_name, required_labels in REQUIRED_ENUM_VALUES.items():
        found = labels_by_name.get(enum_name)
        if found is None:
            warnings.append(f"ENUM_NOT_FOUND:{enum_name}")
            continue
        missing = sorted(required_labels - found)
        if missing:
            issues.append(f"MISSING_ENUM_VALUES:{enum_name}:{','.join(missing)}")


def _check_alembic_version(engine: Engine, issues: list[str]) -> None:
    try:
        with engine.connect() as connection:
            version = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1")).scalar()
    except Exception as exc:
        issues.append(f"ALEMBIC_VERSION_CHECK_FAILED:{exc.__class__.__name__}")
        return
    if not str(version or "").strip():
        issues.append("ALEMBIC_VERSION_EMPTY")


def verify_runtime_schema(engine: Engine) -> SchemaGuardResult:
    """Check tables, enum labels and the migration stamp the payroll services rely on."""
    issues: list[str] = []
    warnings: list[str] = []
    checked_at_utc = datetime.now(timezone.utc)

    inspector = inspect(engine)
    _check_tables(inspector, issues)
    _check_enums(inspector, issues, warnings)
    _check_alembic_version(engine, issues)

    return SchemaGuardResult(ok=not issues, checked_at_utc=checked_at_utc, issues=issues, warnings=warnings)


def ensure_runtime_schema(engine: Engine, *, strict: bool = True) -> SchemaGuardResult:
    result = verify_runtime_schema(engine)
    if result.ok:
        logger.info("schema_guard_ok", extra=result.to_dict())
        return result

    logger.error("schema_guard_failed", extra=result.to_dict())
    if strict:
        raise RuntimeError(f"Runtime schema guard failed: {'; '.join(result.issues)}")
    return result
