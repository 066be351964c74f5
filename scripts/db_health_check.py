#!/usr/bin/env python
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

import pts_payroll
from pts_payroll.db import build_engine
from pts_payroll.logging_utils import setup_json_logging
from pts_payroll.services.schema_guard import ensure_runtime_schema
from pts_payroll.settings import get_settings

MIGRATIONS_INI = Path(pts_payroll.__file__).resolve().parent / "migrations" / "alembic.ini"


def expected_heads() -> list[str]:
    script = ScriptDirectory.from_config(Config(str(MIGRATIONS_INI)))
    return sorted(script.get_heads())


def run(engine: Engine | None = None) -> dict:
    settings = get_settings()
    if engine is None:
        engine = build_engine(settings.database_url)

    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "database": engine.url.render_as_string(hide_password=True),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    guard = ensure_runtime_schema(engine, strict=False)
    add("schema_guard", "ok" if guard.ok else "fail", guard.to_dict())

    tables = set(inspect(engine).get_table_names())
    with engine.connect() as conn:
        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [row[0] for row in conn.execute(text("select version_num from alembic_version")).fetchall()]
        heads = expected_heads()
        add(
            "migration_up_to_date",
            "ok" if current_versions and set(heads) <= set(current_versions) else "warn",
            {"expected_heads": heads, "current": current_versions},
        )

        if "pts_employee_eligibility" in tables:
            ambiguous_starts = conn.execute(
                text(
                    """
                    select citizen_id, effective_date, count(*)
                    from pts_employee_eligibility
                    where is_active = true
                    group by citizen_id, effective_date
                    having count(*) > 1
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "eligibility_same_day_duplicates",
                "warn" if ambiguous_starts else "ok",
                {"rows": [[str(value) for value in row] for row in ambiguous_starts]},
            )

        if "pts_payouts" in tables:
            mismatched_totals = conn.execute(
                text(
                    """
                    select id
                    from pts_payouts
                    where abs(total_payable - (calculated_amount + retroactive_amount)) > 0.01
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "payout_total_mismatch",
                "fail" if mismatched_totals else "ok",
                {"sample_ids": [row[0] for row in mismatched_totals]},
            )

            negative_amounts = conn.execute(
                text(
                    """
                    select id
                    from pts_payouts
                    where calculated_amount < 0
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "payout_negative_calculated_amount",
                "fail" if negative_amounts else "ok",
                {"sample_ids": [row[0] for row in negative_amounts]},
            )

        if "pts_payout_items" in tables:
            orphan_items = conn.execute(
                text(
                    """
                    select i.id
                    from pts_payout_items i
                    left join pts_payouts p on p.id = i.payout_id
                    where p.id is null
                    limit 20
                    """
                )
            ).fetchall()
            add(
                "payout_item_orphan_payout",
                "fail" if orphan_items else "ok",
                {"sample_ids": [row[0] for row in orphan_items]},
            )

    return report


def main() -> int:
    setup_json_logging()
    report = run()
    failed = [check for check in report["checks"] if check["status"] == "fail"]
    report["ok"] = len(failed) == 0
    print(json.dumps(report, ensure_ascii=False, indent=2))
    if failed and get_settings().schema_guard_strict:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
