#!/usr/bin/env python
from __future__ import annotations

import argparse
import json

from pts_payroll.db import SessionLocal
from pts_payroll.errors import PayrollError
from pts_payroll.logging_utils import setup_json_logging
from pts_payroll.services.period_lookup import get_period_by_month
from pts_payroll.services.periods import calculate_batch, process_period_calculation


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute supplemental pay for one payroll month.")
    parser.add_argument("year", type=int)
    parser.add_argument("month", type=int)
    parser.add_argument(
        "--citizen",
        action="append",
        dest="citizen_ids",
        help="Recompute only these citizens, one transaction each. Repeatable.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    setup_json_logging()
    args = _parse_args(argv)

    with SessionLocal() as db:
        try:
            if args.citizen_ids:
                result = calculate_batch(db, args.year, args.month, args.citizen_ids).model_dump(mode="json")
            else:
                period = get_period_by_month(db, args.year, args.month)
                if period is None:
                    result = calculate_batch(db, args.year, args.month).model_dump(mode="json")
                else:
                    result = process_period_calculation(db, period.id).model_dump(mode="json")
        except PayrollError as exc:
            print(json.dumps(exc.to_dict(), ensure_ascii=False, indent=2))
            return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
