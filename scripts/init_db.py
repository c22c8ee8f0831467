"""Create the timeleave database and apply database/schema.sql.

Safe to re-run: every statement is CREATE ... IF NOT EXISTS. Exits non-zero
when one of the attendance, leave or penalty tables is still missing.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.timeleave.timeleave.database.bootstrap import apply_schema, list_tables

EXPECTED_TABLES = (
    "employees",
    "org_settings",
    "attendance_records",
    "leave_types",
    "leave_balances",
    "leave_requests",
    "leave_balance_events",
    "late_penalties",
)


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")

    present = set(list_tables(db_config))
    missing = [t for t in EXPECTED_TABLES if t not in present]
    if missing:
        print(f"FAILED: {target} is missing tables: {', '.join(missing)}")
        return 1

    print(f"OK: timeleave schema ready on {target} ({len(EXPECTED_TABLES)} tables)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
