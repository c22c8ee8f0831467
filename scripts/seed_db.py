"""Load database/seed.sql: leave types, demo employees, org settings and
opening leave balances.

Run scripts/init_db.py first. Re-running keeps existing rows (INSERT IGNORE).
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.timeleave.timeleave.database.bootstrap import apply_seed_sql, list_tables


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"

    if "leave_balances" not in set(list_tables(db_config)):
        print(f"FAILED: no timeleave schema on {target}, run scripts/init_db.py first")
        return 1

    apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
    print(f"OK: seeded leave types, demo employees, clock-in settings and opening balances on {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
