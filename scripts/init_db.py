from __future__ import annotations

import sys
from pathlib import Path

import importlib

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.hr_admin_system.hr_admin_system.common.logger import configure_logging
from src.hr_admin_system.hr_admin_system.database.bootstrap import (
    apply_schema,
    ensure_admin_user,
    ensure_database_exists,
    list_tables,
)


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", None))
    db_config = dict(settings.DB_CONFIG)

    ensure_database_exists(db_config)
    schema_path = REPO_ROOT / "database" / "schema.sql"
    apply_schema(db_config, schema_path=schema_path)
    created = ensure_admin_user(
        db_config,
        email=getattr(settings, "BOOTSTRAP_ADMIN_EMAIL", None),
        password=getattr(settings, "BOOTSTRAP_ADMIN_PASSWORD", None),
    )
    tables = list_tables(db_config)
    print(
        "OK: Applied schema.sql -> "
        f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')} "
        f"(tables={len(tables)}, admin_created={created})"
    )


if __name__ == "__main__":
    main()
