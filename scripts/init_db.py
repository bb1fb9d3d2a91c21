from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.campus_attendance.campus_attendance.database.bootstrap import apply_schema, as_db_config, list_tables

logger = logging.getLogger("init_db")


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(level=getattr(settings, "LOG_LEVEL", "INFO"), format="%(levelname)s %(name)s: %(message)s")
    db_config = dict(settings.DB_CONFIG)

    schema_path = REPO_ROOT / "database" / "schema.sql"
    applied = apply_schema(db_config, schema_path=schema_path)
    tables = list_tables(db_config)
    logger.info("applied %d statements -> %s (tables: %s)", applied, as_db_config(db_config).label, ", ".join(tables))


if __name__ == "__main__":
    main()
