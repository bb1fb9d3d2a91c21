from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.constants import READ_PAGE_SIZE, SCAN_CONFLICT_RETRIES
from .database.bootstrap import apply_schema, as_db_config, list_tables
from .students.controller import register as register_students

logger = logging.getLogger(__name__)


def create_app(container: Container | None = None) -> Flask:
    """Build the Flask app.

    A prebuilt ``container`` skips settings-driven database wiring (used by tests).
    """

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info("settings=%s db=%s", settings_module, as_db_config(db_config).label)

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

        container = build_container(
            db_config=db_config,
            page_size=int(getattr(settings, "READ_PAGE_SIZE", READ_PAGE_SIZE)),
            conflict_retries=int(getattr(settings, "SCAN_CONFLICT_RETRIES", SCAN_CONFLICT_RETRIES)),
        )

    register_attendance(app, container)
    register_students(app, container)

    return app
