from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)


def as_db_config(db_config: dict) -> DBConfig:
    return DBConfig(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "campus_attendance")),
        connect_timeout=int(db_config.get("connect_timeout", 10)),
    )


def iter_sql_statements(sql: str) -> Iterator[str]:
    """Split a schema file into statements.

    Statements end with ``;`` at the end of a line; ``--`` comment lines are skipped.
    """

    pending: list[str] = []
    for line in sql.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue
        pending.append(line)
        if stripped.endswith(";"):
            yield "\n".join(pending).strip().rstrip(";")
            pending = []

    if pending:
        yield "\n".join(pending).strip()


def _server_connection(config: DBConfig, *, with_database: bool):
    kwargs = dict(
        host=config.host,
        port=config.port,
        user=config.user,
        password=config.password,
        connection_timeout=config.connect_timeout,
    )
    if with_database:
        kwargs["database"] = config.database
    return mysql.connector.connect(**kwargs)


def ensure_database_exists(db_config: dict) -> None:
    config = as_db_config(db_config)
    conn = _server_connection(config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> int:
    """Apply ``schema.sql`` (idempotent CREATE ... IF NOT EXISTS); returns the statement count."""

    ensure_database_exists(db_config)
    config = as_db_config(db_config)
    sql = Path(schema_path).read_text(encoding="utf-8")

    conn = _server_connection(config, with_database=True)
    applied = 0
    try:
        cur = conn.cursor()
        for statement in iter_sql_statements(sql):
            cur.execute(statement)
            applied += 1
        conn.commit()
    finally:
        conn.close()

    logger.info("applied %d schema statements to %s", applied, config.label)
    return applied


def list_tables(db_config: dict) -> list[str]:
    config = as_db_config(db_config)
    conn = _server_connection(config, with_database=True)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return sorted(str(row[0]) for row in cur.fetchall())
    finally:
        conn.close()
