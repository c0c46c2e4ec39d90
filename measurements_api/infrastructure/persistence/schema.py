"""Creación del esquema de mediciones a partir de la migración SQL incluida."""

from __future__ import annotations

import logging
import pathlib

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = pathlib.Path(__file__).parent / "migrations"
SCHEMA_FILE = MIGRATIONS_DIR / "001_measurements_schema.sql"


def ensure_schema(engine: Engine) -> bool:
    """Ensure the measurements schema exists.

    Creates tables if they don't exist. Safe to call multiple times.

    Args:
        engine: SQLAlchemy engine

    Returns:
        True if the migration was applied, False if the schema was already there
    """
    if inspect(engine).has_table("networks"):
        logger.info("[DB] Schema already present - skipping migration")
        return False

    if not SCHEMA_FILE.exists():
        logger.warning("[DB] Migration file not found: %s - skipping schema creation", SCHEMA_FILE)
        return False

    sql_content = SCHEMA_FILE.read_text(encoding="utf-8")

    # Split by semicolon and execute each statement
    statements = [s.strip() for s in sql_content.split(";") if s.strip()]

    try:
        with engine.begin() as conn:
            for statement in statements:
                conn.execute(text(statement))
        logger.info("[DB] Schema creation completed (%d statements)", len(statements))
    except Exception as e:
        logger.exception("[DB] Schema creation failed: %s", e)
        raise

    return True
