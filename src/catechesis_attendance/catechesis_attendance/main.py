from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import build_container
from .core.constants import DEFAULT_STATS_CACHE_TTL_SECONDS, DEFAULT_STORE_LOCK_TIMEOUT_SECONDS
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def create_app() -> Flask:
    load_dotenv(override=False)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    db_config = getattr(settings, "DB_CONFIG")

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        cache_ttl_seconds=float(getattr(settings, "STATS_CACHE_TTL_SECONDS", DEFAULT_STATS_CACHE_TTL_SECONDS)),
        lock_timeout_seconds=int(getattr(settings, "STORE_LOCK_TIMEOUT_SECONDS", DEFAULT_STORE_LOCK_TIMEOUT_SECONDS)),
    )
    logger.info("settings=%s db=%s", settings_module, container.conn.description)
    register_attendance(app, container)

    return app
