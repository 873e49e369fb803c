"""
Alembic migration runner for application startup.
"""
import logging
from pathlib import Path

from sqlalchemy.exc import OperationalError
from alembic import command
from alembic.config import Config

from database import DATABASE_URL

logger = logging.getLogger(__name__)

ALEMBIC_INI = Path(__file__).resolve().parent / "alembic.ini"


def _alembic_config() -> Config:
    alembic_cfg = Config(str(ALEMBIC_INI))
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))
    return alembic_cfg


def run_migrations() -> None:
    """
    Upgrade the database to head.
    Connection errors propagate so the caller can decide whether to continue.
    """
    try:
        logger.info("Running Alembic migrations...")
        command.upgrade(_alembic_config(), "head")
        logger.info("Alembic migrations completed successfully")
    except OperationalError as e:
        logger.error("Database connection error during migrations: %s", e)
        raise

