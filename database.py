import os
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
ENV_CANDIDATES = [
    BASE_DIR / ".env",
    BASE_DIR.parent / ".env",
]

for env_path in ENV_CANDIDATES:
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)
        break
else:
    load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()

# Some hosting environments prepend "DATABASE_URL=" to the value
PREFIX = "DATABASE_URL="
if DATABASE_URL.startswith(PREFIX):
    DATABASE_URL = DATABASE_URL[len(PREFIX):].strip()

if not DATABASE_URL:
    default_sqlite_path = BASE_DIR / "attendance.db"
    DATABASE_URL = f"sqlite:///{default_sqlite_path.as_posix()}"
    logger.warning(
        "DATABASE_URL not found in environment. Falling back to SQLite at %s",
        default_sqlite_path
    )

POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", 3600))
SQLITE_BUSY_TIMEOUT = int(os.getenv("DB_SQLITE_BUSY_TIMEOUT", 15))


def build_engine(url: str):
    """
    Create an engine for the given URL.
    SQLite gets a busy timeout so concurrent redemptions wait for the write lock
    instead of failing; every other backend gets a connection pool.
    """
    engine_kwargs = {
        "echo": False,
        "future": True,
        "pool_pre_ping": True,
    }

    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT,
        }
    else:
        engine_kwargs.update(
            {
                "poolclass": QueuePool,
                "pool_size": POOL_SIZE,
                "max_overflow": MAX_OVERFLOW,
                "pool_timeout": POOL_TIMEOUT,
                "pool_recycle": POOL_RECYCLE,
            }
        )

    new_engine = create_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

Base = declarative_base()

if DATABASE_URL.startswith("sqlite"):
    logger.info("Database configured with SQLite at %s", DATABASE_URL)
else:
    logger.info("Database connection pool configured: size=%s, max_overflow=%s", POOL_SIZE, MAX_OVERFLOW)
