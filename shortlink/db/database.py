import logging
import time

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from shortlink.core.exceptions import StorageUnavailableError
from shortlink.db.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(
    database_url: str,
    connect_timeout: int = 5,
    statement_timeout_ms: int = 5000,
    busy_timeout: float = 30.0,
    **kwargs,
) -> Engine:
    """Build an engine whose round trips are bounded by a timeout.

    SQLite serializes writers on a file lock, so it gets its own, longer
    ``busy_timeout`` and WAL journaling instead of the network timeouts.
    """
    url = make_url(database_url)
    connect_args = kwargs.pop("connect_args", {})
    if url.get_backend_name() == "postgresql":
        connect_args.setdefault("connect_timeout", connect_timeout)
        connect_args.setdefault("options", f"-c statement_timeout={statement_timeout_ms}")
    elif url.get_backend_name() == "sqlite":
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", busy_timeout)

    engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args, **kwargs)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_wal)
    return engine


def _enable_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def verify_database_connection(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection verified")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


def wait_for_database(engine: Engine, retries: int = 5, delay: float = 5.0, sleep=time.sleep) -> None:
    """Ping the database up to ``retries`` times, ``delay`` seconds apart.

    Raises StorageUnavailableError once every attempt has failed; callers
    treat that as fatal to startup.
    """
    for attempt in range(1, retries + 1):
        if verify_database_connection(engine):
            logger.info("Successfully connected to the database!")
            return
        if attempt < retries:
            logger.warning(
                "Unsuccessful database connection, retrying in %s seconds... (%d/%d)", delay, attempt, retries
            )
            sleep(delay)
    raise StorageUnavailableError(f"Several unsuccessful connection attempts ({retries})")


def migrate(engine: Engine) -> None:
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise StorageUnavailableError("Failed to create 'urls' table") from e
    logger.info("Database migration completed.")
