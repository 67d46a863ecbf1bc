import logging
from typing import Iterator, Optional

from psycopg import Connection
from psycopg_pool import ConnectionPool, PoolTimeout

from .errors import StoreUnavailable
from .settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


def get_pool() -> ConnectionPool:
    """Return the process-wide pool, creating it on first use."""
    global _pool
    if _pool is None:
        if not settings.DATABASE_URL:
            raise StoreUnavailable("Supplier store not configured")
        options = (
            f"-c statement_timeout={settings.STATEMENT_TIMEOUT_MS} "
            f"-c lock_timeout={settings.LOCK_TIMEOUT_MS}"
        )
        _pool = ConnectionPool(
            conninfo=settings.DATABASE_URL,
            min_size=settings.DB_POOL_MIN_SIZE,
            max_size=settings.DB_POOL_MAX_SIZE,
            timeout=settings.DB_POOL_TIMEOUT_SEC,
            # Transactions are opened explicitly with conn.transaction().
            kwargs={"autocommit": True, "options": options},
            open=True,
        )
    return _pool


def close_pool() -> None:
    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None


def get_conn() -> Iterator[Connection]:
    """FastAPI dependency yielding a pooled connection for one request."""
    pool = get_pool()
    try:
        conn = pool.getconn()
    except PoolTimeout as exc:
        logger.error("Timed out waiting for a database connection")
        raise StoreUnavailable("Supplier store unavailable") from exc
    try:
        yield conn
    finally:
        pool.putconn(conn)


def db_ok() -> bool:
    try:
        with get_pool().connection() as conn, conn.cursor() as cur:
            cur.execute('select 1;')
            cur.fetchone()
        return True
    except Exception:
        return False
