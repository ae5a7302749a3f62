"""
Scoped suspension of referential-integrity enforcement.

Tenant purges delete rows from tables that reference each other.  Rather
than depending on a perfect delete order, the purge suspends foreign-key
enforcement for the duration of its delete phase and restores it before
verification.  Restoration is guaranteed on every exit path because it
lives in the context manager's exit, not in the caller.

Dialect        | Suspend                        | Restore
---------------|--------------------------------|-------------------------------
postgresql     | SET CONSTRAINTS ALL DEFERRED   | SET CONSTRAINTS ALL IMMEDIATE
mysql          | SET FOREIGN_KEY_CHECKS = 0     | SET FOREIGN_KEY_CHECKS = 1
sqlite         | PRAGMA defer_foreign_keys = ON | PRAGMA defer_foreign_keys = OFF

PostgreSQL only defers constraints declared DEFERRABLE, which is why every
foreign key in asset_kernel.models is declared that way.  On PostgreSQL and
SQLite any violation left behind surfaces at restore or commit time.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from asset_kernel.db.engine import dialect_name
from asset_kernel.logging_config import get_logger

logger = get_logger("db.constraints")

FOREIGN_KEY_TOGGLES: dict[str, tuple[str, str]] = {
    "postgresql": ("SET CONSTRAINTS ALL DEFERRED", "SET CONSTRAINTS ALL IMMEDIATE"),
    "mysql": ("SET FOREIGN_KEY_CHECKS = 0", "SET FOREIGN_KEY_CHECKS = 1"),
    "sqlite": ("PRAGMA defer_foreign_keys = ON", "PRAGMA defer_foreign_keys = OFF"),
}


@contextmanager
def suspended_foreign_keys(session: Session) -> Generator[None, None, None]:
    """
    Suspend foreign-key enforcement inside the session's transaction.

    Raises:
        ValueError: If the dialect has no known way to suspend foreign keys.
    """
    dialect = dialect_name(session)
    try:
        suspend_sql, restore_sql = FOREIGN_KEY_TOGGLES[dialect]
    except KeyError:
        raise ValueError(f"Cannot suspend foreign keys on dialect {dialect!r}") from None

    session.execute(text(suspend_sql))
    logger.info("foreign_keys_suspended", extra={"dialect": dialect})
    try:
        yield
    except BaseException:
        try:
            session.execute(text(restore_sql))
        except DBAPIError:
            # Rolling back the failed transaction resets the PostgreSQL and
            # SQLite settings.
            logger.warning(
                "foreign_keys_restore_deferred_to_rollback",
                extra={"dialect": dialect},
                exc_info=True,
            )
        else:
            logger.info("foreign_keys_restored", extra={"dialect": dialect})
        raise
    session.execute(text(restore_sql))
    logger.info("foreign_keys_restored", extra={"dialect": dialect})
