"""Unit-of-work helper over a SQLAlchemy session."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from backoffice.utils import get_logger

logger = get_logger(__name__)


class TransactionManager:
    """Run a block of repository calls atomically.

    ``with tx.transaction() as db:`` commits when the block exits cleanly and
    rolls back (then re-raises) on any exception, so none of the block's
    flushed writes become visible. Isolation between concurrent requests is
    whatever the database provides; there is no in-process locking.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning("Transaction rolled back", error=str(e), error_type=type(e).__name__)
            raise


__all__ = ["TransactionManager"]
