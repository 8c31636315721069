"""
Explicit transaction boundary for multi-row ledger writes.

Services that mutate state wrap their work in ``unit_of_work(db)``. Helpers
that run inside someone else's transaction (the stock allocator, the product
matcher) only flush; they never commit.

Usage:
    with unit_of_work(db):
        allocate(db, tenant_id, product_id, 5)
        ...
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from pharmaledger.core.exceptions import ConcurrentUpdateError, LedgerError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything done in the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"[UnitOfWork] Optimistic lock conflict, rolled back: {e}")
        raise ConcurrentUpdateError() from e
    except LedgerError as e:
        db.rollback()
        logger.info(f"[UnitOfWork] Rolled back: {type(e).__name__}: {e.message}")
        raise
    except IntegrityError:
        db.rollback()
        logger.warning("[UnitOfWork] Integrity error, rolled back", exc_info=True)
        raise
    except Exception:
        db.rollback()
        logger.error("[UnitOfWork] Unexpected error, rolled back", exc_info=True)
        raise
