"""Store error translation and bounded retry for transient failures"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ..config import STORE_RETRY_ATTEMPTS, STORE_RETRY_BACKOFF_SECONDS
from ..errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def store_errors(db: Session, operation: str):
    """Roll back and re-raise connection/timeout failures as TransientStoreError"""
    try:
        yield
    except (OperationalError, PoolTimeoutError) as e:
        db.rollback()
        logger.warning(f"⚠️ Store unavailable during {operation}: {e}")
        raise TransientStoreError("The order service is temporarily unavailable, try again") from e
    except DBAPIError as e:
        if not e.connection_invalidated:
            raise
        db.rollback()
        logger.warning(f"⚠️ Store connection lost during {operation}: {e}")
        raise TransientStoreError("The order service is temporarily unavailable, try again") from e


def call_with_retry(
    fn: Callable[[], T],
    attempts: int = STORE_RETRY_ATTEMPTS,
    backoff: float = STORE_RETRY_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run fn, retrying TransientStoreError with exponential backoff.

    Any other exception propagates immediately; rejections are never retried.
    """
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TransientStoreError:
            if attempt >= attempts:
                logger.error(f"❌ Store still unavailable after {attempts} attempts")
                raise
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(f"🔄 Retrying store call (attempt {attempt + 1}/{attempts}) in {delay:.2f}s")
            sleep(delay)
    raise TransientStoreError("The order service is temporarily unavailable, try again")
