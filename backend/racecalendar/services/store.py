"""Shared plumbing for access-object round trips to the record store."""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from racecalendar.core.exceptions import PersistenceError
from racecalendar.observability import get_metrics_backend

logger = logging.getLogger(__name__)


@asynccontextmanager
async def store_operation(
    session: AsyncSession,
    entity: str,
    operation: str,
) -> AsyncIterator[None]:
    """Time one store operation and turn driver errors into PersistenceError.

    The session is rolled back on failure so the request can still answer.
    """
    metrics = get_metrics_backend()
    start = time.perf_counter()
    success = False
    try:
        yield
        success = True
    except SQLAlchemyError as exc:
        logger.exception("Store operation %s.%s failed", entity, operation)
        await session.rollback()
        raise PersistenceError(
            f"Failed to {operation.replace('_', ' ')} {entity}",
            operation=operation,
        ) from exc
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.observe_store_operation(entity, operation, success, duration_ms)
