"""
All-or-nothing units of work.

Every multi-step order mutation (stock adjustments, item inserts/deletes,
order field changes) runs inside ``atomic()``: it commits once at the end,
or rolls back everything on the first failure.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from table_orders.core.exceptions import OrderEngineError, InternalFailure

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(session: AsyncSession, action: str) -> AsyncIterator[AsyncSession]:
    """
    Run the enclosed block as one transaction on ``session``.

    Args:
        session: The request's session
        action: What is being attempted, used in logs and failure messages

    Raises:
        OrderEngineError: Re-raised unchanged after rollback
        InternalFailure: Any storage error, after rollback
    """
    try:
        yield session
        await session.commit()
    except OrderEngineError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception(f"Storage failure while trying to {action}: {e}")
        raise InternalFailure(f"Could not {action}; no changes were applied") from e
