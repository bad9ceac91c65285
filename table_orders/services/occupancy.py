"""
Table Occupancy Resolver

Decides whether a table may receive a new order. Tables without the
single-tab policy always can; a single-tab table can only while no open
order references it. Closing an order frees its table implicitly, since only
open orders are considered.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from table_orders.core.exceptions import Conflict, NotFound
from table_orders.models import Order, OrderStatus, Table

logger = logging.getLogger(__name__)


class TableOccupancyResolver:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_table(self, table_id: int, lock: bool = False) -> Optional[Table]:
        """
        Fetch a table, optionally locking its row for the rest of the transaction.

        Locking the table row serialises every create or move onto that
        table, which makes the open-order check below safe to act on.
        """
        query = select(Table).where(Table.id == table_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(
            query.execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_open_order(
        self,
        table_id: int,
        exclude_order_id: Optional[int] = None,
    ) -> Optional[Order]:
        """Return an open order on the table (other than ``exclude_order_id``), if any."""
        query = select(Order).where(
            Order.table_id == table_id,
            Order.status == OrderStatus.OPEN,
        )
        if exclude_order_id is not None:
            query = query.where(Order.id != exclude_order_id)

        result = await self.session.execute(query.order_by(Order.id).limit(1))
        return result.scalar_one_or_none()

    async def can_accept_new_order(
        self,
        table_id: int,
        exclude_order_id: Optional[int] = None,
    ) -> bool:
        """
        Check whether a new order may be placed on the table right now.

        Raises:
            NotFound: If the table does not exist
        """
        table = await self.get_table(table_id)
        if table is None:
            raise NotFound(f"Table {table_id} not found")
        if not table.single_tab:
            return True
        return await self.find_open_order(table.id, exclude_order_id) is None

    async def ensure_can_accept(
        self,
        table: Table,
        exclude_order_id: Optional[int] = None,
    ) -> None:
        """
        Raises:
            Conflict: If the table is single-tab and already has an open order
        """
        if not table.single_tab:
            return

        existing = await self.find_open_order(table.id, exclude_order_id)
        if existing is not None:
            logger.warning(
                f"Table {table.name} (#{table.id}) rejected a new order: "
                f"order #{existing.id} is still open"
            )
            raise Conflict(
                f"Table {table.name} already has an open order (Order ID: {existing.id})"
            )

    async def list_available(self) -> list[Table]:
        """
        Tables that can accept a new order at call time.

        This is a snapshot, not a reservation: a table listed here may be
        taken by the time an order is submitted for it.
        """
        occupied = (
            select(Order.table_id)
            .where(Order.status == OrderStatus.OPEN)
        )
        result = await self.session.execute(
            select(Table)
            .where((Table.single_tab.is_(False)) | (Table.id.not_in(occupied)))
            .order_by(Table.id)
        )
        return list(result.scalars().all())
