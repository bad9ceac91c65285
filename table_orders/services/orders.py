"""
Order Lifecycle Manager

Creates, replaces, closes and deletes orders. Every mutation is one unit of
work spanning the order row, its items and the stock ledger: it either
commits as a whole or leaves nothing behind.

Lifecycle:
    open ──close──▶ closed   (terminal)

Items may only be replaced, and the kitchen status only changed, while the
order is open. Deleting an order is allowed in any state and gives every
item's committed quantity back to stock.

Lock order inside a unit of work is always order row → table row → product
rows (ascending id, taken in one pass per unit of work), so concurrent
requests queue instead of deadlocking.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from table_orders.core.exceptions import (
    InvalidInput,
    InvalidState,
    NotFound,
    ReferenceNotFound,
)
from table_orders.models import KitchenStatus, Order, OrderItem, OrderStatus
from table_orders.services.occupancy import TableOccupancyResolver
from table_orders.services.stock import StockLedger
from table_orders.services.transaction import atomic

logger = logging.getLogger(__name__)

def aggregate_options():
    """Loader options materialising table and items-with-product."""
    return (
        selectinload(Order.table),
        selectinload(Order.items).selectinload(OrderItem.product),
    )


async def load_order(
    session: AsyncSession,
    order_id: int,
    lock: bool = False,
) -> Optional[Order]:
    """Load one order aggregate, optionally row-locking the order."""
    query = select(Order).where(Order.id == order_id).options(*aggregate_options())
    if lock:
        query = query.with_for_update(of=Order)
    result = await session.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


def validate_lines(lines: Sequence[tuple[int, int]]) -> None:
    """
    Raises:
        InvalidInput: If there are no lines or a quantity is not positive
    """
    if not lines:
        raise InvalidInput("An order needs at least one item")
    for product_id, quantity in lines:
        if quantity <= 0:
            raise InvalidInput(
                f"Quantity for product {product_id} must be greater than zero"
            )


class OrderLifecycleManager:
    """
    Order mutations and reads for one session.

    Example:
        >>> manager = OrderLifecycleManager(session)
        >>> order = await manager.create(1, date(2024, 3, 10), [(1, 3)])
        >>> await manager.close(order.id)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.ledger = StockLedger(session)
        self.occupancy = TableOccupancyResolver(session)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create(
        self,
        table_id: int,
        order_date: date,
        lines: Sequence[tuple[int, int]],
    ) -> Order:
        """
        Place a new open order on a table.

        Args:
            table_id: Table receiving the order
            order_date: Business day of the order
            lines: (product_id, quantity) pairs, one order item per pair

        Raises:
            ReferenceNotFound: Table does not exist
            Conflict: Single-tab table already has an open order
            InvalidInput: Empty lines, bad quantity or unknown product
            InsufficientStock: A product cannot cover its requested quantity
        """
        validate_lines(lines)

        async with atomic(self.session, "create the order"):
            table = await self.occupancy.get_table(table_id, lock=True)
            if table is None:
                raise ReferenceNotFound(f"Table {table_id} not found")

            await self.occupancy.ensure_can_accept(table)
            await self.ledger.ensure_available(lines)

            order = Order(
                table=table,
                status=OrderStatus.OPEN,
                kitchen_status=KitchenStatus.WAITING,
                date=order_date,
                items=[
                    OrderItem(product_id=product_id, quantity=quantity)
                    for product_id, quantity in lines
                ],
            )
            self.session.add(order)
            await self.ledger.commit(lines)
            await self.session.flush()
            order_id = order.id

        logger.info(
            f"Order #{order_id} created on table {table.name} "
            f"({len(lines)} item(s), date {order_date.isoformat()})"
        )
        return await self.get(order_id)

    async def update(
        self,
        order_id: int,
        table_id: int,
        order_date: date,
        lines: Sequence[tuple[int, int]],
    ) -> Order:
        """
        Replace an open order's table, date and items.

        This is a full replacement, not a merge: from the stock ledger's point
        of view it is a delete followed by a create, evaluated against the
        stock levels after the old items have been given back.

        Raises:
            NotFound: Order does not exist
            InvalidState: Order is closed
            InvalidInput: New table or a product does not exist, or bad lines
            Conflict: Moving onto a single-tab table that has another open order
            InsufficientStock: A new line exceeds the restored stock
        """
        validate_lines(lines)

        async with atomic(self.session, f"update order #{order_id}"):
            order = await load_order(self.session, order_id, lock=True)
            if order is None:
                raise NotFound(f"Order {order_id} not found")
            if not order.is_open:
                raise InvalidState(f"Order {order_id} is closed and can no longer be changed")

            new_table = await self.occupancy.get_table(table_id, lock=True)
            if new_table is None:
                raise InvalidInput(f"New table {table_id} not found")

            if new_table.id != order.table_id:
                await self.occupancy.ensure_can_accept(new_table, exclude_order_id=order.id)

            # Old and new products in a single ascending pass
            await self.ledger.lock_products(
                {item.product_id for item in order.items} | {pid for pid, _ in lines}
            )
            await self.ledger.restore(order.items)
            order.items.clear()
            await self.session.flush()

            await self.ledger.ensure_available(lines)

            order.table = new_table
            order.date = order_date
            order.items.extend(
                OrderItem(product_id=product_id, quantity=quantity)
                for product_id, quantity in lines
            )
            await self.ledger.commit(lines)

        logger.info(
            f"Order #{order_id} replaced: table {new_table.name}, "
            f"{len(lines)} item(s), date {order_date.isoformat()}"
        )
        return await self.get(order_id)

    async def close(self, order_id: int) -> Order:
        """
        Close an open order. No stock side effects; the table becomes
        available again because occupancy only counts open orders.

        Raises:
            NotFound: Order does not exist
            InvalidState: Order is already closed
        """
        async with atomic(self.session, f"close order #{order_id}"):
            order = await load_order(self.session, order_id, lock=True)
            if order is None:
                raise NotFound(f"Order {order_id} not found")
            if not order.is_open:
                raise InvalidState("Order already closed")

            order.status = OrderStatus.CLOSED

        order = await self.get(order_id)
        logger.info(f"Order #{order_id} closed (table {order.table.name})")
        return order

    async def delete(self, order_id: int) -> None:
        """
        Delete an order for good, giving its stock back.

        Steps, in one transaction: restore stock → delete items → delete order.

        Raises:
            NotFound: Order does not exist
        """
        async with atomic(self.session, f"delete order #{order_id}"):
            order = await load_order(self.session, order_id, lock=True)
            if order is None:
                raise NotFound(f"Order {order_id} not found")

            await self.ledger.restore(order.items)
            order.items.clear()
            await self.session.flush()
            await self.session.delete(order)

        logger.info(f"Order #{order_id} deleted and stock restored")

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, order_id: int) -> Order:
        """
        Raises:
            NotFound: Order does not exist
        """
        order = await load_order(self.session, order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    async def list_all(self) -> list[Order]:
        result = await self.session.execute(
            select(Order)
            .options(*aggregate_options())
            .order_by(Order.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_by_date(self, day: date) -> list[Order]:
        """Orders whose business date is ``day`` (the whole calendar day)."""
        result = await self.session.execute(
            select(Order)
            .where(Order.date == day)
            .options(*aggregate_options())
            .order_by(Order.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_open_by_age(self) -> list[Order]:
        """Open orders, oldest first, for the kitchen display."""
        result = await self.session.execute(
            select(Order)
            .where(Order.status == OrderStatus.OPEN)
            .options(*aggregate_options())
            .order_by(Order.created_at.asc(), Order.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())
