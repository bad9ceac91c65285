"""
Catalog Service

Administration of products and tables. Order logic never goes through here
to change stock; setting a stock count is a catalog decision taken when a
product is created or edited.

Deletions are guarded so the order engine's invariants survive them:
    - a product still referenced by an order item cannot be deleted
      (its stock could no longer be restored);
    - a table with open orders cannot be deleted;
    - a table cannot be switched to single-tab while it holds more than one
      open order.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from table_orders.core.exceptions import Conflict, InvalidState, NotFound
from table_orders.models import Order, OrderItem, OrderStatus, Product, Table
from table_orders.services.transaction import atomic

logger = logging.getLogger(__name__)


class CatalogService:

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    async def list_products(self) -> list[Product]:
        result = await self.session.execute(
            select(Product).order_by(Product.id).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_product(self, product_id: int, lock: bool = False) -> Product:
        query = select(Product).where(Product.id == product_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query.execution_options(populate_existing=True))
        product = result.scalar_one_or_none()
        if product is None:
            raise NotFound(f"Product {product_id} not found")
        return product

    async def create_product(self, name: str, price: float, stock: int) -> Product:
        async with atomic(self.session, "create the product"):
            product = Product(name=name, price=price, stock=stock)
            self.session.add(product)
            await self.session.flush()
            product_id = product.id

        logger.info(f"Product #{product_id} created: {name} (stock {stock})")
        return await self.get_product(product_id)

    async def update_product(
        self,
        product_id: int,
        name: str,
        price: float,
        stock: int,
    ) -> Product:
        async with atomic(self.session, f"update product #{product_id}"):
            product = await self.get_product(product_id, lock=True)
            product.name = name
            product.price = price
            product.stock = stock

        logger.info(f"Product #{product_id} updated: {name} (stock {stock})")
        return await self.get_product(product_id)

    async def delete_product(self, product_id: int) -> None:
        async with atomic(self.session, f"delete product #{product_id}"):
            product = await self.get_product(product_id, lock=True)

            references = await self.session.scalar(
                select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id)
            )
            if references:
                raise Conflict(
                    f"Product {product.name} is used by {references} order item(s) "
                    f"and cannot be deleted"
                )

            await self.session.delete(product)

        logger.info(f"Product #{product_id} deleted")

    # =========================================================================
    # TABLES
    # =========================================================================

    async def list_tables(self) -> list[Table]:
        result = await self.session.execute(
            select(Table).order_by(Table.id).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_table(self, table_id: int, lock: bool = False) -> Table:
        query = select(Table).where(Table.id == table_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query.execution_options(populate_existing=True))
        table = result.scalar_one_or_none()
        if table is None:
            raise NotFound(f"Table {table_id} not found")
        return table

    async def _count_orders(self, table_id: int, status: Optional[OrderStatus] = None) -> int:
        query = select(func.count(Order.id)).where(Order.table_id == table_id)
        if status is not None:
            query = query.where(Order.status == status)
        return await self.session.scalar(query) or 0

    async def create_table(self, name: str, capacity: int, single_tab: bool = False) -> Table:
        async with atomic(self.session, "create the table"):
            table = Table(name=name, capacity=capacity, single_tab=single_tab)
            self.session.add(table)
            await self.session.flush()
            table_id = table.id

        logger.info(f"Table #{table_id} created: {name} (single_tab={single_tab})")
        return await self.get_table(table_id)

    async def update_table(
        self,
        table_id: int,
        name: str,
        capacity: int,
        single_tab: Optional[bool] = None,
    ) -> Table:
        async with atomic(self.session, f"update table #{table_id}"):
            table = await self.get_table(table_id, lock=True)

            if single_tab and not table.single_tab:
                open_orders = await self._count_orders(table_id, OrderStatus.OPEN)
                if open_orders > 1:
                    raise Conflict(
                        f"Table {table.name} has {open_orders} open orders; "
                        f"close them before enabling single tab"
                    )

            table.name = name
            table.capacity = capacity
            if single_tab is not None:
                table.single_tab = single_tab

        logger.info(f"Table #{table_id} updated: {name}")
        return await self.get_table(table_id)

    async def delete_table(self, table_id: int) -> None:
        async with atomic(self.session, f"delete table #{table_id}"):
            table = await self.get_table(table_id, lock=True)

            if await self._count_orders(table_id, OrderStatus.OPEN):
                raise InvalidState("Cannot delete table with open orders")
            if await self._count_orders(table_id):
                raise Conflict(
                    f"Table {table.name} still has closed orders on record "
                    f"and cannot be deleted"
                )

            await self.session.delete(table)

        logger.info(f"Table #{table_id} deleted")
