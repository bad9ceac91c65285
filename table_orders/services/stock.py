"""
Stock Ledger

Atomic stock adjustments for products, always executed inside the caller's
transaction. A decrement is only issued after ``ensure_available`` has
checked every affected product against rows locked with SELECT ... FOR UPDATE
in the same transaction, so the check and the write cannot be interleaved
with another order touching the same products.

Usage:
    ledger = StockLedger(session)
    await ledger.ensure_available([(product_id, quantity), ...])
    await ledger.commit([(product_id, quantity), ...])
"""

import logging
from collections import OrderedDict
from typing import Iterable, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from table_orders.core.exceptions import InsufficientStock, InvalidInput, NotFound
from table_orders.models import OrderItem, Product

logger = logging.getLogger(__name__)


def summarize_lines(lines: Iterable[tuple[int, int]]) -> "OrderedDict[int, int]":
    """Sum requested quantities per product, keeping first-seen order."""
    totals: "OrderedDict[int, int]" = OrderedDict()
    for product_id, quantity in lines:
        totals[product_id] = totals.get(product_id, 0) + quantity
    return totals


class StockLedger:
    """Stock reads and delta writes for one unit of work."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def adjust(self, product_id: int, delta: int) -> None:
        """
        Add ``delta`` (signed) to a product's stock.

        The arithmetic happens in the database (``stock = stock + delta``),
        never as a read-modify-write in Python. Sufficiency is not re-checked
        here; see ``ensure_available``.

        Raises:
            NotFound: If the product does not exist
        """
        result = await self.session.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFound(f"Product {product_id} not found")

        logger.debug(f"Stock of product {product_id} adjusted by {delta:+d}")

    async def lock_products(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """
        Load and row-lock products, in ascending id order.

        A fixed lock order keeps two orders sharing products from
        deadlocking each other. Missing ids are simply absent from the result.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}

        result = await self.session.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}

    async def ensure_available(self, lines: Sequence[tuple[int, int]]) -> dict[int, Product]:
        """
        Check every requested line against current (locked) stock.

        Quantities for the same product are summed before comparing.

        Returns:
            The locked products by id

        Raises:
            InvalidInput: If a product does not exist
            InsufficientStock: If a product has fewer units than requested
        """
        totals = summarize_lines(lines)
        products = await self.lock_products(totals.keys())

        for product_id, quantity in totals.items():
            product = products.get(product_id)
            if product is None:
                raise InvalidInput(f"Product {product_id} not found")
            if product.stock < quantity:
                logger.warning(
                    f"Insufficient stock for {product.name} (#{product.id}): "
                    f"requested {quantity}, available {product.stock}"
                )
                raise InsufficientStock(
                    product_id=product.id,
                    product_name=product.name,
                    requested=quantity,
                    available=product.stock,
                )

        return products

    async def commit(self, lines: Sequence[tuple[int, int]]) -> None:
        """Take requested quantities out of stock."""
        for product_id, quantity in sorted(summarize_lines(lines).items()):
            await self.adjust(product_id, -quantity)

    async def restore(self, items: Iterable[OrderItem]) -> None:
        """Give each item's committed quantity back to stock."""
        lines = [(item.product_id, item.quantity) for item in items]
        for product_id, quantity in sorted(summarize_lines(lines).items()):
            await self.adjust(product_id, quantity)
