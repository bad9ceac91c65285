"""
Kitchen Status Tracker

Moves an open order between preparation stages (Waiting, Preparing, Ready).
Any stage may follow any other; only membership in the set is enforced.
Independent of the open/closed lifecycle, stock and table occupancy.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from table_orders.core.exceptions import InvalidInput, InvalidState, NotFound
from table_orders.models import KitchenStatus, Order
from table_orders.services.orders import load_order
from table_orders.services.transaction import atomic

logger = logging.getLogger(__name__)


def parse_kitchen_status(value) -> KitchenStatus:
    """
    Raises:
        InvalidInput: If the value is not Waiting, Preparing or Ready
    """
    if isinstance(value, KitchenStatus):
        return value
    try:
        return KitchenStatus(value)
    except ValueError:
        valid = [s.value for s in KitchenStatus]
        raise InvalidInput(f"Invalid kitchen status {value!r}. Options: {valid}")


class KitchenStatusTracker:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def advance(self, order_id: int, new_status) -> Order:
        """
        Set the kitchen status of an open order.

        Raises:
            NotFound: Order does not exist
            InvalidInput: Status outside Waiting/Preparing/Ready
            InvalidState: Order is closed
        """
        async with atomic(self.session, f"update kitchen status of order #{order_id}"):
            order = await load_order(self.session, order_id, lock=True)
            if order is None:
                raise NotFound(f"Order {order_id} not found")

            status = parse_kitchen_status(new_status)
            if not order.is_open:
                raise InvalidState(f"Order {order_id} is closed; kitchen status is frozen")

            previous = order.kitchen_status
            order.kitchen_status = status

        logger.info(f"Order #{order_id} kitchen status: {previous.value} → {status.value}")

        order = await load_order(self.session, order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order
