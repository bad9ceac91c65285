"""
SQLAlchemy Database Models

Tables, the product catalog with its stock counts, and orders bundling
product line-items per table.

Stock is only ever changed through the stock ledger (server-side
``stock = stock + delta`` updates); the CHECK constraint is the last line of
defence against a negative count.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from table_orders.database import Base


class OrderStatus(str, enum.Enum):
    """Order lifecycle. CLOSED is terminal."""
    OPEN = "open"
    CLOSED = "closed"


class KitchenStatus(str, enum.Enum):
    """Preparation stage, meaningful only while the order is open."""
    WAITING = "Waiting"
    PREPARING = "Preparing"
    READY = "Ready"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Product(Base):
    """A catalog item with its unit price and units in stock."""
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_products_price_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} - stock {self.stock}>"


class Table(Base):
    """
    A dining table.

    When ``single_tab`` is set, at most one open order may reference the
    table at any instant.
    """
    __tablename__ = "dining_tables"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_dining_tables_capacity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    single_tab = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Table #{self.id} - {self.name} - single_tab={self.single_tab}>"


class Order(Base):
    """
    An order placed at one table.

    ``date`` is the business day the order belongs to, chosen by the client;
    it is not the creation timestamp.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_id = Column(Integer, ForeignKey("dining_tables.id"), nullable=False, index=True)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.OPEN,
        nullable=False,
        index=True
    )
    kitchen_status = Column(
        Enum(KitchenStatus, name="kitchen_status", values_callable=_enum_values),
        default=KitchenStatus.WAITING,
        nullable=False
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    date = Column(Date, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    table = relationship("Table")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @property
    def is_open(self) -> bool:
        return self.status == OrderStatus.OPEN

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table_id} - {self.status.value} - {self.date}>"


class OrderItem(Base):
    """
    One product line of an order.

    ``quantity`` is the stock committed when the line was written, and the
    amount given back to stock when the line is removed.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    def __repr__(self):
        return f"<OrderItem #{self.id} - {self.quantity} x product {self.product_id}>"
