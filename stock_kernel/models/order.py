"""
Module: stock_kernel.models.order
Responsibility: ORM persistence for orders and their line items, as far as
    the stock engine needs to see them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Order.status is owned by the order-management collaborator.  The stock
      engine reads orders but never writes status.
    - A line item without a recipe contributes nothing to consumption.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stock_kernel.db.base import Base, IdType


class Order(Base):
    """A customer order.  Status is an open-ended string (PENDING, PREPARING, ...)."""

    __tablename__ = "orders"

    status: Mapped[str] = mapped_column(String(50), nullable=False, default="PENDING", index=True)

    line_items = relationship(
        "OrderLineItem",
        back_populates="order",
        cascade="all, delete-orphan",
    )


class OrderLineItem(Base):
    """One product on an order, optionally fulfilled by a recipe."""

    __tablename__ = "order_line_items"

    order_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(
        IdType,
        ForeignKey("products.id"),
        nullable=False,
    )
    recipe_id: Mapped[int | None] = mapped_column(
        IdType,
        ForeignKey("recipes.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity: Mapped[int] = mapped_column(nullable=False, default=1)

    order = relationship("Order", back_populates="line_items")
    product = relationship("Product")
    recipe = relationship("Recipe")
