"""
Read Models
===========

Tables owned by neighbouring services (accounts, catalogue, ordering).

The support desk only reads them: to enrich listings with display names, to
discover active agents and to infer a restaurant from an order.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supportdesk.infrastructure.database import Base


class UserModel(Base):
    """Platform account. ``role`` holds a ``UserRole`` value."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class RestaurantModel(Base):
    """A restaurant listed on the marketplace, owned by a vendor user."""
    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )


class OrderModel(Base):
    """A placed order; only the restaurant link matters here."""
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    restaurant_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("restaurants.id"), nullable=True
    )
    order_reference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
