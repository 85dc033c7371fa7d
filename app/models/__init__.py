"""Database models for the storefront backend"""

from app.models.storefront import (
    Order,
    Product,
    Profile
)

__all__ = [
    "Order",
    "Product",
    "Profile",
]
