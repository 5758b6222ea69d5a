"""Cart package: conditions, line items, storage and the cart ledger."""
from .associations import AssociationRegistry, ModelCache
from .conditions import CartCondition, apply_conditions
from .events import CartEvent, CartEvents
from .models import LineItem
from .service import Cart
from .storage import CartStorage, MemoryStorage, RedisStorage

__all__ = [
    "AssociationRegistry",
    "Cart",
    "CartCondition",
    "CartEvent",
    "CartEvents",
    "CartStorage",
    "LineItem",
    "MemoryStorage",
    "ModelCache",
    "RedisStorage",
    "apply_conditions",
]
