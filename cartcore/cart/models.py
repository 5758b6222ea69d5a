"""Line item model with Decimal-based pricing."""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Tuple, Union

from cartcore.cart.conditions import CartCondition, apply_conditions, normalize_conditions
from cartcore.config import CartConfig
from cartcore.services.money import format_value, multiply, normalize_price


@dataclass
class LineItem:
    """Single item in the cart."""
    id: Any
    name: str
    price: Decimal
    quantity: Union[int, Decimal]
    attributes: dict = field(default_factory=dict)
    conditions: List[CartCondition] = field(default_factory=list)
    associated_model: Optional[str] = None
    config: CartConfig = field(default_factory=CartConfig, repr=False, compare=False)

    def __post_init__(self):
        # Normalize numeric fields
        self.price = normalize_price(self.price)
        self.quantity = normalize_quantity(self.quantity)
        self.attributes = dict(self.attributes or {})
        self.conditions = normalize_conditions(self.conditions)

    def has_conditions(self) -> bool:
        return len(self.conditions) > 0

    def get_conditions(self) -> List[CartCondition]:
        return list(self.conditions)

    @property
    def association(self) -> Optional[Tuple[str, Any]]:
        """(model type, item id) to resolve the associated model with."""
        if not self.associated_model:
            return None
        return self.associated_model, self.id

    def get_price_sum(self, formatted: bool = True):
        """Price times quantity, before conditions."""
        return format_value(multiply(self.price, self.quantity), formatted, self.config)

    def get_price_with_conditions(self, formatted: bool = True):
        """Unit price after the item's own conditions."""
        return format_value(apply_conditions(self.price, self.conditions), formatted, self.config)

    def get_price_sum_with_conditions(self, formatted: bool = True):
        """Unit price after conditions, times quantity."""
        price = self.get_price_with_conditions(False)
        return format_value(multiply(price, self.quantity), formatted, self.config)

    def copy(self) -> "LineItem":
        """Detached copy; conditions are copied too."""
        return LineItem(
            id=self.id,
            name=self.name,
            price=self.price,
            quantity=self.quantity,
            attributes=dict(self.attributes),
            conditions=[condition.copy() for condition in self.conditions],
            associated_model=self.associated_model,
            config=self.config,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "quantity": self.quantity if isinstance(self.quantity, int) else str(self.quantity),
            "attributes": dict(self.attributes),
            "conditions": [condition.to_dict() for condition in self.conditions],
            "associated_model": self.associated_model,
        }

    @classmethod
    def from_dict(cls, data: dict, config: Optional[CartConfig] = None) -> "LineItem":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            price=normalize_price(data["price"]),
            quantity=data["quantity"],
            attributes=data.get("attributes") or {},
            conditions=[CartCondition.from_dict(c) for c in data.get("conditions") or []],
            associated_model=data.get("associated_model"),
            config=config or CartConfig(),
        )


def normalize_quantity(value) -> Union[int, Decimal]:
    """Keep whole quantities as int, fractional ones as Decimal."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    quantity = normalize_price(value)
    if quantity == quantity.to_integral_value():
        return int(quantity)
    return quantity
