"""
Cart Conditions - named price adjustments (discounts, fees, taxes).

A condition's value is a small expression:
    "-10%"  subtract 10 percent
    "+5%"   add 5 percent
    "-25"   subtract a fixed 25
    "25"    add a fixed 25

Conditions are applied in order, each one starting from the previous result.
"""
from decimal import Decimal
from collections.abc import Iterable, Mapping
from typing import Any, List, Optional

from cartcore.cart.validators import validate_condition
from cartcore.errors import InvalidConditionError, ERROR_CONDITION_INSTANCE
from cartcore.services.money import is_numeric, normalize_price, percent, to_decimal

TARGET_ITEM = "item"
TARGET_SUBTOTAL = "subtotal"
TARGET_TOTAL = "total"

ZERO = Decimal("0.00")


class CartCondition:
    """
    A single named adjustment.

    Everything except the order is fixed at construction; the cart assigns an
    order when the condition is attached without one.
    """

    def __init__(
        self,
        name: str,
        type: str,
        value: Any,
        target: str = "",
        order: Any = 0,
        attributes: Optional[Mapping] = None,
    ):
        args = {
            "name": name,
            "type": type,
            "value": value,
            "target": target,
            "order": order,
            "attributes": attributes,
        }
        validate_condition(args)

        self._name = name
        self._type = type
        self._value = str(value)
        self._target = target or ""
        self._order = order
        self._attributes = dict(attributes or {})
        self.parsed_raw_value: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, args: Mapping) -> "CartCondition":
        """Create from a flat mapping of condition arguments."""
        if not isinstance(args, Mapping):
            raise InvalidConditionError(ERROR_CONDITION_INSTANCE)
        validate_condition(args)
        return cls(
            name=args.get("name"),
            type=args.get("type"),
            value=args.get("value"),
            target=args.get("target") or "",
            order=args.get("order", 0),
            attributes=args.get("attributes"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "name": self._name,
            "type": self._type,
            "target": self._target,
            "value": self._value,
            "order": self.get_order(),
            "attributes": dict(self._attributes),
        }

    def copy(self) -> "CartCondition":
        return CartCondition.from_dict(self.to_dict())

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> str:
        return self._type

    @property
    def target(self) -> str:
        """Where the condition applies. Empty for conditions added to an item."""
        return self._target

    @property
    def value(self) -> str:
        return self._value

    @property
    def attributes(self) -> dict:
        return dict(self._attributes)

    def get_name(self) -> str:
        return self._name

    def get_type(self) -> str:
        return self._type

    def get_target(self) -> str:
        return self._target

    def get_value(self) -> str:
        return self._value

    def get_attributes(self) -> dict:
        return dict(self._attributes)

    def get_order(self) -> int:
        """Order to apply this condition in, 0 when none has been assigned."""
        if is_numeric(self._order):
            return int(to_decimal(self._order))
        return 0

    def set_order(self, order: int = 1) -> None:
        self._order = order

    def apply_condition(self, base) -> Decimal:
        """
        Apply the condition to a price, subtotal or total.

        Args:
            base: Value to adjust

        Returns:
            Adjusted value, never below 0.00
        """
        return self._apply(to_decimal(base), self._value)

    def get_calculated_value(self, base) -> Optional[Decimal]:
        """Raw adjustment amount this condition produces for the given base."""
        self._apply(to_decimal(base), self._value)
        return self.parsed_raw_value

    def _apply(self, base: Decimal, condition_value: str) -> Decimal:
        # Percentages are taken of the base; without a sign they are added.
        if self._is_percentage(condition_value):
            if self._is_to_be_subtracted(condition_value):
                value = normalize_price(self._clean_value(condition_value))
                self.parsed_raw_value = percent(base, value)
                result = base - self.parsed_raw_value
            elif self._is_to_be_added(condition_value):
                value = normalize_price(self._clean_value(condition_value))
                self.parsed_raw_value = percent(base, value)
                result = base + self.parsed_raw_value
            else:
                # Unsigned percentage reads the raw expression, so only its
                # numeric prefix counts ("10%" -> 10, "%10" -> 0).
                value = normalize_price(condition_value)
                self.parsed_raw_value = percent(base, value)
                result = base + self.parsed_raw_value

        # Fixed amounts: a minus subtracts, anything else adds.
        else:
            if self._is_to_be_subtracted(condition_value):
                self.parsed_raw_value = normalize_price(self._clean_value(condition_value))
                result = base - self.parsed_raw_value
            elif self._is_to_be_added(condition_value):
                self.parsed_raw_value = normalize_price(self._clean_value(condition_value))
                result = base + self.parsed_raw_value
            else:
                self.parsed_raw_value = normalize_price(condition_value)
                result = base + self.parsed_raw_value

        # No negative prices or totals
        return ZERO if result < 0 else result

    @staticmethod
    def _is_percentage(value: str) -> bool:
        return "%" in value

    @staticmethod
    def _is_to_be_subtracted(value: str) -> bool:
        return "-" in value

    @staticmethod
    def _is_to_be_added(value: str) -> bool:
        return "+" in value

    @staticmethod
    def _clean_value(value: str) -> str:
        """Strip the arithmetic signs (%, -, +)."""
        return value.replace("%", "").replace("-", "").replace("+", "")

    def __repr__(self) -> str:
        return (
            f"CartCondition(name={self._name!r}, type={self._type!r}, "
            f"target={self._target!r}, value={self._value!r}, order={self.get_order()})"
        )


def apply_conditions(base, conditions: Iterable[CartCondition]) -> Decimal:
    """
    Fold conditions over a base value, left to right.

    Each condition adjusts the result of the previous one, not the original base.
    """
    result = to_decimal(base)
    for condition in conditions:
        result = condition.apply_condition(result)
    return result


def normalize_conditions(conditions) -> List[CartCondition]:
    """
    Turn a single condition, a sequence of conditions or nothing into a list.

    Raises:
        InvalidConditionError: If any element is not a CartCondition
    """
    if conditions is None or (isinstance(conditions, str) and conditions == ""):
        return []
    if isinstance(conditions, CartCondition):
        return [conditions]
    if isinstance(conditions, (str, bytes, Mapping)) or not isinstance(conditions, Iterable):
        raise InvalidConditionError(ERROR_CONDITION_INSTANCE)

    normalized = []
    for condition in conditions:
        if not isinstance(condition, CartCondition):
            raise InvalidConditionError(ERROR_CONDITION_INSTANCE)
        normalized.append(condition)
    return normalized
