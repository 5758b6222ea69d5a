"""Cart ledger: line items, cart-level conditions and totals."""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from cartcore.cart.associations import AssociationRegistry, ModelCache, model_key
from cartcore.cart.conditions import (
    CartCondition,
    TARGET_SUBTOTAL,
    TARGET_TOTAL,
    apply_conditions,
    normalize_conditions,
)
from cartcore.cart.events import CartEvent, CartEvents
from cartcore.cart.models import LineItem, normalize_quantity
from cartcore.cart.storage import CartStorage, Conditions, Items
from cartcore.cart.validators import validate_item
from cartcore.config import CartConfig
from cartcore.errors import (
    InvalidConditionError,
    InvalidItemError,
    UnknownAssociationError,
    ERROR_CONDITION_INSTANCE,
    ERROR_NO_CURRENT_ITEM,
    ERROR_SESSION_KEY_REQUIRED,
)
from cartcore.logging import get_logger, sanitize_id_for_logging, sanitize_string_for_logging
from cartcore.services.money import format_value, normalize_price, to_float

logger = get_logger(__name__)

# Fields that update() replaces directly
_REPLACEABLE_FIELDS = ("name", "associated_model")


class Cart:
    """
    A cart instance: line items keyed by id plus cart-level conditions keyed by name.

    Features:
    - Relative and absolute quantity updates
    - Item-level and cart-level conditions, applied in order
    - Vetoable lifecycle events
    - Associated models resolved once per write and cached

    Usage:
        cart = Cart(MemoryStorage(), CartEvents(), "shopping", "session-123")
        cart.add(455, "Sample Item", 100.99, 2)
        cart.condition(CartCondition(name="VAT 12.5%", type="tax", target="subtotal", value="12.5%"))
        total = cart.get_total()
    """

    def __init__(
        self,
        storage: CartStorage,
        events: Optional[CartEvents],
        instance_name: str,
        session_key: str,
        config: Optional[CartConfig] = None,
        registry: Optional[AssociationRegistry] = None,
        validator: Callable[[Mapping], Any] = validate_item,
    ):
        self._storage = storage
        self._events = events or CartEvents()
        self._instance_name = instance_name
        self._session_key = session_key
        # Each cart formats independently of others built from the same config
        self.config = (config or CartConfig()).model_copy()
        self._registry = registry or AssociationRegistry()
        self._models = ModelCache(self._registry)
        self._validate = validator
        self._current_item_id = None
        self._items: Items = {}
        self._conditions: Conditions = {}

        self._load()
        self._fire(CartEvent.CREATED)

    # ------------------------------------------------------------------
    # Instance / session
    # ------------------------------------------------------------------

    def get_instance_name(self) -> str:
        return self._instance_name

    def get_session_key(self) -> str:
        return self._session_key

    def session(self, session_key: str) -> "Cart":
        """
        Switch to another session key and load its items and conditions.

        Raises:
            ValueError: If the key is empty
        """
        if not session_key:
            raise ValueError(ERROR_SESSION_KEY_REQUIRED)

        self._session_key = session_key
        self._load()
        return self

    def _load(self) -> None:
        items, conditions = self._storage.load(self._session_key)
        for item in items.values():
            item.config = self.config
        self._items = dict(items)
        self._conditions = _sort_conditions(conditions)
        self._models.invalidate()

    def _fire(self, event: CartEvent, payload: Any = None) -> bool:
        return self._events.dispatch(f"{self._instance_name}.{event.value}", payload, self)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add(
        self,
        id,
        name: Optional[str] = None,
        price=None,
        quantity=None,
        attributes: Optional[Mapping] = None,
        conditions=None,
        associated_model=None,
    ) -> "Cart":
        """
        Add an item, or update it when the id is already in the cart.

        The first argument may also be a mapping with the item fields, or a
        list of such mappings to add several items at once.

        Returns:
            The cart, for chaining

        Raises:
            InvalidItemError: If required fields are missing or malformed
            InvalidConditionError: If conditions are not CartCondition instances
            UnknownAssociationError: If associated_model has no registered loader
        """
        if isinstance(id, Mapping):
            self._add_mapping(id)
            return self

        if isinstance(id, (list, tuple)):
            for data in id:
                self._add_mapping(data)
            return self

        data = {
            "id": id,
            "name": name,
            "price": price,
            "quantity": quantity,
            "attributes": attributes or {},
            "conditions": conditions,
            "associated_model": associated_model,
        }
        self._validate(data)

        item_conditions = normalize_conditions(conditions)
        if associated_model and not self._registry.has(associated_model):
            raise UnknownAssociationError(model_key(associated_model))

        if id in self._items:
            patch = {
                "name": name,
                "price": price,
                "quantity": quantity,
                "attributes": attributes or {},
                "conditions": item_conditions,
            }
            if associated_model:
                patch["associated_model"] = model_key(associated_model)
            self.update(id, patch)
        else:
            item = LineItem(
                id=id,
                name=name,
                price=normalize_price(price),
                quantity=quantity,
                attributes=attributes or {},
                conditions=item_conditions,
                associated_model=model_key(associated_model) if associated_model else None,
                config=self.config,
            )
            self._add_row(id, item)

        self._current_item_id = id
        return self

    def _add_mapping(self, data: Mapping) -> None:
        if not isinstance(data, Mapping):
            raise InvalidItemError("Item data must be a mapping.")
        self.add(
            data.get("id"),
            data.get("name"),
            data.get("price"),
            data.get("quantity"),
            data.get("attributes") or {},
            data.get("conditions") or [],
            data.get("associated_model") or None,
        )

    def _add_row(self, item_id, item: LineItem) -> bool:
        if not self._fire(CartEvent.ADDING, item.copy()):
            logger.info(f"Adding item {sanitize_id_for_logging(item_id)} vetoed")
            return False

        items = dict(self._items)
        items[item_id] = item
        self._save_items(items)

        logger.debug(f"Added item {sanitize_id_for_logging(item_id)} to {self._instance_name}")
        self._fire(CartEvent.ADDED, item.copy())
        return True

    def associate(self, model) -> "Cart":
        """
        Associate the most recently added item with a model type.

        Raises:
            UnknownAssociationError: If no loader is registered for the model
            InvalidItemError: If no item has been added yet
        """
        if not self._registry.has(model):
            raise UnknownAssociationError(model_key(model))
        if self._current_item_id not in self._items:
            raise InvalidItemError(ERROR_NO_CURRENT_ITEM)

        item = self._items[self._current_item_id].copy()
        item.associated_model = model_key(model)

        items = dict(self._items)
        items[self._current_item_id] = item
        self._save_items(items)
        return self

    def update(self, id, data: Mapping) -> bool:
        """
        Update an item with the given fields.

        Quantity is relative by default: "-2" removes two, "+3" or 3 adds three,
        and a reduction that would leave zero or less is ignored. Pass
        {"relative": False, "value": 5} to set it outright. Attributes are merged.

        Returns:
            True if updated, False if the item is unknown or the update was vetoed
        """
        if id not in self._items:
            logger.info(f"Update of unknown item {sanitize_id_for_logging(id)} ignored")
            return False

        if not self._fire(CartEvent.UPDATING, dict(data)):
            logger.info(f"Updating item {sanitize_id_for_logging(id)} vetoed")
            return False

        item = self._items[id].copy()

        for key, value in data.items():
            if key == "quantity":
                if isinstance(value, Mapping):
                    if "relative" in value:
                        if value["relative"]:
                            _update_quantity_relative(item, value.get("value"))
                        else:
                            _update_quantity_absolute(item, value.get("value"))
                else:
                    _update_quantity_relative(item, value)
            elif key == "attributes":
                item.attributes = {**item.attributes, **dict(value or {})}
            elif key == "conditions":
                item.conditions = normalize_conditions(value)
            elif key == "price":
                item.price = normalize_price(value)
            elif key in _REPLACEABLE_FIELDS:
                setattr(item, key, value)
            elif key != "id":
                logger.warning(f"Unknown item field {sanitize_string_for_logging(key)} ignored")

        items = dict(self._items)
        items[id] = item
        self._save_items(items)

        logger.debug(f"Updated item {sanitize_id_for_logging(id)} in {self._instance_name}")
        self._fire(CartEvent.UPDATED, item.copy())
        return True

    def remove(self, id) -> bool:
        """
        Remove an item by id.

        Returns:
            True if removed, False if the item is unknown or removal was vetoed
        """
        if id not in self._items:
            return False

        if not self._fire(CartEvent.REMOVING, id):
            logger.info(f"Removing item {sanitize_id_for_logging(id)} vetoed")
            return False

        items = dict(self._items)
        del items[id]
        self._save_items(items)

        self._fire(CartEvent.REMOVED, id)
        return True

    def clear(self) -> bool:
        """Remove every item. Cart-level conditions are kept."""
        if not self._fire(CartEvent.CLEARING):
            logger.info(f"Clearing {self._instance_name} vetoed")
            return False

        self._save_items({})
        self._models.reset()

        self._fire(CartEvent.CLEARED)
        return True

    def has(self, id) -> bool:
        return id in self._items

    def get(self, id) -> Optional[LineItem]:
        """Copy of an item, or None."""
        item = self._items.get(id)
        return item.copy() if item else None

    def get_content(self) -> Dict[Any, LineItem]:
        """Copies of all items, in insertion order."""
        return {item_id: item.copy() for item_id, item in self._items.items()}

    def is_empty(self) -> bool:
        return not self._items

    def get_model(self, id) -> Optional[Any]:
        """Associated model of an item, from the cart's model cache."""
        item = self._items.get(id)
        if item is None or not item.associated_model:
            return None
        if self._models.is_stale():
            self._models.rebuild(self._items.values())
        return self._models.get(item.associated_model, item.id)

    def _save_items(self, items: Items) -> None:
        self._storage.save_items(self._session_key, items)
        self._items = items
        self._models.invalidate()

    # ------------------------------------------------------------------
    # Cart-level conditions
    # ------------------------------------------------------------------

    def condition(self, condition) -> "Cart":
        """
        Add a cart-level condition, replacing any with the same name.

        A condition without an order is placed after the highest existing one.
        The order is set on the cart's own copy; the caller's object is unchanged.

        Raises:
            InvalidConditionError: If given something other than a CartCondition
        """
        if isinstance(condition, (list, tuple)):
            for c in condition:
                self.condition(c)
            return self

        if not isinstance(condition, CartCondition):
            raise InvalidConditionError(ERROR_CONDITION_INSTANCE)

        conditions = dict(self._conditions)
        stored = condition.copy()

        if stored.get_order() == 0:
            last = max((c.get_order() for c in conditions.values()), default=0)
            stored.set_order(last + 1)

        conditions[stored.get_name()] = stored
        self._save_conditions(_sort_conditions(conditions))

        logger.debug(
            f"Condition {sanitize_string_for_logging(stored.get_name())} "
            f"added to {self._instance_name} with order {stored.get_order()}"
        )
        return self

    def get_conditions(self) -> Dict[str, CartCondition]:
        """Copies of the cart-level conditions, in application order."""
        return {name: c.copy() for name, c in self._conditions.items()}

    def get_condition(self, name: str) -> Optional[CartCondition]:
        condition = self._conditions.get(name)
        return condition.copy() if condition else None

    def get_conditions_by_type(self, type: str) -> Dict[str, CartCondition]:
        """Cart-level conditions of one type. Item conditions are not included."""
        return {
            name: c.copy()
            for name, c in self._conditions.items()
            if str(c.get_type()) == str(type)
        }

    def remove_cart_condition(self, name: str) -> None:
        """Remove a cart-level condition by name. Use remove_item_condition for items."""
        conditions = dict(self._conditions)
        conditions.pop(name, None)
        self._save_conditions(conditions)

    def remove_conditions_by_type(self, type: str) -> None:
        conditions = {
            name: c for name, c in self._conditions.items() if str(c.get_type()) != str(type)
        }
        self._save_conditions(conditions)

    def clear_cart_conditions(self) -> None:
        """Remove all cart-level conditions. Item conditions stay."""
        self._save_conditions({})

    def _save_conditions(self, conditions: Conditions) -> None:
        self._storage.save_conditions(self._session_key, conditions)
        self._conditions = conditions

    def _conditions_for(self, target: str) -> List[CartCondition]:
        return [c for c in self._conditions.values() if c.get_target() == target]

    # ------------------------------------------------------------------
    # Item-level conditions
    # ------------------------------------------------------------------

    def add_item_condition(self, item_id, condition: CartCondition) -> "Cart":
        """Append a condition to an item already in the cart."""
        if not isinstance(condition, CartCondition):
            raise InvalidConditionError(ERROR_CONDITION_INSTANCE)

        item = self._items.get(item_id)
        if item is None:
            return self

        self.update(item_id, {"conditions": item.get_conditions() + [condition.copy()]})
        return self

    def remove_item_condition(self, item_id, name: str) -> bool:
        """Remove an item's conditions with the given name."""
        item = self._items.get(item_id)
        if item is None:
            return False

        remaining = [c for c in item.get_conditions() if str(c.get_name()) != str(name)]
        return self.update(item_id, {"conditions": remaining})

    def clear_item_conditions(self, item_id) -> bool:
        if item_id not in self._items:
            return False
        return self.update(item_id, {"conditions": []})

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def get_sub_total_without_conditions(self, formatted: bool = True):
        """Sum of price times quantity, ignoring every condition."""
        total = sum((item.get_price_sum(False) for item in self._items.values()), Decimal("0"))
        return format_value(total, formatted, self.config)

    def get_sub_total(self, formatted: bool = True):
        """Sum of item totals after item conditions, then subtotal conditions."""
        total = sum(
            (item.get_price_sum_with_conditions(False) for item in self._items.values()),
            Decimal("0"),
        )
        total = apply_conditions(total, self._conditions_for(TARGET_SUBTOTAL))
        return format_value(total, formatted, self.config)

    def get_total(self, formatted: bool = True):
        """Subtotal with total conditions applied. Equals the subtotal when there are none."""
        sub_total = self.get_sub_total(False)
        total = apply_conditions(sub_total, self._conditions_for(TARGET_TOTAL))
        return format_value(total, formatted, self.config)

    def get_total_quantity(self):
        if not self._items:
            return 0
        return normalize_quantity(sum(item.quantity for item in self._items.values()))

    def get_summary(self) -> dict:
        """
        Plain summary of the cart for receipts and API responses.

        Returns:
            Dictionary with items, condition amounts and totals as floats
        """
        if not self._items:
            return {
                "is_empty": True,
                "total_quantity": 0,
                "subtotal": 0,
                "total": 0,
            }

        sub_total_base = sum(
            (item.get_price_sum_with_conditions(False) for item in self._items.values()),
            Decimal("0"),
        )

        return {
            "is_empty": False,
            "total_quantity": to_float(self.get_total_quantity()),
            "items": [
                {
                    "id": item.id,
                    "name": item.name,
                    "quantity": to_float(item.quantity),
                    "price": to_float(item.price),
                    "price_with_conditions": to_float(item.get_price_with_conditions(False)),
                    "total": to_float(item.get_price_sum_with_conditions(False)),
                    "conditions": _condition_breakdown(item.price, item.conditions),
                }
                for item in self._items.values()
            ],
            "subtotal_conditions": _condition_breakdown(
                sub_total_base, self._conditions_for(TARGET_SUBTOTAL)
            ),
            "subtotal": to_float(self.get_sub_total(False)),
            "total_conditions": _condition_breakdown(
                self.get_sub_total(False), self._conditions_for(TARGET_TOTAL)
            ),
            "total": to_float(self.get_total(False)),
        }

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def set_decimals(self, decimals: int) -> None:
        self.config.decimals = decimals

    def set_dec_point(self, dec_point: str) -> None:
        self.config.dec_point = dec_point

    def set_thousands_sep(self, thousands_sep: str) -> None:
        self.config.thousands_sep = thousands_sep


def _sort_conditions(conditions: Conditions) -> Conditions:
    return dict(sorted(conditions.items(), key=lambda pair: pair[1].get_order()))


def _condition_breakdown(base, conditions: List[CartCondition]) -> List[dict]:
    """Name and raw amount of each condition as it is applied in sequence."""
    breakdown = []
    value = base
    for condition in conditions:
        amount = condition.get_calculated_value(value)
        breakdown.append({
            "name": condition.get_name(),
            "type": condition.get_type(),
            "value": condition.get_value(),
            "amount": to_float(amount),
        })
        value = condition.apply_condition(value)
    return breakdown


def _update_quantity_relative(item: LineItem, value) -> None:
    text = str(value)
    if "-" in text:
        delta = normalize_quantity(text.replace("-", ""))
        # Never reduce to zero or below
        if item.quantity - delta > 0:
            item.quantity = normalize_quantity(item.quantity - delta)
        else:
            logger.info(f"Quantity change {text} ignored for item {sanitize_id_for_logging(item.id)}")
    elif "+" in text:
        item.quantity = normalize_quantity(item.quantity + normalize_quantity(text.replace("+", "")))
    else:
        item.quantity = normalize_quantity(item.quantity + normalize_quantity(text))


def _update_quantity_absolute(item: LineItem, value) -> None:
    quantity = normalize_quantity(value)
    if quantity > 0:
        item.quantity = quantity
    else:
        logger.info(f"Quantity {value} ignored for item {sanitize_id_for_logging(item.id)}")
