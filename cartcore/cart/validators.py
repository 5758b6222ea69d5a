"""Validation rules for line items and conditions."""
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from cartcore.errors import (
    InvalidConditionError,
    InvalidItemError,
    ERROR_CONDITION_MULTI_DIMENSIONAL,
    ERROR_CONDITION_NAME_REQUIRED,
    ERROR_CONDITION_TYPE_REQUIRED,
    ERROR_CONDITION_VALUE_REQUIRED,
    ERROR_ITEM_ID_REQUIRED,
    ERROR_ITEM_NAME_REQUIRED,
    ERROR_ITEM_PRICE_NUMERIC,
    ERROR_ITEM_PRICE_REQUIRED,
    ERROR_ITEM_QUANTITY_MIN,
    ERROR_ITEM_QUANTITY_NUMERIC,
    ERROR_ITEM_QUANTITY_REQUIRED,
)
from cartcore.services.money import is_numeric, to_decimal

MIN_QUANTITY = Decimal("0.1")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _required(value: Any, message: str) -> Any:
    if _is_blank(value):
        raise ValueError(message)
    return value


def _first_message(exc: PydanticValidationError) -> str:
    """Message of the first failing rule, without pydantic's prefix."""
    error = exc.errors()[0]
    original = error.get("ctx", {}).get("error")
    return str(original) if original else error["msg"]


class ItemSchema(BaseModel):
    """Required line item fields, checked in declaration order."""
    id: Any = Field(default=None, validate_default=True)
    price: Any = Field(default=None, validate_default=True)
    quantity: Any = Field(default=None, validate_default=True)
    name: Any = Field(default=None, validate_default=True)

    class Config:
        extra = "ignore"

    @field_validator("id", mode="before")
    @classmethod
    def check_id(cls, v):
        return _required(v, ERROR_ITEM_ID_REQUIRED)

    @field_validator("price", mode="before")
    @classmethod
    def check_price(cls, v):
        _required(v, ERROR_ITEM_PRICE_REQUIRED)
        if not is_numeric(v):
            raise ValueError(ERROR_ITEM_PRICE_NUMERIC)
        return v

    @field_validator("quantity", mode="before")
    @classmethod
    def check_quantity(cls, v):
        _required(v, ERROR_ITEM_QUANTITY_REQUIRED)
        if not is_numeric(v):
            raise ValueError(ERROR_ITEM_QUANTITY_NUMERIC)
        if to_decimal(v.strip() if isinstance(v, str) else v) < MIN_QUANTITY:
            raise ValueError(ERROR_ITEM_QUANTITY_MIN)
        return v

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, ERROR_ITEM_NAME_REQUIRED)


class ConditionSchema(BaseModel):
    """Required condition fields."""
    name: Any = Field(default=None, validate_default=True)
    type: Any = Field(default=None, validate_default=True)
    value: Any = Field(default=None, validate_default=True)

    class Config:
        extra = "ignore"

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return _required(v, ERROR_CONDITION_NAME_REQUIRED)

    @field_validator("type", mode="before")
    @classmethod
    def check_type(cls, v):
        return _required(v, ERROR_CONDITION_TYPE_REQUIRED)

    @field_validator("value", mode="before")
    @classmethod
    def check_value(cls, v):
        return _required(v, ERROR_CONDITION_VALUE_REQUIRED)


def validate_item(data: Mapping) -> Mapping:
    """
    Validate line item data before it enters a cart.

    Args:
        data: Item fields (id, name, price, quantity, ...)

    Returns:
        The same data, unchanged

    Raises:
        InvalidItemError: With the message of the first failing rule
    """
    try:
        ItemSchema.model_validate(dict(data))
    except PydanticValidationError as e:
        raise InvalidItemError(_first_message(e)) from None
    return data


def validate_condition(args: Mapping) -> Mapping:
    """
    Validate condition arguments.

    Nested lists or mappings are only allowed under "attributes".

    Raises:
        InvalidConditionError: On nested values or missing required fields
    """
    for key, value in args.items():
        if key == "attributes":
            if value is not None and not isinstance(value, Mapping):
                raise InvalidConditionError(ERROR_CONDITION_MULTI_DIMENSIONAL)
            continue
        if isinstance(value, (list, tuple, set, Mapping)):
            raise InvalidConditionError(ERROR_CONDITION_MULTI_DIMENSIONAL)

    try:
        ConditionSchema.model_validate(dict(args))
    except PydanticValidationError as e:
        raise InvalidConditionError(_first_message(e)) from None
    return args
