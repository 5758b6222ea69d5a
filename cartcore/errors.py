"""
Cart Errors

Centralized error messages and the exception hierarchy raised by the cart engine.
Vetoed mutations are not errors: they return False.
"""

# Item errors
ERROR_ITEM_ID_REQUIRED = "The id field is required."
ERROR_ITEM_NAME_REQUIRED = "The name field is required."
ERROR_ITEM_PRICE_REQUIRED = "The price field is required."
ERROR_ITEM_PRICE_NUMERIC = "The price must be a number."
ERROR_ITEM_QUANTITY_REQUIRED = "The quantity field is required."
ERROR_ITEM_QUANTITY_NUMERIC = "The quantity must be a number."
ERROR_ITEM_QUANTITY_MIN = "The quantity must be at least 0.1."

# Condition errors
ERROR_CONDITION_NAME_REQUIRED = "The name field is required."
ERROR_CONDITION_TYPE_REQUIRED = "The type field is required."
ERROR_CONDITION_VALUE_REQUIRED = "The value field is required."
ERROR_CONDITION_MULTI_DIMENSIONAL = "Multi dimensional array is not supported."
ERROR_CONDITION_INSTANCE = "Argument 1 must be an instance of 'CartCondition'"

# Association errors
ERROR_UNKNOWN_MODEL = "The supplied model {model} does not exist."
ERROR_NO_CURRENT_ITEM = "No item has been added to associate a model with."

# Session errors
ERROR_SESSION_KEY_REQUIRED = "Session key is required."

# Storage errors
ERROR_STORAGE_UNAVAILABLE = "Cart storage unavailable: {error}"


class CartError(Exception):
    """Base error raised by the cart engine."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(CartError):
    """Required item or condition fields are missing or malformed."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR") -> None:
        super().__init__(message, code=code)


class InvalidItemError(ValidationError):
    """Line item data failed validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_ITEM")


class InvalidConditionError(CartError):
    """Malformed condition arguments or a non-condition where one is required."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_CONDITION")


class UnknownAssociationError(CartError):
    """Association target type is not registered."""

    def __init__(self, model: str) -> None:
        super().__init__(ERROR_UNKNOWN_MODEL.format(model=model), code="UNKNOWN_MODEL")
        self.model = model


class StorageError(CartError):
    """Durable store failed to load or save cart data."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="STORAGE_UNAVAILABLE")
