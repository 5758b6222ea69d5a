"""
Cart storage backends.

A cart persists two documents per session key: its line items and its
cart-level conditions. Backends only store and return them.
"""
import json
from typing import Dict, Optional, Protocol, Tuple

from cartcore.cart.conditions import CartCondition
from cartcore.cart.models import LineItem
from cartcore.config import CartConfig
from cartcore.db import RedisKeys, TTL, get_redis_sync
from cartcore.errors import CartError, StorageError, ERROR_STORAGE_UNAVAILABLE
from cartcore.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)

Items = Dict[object, LineItem]
Conditions = Dict[str, CartCondition]


class CartStorage(Protocol):
    """Durable store used by Cart."""

    def load(self, session_key: str) -> Tuple[Items, Conditions]:
        ...

    def save_items(self, session_key: str, items: Items) -> None:
        ...

    def save_conditions(self, session_key: str, conditions: Conditions) -> None:
        ...


class MemoryStorage:
    """In-process storage; keeps copies so stored state can't be changed from outside."""

    def __init__(self):
        self._items: Dict[str, Items] = {}
        self._conditions: Dict[str, Conditions] = {}

    def load(self, session_key: str) -> Tuple[Items, Conditions]:
        items = {item_id: item.copy() for item_id, item in self._items.get(session_key, {}).items()}
        conditions = {name: c.copy() for name, c in self._conditions.get(session_key, {}).items()}
        return items, conditions

    def save_items(self, session_key: str, items: Items) -> None:
        self._items[session_key] = {item_id: item.copy() for item_id, item in items.items()}

    def save_conditions(self, session_key: str, conditions: Conditions) -> None:
        self._conditions[session_key] = {name: c.copy() for name, c in conditions.items()}


class RedisStorage:
    """
    Stores cart documents in Redis as JSON with a TTL.

    Features:
    - One key for items, one for conditions, per session key
    - 24-hour TTL for abandoned carts
    - Corrupted documents are dropped and read as empty
    """

    def __init__(self, redis=None, config: Optional[CartConfig] = None, ttl: int = TTL.CART):
        self._redis = redis  # Lazy initialization
        self.config = config or CartConfig()
        self.ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis_sync()
            except ValueError as e:
                raise StorageError(ERROR_STORAGE_UNAVAILABLE.format(error=e)) from e
        return self._redis

    def load(self, session_key: str) -> Tuple[Items, Conditions]:
        items_key = RedisKeys.items_key(session_key, self.config.storage_prefix)
        conditions_key = RedisKeys.conditions_key(session_key, self.config.storage_prefix)

        items: Items = {}
        for data in self._read(items_key):
            try:
                item = LineItem.from_dict(data, self.config)
            except (KeyError, TypeError, CartError) as e:
                logger.warning(f"Corrupted cart item for session {sanitize_id_for_logging(session_key)}: {e}")
                self._delete(items_key)
                items = {}
                break
            items[item.id] = item

        conditions: Conditions = {}
        for data in self._read(conditions_key):
            try:
                condition = CartCondition.from_dict(data)
            except (KeyError, TypeError, CartError) as e:
                logger.warning(f"Corrupted cart condition for session {sanitize_id_for_logging(session_key)}: {e}")
                self._delete(conditions_key)
                conditions = {}
                break
            conditions[condition.get_name()] = condition

        return items, conditions

    def save_items(self, session_key: str, items: Items) -> None:
        key = RedisKeys.items_key(session_key, self.config.storage_prefix)
        self._write(key, [item.to_dict() for item in items.values()])

    def save_conditions(self, session_key: str, conditions: Conditions) -> None:
        key = RedisKeys.conditions_key(session_key, self.config.storage_prefix)
        self._write(key, [condition.to_dict() for condition in conditions.values()])

    def _read(self, key: str) -> list:
        try:
            data = self.redis.get(key)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to read cart from Redis: {e}")
            raise StorageError(ERROR_STORAGE_UNAVAILABLE.format(error=e)) from e

        if not data:
            return []

        try:
            documents = json.loads(data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Corrupted cart document {key}: {e}")
            self._delete(key)
            return []

        if not isinstance(documents, list):
            logger.warning(f"Corrupted cart document {key}: expected a list")
            self._delete(key)
            return []
        return documents

    def _write(self, key: str, documents: list) -> None:
        try:
            self.redis.set(key, json.dumps(documents), ex=self.ttl)
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Failed to save cart to Redis: {e}")
            raise StorageError(ERROR_STORAGE_UNAVAILABLE.format(error=e)) from e

    def _delete(self, key: str) -> None:
        try:
            self.redis.delete(key)
        except Exception as e:
            logger.error(f"Failed to delete cart document from Redis: {e}")
            raise StorageError(ERROR_STORAGE_UNAVAILABLE.format(error=e)) from e
