"""
Associated models for line items.

A line item can point at an external domain object (a product record, say)
by type name; the item's id is the object's id. Loaders registered per type
resolve ids to objects, and each cart keeps what they returned in a ModelCache.
"""
from collections import defaultdict
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Optional, Union

from cartcore.errors import UnknownAssociationError
from cartcore.logging import get_logger

logger = get_logger(__name__)

Loader = Callable[[list], Iterable[Any]]


def model_key(model: Union[str, type]) -> str:
    """Registry key for a model given by name or class."""
    if isinstance(model, type):
        return model.__name__
    return str(model)


def _object_id(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        return obj["id"]
    return getattr(obj, "id")


class AssociationRegistry:
    """Loaders for associated model types."""

    def __init__(self):
        self._loaders: Dict[str, Loader] = {}

    def register(self, model: Union[str, type], loader: Loader) -> None:
        """
        Register a loader for a model type.

        Args:
            model: Type name or class
            loader: Called with a list of ids, returns objects exposing "id"
        """
        self._loaders[model_key(model)] = loader

    def has(self, model: Union[str, type]) -> bool:
        return model_key(model) in self._loaders

    def resolve(self, model: Union[str, type], ids: Iterable[Any]) -> Dict[Any, Any]:
        """
        Load objects of a model type by id.

        Returns:
            Mapping of id to object for every id the loader found

        Raises:
            UnknownAssociationError: If no loader is registered for the type
        """
        key = model_key(model)
        loader = self._loaders.get(key)
        if loader is None:
            raise UnknownAssociationError(key)
        return {_object_id(obj): obj for obj in loader(list(ids)) or ()}


class ModelCache:
    """
    Per-cart cache of associated models, keyed by type then item id.

    Item writes only mark it stale; the cart reloads it on the next model
    lookup, once per type.
    """

    def __init__(self, registry: AssociationRegistry):
        self._registry = registry
        self._models: Dict[str, Dict[Any, Any]] = {}
        self._stale = True

    def is_empty(self) -> bool:
        return not self._models

    def is_stale(self) -> bool:
        return self._stale

    def invalidate(self) -> None:
        self._stale = True

    def reset(self) -> None:
        self._models = {}
        self._stale = True

    def rebuild(self, items: Iterable[Any]) -> None:
        """
        Load the associated models of the given line items.

        The previous contents stay in place if a loader raises.
        """
        grouped: Dict[str, list] = defaultdict(list)
        for item in items:
            if item.associated_model:
                grouped[item.associated_model].append(item.id)

        models: Dict[str, Dict[Any, Any]] = {}
        for model, ids in grouped.items():
            if not self._registry.has(model):
                logger.warning(f"No loader registered for associated model {model}")
                continue
            resolved = self._registry.resolve(model, ids)
            if resolved:
                models[model] = resolved

        self._models = models
        self._stale = False

    def get(self, model: Optional[str], item_id: Any) -> Optional[Any]:
        if not model:
            return None
        return self._models.get(model, {}).get(item_id)
