"""
Tests for associated models
"""

import pytest
from dataclasses import dataclass
from unittest.mock import Mock

from cartcore.cart import AssociationRegistry, Cart, ModelCache
from cartcore.cart.models import LineItem
from cartcore.errors import InvalidItemError, UnknownAssociationError


@dataclass
class Product:
    id: int
    title: str


@pytest.fixture
def product_loader():
    """Loader returning a Product for every requested id"""
    return Mock(side_effect=lambda ids: [Product(id=i, title=f"Product {i}") for i in ids])


@pytest.fixture
def registry(product_loader):
    registry = AssociationRegistry()
    registry.register(Product, product_loader)
    return registry


@pytest.fixture
def cart(storage, events, registry):
    return Cart(storage, events, "shopping", "SAMPLESESSIONKEY", registry=registry)


class TestAssociationRegistry:
    """Tests for loader registration and lookup."""

    def test_register_by_class_or_name(self, registry):
        assert registry.has(Product)
        assert registry.has("Product")
        assert not registry.has("Order")

    def test_resolve(self, registry):
        resolved = registry.resolve("Product", [1, 2])

        assert resolved[1].title == "Product 1"
        assert set(resolved) == {1, 2}

    def test_resolve_mappings(self):
        registry = AssociationRegistry()
        registry.register("Coupon", lambda ids: [{"id": i, "code": f"C{i}"} for i in ids])

        assert registry.resolve("Coupon", [7]) == {7: {"id": 7, "code": "C7"}}

    def test_unknown_model(self, registry):
        with pytest.raises(UnknownAssociationError, match="The supplied model SomeModel does not exist."):
            registry.resolve("SomeModel", [1])


class TestModelCache:
    """Tests for the per-cart model cache."""

    def test_rebuild_groups_by_type(self, registry, product_loader):
        cache = ModelCache(registry)
        items = [
            LineItem(id=1, name="A", price=10, quantity=1, associated_model="Product"),
            LineItem(id=2, name="B", price=10, quantity=1, associated_model="Product"),
            LineItem(id=3, name="C", price=10, quantity=1),
        ]

        cache.rebuild(items)

        product_loader.assert_called_once_with([1, 2])
        assert cache.get("Product", 2).title == "Product 2"
        assert cache.get(None, 3) is None

    def test_unregistered_type_is_skipped(self, registry):
        cache = ModelCache(registry)

        cache.rebuild([LineItem(id=1, name="A", price=10, quantity=1, associated_model="Order")])

        assert cache.is_empty()

    def test_reset(self, registry):
        cache = ModelCache(registry)
        cache.rebuild([LineItem(id=1, name="A", price=10, quantity=1, associated_model="Product")])

        cache.reset()

        assert cache.is_empty()
        assert cache.get("Product", 1) is None

    def test_stale_until_rebuilt(self, registry):
        cache = ModelCache(registry)
        assert cache.is_stale()

        cache.rebuild([])
        assert not cache.is_stale()

        cache.invalidate()
        assert cache.is_stale()

    def test_failed_rebuild_keeps_previous_models(self, product_loader, registry):
        cache = ModelCache(registry)
        item = LineItem(id=1, name="A", price=10, quantity=1, associated_model="Product")
        cache.rebuild([item])
        cache.invalidate()
        product_loader.side_effect = RuntimeError("catalog down")

        with pytest.raises(RuntimeError):
            cache.rebuild([item])

        assert cache.is_stale()
        assert cache.get("Product", 1).title == "Product 1"


class TestCartAssociations:
    """Tests for associating items with models through the cart."""

    def test_associate_last_added_item(self, cart):
        cart.add(455, "Sample Item", 100.99, 2).associate(Product)

        assert cart.get(455).associated_model == "Product"
        assert cart.get_model(455) == Product(id=455, title="Product 455")

    def test_add_with_associated_model(self, cart):
        cart.add({"id": 1, "name": "Item", "price": 10, "quantity": 1, "associated_model": "Product"})

        assert cart.get_model(1).title == "Product 1"

    def test_item_without_model(self, cart):
        cart.add(1, "Item", 10, 1)

        assert cart.get_model(1) is None
        assert cart.get_model(999) is None

    def test_associate_unknown_model(self, cart):
        cart.add(455, "Sample Item", 100.99, 2)

        with pytest.raises(UnknownAssociationError) as exc_info:
            cart.associate("SomeModel")

        assert str(exc_info.value) == "The supplied model SomeModel does not exist."
        assert exc_info.value.model == "SomeModel"

    def test_add_unknown_model(self, cart):
        with pytest.raises(UnknownAssociationError):
            cart.add(1, "Item", 10, 1, {}, [], "SomeModel")

        assert cart.is_empty()

    def test_associate_before_add(self, cart):
        with pytest.raises(InvalidItemError):
            cart.associate(Product)

    def test_bulk_add_loads_once(self, cart, product_loader):
        """A bulk add resolves all associated ids in one loader call."""
        cart.add([
            {"id": 1, "name": "A", "price": 10, "quantity": 1, "associated_model": "Product"},
            {"id": 2, "name": "B", "price": 10, "quantity": 1, "associated_model": "Product"},
            {"id": 3, "name": "C", "price": 10, "quantity": 1, "associated_model": "Product"},
        ])

        product_loader.assert_not_called()
        assert cart.get_model(3).title == "Product 3"
        assert cart.get_model(1).title == "Product 1"
        product_loader.assert_called_once_with([1, 2, 3])

    def test_writes_do_not_load_models(self, cart, product_loader):
        """Models are loaded on lookup, not on every add or update."""
        cart.add(1, "A", 10, 1, {}, [], Product)
        cart.add(2, "B", 10, 1, {}, [], Product)
        cart.update(1, {"quantity": 2})

        product_loader.assert_not_called()

        cart.get_model(2)
        cart.get_model(1)
        product_loader.assert_called_once_with([1, 2])

    def test_models_reload_after_write(self, cart, product_loader):
        cart.add(1, "A", 10, 1, {}, [], Product)
        cart.get_model(1)

        cart.add(2, "B", 10, 1, {}, [], Product)

        assert cart.get_model(2).title == "Product 2"
        assert product_loader.call_count == 2

    def test_failing_loader_does_not_undo_add(self, storage, events):
        """A loader error surfaces on lookup; the add itself completes."""
        registry = AssociationRegistry()
        registry.register("Product", Mock(side_effect=RuntimeError("catalog down")))
        cart = Cart(storage, events, "shopping", "SAMPLESESSIONKEY", registry=registry)
        added = Mock(return_value=None)
        events.listen("shopping.added", added)

        cart.add(1, "Item", 10, 1, associated_model="Product")

        assert cart.has(1)
        assert added.call_count == 1
        with pytest.raises(RuntimeError, match="catalog down"):
            cart.get_model(1)
        assert cart.has(1)

    def test_clear_resets_models(self, cart, product_loader):
        cart.add(1, "A", 10, 1, {}, [], Product)

        cart.clear()

        assert cart.get_model(1) is None

    def test_models_reload_with_session(self, storage, events, registry):
        cart = Cart(storage, events, "shopping", "session-a", registry=registry)
        cart.add(1, "A", 10, 1, {}, [], Product)

        reloaded = Cart(storage, events, "shopping", "session-a", registry=registry)

        assert reloaded.get_model(1).title == "Product 1"
