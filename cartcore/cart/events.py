"""
Cart lifecycle hooks.

Listeners are registered per fully qualified event name, e.g. "shopping.adding".
A listener returning False on a "before" event (adding, updating, removing,
clearing) stops the operation.
"""
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, Dict, List

from cartcore.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[Any, Any], Any]


class CartEvent(str, Enum):
    """Lifecycle events fired by a cart."""
    CREATED = "created"
    ADDING = "adding"  # vetoable
    ADDED = "added"
    UPDATING = "updating"  # vetoable
    UPDATED = "updated"
    REMOVING = "removing"  # vetoable
    REMOVED = "removed"
    CLEARING = "clearing"  # vetoable
    CLEARED = "cleared"


class CartEvents:
    """
    Dispatches cart lifecycle events to registered listeners.

    One dispatcher may be shared by several carts; event names are prefixed
    with the cart's instance name so listeners can tell them apart.

    Usage:
        events = CartEvents()
        events.listen("shopping.adding", lambda item, cart: item.price > 0)
        cart = Cart(storage, events, "shopping", "session-1")
    """

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def listen(self, event: str, listener: Listener) -> None:
        """Register a listener called with (payload, cart)."""
        self._listeners[event].append(listener)

    def forget(self, event: str) -> None:
        """Remove all listeners of an event."""
        self._listeners.pop(event, None)

    def has_listeners(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def dispatch(self, event: str, payload: Any = None, cart: Any = None) -> bool:
        """
        Call listeners in registration order.

        Returns:
            False as soon as a listener returns False, True otherwise
        """
        for listener in list(self._listeners.get(event, ())):
            if listener(payload, cart) is False:
                logger.info(f"Cart event {event} halted by listener")
                return False
        return True
