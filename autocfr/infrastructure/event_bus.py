import threading
from typing import Type, Callable, List, Dict, Any, Optional
from autocfr.domain.events import Event

class EventBus:
    """A synchronous event bus, safe to publish to from worker threads.

    Callbacks run on the publishing thread.
    """

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], callback: Optional[Callable[[Any], None]] = None):
        """Subscribes a callback to an event type and its subclasses. Can be used as a decorator."""
        if callback is None:
            def decorator(func: Callable[[Any], None]):
                self.subscribe(event_type, func)
                return func
            return decorator

        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: Event):
        """Publishes an event to all subscribers of its type or a base type."""
        with self._lock:
            callbacks = [
                callback
                for event_type, subscribers in self._subscribers.items()
                if isinstance(event, event_type)
                for callback in subscribers
            ]
        for callback in callbacks:
            callback(event)
