import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'Event', 'EventBus',
    'CATEGORY_ADDED', 'CATEGORY_REMOVED', 'DARK_MODE_CHANGED',
    'TRANSACTIONS_PROPAGATED',
]

logger = logging.getLogger(__name__)

CATEGORY_ADDED = "CATEGORY_ADDED"
CATEGORY_REMOVED = "CATEGORY_REMOVED"
DARK_MODE_CHANGED = "DARK_MODE_CHANGED"
TRANSACTIONS_PROPAGATED = "TRANSACTIONS_PROPAGATED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    """Synchronous publish/subscribe; handlers run in subscription order."""

    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        handlers = self._subscribers.get(name)
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=dict(payload))
        logger.debug("Publishing %s to %d handler(s)", name, len(handlers))
        return [handler(event, payload) for handler in list(handlers)]
