"""
In-process change notification.

The engine calls ``notify`` after each committed mutation. Subscribers decide
how (and whether) to forward the event anywhere.
"""
import logging
import threading
from datetime import datetime

logger = logging.getLogger(__name__)


class ChangeEvent:
    def __init__(self, kinds, action, category_id=None, division_id=None, ids=None):
        self.kinds = tuple(kinds)
        self.action = action
        self.category_id = category_id
        self.division_id = division_id
        self.ids = tuple(ids or ())
        self.timestamp = datetime.now().isoformat()

    def to_dict(self):
        return {
            'kinds': list(self.kinds),
            'action': self.action,
            'category_id': self.category_id,
            'division_id': self.division_id,
            'ids': list(self.ids),
            'timestamp': self.timestamp,
        }

    def __repr__(self):
        return f"ChangeEvent(action={self.action}, kinds={self.kinds})"


class ChangeNotifier:
    """Fan-out of ChangeEvents to subscribed callables."""

    def __init__(self):
        self._subscribers = []
        self._lock = threading.Lock()

    def subscribe(self, callback):
        """Register a callback. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, kinds, action, **details):
        event = ChangeEvent(kinds, action, **details)
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # Change is already committed; keep notifying the others
                logger.exception('Change subscriber %r failed for %r', callback, event)
        return event
