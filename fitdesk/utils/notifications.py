"""
In-process notification bus.

Handlers publish short notices (client added, payment recorded, reminder
sent ...) and the dashboard reads the most recent ones per gym. Both the
notice buffer and the subscriber list are bounded.
"""

import itertools
import logging
import threading
from collections import deque
from datetime import datetime

from flask import current_app

logger = logging.getLogger(__name__)

VARIANTS = ('default', 'success', 'destructive')


class NotificationBus:
    """Bounded publish/subscribe store for tenant notifications"""

    def __init__(self, limit=50, subscriber_limit=10):
        self.limit = limit
        self.subscriber_limit = subscriber_limit
        self._notifications = deque(maxlen=limit)
        self._subscribers = deque(maxlen=subscriber_limit)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def publish(self, gym_id, title, description=None, variant='default'):
        """Store a notification and hand it to every subscriber"""
        if variant not in VARIANTS:
            variant = 'default'

        with self._lock:
            notification = {
                'id': str(next(self._ids)),
                'gymId': gym_id,
                'title': title,
                'description': description,
                'variant': variant,
                'open': True,
                'createdAt': datetime.utcnow().isoformat(),
            }
            self._notifications.appendleft(notification)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(notification)
            except Exception:
                logger.exception('Notification subscriber failed')

        return notification

    def recent(self, gym_id=None, limit=None):
        """Newest first, optionally for one gym"""
        with self._lock:
            items = [n for n in self._notifications
                     if gym_id is None or n['gymId'] == gym_id]
        if limit is not None:
            items = items[:limit]
        return [dict(n) for n in items]

    def dismiss(self, notification_id=None, gym_id=None):
        """Mark one notification (or all of a gym's) as closed"""
        dismissed = 0
        with self._lock:
            for n in self._notifications:
                if gym_id is not None and n['gymId'] != gym_id:
                    continue
                if notification_id is None or n['id'] == notification_id:
                    n['open'] = False
                    dismissed += 1
        return dismissed

    def subscribe(self, callback):
        """
        Register a callback for new notifications.

        When the subscriber list is full the oldest subscriber is dropped.
        Returns a function that removes the callback again.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                try:
                    self._subscribers.remove(callback)
                except ValueError:
                    pass

        return unsubscribe

    @property
    def subscriber_count(self):
        return len(self._subscribers)


def get_bus():
    return current_app.extensions['notifications']


def notify(gym_id, title, description=None, variant='success'):
    """Publish on the current app's bus"""
    return get_bus().publish(gym_id, title, description, variant)
