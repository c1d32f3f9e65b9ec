"""
Navigation badge counts (pending reservations, top-ups, registrations,
unread notifications). Counts are recomputed from the cached collections
whenever one of them changes, whether by a refresh or by a write.
Scheduler threads and request threads both touch these, hence the lock.
"""

import logging
import threading

from app.services.events import NotificationsUpdated
from app.utils.canteen_api import ApiError
from app.utils.entities import is_pending_user

logger = logging.getLogger(__name__)


class BadgeCounter:
    KEYS = ('reservations', 'topups', 'registrations', 'notifications')

    def __init__(self, services):
        self.services = services
        self._counts = {key: 0 for key in self.KEYS}
        self._lock = threading.Lock()
        services.reservations.store.on_change(lambda store: self.recount_reservations())
        services.topups.store.on_change(lambda store: self.recount_topups())
        services.users.store.on_change(lambda store: self.recount_registrations())
        services.bus.subscribe(NotificationsUpdated, lambda e: self.recount_notifications())

    def _set(self, key, value):
        with self._lock:
            self._counts[key] = value

    def snapshot(self):
        with self._lock:
            return dict(self._counts)

    def recount_reservations(self):
        items = self.services.reservations.store.items()
        self._set('reservations', sum(1 for r in items if r.get('status') == 'Pending'))

    def recount_topups(self):
        self._set('topups', len(self.services.topups.store))

    def recount_registrations(self):
        items = self.services.users.store.items()
        self._set('registrations', sum(1 for u in items if is_pending_user(u)))

    def recount_notifications(self):
        self._set('notifications', self.services.inbox.unread_count)

    def refresh_all(self):
        """
        Reload every collection behind the badges. A collection that fails
        to load keeps its previous count.
        """
        services = self.services
        for name, refresh in (
            ('reservations', services.reservations.refresh),
            ('top-ups', services.topups.refresh),
            ('users', services.users.refresh),
            ('notifications', services.inbox.refresh),
        ):
            try:
                refresh()
            except ApiError as e:
                logger.warning(f'Badge refresh of {name} failed: {e.message}')
        return self.snapshot()

    def poll_notifications(self):
        """Refetch notifications; on failure the previous count stays."""
        try:
            self.services.inbox.refresh()
        except ApiError as e:
            logger.warning(f'Notification poll failed: {e.message}')
        return self.snapshot()['notifications']

    def poll_topups(self):
        """Refetch pending top-ups; on failure the previous count stays."""
        try:
            self.services.topups.refresh()
        except ApiError as e:
            logger.warning(f'Top-up poll failed: {e.message}')
        return self.snapshot()['topups']
