"""
Cache of the last successful fetch of one collection.
"""

import logging
import threading

from app.utils.datetime_utils import manila_now

logger = logging.getLogger(__name__)


def entity_id(record):
    value = record.get('id', record.get('_id'))
    return None if value is None else str(value)


class EntityStore:
    """
    Ordered id -> record map. ``predicate`` decides membership: a
    record that no longer satisfies it (e.g. a top-up that stopped being
    Pending) is dropped when merged.
    """

    def __init__(self, name, predicate=None, normalizer=None):
        self.name = name
        self.predicate = predicate or (lambda record: True)
        self.normalizer = normalizer or (lambda record: record)
        self._items = {}
        self._lock = threading.RLock()
        self._listeners = []
        self.loaded_at = None

    def on_change(self, callback):
        """Call ``callback(store)`` after every replace, merge and remove."""
        self._listeners.append(callback)

    def _changed(self):
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception(f'{self.name}: change listener failed')

    def __len__(self):
        with self._lock:
            return len(self._items)

    def __contains__(self, item_id):
        with self._lock:
            return str(item_id) in self._items

    def items(self):
        with self._lock:
            return list(self._items.values())

    def get(self, item_id):
        with self._lock:
            return self._items.get(str(item_id))

    def replace(self, records):
        """Discard the cache and load a fresh collection."""
        fresh = {}
        for record in records or []:
            if not isinstance(record, dict):
                continue
            key = entity_id(record)
            if key is None:
                logger.warning(f'{self.name}: skipping record without id')
                continue
            normalized = self.normalizer(record)
            if self.predicate(normalized):
                fresh[key] = normalized
        with self._lock:
            self._items = fresh
            self.loaded_at = manila_now()
        logger.debug(f'{self.name}: loaded {len(fresh)} records')
        self._changed()
        return self.items()

    def merge(self, record):
        """
        Merge server fields into the cached record. Returns the merged
        record, or None when it no longer belongs in the collection.
        """
        key = entity_id(record)
        if key is None:
            return None
        with self._lock:
            current = self._items.get(key, {})
            merged = self.normalizer({**current, **record})
            if self.predicate(merged):
                self._items[key] = merged
            else:
                self._items.pop(key, None)
                merged = None
        self._changed()
        return merged

    def remove(self, item_id):
        with self._lock:
            removed = self._items.pop(str(item_id), None)
        if removed is not None:
            self._changed()
        return removed
