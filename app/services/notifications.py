"""
Admin notification inbox.

Raw notifications carry an untyped ``data`` blob. It is classified once,
when the notification is parsed, into one of a fixed set of payload
kinds; everything downstream works with the typed payload.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from app.services.events import NotificationsUpdated, ProfileUpdated
from app.utils.canteen_api import ApiError
from app.utils.datetime_utils import timestamp_ms
from app.utils.money import parse_amount

logger = logging.getLogger(__name__)

DEFAULT_ACTOR_NAME = 'Canteen Staff'

KINDS = ('registration', 'reservation', 'topup', 'general')


@dataclass(frozen=True)
class Actor:
    id: Optional[str] = None
    name: str = DEFAULT_ACTOR_NAME
    profile_picture_url: Optional[str] = None

    @classmethod
    def from_raw(cls, raw) -> 'Actor':
        if not isinstance(raw, Mapping):
            return cls()
        return cls(
            id=None if raw.get('id') is None else str(raw.get('id')),
            name=raw.get('name') or DEFAULT_ACTOR_NAME,
            profile_picture_url=raw.get('profilePictureUrl'),
        )


@dataclass(frozen=True)
class RegistrationPayload:
    user_id: Optional[str] = None
    student_id: str = ''
    name: str = ''
    email: str = ''
    status: str = ''
    kind: str = field(default='registration', init=False)


@dataclass(frozen=True)
class ReservationPayload:
    reservation_id: Optional[str] = None
    items: Tuple[Mapping[str, Any], ...] = ()
    total: Decimal = Decimal('0')
    pickup_date: str = ''
    when: str = ''
    status: str = ''
    kind: str = field(default='reservation', init=False)


@dataclass(frozen=True)
class TopUpPayload:
    topup_id: Optional[str] = None
    amount: Decimal = Decimal('0')
    provider: str = ''
    reference_number: str = ''
    status: str = ''
    rejection_reason: str = ''
    kind: str = field(default='topup', init=False)


@dataclass(frozen=True)
class GeneralPayload:
    data: Mapping[str, Any] = field(default_factory=dict)
    kind: str = field(default='general', init=False)


Payload = Union[RegistrationPayload, ReservationPayload, TopUpPayload, GeneralPayload]


@dataclass
class Notification:
    id: str
    title: str
    body: str
    read: bool
    created_at: Any
    actor: Optional[Actor]
    payload: Payload

    @property
    def kind(self) -> str:
        return self.payload.kind

    @property
    def display_actor(self) -> Actor:
        return self.actor or Actor()

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self.payload)
        for key, value in payload.items():
            if isinstance(value, Decimal):
                payload[key] = float(value)
        actor = self.display_actor
        return {
            'id': self.id,
            'kind': self.kind,
            'title': self.title,
            'body': self.body,
            'read': self.read,
            'createdAt': self.created_at,
            'actor': {
                'id': actor.id,
                'name': actor.name,
                'profilePictureUrl': actor.profile_picture_url,
            },
            'payload': payload,
        }


def _text(data, *keys):
    for key in keys:
        value = data.get(key)
        if value not in (None, ''):
            return str(value)
    return ''


def infer_kind(data: Mapping[str, Any]) -> str:
    """Classify an untyped payload by the keys it carries."""
    if not data:
        return 'general'
    if isinstance(data.get('items'), list) or 'reservationId' in data or 'orderId' in data:
        return 'reservation'
    if 'topupId' in data or 'provider' in data or 'referenceNumber' in data or 'amount' in data:
        return 'topup'
    if 'studentId' in data or 'email' in data or 'registrationStatus' in data:
        return 'registration'
    return 'general'


def build_payload(kind: str, data: Mapping[str, Any]) -> Payload:
    if kind == 'reservation':
        return ReservationPayload(
            reservation_id=_text(data, 'reservationId', 'orderId', 'id') or None,
            items=tuple(data.get('items') or ()),
            total=parse_amount(data.get('total'), Decimal('0')),
            pickup_date=_text(data, 'pickupDate', 'pickup_date', 'claimDate', 'claim_date'),
            when=_text(data, 'when', 'slot', 'slotLabel', 'pickup', 'pickupTime'),
            status=_text(data, 'orderStatus', 'status'),
        )
    if kind == 'topup':
        return TopUpPayload(
            topup_id=_text(data, 'topupId', 'id') or None,
            amount=parse_amount(data.get('amount'), Decimal('0')),
            provider=_text(data, 'provider'),
            reference_number=_text(data, 'referenceNumber', 'reference'),
            status=_text(data, 'status'),
            rejection_reason=_text(data, 'rejectionReason', 'reason'),
        )
    if kind == 'registration':
        return RegistrationPayload(
            user_id=_text(data, 'userId', 'id') or None,
            student_id=_text(data, 'studentId'),
            name=_text(data, 'name', 'studentName'),
            email=_text(data, 'email'),
            status=_text(data, 'registrationStatus', 'status'),
        )
    return GeneralPayload(data=dict(data))


def parse_notification(raw: Mapping[str, Any]) -> Notification:
    data = raw.get('data') if isinstance(raw.get('data'), Mapping) else {}
    kind = str(raw.get('kind') or raw.get('type') or data.get('kind') or '').strip().lower()
    if kind not in KINDS:
        kind = infer_kind(data)
    return Notification(
        id=str(raw.get('id', raw.get('_id', ''))),
        title=str(raw.get('title') or ''),
        body=str(raw.get('body') or raw.get('message') or ''),
        read=bool(raw.get('read')),
        created_at=raw.get('createdAt'),
        actor=Actor.from_raw(raw['actor']) if isinstance(raw.get('actor'), Mapping) else None,
        payload=build_payload(kind, data),
    )


@dataclass
class Page:
    items: List[Notification]
    page: int
    per_page: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page)) if self.per_page else 1

    def to_dict(self):
        return {
            'items': [n.to_dict() for n in self.items],
            'page': self.page,
            'per_page': self.per_page,
            'total': self.total,
            'pages': self.pages,
        }


class NotificationInbox:
    """Cached admin notifications, newest first."""

    def __init__(self, api, bus):
        self.api = api
        self.bus = bus
        self._items: List[Notification] = []
        self._lock = threading.Lock()
        self._unsubscribe = bus.subscribe(ProfileUpdated, self.on_profile_updated)

    def close(self):
        self._unsubscribe()

    def refresh(self) -> List[Notification]:
        raw = self.api.list_notifications()
        parsed = [parse_notification(n) for n in raw if isinstance(n, Mapping)]
        parsed.sort(key=lambda n: timestamp_ms(n.created_at), reverse=True)
        with self._lock:
            self._items = parsed
        self.bus.publish(NotificationsUpdated())
        return list(parsed)

    def items(self, kind: Optional[str] = None, unread_only: bool = False) -> List[Notification]:
        with self._lock:
            items = list(self._items)
        if kind:
            items = [n for n in items if n.kind == kind]
        if unread_only:
            items = [n for n in items if not n.read]
        return items

    def get(self, notification_id) -> Optional[Notification]:
        with self._lock:
            for n in self._items:
                if n.id == str(notification_id):
                    return n
        return None

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._items if not n.read)

    def mark_read(self, ids: Iterable[Any]) -> int:
        ids = [str(i) for i in ids]
        if not ids:
            return 0
        self.api.mark_notifications_read(ids=ids)
        wanted = set(ids)
        with self._lock:
            for n in self._items:
                if n.id in wanted:
                    n.read = True
        self.bus.publish(NotificationsUpdated())
        return len(ids)

    def mark_all_read(self) -> int:
        self.api.mark_notifications_read(mark_all=True)
        with self._lock:
            count = sum(1 for n in self._items if not n.read)
            for n in self._items:
                n.read = True
        self.bus.publish(NotificationsUpdated())
        return count

    def delete(self, notification_id) -> None:
        notification_id = str(notification_id)
        self.api.delete_notification(notification_id)
        with self._lock:
            self._items = [n for n in self._items if n.id != notification_id]
        self.bus.publish(NotificationsUpdated())

    def delete_many(self, ids: Iterable[Any]) -> Dict[str, Any]:
        """Delete one by one; a failure is recorded and the rest continue."""
        deleted, failed = [], {}
        for notification_id in ids:
            notification_id = str(notification_id)
            try:
                self.api.delete_notification(notification_id)
            except ApiError as e:
                logger.warning(f'Failed to delete notification {notification_id}: {e.message}')
                failed[notification_id] = e.message
                continue
            deleted.append(notification_id)
        if deleted:
            gone = set(deleted)
            with self._lock:
                self._items = [n for n in self._items if n.id not in gone]
            self.bus.publish(NotificationsUpdated())
        return {'deleted': deleted, 'failed': [{'id': k, 'error': v} for k, v in failed.items()]}

    def paginate(self, page: int = 1, per_page: int = 20, **filters) -> Page:
        items = self.items(**filters)
        per_page = max(1, int(per_page))
        page = max(1, int(page))
        start = (page - 1) * per_page
        return Page(items=items[start:start + per_page], page=page, per_page=per_page, total=len(items))

    def on_profile_updated(self, event: ProfileUpdated) -> None:
        """Keep actor names and avatars current after an account edit."""
        name = event.updates.get('name')
        picture = (event.updates.get('profilePictureUrl') or event.updates.get('photoUrl')
                   or event.updates.get('avatar'))
        if name is None and picture is None:
            return
        with self._lock:
            for n in self._items:
                if n.actor is None or n.actor.id != str(event.user_id):
                    continue
                n.actor = Actor(
                    id=n.actor.id,
                    name=name if name is not None else n.actor.name,
                    profile_picture_url=picture if picture is not None else n.actor.profile_picture_url,
                )
