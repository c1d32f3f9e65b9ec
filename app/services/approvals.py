"""
Approval workflow for reservations, top-ups and user registrations.

Every transition follows the same sequence: check the business rule
against the cached record (no network traffic when it fails), issue
exactly one write to the backend, then refetch the affected entity by id
and merge it into the cache. A failed write leaves the cache untouched.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from app.services.events import (
    MenuUpdated, ProfileUpdated, ReservationsUpdated, TopupsUpdated, UsersUpdated,
)
from app.services.store import EntityStore
from app.utils.canteen_api import ApiError
from app.utils.datetime_utils import manila_now
from app.utils.entities import (
    balance_of, is_admin_account, is_archived, is_pending_user,
    normalize_reservation, normalize_topup, normalize_user,
)
from app.utils.money import parse_amount, round_currency
from app.utils.statuses import normalize_status

logger = logging.getLogger(__name__)


class BusinessRuleError(Exception):
    """A transition refused before any request was sent."""

    def __init__(self, message, entity_id=None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


@dataclass
class TransitionResult:
    entity_id: str
    action: str
    record: Optional[Dict[str, Any]]

    @property
    def removed(self):
        return self.record is None


@dataclass
class BulkResult:
    action: str
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def all_succeeded(self):
        return not self.failed

    def to_dict(self):
        return {
            'action': self.action,
            'succeeded': list(self.succeeded),
            'failed': [{'id': k, 'error': v} for k, v in self.failed.items()],
        }


class ApprovalController:
    resource_type = 'entity'

    def __init__(self, api, store: EntityStore, bus, fetch_one: Callable[[str], Optional[dict]]):
        self.api = api
        self.store = store
        self.bus = bus
        self.fetch_one = fetch_one

    def current(self, entity_id):
        """Cached record, or a fresh read when the cache doesn't have it."""
        record = self.store.get(entity_id)
        if record is None:
            fresh = self.fetch_one(entity_id)
            if fresh is not None:
                record = self.store.normalizer(fresh)
        return record

    def require(self, entity_id):
        record = self.current(entity_id)
        if record is None:
            raise BusinessRuleError(f'{self.resource_type.capitalize()} {entity_id} not found', entity_id)
        return record

    def transition(self, entity_id, action, call, precondition=None, events=(), local_update=None):
        entity_id = str(entity_id)
        if precondition is not None:
            precondition(self.require(entity_id))

        logger.info(f'{self.resource_type} {entity_id}: {action}')
        try:
            call()
        except ApiError as e:
            logger.error(f'{self.resource_type} {entity_id}: {action} failed ({e.status}): {e.message}')
            raise

        record = self.reconcile(entity_id, local_update)
        for event in events:
            self.bus.publish(event)
        return TransitionResult(entity_id, action, record)

    def reconcile(self, entity_id, local_update=None):
        """
        Bring the cached record in line with the server after a write.
        When the refetch itself fails, the known fields of the write are
        merged instead.
        """
        try:
            fresh = self.fetch_one(entity_id)
        except ApiError as e:
            logger.warning(f'{self.resource_type} {entity_id}: refetch failed ({e.message}), applying local update')
            if local_update and entity_id in self.store:
                return self.store.merge({'id': entity_id, **local_update})
            return self.store.get(entity_id)
        if fresh is None:
            self.store.remove(entity_id)
            return None
        return self.store.merge(fresh)

    def bulk(self, ids: Iterable[Any], action: str, fn: Callable[[str], Any]) -> BulkResult:
        """
        Run a single-entity transition for each id, one after the other.
        Failures are collected per id and never stop the remaining ids.
        """
        result = BulkResult(action=action)
        for entity_id in ids:
            entity_id = str(entity_id)
            try:
                fn(entity_id)
            except (ApiError, BusinessRuleError) as e:
                message = getattr(e, 'message', str(e))
                logger.warning(f'{self.resource_type} {entity_id}: bulk {action} failed: {message}')
                result.failed[entity_id] = message
            else:
                result.succeeded.append(entity_id)
        logger.info(f'Bulk {action} on {self.resource_type}: '
                    f'{len(result.succeeded)} ok, {len(result.failed)} failed')
        return result


def require_status(expected, family, label=None):
    def check(record):
        status = normalize_status(record.get('status'), family)
        if status != expected:
            noun = label or family
            raise BusinessRuleError(
                f'Only {expected.lower()} {noun}s can be changed this way (current status: {status})',
                record.get('id'),
            )
    return check


# ---- reservations and the kitchen order board ------------------------------

ORDER_FLOW = {
    'Approved': 'Preparing',
    'Preparing': 'Ready',
    'Ready': 'Claimed',
}


class ReservationApprovals(ApprovalController):
    resource_type = 'reservation'

    def __init__(self, api, bus, store=None):
        store = store or EntityStore(
            'reservations', normalizer=lambda r: normalize_reservation(r, family='order'))
        super().__init__(api, store, bus, fetch_one=api.get_reservation)

    def refresh(self):
        return self.store.replace(self.api.list_reservations())

    def _set_status(self, reservation_id, status, action, events, precondition):
        return self.transition(
            reservation_id, action,
            lambda: self.api.update_reservation_status(reservation_id, status),
            precondition=precondition,
            events=events,
            local_update={'status': status},
        )

    def approve(self, reservation_id):
        # Approval consumes stock on the backend.
        return self._set_status(
            reservation_id, 'Approved', 'approve',
            events=(ReservationsUpdated(), MenuUpdated()),
            precondition=require_status('Pending', 'order', 'reservation'),
        )

    def reject(self, reservation_id):
        return self._set_status(
            reservation_id, 'Rejected', 'reject',
            events=(ReservationsUpdated(),),
            precondition=require_status('Pending', 'order', 'reservation'),
        )

    def approve_many(self, ids):
        return self.bulk(ids, 'approve', self.approve)

    def reject_many(self, ids):
        return self.bulk(ids, 'reject', self.reject)

    def advance(self, reservation_id, next_status):
        """Move an order one step along Approved -> Preparing -> Ready -> Claimed."""
        target = normalize_status(next_status, 'order')

        def check(record):
            current = normalize_status(record.get('status'), 'order')
            if ORDER_FLOW.get(current) != target:
                raise BusinessRuleError(
                    f'Cannot move order from {current} to {target}', record.get('id'))

        try:
            return self._set_status(
                reservation_id, target, f'advance to {target}',
                events=(ReservationsUpdated(),), precondition=check,
            )
        except ApiError as e:
            if e.is_status(ApiError.CONFLICT):
                # Someone else moved it first; resync the whole board.
                logger.warning(f'Order {reservation_id} changed concurrently, reloading orders')
                self.refresh()
            raise


# ---- top-ups ---------------------------------------------------------------

def _is_pending_topup(record):
    return record.get('status') == 'Pending'


class TopUpApprovals(ApprovalController):
    resource_type = 'topup'

    def __init__(self, api, bus, store=None):
        store = store or EntityStore('topups', predicate=_is_pending_topup, normalizer=normalize_topup)
        super().__init__(api, store, bus, fetch_one=api.get_topup)

    def refresh(self):
        return self.store.replace(self.api.list_topups())

    def approve(self, topup_id):
        return self.transition(
            topup_id, 'approve',
            lambda: self.api.update_topup_status(topup_id, 'Approved'),
            precondition=require_status('Pending', 'topup', 'top-up'),
            events=(TopupsUpdated(), UsersUpdated()),
            local_update={'status': 'Approved'},
        )

    def reject(self, topup_id, reason=None):
        reason = (reason or '').strip() or None
        return self.transition(
            topup_id, 'reject',
            lambda: self.api.update_topup_status(topup_id, 'Rejected', reason=reason),
            precondition=require_status('Pending', 'topup', 'top-up'),
            events=(TopupsUpdated(),),
            local_update={'status': 'Rejected'},
        )


# ---- user accounts ---------------------------------------------------------

def check_can_archive(user):
    if is_admin_account(user):
        raise BusinessRuleError('Admin accounts cannot be deleted', user.get('id'))
    if balance_of(user) != 0:
        raise BusinessRuleError('User must have zero balance before deletion', user.get('id'))
    if is_pending_user(user):
        raise BusinessRuleError('Pending registrations must be approved or rejected instead', user.get('id'))


def _check_pending(user):
    if not is_pending_user(user):
        raise BusinessRuleError('Only pending registrations can be approved or rejected', user.get('id'))


def _check_archived(user):
    if not is_archived(user):
        raise BusinessRuleError('Only archived accounts can be restored', user.get('id'))


class UserApprovals(ApprovalController):
    """
    Registration review and the account lifecycle.

    Rejecting a registration deletes the account for good; archiving
    (the "delete" button) is a soft delete that restore() undoes.
    """

    resource_type = 'user'

    def __init__(self, api, bus, store=None, archived_store=None):
        store = store or EntityStore(
            'users', predicate=lambda u: not is_archived(u), normalizer=normalize_user)
        self.archived_store = archived_store or EntityStore(
            'archived_users', predicate=is_archived, normalizer=normalize_user)
        super().__init__(api, store, bus, fetch_one=api.get_user)

    def current(self, entity_id):
        return self.archived_store.get(entity_id) or super().current(entity_id)

    def refresh(self):
        users = self.api.list_users()
        for user in users:
            if isinstance(user, dict) and user.get('balance') is None:
                user['balance'] = self._wallet_balance(user.get('id'))
        return self.store.replace(users)

    def refresh_archived(self):
        return self.archived_store.replace(self.api.list_archived_users())

    def _wallet_balance(self, user_id):
        try:
            return self.api.get_balance(user_id)
        except ApiError as e:
            logger.warning(f'Could not load wallet for user {user_id}: {e.message}')
            return 0

    def reconcile(self, entity_id, local_update=None):
        try:
            fresh = self.fetch_one(entity_id)
        except ApiError as e:
            logger.warning(f'user {entity_id}: refetch failed ({e.message}), applying local update')
            fresh = None
            if local_update:
                cached = self.store.get(entity_id) or self.archived_store.get(entity_id)
                fresh = {**cached, **local_update} if cached else None
            if fresh is None:
                return self.store.get(entity_id)
        if fresh is None:
            self.store.remove(entity_id)
            self.archived_store.remove(entity_id)
            return None
        if is_archived(fresh):
            self.store.remove(entity_id)
            return self.archived_store.merge(fresh)
        self.archived_store.remove(entity_id)
        return self.store.merge(fresh)

    def approve_registration(self, user_id, notes=None):
        return self.transition(
            user_id, 'approve registration',
            lambda: self.api.approve_user(user_id, notes),
            precondition=_check_pending,
            events=(UsersUpdated(),),
            local_update={'status': 'approved'},
        )

    def reject_registration(self, user_id, reason=None):
        return self.transition(
            user_id, 'reject registration',
            lambda: self.api.reject_user(user_id, reason),
            precondition=_check_pending,
            events=(UsersUpdated(),),
        )

    def archive(self, user_id):
        return self.transition(
            user_id, 'archive',
            lambda: self.api.delete_user(user_id),
            precondition=check_can_archive,
            events=(UsersUpdated(),),
            local_update={'deletedAt': manila_now().isoformat()},
        )

    def restore(self, user_id):
        return self.transition(
            user_id, 'restore',
            lambda: self.api.restore_user(user_id),
            precondition=_check_archived,
            events=(UsersUpdated(),),
            local_update={'deletedAt': None, 'archivedAt': None, 'isArchived': False},
        )

    def update_profile(self, user_id, fields, photo=None, remove_photo=False):
        """Edit name/phone/note (and photo). Publishes ProfileUpdated with the changed fields."""
        self.require(user_id)
        updates = {k: v for k, v in fields.items() if v is not None}
        result = self.transition(
            user_id, 'update profile',
            lambda: self.api.update_user(user_id, updates, photo=photo, remove_photo=remove_photo),
            local_update=updates,
        )
        changed = dict(updates)
        if result.record is not None:
            for key in ('profilePictureUrl', 'photoUrl', 'avatar'):
                if result.record.get(key) is not None:
                    changed[key] = result.record[key]
        self.bus.publish(ProfileUpdated(user_id=str(user_id), updates=changed))
        self.bus.publish(UsersUpdated())
        return result

    def set_balance(self, user_id, amount, admin_email, admin_password):
        """
        Overwrite a wallet balance. The operator's backend credentials are
        re-verified first; wrong credentials never reach the wallet endpoint.
        """
        value = parse_amount(amount)
        if value is None or value < 0:
            raise BusinessRuleError('Please enter a valid balance amount', str(user_id))
        self.require(user_id)
        try:
            self.api.verify_credentials(admin_email, admin_password)
        except ApiError as e:
            if e.status in (ApiError.BAD_REQUEST, ApiError.UNAUTHORIZED, ApiError.FORBIDDEN):
                raise BusinessRuleError('Admin credentials could not be verified', str(user_id)) from e
            raise
        value = round_currency(value)
        return self.transition(
            user_id, 'set balance',
            lambda: self.api.set_balance(user_id, float(value)),
            events=(UsersUpdated(),),
            local_update={'balance': value},
        )

    def total_balance(self, users=None):
        users = self.store.items() if users is None else users
        return sum((balance_of(u) for u in users), Decimal('0'))
