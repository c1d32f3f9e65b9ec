"""
Normalization of raw backend records into the shapes the admin views use.
The canteen backend is loose about field names, so every accessor here
tries the known spellings in order.
"""

from decimal import Decimal

from app.utils.datetime_utils import timestamp_ms
from app.utils.money import parse_amount
from app.utils.statuses import normalize_status

PICKUP_WINDOWS = (
    ('breakfast', 'Breakfast'),
    ('recess', 'Recess'),
    ('lunch', 'Lunch'),
    ('dismissal', 'Dismissal'),
    ('after', 'After Class'),
)

# Label precedence, not pickup order.
_PICKUP_LABEL_ORDER = ('recess', 'lunch', 'after', 'breakfast', 'dismissal')

DEFAULT_STUDENT_NAME = 'Student'


def _first(record, *keys, default=''):
    for key in keys:
        value = record.get(key)
        if value not in (None, ''):
            return value
    return default


def line_total(item):
    """price * qty for a single reservation line; qty defaults to 1."""
    price = parse_amount(_first(item, 'price', 'unitPrice', 'amount', default=0), Decimal('0'))
    qty = parse_amount(_first(item, 'qty', 'quantity', default=1), Decimal('1'))
    return price * qty


def reservation_items(record):
    items = record.get('items')
    if isinstance(items, list):
        return items
    items = record.get('order')
    return items if isinstance(items, list) else []


def reservation_total(record):
    """Sum of line totals over all items."""
    return sum((line_total(item) for item in reservation_items(record)), Decimal('0'))


def student_name(record):
    user = record.get('user') if isinstance(record.get('user'), dict) else {}
    return (
        _first(record, 'student', 'studentName', 'name')
        or _first(user, 'name', 'fullName')
        or _first(record, 'payerName')
        or DEFAULT_STUDENT_NAME
    )


def pretty_pickup_window(value):
    """Canonical label for a free-form pickup slot; unknown slots pass through."""
    text = str(value or '').strip().lower()
    if not text:
        return ''
    labels = dict(PICKUP_WINDOWS)
    for key in _PICKUP_LABEL_ORDER:
        if key in text:
            return labels[key]
    return str(value)


def pickup_rank(value):
    """Sort rank of a pickup slot: breakfast first, unknown slots last."""
    text = str(value or '').lower()
    for rank, (key, _label) in enumerate(PICKUP_WINDOWS):
        if key in text:
            return rank
    return 999


def normalize_reservation(record, family='reservation'):
    """Return a new dict with the canonical display fields filled in."""
    created = _first(record, 'createdAt', 'submittedAt', 'date', 'created', 'updatedAt', default=None)
    return {
        **record,
        'items': reservation_items(record),
        'student': student_name(record),
        'grade': _first(record, 'grade', 'gradeLevel', 'grade_level'),
        'section': _first(record, 'section', 'classSection', 'section_name'),
        'when': _first(record, 'when', 'slotLabel', 'slot', 'pickup', 'pickupTime'),
        'pickupDate': _first(record, 'pickupDate', 'pickup_date', 'claimDate', 'claim_date'),
        'status': normalize_status(record.get('status'), family),
        'total': reservation_total(record),
        'createdNum': timestamp_ms(created) if created else 0,
    }


def normalize_topup(record):
    return {
        **record,
        'student': _first(record, 'student', 'studentName', 'payerName', 'name', default=''),
        'studentId': _first(record, 'studentId', 'student_id', 'userId'),
        'reference': _first(record, 'reference', 'refNumber', 'ref'),
        'provider': normalize_provider(record.get('provider') or record.get('method')),
        'amount': parse_amount(record.get('amount'), Decimal('0')),
        'status': normalize_status(record.get('status'), 'topup'),
    }


def normalize_provider(value):
    """Collapse provider spellings ('GCash', 'PayMaya', ...) into gcash / maya."""
    text = str(value or '').strip().lower()
    if 'maya' in text:
        return 'maya'
    if 'gcash' in text:
        return 'gcash'
    return text


def normalize_user(record):
    return {
        **record,
        'status': normalize_status(record.get('status'), 'user'),
        'balance': balance_of(record),
    }


def balance_of(record):
    return parse_amount(record.get('balance'), Decimal('0'))


def is_admin_account(user):
    return str(user.get('role') or '').lower() == 'admin' or bool(user.get('isAdmin'))


def is_archived(user):
    return bool(user.get('deletedAt') or user.get('archivedAt') or user.get('isArchived'))


def is_pending_user(user):
    return normalize_status(user.get('status'), 'user') == 'pending'


def can_delete(user):
    """An account may be archived only when empty, non-admin and already reviewed."""
    return balance_of(user) == 0 and not is_admin_account(user) and not is_pending_user(user)
