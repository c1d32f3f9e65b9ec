"""
Client-side view of a cached collection: filter, search, sort.

Every admin list (users, archived users, reservations, top-ups, orders)
is rendered through ``view`` with a ``ListingSpec`` describing which
fields are searchable, which named filters exist and how each sortable
field compares.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from app.utils.datetime_utils import timestamp_ms
from app.utils.entities import (
    balance_of, is_pending_user, normalize_provider, pickup_rank, pretty_pickup_window,
    reservation_total, student_name,
)
from app.utils.money import format_peso, parse_amount
from app.utils.search_query import (
    ParsedQuery, matches_query, normalize_currency, normalize_text, parse_search_query,
    strip_accents,
)
from app.utils.statuses import normalize_status

SORT_KINDS = ('string', 'number', 'date')
INACTIVE_FILTER_VALUES = ('', 'all', 'false', 'off', '0')


@dataclass(frozen=True)
class SortField:
    getter: Callable[[Mapping[str, Any]], Any]
    kind: str = 'string'

    def __post_init__(self):
        if self.kind not in SORT_KINDS:
            raise ValueError(f'Unsupported sort kind: {self.kind}')

    def key(self, item):
        value = self.getter(item)
        if self.kind == 'number':
            return float(parse_amount(value, Decimal('0')))
        if self.kind == 'date':
            return timestamp_ms(value)
        return fold(value)


@dataclass(frozen=True)
class ListingSpec:
    search_fields: Sequence[Callable[[Mapping[str, Any]], Any]]
    sort_fields: Mapping[str, SortField]
    filters: Mapping[str, Callable[[Mapping[str, Any], Any], bool]] = field(default_factory=dict)
    default_sort: Optional[str] = None
    default_order: str = 'asc'


@dataclass(frozen=True)
class ViewOptions:
    search_text: str = ''
    filters: Mapping[str, Any] = field(default_factory=dict)
    sort_field: Optional[str] = None
    sort_order: str = 'asc'

    @classmethod
    def from_args(cls, args, listing: ListingSpec) -> 'ViewOptions':
        """Build options from request.args (or any mapping with .get)."""
        order = (args.get('order') or listing.default_order).lower()
        return cls(
            search_text=args.get('q', '') or '',
            filters={name: args.get(name) for name in listing.filters if args.get(name) is not None},
            sort_field=args.get('sort') or listing.default_sort,
            sort_order='desc' if order == 'desc' else 'asc',
        )


def fold(value) -> str:
    """Locale-insensitive comparison key for text."""
    if value is None:
        return ''
    return strip_accents(str(value)).casefold()


def is_filter_active(value) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in INACTIVE_FILTER_VALUES
    return bool(value)


def _as_text(value) -> str:
    return '' if value is None else str(value)


def view(collection: Iterable[Mapping[str, Any]], listing: ListingSpec,
         options: Optional[ViewOptions] = None) -> List[Mapping[str, Any]]:
    """
    Apply filters, search and sort. Returns a new list; the collection
    and its items are left untouched.

    Filters are AND-combined, search is a case-insensitive substring match
    OR-ed across the listing's search fields, sorting is stable.
    """
    options = options or ViewOptions(sort_field=listing.default_sort, sort_order=listing.default_order)
    rows = list(collection)

    for name, value in options.filters.items():
        predicate = listing.filters.get(name)
        if predicate is None or not is_filter_active(value):
            continue
        rows = [row for row in rows if predicate(row, value)]

    needle = (options.search_text or '').strip().lower()
    if needle:
        rows = [
            row for row in rows
            if any(needle in _as_text(getter(row)).lower() for getter in listing.search_fields)
        ]

    sort_field = listing.sort_fields.get(options.sort_field) if options.sort_field else None
    if sort_field is not None:
        rows = sorted(rows, key=sort_field.key, reverse=options.sort_order == 'desc')
    return rows


def toggle_sort(options: ViewOptions, field_name: str) -> ViewOptions:
    """Clicking the active column flips direction; a new column starts ascending."""
    if options.sort_field == field_name:
        order = 'desc' if options.sort_order == 'asc' else 'asc'
        return dataclasses.replace(options, sort_order=order)
    return dataclasses.replace(options, sort_field=field_name, sort_order='asc')


def _plain_number(value) -> str:
    amount = parse_amount(value, Decimal('0'))
    if amount == amount.to_integral_value():
        return str(int(amount))
    return str(amount.normalize())


def _get(key):
    return lambda item: item.get(key)


def _archived_at(user):
    return user.get('archivedAt') or user.get('deletedAt')


USER_LISTING = ListingSpec(
    search_fields=(
        _get('id'), _get('studentId'), _get('name'), _get('email'), _get('phone'),
        lambda u: _plain_number(u.get('balance')),
    ),
    filters={
        'zero_balance': lambda u, _v: balance_of(u) == 0,
        'pending_only': lambda u, _v: is_pending_user(u),
    },
    sort_fields={
        'name': SortField(_get('name')),
        'email': SortField(_get('email')),
        'phone': SortField(_get('phone')),
        'studentId': SortField(_get('studentId')),
        'balance': SortField(_get('balance'), 'number'),
        'createdAt': SortField(_get('createdAt'), 'date'),
    },
    default_sort='name',
)

ARCHIVED_USER_LISTING = ListingSpec(
    search_fields=(
        _get('id'), _get('studentId'), _get('name'), _get('email'), _get('phone'),
        lambda u: format_peso(u.get('balance')),
    ),
    sort_fields={
        **USER_LISTING.sort_fields,
        'archivedAt': SortField(_archived_at, 'date'),
    },
    default_sort='name',
)

RESERVATION_LISTING = ListingSpec(
    search_fields=(
        _get('id'), _get('student'), _get('grade'), _get('section'), _get('when'),
        _get('pickupDate'),
    ),
    filters={
        'status': lambda r, v: str(v) == 'All' or r.get('status') == normalize_status(v, 'order'),
        'pickup': lambda r, v: str(v).strip().lower() in str(r.get('when') or '').lower(),
    },
    sort_fields={
        'createdAt': SortField(_get('createdNum'), 'number'),
        'student': SortField(_get('student')),
        'pickupDate': SortField(_get('pickupDate'), 'date'),
        'total': SortField(_get('total'), 'number'),
    },
    default_sort='createdAt',
    default_order='desc',
)

TOPUP_LISTING = ListingSpec(
    search_fields=(_get('id'), _get('reference'), _get('student'), _get('studentId')),
    filters={
        'provider': lambda t, v: normalize_provider(t.get('provider')) == normalize_provider(v),
    },
    sort_fields={
        'createdAt': SortField(_get('createdAt'), 'date'),
        'amount': SortField(_get('amount'), 'number'),
        'student': SortField(_get('student')),
    },
    default_sort='createdAt',
    default_order='desc',
)


# ---- order board ----------------------------------------------------------

ORDER_TABS = ('All', 'Approved', 'Preparing', 'Ready', 'Claimed')
ORDER_HIDDEN_STATUSES = ('Pending', 'Rejected')

ORDER_SORT_FIELDS: Dict[str, SortField] = {
    'pickup': SortField(lambda o: pickup_rank(o.get('when')), 'number'),
    'name': SortField(lambda o: normalize_text(student_name(o))),
    'total': SortField(lambda o: reservation_total(o), 'number'),
    'id': SortField(_get('id')),
    'status': SortField(_get('status')),
}


def order_searchable(order: Mapping[str, Any]) -> Dict[str, str]:
    return {
        'name': normalize_text(student_name(order)),
        'id': normalize_text(order.get('id')),
        'grade': normalize_text(order.get('grade')),
        'section': normalize_text(order.get('section')),
        'note': normalize_text(order.get('note')),
        'total': normalize_currency(format_peso(reservation_total(order))),
        'item': normalize_text(' '.join(str(item.get('name') or '') for item in order.get('items') or [])),
        'pickup': normalize_text(order.get('when')),
        'status': normalize_text(order.get('status')),
    }


def order_view(orders: Iterable[Mapping[str, Any]], tab: str = 'All', query: str = '',
               sort_field: str = 'pickup', sort_order: str = 'asc') -> List[Mapping[str, Any]]:
    """
    The kitchen board: approved-and-later reservations only, narrowed by
    tab and the search query language, then sorted.
    Expects reservations already passed through normalize_reservation(family='order').
    """
    parsed: ParsedQuery = parse_search_query(query)
    rows = []
    for order in orders:
        status = order.get('status')
        if status in ORDER_HIDDEN_STATUSES:
            continue
        if tab != 'All' and status != tab:
            continue
        if not parsed.is_empty and not matches_query(
                order_searchable(order), parsed, total=float(reservation_total(order))):
            continue
        rows.append(order)

    key = ORDER_SORT_FIELDS.get(sort_field)
    if key is not None:
        rows = sorted(rows, key=key.key, reverse=sort_order == 'desc')
    return rows


def order_tab_counts(orders: Iterable[Mapping[str, Any]]) -> Dict[str, int]:
    visible = [o for o in orders if o.get('status') not in ORDER_HIDDEN_STATUSES]
    counts = {tab: 0 for tab in ORDER_TABS}
    counts['All'] = len(visible)
    for order in visible:
        if order.get('status') in counts:
            counts[order['status']] += 1
    return counts
