"""
Reservation date restrictions: days on which students cannot book pickups.

A date is blocked when it falls on a blocked weekday, inside a blocked
(year, month) or inside any inclusive date range. Weekday numbers follow
the canteen backend: 0 = Sunday ... 6 = Saturday.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from app.utils.datetime_utils import parse_calendar_date

WEEKDAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')


def weekday_index(d: date) -> int:
    """Sunday-based weekday number of a date."""
    return (d.weekday() + 1) % 7


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @classmethod
    def ordered(cls, a: date, b: date) -> 'DateRange':
        return cls(a, b) if a <= b else cls(b, a)

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def to_payload(self) -> Dict[str, str]:
        return {'from': self.start.isoformat(), 'to': self.end.isoformat()}


@dataclass(frozen=True)
class DateRestrictionSet:
    ranges: Tuple[DateRange, ...] = ()
    months: Tuple[Tuple[int, int], ...] = ()
    weekdays: Tuple[int, ...] = ()
    updated_at: Optional[str] = None

    # -- editing (every operation returns a new set) -----------------------

    def add_range(self, start, end) -> 'DateRestrictionSet':
        a, b = parse_calendar_date(start), parse_calendar_date(end)
        if a is None or b is None:
            raise ValueError('Both dates of a blocked range are required')
        return dataclasses.replace(self, ranges=self.ranges + (DateRange.ordered(a, b),))

    def remove_range(self, index: int) -> 'DateRestrictionSet':
        if not 0 <= index < len(self.ranges):
            return self
        return dataclasses.replace(self, ranges=self.ranges[:index] + self.ranges[index + 1:])

    def add_month(self, year: int, month: int) -> 'DateRestrictionSet':
        year, month = int(year), int(month)
        if not 1 <= month <= 12:
            raise ValueError(f'Month must be between 1 and 12, got {month}')
        if (year, month) in self.months:
            return self
        return dataclasses.replace(self, months=self.months + ((year, month),))

    def remove_month(self, year: int, month: int) -> 'DateRestrictionSet':
        key = (int(year), int(month))
        if key not in self.months:
            return self
        return dataclasses.replace(self, months=tuple(m for m in self.months if m != key))

    def toggle_weekday(self, weekday: int) -> 'DateRestrictionSet':
        weekday = int(weekday)
        if not 0 <= weekday <= 6:
            raise ValueError(f'Weekday must be between 0 and 6, got {weekday}')
        current = set(self.weekdays)
        current ^= {weekday}
        return dataclasses.replace(self, weekdays=tuple(sorted(current)))

    # -- wire format -------------------------------------------------------

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> 'DateRestrictionSet':
        """
        Build a set from the backend JSON, dropping malformed entries the
        same way the backend does when it saves rules.
        """
        payload = payload or {}
        ranges = []
        for item in _as_list(payload.get('ranges')):
            if not isinstance(item, Mapping):
                continue
            a, b = parse_calendar_date(item.get('from')), parse_calendar_date(item.get('to'))
            if a and b:
                ranges.append(DateRange.ordered(a, b))

        months = []
        for item in _as_list(payload.get('months')):
            if not isinstance(item, Mapping):
                continue
            try:
                key = (int(item.get('year')), int(item.get('month')))
            except (TypeError, ValueError):
                continue
            if 1 <= key[1] <= 12 and key not in months:
                months.append(key)

        weekdays = set()
        for item in _as_list(payload.get('weekdays')):
            try:
                value = int(item)
            except (TypeError, ValueError):
                continue
            if 0 <= value <= 6:
                weekdays.add(value)

        return cls(
            ranges=tuple(ranges),
            months=tuple(months),
            weekdays=tuple(sorted(weekdays)),
            updated_at=payload.get('updatedAt'),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            'ranges': [r.to_payload() for r in self.ranges],
            'months': [{'year': y, 'month': m} for y, m in self.months],
            'weekdays': list(self.weekdays),
        }

    def describe(self) -> Dict[str, Any]:
        """Payload plus human readable weekday names, for the editor."""
        data = self.to_payload()
        data['weekdayNames'] = [WEEKDAY_NAMES[d] for d in self.weekdays]
        data['updatedAt'] = self.updated_at
        return data


def _as_list(value) -> Iterable[Any]:
    return value if isinstance(value, (list, tuple)) else []


def is_blocked(candidate, rules: DateRestrictionSet) -> bool:
    """
    True when a pickup date is restricted. Accepts a date, datetime or
    ISO string; anything unparseable is treated as not blocked.
    """
    d = parse_calendar_date(candidate)
    if d is None:
        return False
    if weekday_index(d) in rules.weekdays:
        return True
    if (d.year, d.month) in rules.months:
        return True
    return any(r.contains(d) for r in rules.ranges)
