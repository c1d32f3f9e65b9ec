"""
Mini query language for the order board search box.

    name:"juan dela cruz", section:rizal, lunch
    total:120, item:adobo, status:ready

Commas separate AND-tokens. ``field:value`` and ``field:"quoted value"``
restrict one field (several values for the same field are OR-ed). Anything
else is a plain term that must appear somewhere in the order.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

FIELD_ALIASES: Dict[str, str] = {
    'name': 'name',
    'student': 'name',
    'payer': 'name',
    'customer': 'name',
    'id': 'id',
    'order': 'id',
    'orderid': 'id',
    'grade': 'grade',
    'section': 'section',
    'sec': 'section',
    'pickup': 'pickup',
    'time': 'pickup',
    'slot': 'pickup',
    'item': 'item',
    'food': 'item',
    'status': 'status',
    'state': 'status',
    'total': 'total',
    'price': 'total',
    'amount': 'total',
    'note': 'note',
    'notes': 'note',
    'comment': 'note',
}

FIELD_LABELS: Dict[str, str] = {
    'name': 'Name',
    'id': 'Order ID',
    'grade': 'Grade',
    'section': 'Section',
    'pickup': 'Pickup Time',
    'item': 'Item',
    'status': 'Status',
    'total': 'Total',
    'note': 'Note',
}

_QUOTED_FIELD = re.compile(r'^([\w-]+):(["\'])(.*?)\2$')
_UNQUOTED_FIELD = re.compile(r'^([\w-]+):(\S+)$')
_QUOTED_PHRASE = re.compile(r'^(["\'])(.*?)\1$')
_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')
_NON_NUMERIC = re.compile(r'[^\d.]')


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize('NFD', text)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text) -> str:
    """Lower-case, strip accents, turn punctuation into spaces, collapse whitespace."""
    value = strip_accents(str(text if text is not None else '').lower())
    value = _PUNCTUATION.sub(' ', value)
    return _WHITESPACE.sub(' ', value).strip()


def normalize_currency(text) -> str:
    value = str(text if text is not None else '')
    for ch in ('₱', '$', ','):
        value = value.replace(ch, '')
    return _WHITESPACE.sub('', value).lower()


@dataclass
class ParsedQuery:
    filters: Dict[str, List[str]] = field(default_factory=dict)
    plain_terms: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.filters and not self.plain_terms

    def to_text(self) -> str:
        """Rebuild a query string equivalent to this parse."""
        parts = []
        for name, values in self.filters.items():
            for value in values:
                parts.append(f'{name}:"{value}"' if ' ' in value else f'{name}:{value}')
        parts.extend(self.plain_terms)
        return ', '.join(parts)


def _split_tokens(text: str) -> List[str]:
    tokens = []
    current = []
    quote = None
    prev = ''
    for ch in text:
        if ch in ('"', "'") and prev != '\\':
            if quote is None:
                quote = ch
            elif ch == quote:
                quote = None
            current.append(ch)
        elif ch == ',' and quote is None:
            token = ''.join(current).strip()
            if token:
                tokens.append(token)
            current = []
        else:
            current.append(ch)
        prev = ch
    token = ''.join(current).strip()
    if token:
        tokens.append(token)
    return tokens


def parse_search_query(text: Optional[str]) -> ParsedQuery:
    parsed = ParsedQuery()
    if not text or not text.strip():
        return parsed

    for token in _split_tokens(text):
        match = _QUOTED_FIELD.match(token)
        if match:
            name, value = match.group(1), match.group(3)
        else:
            match = _UNQUOTED_FIELD.match(token)
            name, value = (match.group(1), match.group(2)) if match else (None, None)

        if name is not None:
            canonical = FIELD_ALIASES.get(normalize_text(name), normalize_text(name))
            values = parsed.filters.setdefault(canonical, [])
            value = normalize_currency(value) if canonical == 'total' else normalize_text(value)
            if value:
                values.append(value)
            continue

        phrase = _QUOTED_PHRASE.match(token)
        if phrase:
            value = normalize_text(phrase.group(2))
            if value:
                parsed.plain_terms.append(value)
            continue

        for word in token.split():
            value = normalize_text(word)
            if value:
                parsed.plain_terms.append(value)

    return parsed


def _parse_number(value: str) -> Optional[float]:
    cleaned = _NON_NUMERIC.sub('', value)
    try:
        return float(cleaned)
    except ValueError:
        return None


def matches_query(searchable: Mapping[str, str], parsed: ParsedQuery,
                  total: Optional[float] = None) -> bool:
    """
    ``searchable`` maps canonical field names to already-normalized text.
    A filter on a field the record doesn't have never matches.
    """
    for name, values in parsed.filters.items():
        if not values:
            continue
        field_text = searchable.get(name, '')
        if name == 'total' and total is not None:
            ok = False
            for value in values:
                number = _parse_number(value)
                if number is not None:
                    ok = abs(float(total) - number) < 0.01
                else:
                    ok = value in field_text
                if ok:
                    break
        else:
            ok = any(value in field_text for value in values)
        if not ok:
            return False

    if parsed.plain_terms:
        haystack = ' '.join(searchable.values())
        if not all(term in haystack for term in parsed.plain_terms):
            return False
    return True


def active_filter_chips(parsed: ParsedQuery) -> List[Dict[str, str]]:
    chips = []
    for name, values in parsed.filters.items():
        for value in values:
            chips.append({
                'field': name,
                'value': value,
                'label': f'{FIELD_LABELS.get(name, name)}: {value}',
            })
    return chips


def remove_filter(parsed: ParsedQuery, name: str, value: str) -> ParsedQuery:
    """Drop one chip and return the resulting query (the input is not modified)."""
    filters = {}
    for key, values in parsed.filters.items():
        kept = [v for v in values if not (key == name and v == value)]
        if kept:
            filters[key] = kept
    return ParsedQuery(filters=filters, plain_terms=list(parsed.plain_terms))
