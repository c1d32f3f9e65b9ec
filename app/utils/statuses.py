"""
Status helpers for every collection the console manages.
Single source of truth for normalization, labels, css badges and tab filters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusMeta:
    code: str
    label: str
    badge: str
    category: str = "default"


@dataclass(frozen=True)
class StatusFamily:
    name: str
    order: Sequence[str]
    synonyms: Mapping[str, Tuple[str, ...]]
    default: str
    fallback: str
    definitions: Mapping[str, StatusMeta] = field(default_factory=dict)

    def lookup(self) -> Dict[str, str]:
        table: Dict[str, str] = {}
        for canonical, words in self.synonyms.items():
            for word in words:
                table[word] = canonical
        return table


# Order matters: tabs and dropdowns are rendered in this sequence.
RESERVATION_STATUSES = StatusFamily(
    name="reservation",
    order=("Pending", "Approved", "Rejected", "Claimed"),
    synonyms={
        "Pending": ("pending",),
        "Approved": ("approved", "approve"),
        "Rejected": ("rejected", "declined", "cancelled"),
        "Claimed": ("claimed", "pickedup", "picked_up", "picked-up"),
    },
    default="Pending",
    fallback="Unknown",
    definitions={
        "Pending": StatusMeta("Pending", "Pending", "warning"),
        "Approved": StatusMeta("Approved", "Approved", "primary"),
        "Rejected": StatusMeta("Rejected", "Rejected", "danger", category="closed"),
        "Claimed": StatusMeta("Claimed", "Claimed", "success", category="closed"),
    },
)

ORDER_STATUSES = StatusFamily(
    name="order",
    order=("Pending", "Approved", "Preparing", "Ready", "Claimed", "Rejected"),
    synonyms={
        "Pending": ("pending",),
        "Approved": ("approved", "approve"),
        "Preparing": ("preparing", "prep", "in-prep", "in_prep"),
        "Ready": ("ready", "done"),
        "Claimed": ("claimed", "pickedup", "picked_up", "picked-up"),
        "Rejected": ("rejected", "declined", "cancelled"),
    },
    default="Pending",
    fallback="Unknown",
    definitions={
        "Pending": StatusMeta("Pending", "Pending", "warning"),
        "Approved": StatusMeta("Approved", "Approved", "primary"),
        "Preparing": StatusMeta("Preparing", "Preparing", "info"),
        "Ready": StatusMeta("Ready", "Ready for pickup", "info"),
        "Claimed": StatusMeta("Claimed", "Claimed", "success", category="closed"),
        "Rejected": StatusMeta("Rejected", "Rejected", "danger", category="closed"),
    },
)

TOPUP_STATUSES = StatusFamily(
    name="topup",
    order=("Pending", "Approved", "Rejected"),
    synonyms={
        "Pending": ("pending", "submitted"),
        "Approved": ("approved", "approve", "verified", "completed"),
        "Rejected": ("rejected", "declined", "failed", "cancelled"),
    },
    default="Pending",
    fallback="Unknown",
    definitions={
        "Pending": StatusMeta("Pending", "Awaiting review", "warning"),
        "Approved": StatusMeta("Approved", "Credited", "success", category="closed"),
        "Rejected": StatusMeta("Rejected", "Rejected", "danger", category="closed"),
    },
)

# Accounts created before registration review existed have no status at all.
USER_STATUSES = StatusFamily(
    name="user",
    order=("pending", "approved"),
    synonyms={
        "pending": ("pending",),
        "approved": ("approved", "approve", "active"),
    },
    default="approved",
    fallback="unknown",
    definitions={
        "pending": StatusMeta("pending", "Awaiting approval", "warning"),
        "approved": StatusMeta("approved", "Active", "success"),
    },
)

STATUS_FAMILIES: Dict[str, StatusFamily] = {
    family.name: family
    for family in (RESERVATION_STATUSES, ORDER_STATUSES, TOPUP_STATUSES, USER_STATUSES)
}

_LOOKUPS: Dict[str, Dict[str, str]] = {
    name: family.lookup() for name, family in STATUS_FAMILIES.items()
}


def get_family(family: str) -> StatusFamily:
    try:
        return STATUS_FAMILIES[family]
    except KeyError:
        raise ValueError(f"Unknown status family: {family}") from None


def normalize_status(raw: Any, family: str = "reservation") -> str:
    """
    Map any raw status value onto the canonical status of a family.

    Empty values map to the family default, unrecognized values to the
    family fallback ("Unknown"). Never raises for odd input.
    """
    fam = get_family(family)
    if raw is None:
        return fam.default
    text = str(raw).strip().lower()
    if not text:
        return fam.default
    canonical = _LOOKUPS[fam.name].get(text)
    if canonical:
        return canonical
    if text == fam.fallback.lower():
        return fam.fallback
    logger.warning(f"Unexpected {fam.name} status value: {raw!r}")
    return fam.fallback


def get_status_label(code: str, family: str = "reservation") -> str:
    """Human readable status name."""
    meta = get_family(family).definitions.get(code)
    return meta.label if meta else code


def get_status_badge(code: str, family: str = "reservation") -> str:
    """CSS badge class for a status."""
    meta = get_family(family).definitions.get(code)
    return meta.badge if meta else "secondary"


def get_status_choices(family: str = "reservation") -> List[StatusMeta]:
    fam = get_family(family)
    return [fam.definitions[code] for code in fam.order if code in fam.definitions]


def tab_counts(items: Iterable[Mapping[str, Any]], tabs: Sequence[str],
               key: str = "status") -> Dict[str, int]:
    """Counts for already-normalized items; 'All' counts everything."""
    counts: Dict[str, int] = {tab: 0 for tab in tabs}
    total = 0
    for item in items:
        total += 1
        status = item.get(key)
        if status in counts and status != "All":
            counts[status] += 1
    counts["All"] = total
    return counts


def count_by_status(items: Iterable[Mapping[str, Any]], family: str = "reservation",
                    key: str = "status") -> Dict[str, int]:
    """
    Tab counters: one entry per canonical status plus 'All'.
    Items with unmapped statuses only count towards 'All'.
    """
    fam = get_family(family)
    counts: Dict[str, int] = {code: 0 for code in fam.order}
    total = 0
    for item in items:
        total += 1
        status = normalize_status(item.get(key), family)
        if status in counts:
            counts[status] += 1
    counts["All"] = total
    return counts
