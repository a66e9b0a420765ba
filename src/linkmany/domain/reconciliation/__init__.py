"""Reconciliation of reference attributes with many-to-many relations.

Flow for one owner record:
1) the reference value is assigned or lazily read from the live relation
2) assigned values are normalized into one-column key mappings
3) on save the desired keys are diffed against the live relation
4) unlinks are applied, then links with their extra junction columns
"""

from __future__ import annotations

from .extra_columns import (
    ComputedColumn,
    ExtraColumn,
    LiteralColumn,
    as_extra_column,
    compose_extra_columns,
)
from .keys import (
    REFERENCE_KEY_SEPARATOR,
    ReferenceValueError,
    build_reference_key,
    collect_reference_map,
    normalize_reference,
)
from .plan import SyncPlan, plan_sync
from .reconciler import CompositeKeyError, LinkManyToManyReconciler, NotAttachedError
from .registry import ReferenceRegistry, UnknownReferenceAttributeError
from .relation_hash import HashState, RelationHashTracker, fingerprint

__all__ = [
    "REFERENCE_KEY_SEPARATOR",
    "CompositeKeyError",
    "ComputedColumn",
    "ExtraColumn",
    "HashState",
    "LinkManyToManyReconciler",
    "LiteralColumn",
    "NotAttachedError",
    "ReferenceRegistry",
    "ReferenceValueError",
    "RelationHashTracker",
    "SyncPlan",
    "UnknownReferenceAttributeError",
    "as_extra_column",
    "build_reference_key",
    "collect_reference_map",
    "compose_extra_columns",
    "fingerprint",
    "normalize_reference",
    "plan_sync",
]
