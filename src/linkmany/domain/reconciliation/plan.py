"""Diff between the desired reference keys and the live relation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .keys import build_reference_key

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from linkmany.domain.ports import PrimaryKey


@dataclass(slots=True)
class SyncPlan:
    """Link and unlink work needed to converge the relation.

    ``unlink`` holds live records; ``link_keys`` holds key mappings still to be
    resolved into records. The two sides are disjoint by construction.
    """

    unlink: list[object] = field(default_factory=list[object])
    link_keys: list[PrimaryKey] = field(default_factory=list["PrimaryKey"])

    @property
    def is_empty(self) -> bool:
        return not self.unlink and not self.link_keys


def plan_sync(
    reference_map: Mapping[str, PrimaryKey],
    live_records: Iterable[object],
    ordered_fields: Sequence[str],
    *,
    primary_key: Callable[[object], PrimaryKey],
) -> SyncPlan:
    """Compute which live records to unlink and which reference keys to link."""

    live_map: dict[str, object] = {}
    for record in live_records:
        key = build_reference_key(primary_key(record), ordered_fields)
        live_map.setdefault(key, record)

    return SyncPlan(
        unlink=[record for key, record in live_map.items() if key not in reference_map],
        link_keys=[dict(ref) for key, ref in reference_map.items() if key not in live_map],
    )
