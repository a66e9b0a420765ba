"""Per-relation settings for many-to-many reference attributes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

DEFAULT_DELETE_ON_UNLINK = True


@dataclass(frozen=True, slots=True)
class LinkConfig:
    """Binds a virtual reference attribute to a many-to-many relation.

    ``extra_columns`` maps junction column names to either a literal value or a
    callable receiving the related record being linked. ``delete_on_unlink``
    controls whether unlinked junction rows are deleted or left in place.
    """

    relation: str
    attribute: str
    extra_columns: Mapping[str, object] = field(default_factory=dict[str, object])
    delete_on_unlink: bool = DEFAULT_DELETE_ON_UNLINK
