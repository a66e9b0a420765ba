"""Ports the reconciler needs from the host persistence layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Protocol, TypeAlias, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


PrimaryKey: TypeAlias = dict[str, object]

TRecord = TypeVar("TRecord")


@runtime_checkable
class RelatedRepository(Protocol[TRecord]):
    """Bulk lookup of related records by primary key."""

    def find_all(self, keys: Sequence[Mapping[str, object]]) -> list[TRecord]: ...


@dataclass(frozen=True, slots=True)
class RelationDescriptor(Generic[TRecord]):
    """Static relation metadata resolved once when a reconciler attaches."""

    name: str
    related_type: type[TRecord]
    primary_key_fields: tuple[str, ...]
    repository: RelatedRepository[TRecord]

    @property
    def is_composite(self) -> bool:
        return len(self.primary_key_fields) > 1


@runtime_checkable
class LinkHost(Protocol):
    """Owner-side persistence capabilities, addressed by relation name.

    Implementations wrap one owner record. ``describe_relation`` raises
    ``ConfigurationError`` when the relation cannot back a reference attribute.
    """

    def describe_relation(self, name: str) -> RelationDescriptor[object]: ...

    def is_record(self, value: object) -> bool: ...

    def primary_key(self, record: object) -> PrimaryKey: ...

    def related_records(self, name: str) -> Sequence[object]: ...

    def is_relation_populated(self, name: str) -> bool: ...

    def populate_relation(self, name: str, records: Sequence[object]) -> None: ...

    def link(self, name: str, record: object, extra_columns: Mapping[str, object]) -> None: ...

    def unlink(self, name: str, record: object, *, delete: bool) -> None: ...

    def unlink_all(self, name: str, *, delete: bool) -> None: ...
