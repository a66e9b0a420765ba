"""Extra junction columns written alongside each new link."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class LiteralColumn:
    """A fixed value stored for every linked record."""

    value: object

    def resolve(self, record: object) -> object:
        _ = record
        return self.value


@dataclass(frozen=True, slots=True)
class ComputedColumn:
    """A value computed from the related record being linked."""

    compute: Callable[[object], object]

    def resolve(self, record: object) -> object:
        return self.compute(record)


ExtraColumn: TypeAlias = LiteralColumn | ComputedColumn


def as_extra_column(value: object) -> ExtraColumn:
    """Wrap a configured value; bare callables become computed columns."""

    if isinstance(value, (LiteralColumn, ComputedColumn)):
        return value
    if callable(value):
        return ComputedColumn(value)
    return LiteralColumn(value)


def normalize_extra_columns(columns: Mapping[str, object]) -> dict[str, ExtraColumn]:
    return {name: as_extra_column(value) for name, value in columns.items()}


def compose_extra_columns(columns: Mapping[str, ExtraColumn], record: object) -> dict[str, object]:
    """Resolve every configured column once for ``record``."""

    return {name: column.resolve(record) for name, column in columns.items()}
