"""Normalization of reference values and construction of reconciliation keys."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from linkmany.domain.ports import PrimaryKey

REFERENCE_KEY_SEPARATOR: Final[str] = "-"


class ReferenceValueError(ValueError):
    """Raised when a reference value or stored reference key is malformed."""


def build_reference_key(primary_key: Mapping[str, object], ordered_fields: Sequence[str]) -> str:
    """Join primary key values in field order into a single lookup key."""

    values: list[str] = []
    for field in ordered_fields:
        if field not in primary_key:
            raise ReferenceValueError(
                f"Missing primary key field '{field}' when building reference key."
            )
        values.append(str(primary_key[field]))
    return REFERENCE_KEY_SEPARATOR.join(values)


def collect_reference_map(
    references: Iterable[Mapping[str, object]],
    ordered_fields: Sequence[str],
) -> dict[str, PrimaryKey]:
    """Index normalized reference keys by their reconciliation key.

    Later duplicates collapse onto the first occurrence.
    """

    reference_map: dict[str, PrimaryKey] = {}
    for reference in references:
        key = build_reference_key(reference, ordered_fields)
        reference_map.setdefault(key, dict(reference))
    return reference_map


def normalize_reference(
    value: object,
    field: str,
    *,
    is_record: Callable[[object], bool],
    primary_key: Callable[[object], PrimaryKey],
) -> list[PrimaryKey]:
    """Normalize an assigned reference value into one-column key mappings.

    ``value`` is either a single record or a list/tuple mixing records, scalar
    identifiers and ``{field: value}`` mappings. A bare scalar or mapping is
    rejected; callers wrap it in a list.
    """

    if is_record(value):
        items: Sequence[object] = (value,)
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        raise ReferenceValueError(
            f"Invalid reference value of type {type(value).__name__}. "
            "Expected a list of identifiers or a related record."
        )

    normalized: list[PrimaryKey] = []
    seen: set[str] = set()
    for index, item in enumerate(items):
        reference = _normalize_item(
            item, index, field, is_record=is_record, primary_key=primary_key
        )
        key = build_reference_key(reference, (field,))
        if key in seen:
            continue
        seen.add(key)
        normalized.append(reference)
    return normalized


def _normalize_item(
    item: object,
    index: int,
    field: str,
    *,
    is_record: Callable[[object], bool],
    primary_key: Callable[[object], PrimaryKey],
) -> PrimaryKey:
    if is_record(item):
        record_key = primary_key(item)
        if field not in record_key or record_key[field] is None:
            raise ReferenceValueError(
                f"Related record at index {index} has no value for primary key '{field}'."
            )
        return {field: record_key[field]}
    if isinstance(item, Mapping):
        if field not in item:
            raise ReferenceValueError(
                f"Invalid reference format at index {index}. Expected mapping with key '{field}'."
            )
        return {field: item[field]}
    if item is None or isinstance(item, (list, tuple, set, frozenset)):
        raise ReferenceValueError(
            f"Invalid reference at index {index}: expected a scalar identifier, "
            f"mapping or related record, got {item!r}."
        )
    return {field: item}


def reference_identifiers(
    references: Sequence[object],
    field: str,
) -> list[object]:
    """Flatten stored key mappings into their scalar identifiers."""

    identifiers: list[object] = []
    for index, reference in enumerate(references):
        if not isinstance(reference, Mapping) or field not in reference:
            raise ReferenceValueError(
                f"Invalid reference format at index {index}. Expected mapping with key '{field}'."
            )
        identifiers.append(reference[field])
    return identifiers
