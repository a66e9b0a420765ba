"""SQLAlchemy implementation of the reconciler's owner-side port."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete as sql_delete
from sqlalchemy import exists, insert, inspect, select
from sqlalchemy.orm import InstanceState, Mapper, object_session
from sqlalchemy.orm.attributes import set_committed_value

from linkmany.config.errors import ConfigurationError
from linkmany.domain.ports import RelationDescriptor

from .repositories import SqlAlchemyRecordRepository

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import ColumnElement
    from sqlalchemy.orm import RelationshipProperty, Session

    from linkmany.domain.ports import PrimaryKey

log = logging.getLogger(__name__)


class DetachedOwnerError(RuntimeError):
    """Raised when the owner record is not attached to a session."""


def instance_state(value: object) -> InstanceState[Any] | None:
    state = inspect(value, raiseerr=False)
    return state if isinstance(state, InstanceState) else None


def primary_key_of(record: object) -> PrimaryKey:
    """Return the primary key of a mapped instance keyed by attribute name."""

    state = instance_state(record)
    if state is None:
        raise TypeError(f"{type(record).__name__} is not a mapped instance")
    mapper = state.mapper
    values = mapper.primary_key_from_instance(record)
    return {
        mapper.get_property_by_column(column).key: value
        for column, value in zip(mapper.primary_key, values, strict=True)
    }


class SqlAlchemyLinkHost:
    """Owner record wrapper exposing link/unlink primitives for its relations.

    Relations must be mapped ``relationship(..., secondary=<junction table>)``
    list collections, ideally ``viewonly=True``: junction rows are written with
    Core statements and the in-memory collection is kept in step without
    recording ORM history.
    """

    def __init__(self, owner: object) -> None:
        state = instance_state(owner)
        if state is None:
            raise ConfigurationError(
                "Reference attributes must be attached to a SQLAlchemy-mapped instance, "
                f"got {type(owner).__name__}."
            )
        self.owner = owner
        self._state = state
        self._mapper: Mapper[Any] = state.mapper
        self._relations: dict[str, RelationDescriptor[object]] = {}

    @property
    def session(self) -> Session:
        session = object_session(self.owner)
        if session is None:
            raise DetachedOwnerError(
                f"{type(self.owner).__name__} instance is not attached to a session."
            )
        return session

    def describe_relation(self, name: str) -> RelationDescriptor[object]:
        if name in self._relations:
            return self._relations[name]

        prop = self._relationship(name)
        related_mapper = prop.mapper
        descriptor = RelationDescriptor(
            name=name,
            related_type=related_mapper.class_,
            primary_key_fields=tuple(
                related_mapper.get_property_by_column(column).key
                for column in related_mapper.primary_key
            ),
            repository=SqlAlchemyRecordRepository(lambda: self.session, related_mapper.class_),
        )
        self._relations[name] = descriptor
        return descriptor

    def is_record(self, value: object) -> bool:
        return instance_state(value) is not None

    def primary_key(self, record: object) -> PrimaryKey:
        return primary_key_of(record)

    def related_records(self, name: str) -> Sequence[object]:
        self._relationship(name)
        return list(getattr(self.owner, name))

    def is_relation_populated(self, name: str) -> bool:
        return name not in self._state.unloaded

    def populate_relation(self, name: str, records: Sequence[object]) -> None:
        self._relationship(name)
        set_committed_value(self.owner, name, list(records))

    def link(self, name: str, record: object, extra_columns: Mapping[str, object]) -> None:
        prop = self._relationship(name)
        pairs = self._junction_values(prop, record)
        if self._junction_row_exists(prop, pairs):
            # kept by an earlier unlink without delete
            log.debug("Junction row in %s already present, reusing it", prop.secondary)
        else:
            values: dict[str, object] = {column.key: value for column, value in pairs}
            values.update(extra_columns)
            self.session.execute(insert(prop.secondary).values(values))  # type: ignore[arg-type]

        if self.is_relation_populated(name):
            records = list(getattr(self.owner, name))
            records.append(record)
            set_committed_value(self.owner, name, records)

    def unlink(self, name: str, record: object, *, delete: bool) -> None:
        prop = self._relationship(name)
        if delete:
            self._delete_junction_rows(prop, self._junction_values(prop, record))

        if self.is_relation_populated(name):
            records = [item for item in getattr(self.owner, name) if item is not record]
            set_committed_value(self.owner, name, records)

    def unlink_all(self, name: str, *, delete: bool) -> None:
        prop = self._relationship(name)
        if delete:
            self._delete_junction_rows(prop, self._junction_values(prop))
        set_committed_value(self.owner, name, [])

    def _relationship(self, name: str) -> RelationshipProperty[Any]:
        owner_cls = type(self.owner)
        relationships = self._mapper.relationships
        if name not in relationships:
            if hasattr(owner_cls, name):
                raise ConfigurationError(
                    f'Relation "{name}" on class {owner_cls.__name__} must be a mapped '
                    "relationship."
                )
            raise ConfigurationError(
                f'Relation "{name}" does not exist on class {owner_cls.__name__}.'
            )

        prop = relationships[name]
        if prop.secondary is None or not prop.uselist:
            raise ConfigurationError(
                f'Relation "{name}" must be a many-to-many relationship through a junction table.'
            )
        if prop.collection_class not in (None, list):
            raise ConfigurationError(
                f'Relation "{name}" must use a list collection, got {prop.collection_class!r}.'
            )
        return prop

    def _junction_values(
        self,
        prop: RelationshipProperty[Any],
        record: object | None = None,
    ) -> list[tuple[Any, object]]:
        """Pair junction columns with owner (and optionally related) key values."""

        pairs: list[tuple[Any, object]] = [
            (junction_column, self._column_value(self._mapper, self.owner, owner_column))
            for owner_column, junction_column in prop.synchronize_pairs
        ]
        if record is not None:
            pairs.extend(
                (junction_column, self._column_value(prop.mapper, record, related_column))
                for related_column, junction_column in prop.secondary_synchronize_pairs or ()
            )
        return pairs

    @staticmethod
    def _column_value(mapper: Mapper[Any], instance: object, column: Any) -> object:
        return getattr(instance, mapper.get_property_by_column(column).key)

    def _junction_row_exists(
        self,
        prop: RelationshipProperty[Any],
        pairs: list[tuple[Any, object]],
    ) -> bool:
        criteria: list[ColumnElement[bool]] = [column == value for column, value in pairs]
        return bool(self.session.scalar(select(exists().where(*criteria))))

    def _delete_junction_rows(
        self,
        prop: RelationshipProperty[Any],
        pairs: list[tuple[Any, object]],
    ) -> None:
        criteria: list[ColumnElement[bool]] = [column == value for column, value in pairs]
        statement = sql_delete(prop.secondary).where(*criteria)  # type: ignore[arg-type]
        result = self.session.execute(statement)
        log.debug("Deleted %s junction row(s) from %s", result.rowcount, prop.secondary)
