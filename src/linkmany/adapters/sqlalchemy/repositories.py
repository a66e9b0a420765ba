"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeAlias, TypeVar

from sqlalchemy import inspect, select, tuple_

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from sqlalchemy.orm import Mapper, Session

    from .owner import ReferenceOwner


SessionSource: TypeAlias = "Session | Callable[[], Session]"

TRecord = TypeVar("TRecord")
TOwner = TypeVar("TOwner", bound="ReferenceOwner")


class SqlAlchemyRecordRepository(Generic[TRecord]):
    """Bulk lookups of mapped records by primary key."""

    def __init__(self, session: SessionSource, entity_cls: type[TRecord]) -> None:
        self._session_source = session
        self.entity_cls = entity_cls
        self._mapper: Mapper[Any] = inspect(entity_cls)

    @property
    def session(self) -> Session:
        if callable(self._session_source):
            return self._session_source()
        return self._session_source

    def find_all(self, keys: Sequence[Mapping[str, object]]) -> list[TRecord]:
        """Fetch every record whose primary key appears in ``keys`` in one query."""

        if not keys:
            return []
        columns = list(self._mapper.primary_key)
        fields = [self._mapper.get_property_by_column(column).key for column in columns]
        if len(columns) == 1:
            criterion = columns[0].in_([key[fields[0]] for key in keys])
        else:
            criterion = tuple_(*columns).in_(
                [tuple(key[field] for field in fields) for key in keys]
            )
        stmt = select(self.entity_cls).where(criterion)
        return list(self.session.scalars(stmt).all())


class SqlAlchemyOwnerRepository(SqlAlchemyRecordRepository[TOwner]):
    """Persists owner records and runs their reference reconcilers after each write.

    Writes are flushed, never committed; the unit of work owns the transaction.
    """

    def __init__(self, session: Session, entity_cls: type[TOwner]) -> None:
        super().__init__(session, entity_cls)

    def get(self, key: object) -> TOwner | None:
        entity = self.session.get(self.entity_cls, key)
        if entity is not None:
            entity.attach_references()
        return entity

    def add(self, entity: TOwner) -> None:
        references = entity.attach_references()
        self.session.add(entity)
        self.session.flush()
        references.after_insert()

    def update(self, entity: TOwner) -> None:
        references = entity.attach_references()
        self.session.flush()
        references.after_update()

    def save(self, entity: TOwner) -> None:
        """Insert transient/pending owners, update persistent ones."""

        if inspect(entity).persistent:
            self.update(entity)
        else:
            self.add(entity)

    def remove(self, entity: TOwner) -> None:
        references = entity.attach_references()
        self.session.delete(entity)
        self.session.flush()
        references.after_delete()
