from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from linkmany.adapters.sqlalchemy import SqlAlchemyOwnerRepository
from linkmany.adapters.sqlalchemy.unit_of_work import shutdown, startup
from tests.support.catalog import (
    CatalogUnitOfWork,
    Item,
    mapper_registry,
    seed_catalog,
    start_mappers,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    start_mappers()
    mapper_registry.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine)
    session = session_factory()
    seed_catalog(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def items(sqlite_session: Session) -> SqlAlchemyOwnerRepository[Item]:
    return SqlAlchemyOwnerRepository(sqlite_session, Item)


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], CatalogUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> CatalogUnitOfWork:
        return CatalogUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
