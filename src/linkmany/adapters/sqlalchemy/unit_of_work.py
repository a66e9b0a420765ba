"""SQLAlchemy-backed units of work for owners with reference attributes."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Literal, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from linkmany.config.storage import get_database_config
from linkmany.domain.ports import RepositoryCollection

from .owner import ReferenceOwner

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy import MetaData
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    """Process-wide engine plus the session factory bound to it."""

    engine: Engine | None = None
    factory: sessionmaker[Session] | None = None

    def configure(self, engine: Engine | None) -> None:
        self.engine = engine
        self.factory = (
            None if engine is None else sessionmaker(bind=engine, expire_on_commit=False)
        )

    def require_factory(self) -> sessionmaker[Session]:
        if self.factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call linkmany.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self.factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    metadata: MetaData | None = None,
    force: bool = False,
) -> None:
    """Initialise the engine and session factory, optionally creating ``metadata`` tables."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        config = get_database_config()
        engine = create_engine(database_uri or config.uri, echo=config.echo)
    log.info("Starting SQLAlchemy adapter on %s", engine.url.render_as_string(hide_password=True))
    if metadata is not None:
        create_all_tables(engine, metadata)

    _STATE.configure(engine)


def create_all_tables(engine: Engine, metadata: MetaData) -> None:
    """Create the tables of ``metadata`` that do not exist yet."""

    log.info("Creating all tables")
    metadata.create_all(engine)


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        log.info("Shutting down SQLAlchemy adapter")
        _STATE.engine.dispose()
    _STATE.configure(None)


TRepositories = TypeVar("TRepositories", bound=RepositoryCollection)


class BaseSqlAlchemyUnitOfWork(ABC, Generic[TRepositories]):
    """SQLAlchemy session scope with pluggable repository collections.

    Link and unlink writes issued through the repositories join the session
    transaction. ``rollback`` also drops the reference state of every owner in
    the session, so values assigned but never committed are re-read from the
    relation on next access.
    """

    def __init__(self) -> None:
        self.session_factory = _STATE.require_factory()
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = self.session_factory()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        session = self.session
        owners = [obj for obj in session.identity_map.values() if isinstance(obj, ReferenceOwner)]
        owners.extend(obj for obj in session.new if isinstance(obj, ReferenceOwner))
        session.rollback()
        for owner in owners:
            owner.detach_references()
        if owners:
            log.debug("Reset reference state of %d owner(s) after rollback", len(owners))

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session
