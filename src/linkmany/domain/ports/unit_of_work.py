"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


TRepositories = TypeVar("TRepositories", bound=RepositoryCollection)


@runtime_checkable
class UnitOfWork(Protocol[TRepositories]):
    """Transaction boundary around a repository collection.

    Reconcilers never commit or roll back; link and unlink writes become
    durable only when the surrounding unit of work commits.
    """

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
