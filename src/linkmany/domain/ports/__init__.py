"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import LinkHost, PrimaryKey, RelatedRepository, RelationDescriptor
from .unit_of_work import RepositoryCollection, UnitOfWork

__all__ = [
    "LinkHost",
    "PrimaryKey",
    "RelatedRepository",
    "RelationDescriptor",
    "RepositoryCollection",
    "UnitOfWork",
]
