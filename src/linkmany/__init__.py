"""Keep SQLAlchemy many-to-many relations in sync with reference attributes."""

from __future__ import annotations

from linkmany.adapters.sqlalchemy import (
    ReferenceAttribute,
    ReferenceOwner,
    SqlAlchemyLinkHost,
    SqlAlchemyOwnerRepository,
)
from linkmany.config import ConfigurationError, LinkConfig
from linkmany.domain.reconciliation import (
    CompositeKeyError,
    ComputedColumn,
    LinkManyToManyReconciler,
    LiteralColumn,
    ReferenceRegistry,
    ReferenceValueError,
)

__all__ = [
    "CompositeKeyError",
    "ComputedColumn",
    "ConfigurationError",
    "LinkConfig",
    "LinkManyToManyReconciler",
    "LiteralColumn",
    "ReferenceAttribute",
    "ReferenceOwner",
    "ReferenceRegistry",
    "ReferenceValueError",
    "SqlAlchemyLinkHost",
    "SqlAlchemyOwnerRepository",
]
