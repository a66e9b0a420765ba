"""Synchronization of a virtual reference attribute with a many-to-many relation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from linkmany.config.errors import ConfigurationError, MissingConfigurationError
from linkmany.domain.ports import LinkHost

from .extra_columns import compose_extra_columns, normalize_extra_columns
from .keys import (
    ReferenceValueError,
    collect_reference_map,
    normalize_reference,
    reference_identifiers,
)
from .plan import SyncPlan, plan_sync
from .relation_hash import RelationHashTracker

if TYPE_CHECKING:
    from collections.abc import Sequence

    from linkmany.config.links import LinkConfig
    from linkmany.domain.ports import PrimaryKey, RelationDescriptor

log = logging.getLogger(__name__)


class CompositeKeyError(ConfigurationError):
    """Raised when the related model's primary key spans several columns."""


class NotAttachedError(RuntimeError):
    """Raised when a reconciler is used before ``attach`` or after ``detach``."""


class LinkManyToManyReconciler:
    """Keeps one reference attribute and its many-to-many relation in step.

    The reference value is the desired list of related identifiers. Reading it
    follows the live relation until a caller assigns it explicitly (manual
    override); saving the owner then links and unlinks junction rows so the
    relation matches, and clears the override.
    """

    def __init__(self, config: LinkConfig) -> None:
        self.config = config
        self._extra_columns = normalize_extra_columns(config.extra_columns)
        self._host: LinkHost | None = None
        self._relation: RelationDescriptor[object] | None = None
        self._reference: list[PrimaryKey] | None = None
        self._manual_override = False
        self._relation_hash = RelationHashTracker()

    @property
    def relation_name(self) -> str:
        return self.config.relation

    @property
    def attribute(self) -> str:
        return self.config.attribute

    @property
    def delete_on_unlink(self) -> bool:
        return self.config.delete_on_unlink

    @property
    def is_attached(self) -> bool:
        return self._host is not None

    @property
    def host(self) -> LinkHost:
        if self._host is None:
            raise NotAttachedError(f"Reconciler for '{self.attribute}' is not attached.")
        return self._host

    @property
    def relation(self) -> RelationDescriptor[object]:
        if self._relation is None:
            raise NotAttachedError(f"Reconciler for '{self.attribute}' is not attached.")
        return self._relation

    @property
    def relation_hash(self) -> RelationHashTracker:
        return self._relation_hash

    # Attachment -------------------------------------------------------------

    def attach(self, host: object) -> None:
        """Validate the configuration against ``host`` and load the current links."""

        if self._host is not None:
            raise ConfigurationError(f"Reconciler for '{self.attribute}' is already attached.")
        if not isinstance(host, LinkHost):
            raise ConfigurationError(
                f"Reconciler must be attached to an instance of {LinkHost.__name__}, "
                f"got {type(host).__name__}."
            )
        if not self.config.relation:
            raise MissingConfigurationError('The "relation" setting must be defined.')
        if not self.config.attribute:
            raise MissingConfigurationError('The "attribute" setting must be defined.')

        relation = host.describe_relation(self.config.relation)
        if not relation.primary_key_fields:
            raise ConfigurationError(
                f"Model {relation.related_type.__name__} defines no primary key fields."
            )
        if relation.is_composite:
            raise CompositeKeyError(
                f"Composite primary keys are not supported by {type(self).__name__}. "
                f'Model "{relation.related_type.__name__}" defines multiple PK fields: '
                f"[{', '.join(relation.primary_key_fields)}]."
            )

        self._host = host
        self._relation = relation
        self._init_reference_value()
        log.debug(
            "Attached reference attribute %r to relation %r (%s)",
            self.attribute,
            self.relation_name,
            relation.related_type.__name__,
        )

    def detach(self) -> None:
        self._host = None
        self._relation = None
        self._reference = None
        self._manual_override = False
        self._relation_hash = RelationHashTracker()

    def is_primary_key_composed(self) -> bool:
        return self.relation.is_composite

    # Reference value --------------------------------------------------------

    def get_reference_value(self) -> list[object]:
        """Return the identifiers the owner should be linked to.

        Unless the value was assigned since the last save, a relation that
        changed underneath (repopulated or unloaded) is re-read first.
        """

        if self._reference is None:
            self._init_reference_value()
        elif not self._manual_override:
            self.is_reference_relation_dirty()
        return reference_identifiers(self._reference or [], self._key_field)

    def set_reference_value(self, value: object) -> None:
        """Assign the desired related records or identifiers.

        Accepts a single related record or a list/tuple of records, scalar
        identifiers and ``{pk: value}`` mappings. Duplicates collapse onto their
        first occurrence.
        """

        host = self.host
        self._reference = normalize_reference(
            value,
            self._key_field,
            is_record=host.is_record,
            primary_key=host.primary_key,
        )
        self._manual_override = True

    def load_reference_keys(self, keys: Sequence[PrimaryKey]) -> None:
        """Replace the stored keys as-is, without marking a manual override."""

        self._manual_override = False
        self._reference = [dict(key) for key in keys]

    def is_reference_value_initialized(self) -> bool:
        return self._reference is not None

    def is_reference_manual_override(self) -> bool:
        return self._manual_override

    def reset_reference_manual_override(self) -> None:
        self._manual_override = False

    def update_reference_from_relation(self) -> None:
        """Re-read the reference value from the live relation."""

        self._init_reference_value()

    def is_reference_relation_dirty(self) -> bool:
        """Report whether the live relation drifted from the last fingerprint.

        A populated relation is fingerprinted; when it changed and the value was
        not assigned manually, the reference value follows it.
        """

        if self._reference is None:
            return True

        keys = self._load_primary_keys() if self._is_populated() else None
        changed = self._relation_hash.check(keys)
        if changed and not self._manual_override:
            log.debug("Relation %r drifted, refreshing %r", self.relation_name, self.attribute)
            if keys is None:
                self._init_reference_value()
            else:
                self.load_reference_keys(keys)
        return changed

    def related_records(self) -> list[object]:
        """Return the records currently attached to the owner's relation."""

        host = self.host
        records = list(host.related_records(self.relation_name))
        for record in records:
            if not host.is_record(record):
                raise ReferenceValueError(
                    f'All records in relation "{self.relation_name}" must be mapped records, '
                    f"got {type(record).__name__}."
                )
        return records

    # Lifecycle --------------------------------------------------------------

    def after_insert(self) -> None:
        self.reconcile()

    def after_update(self) -> None:
        self.reconcile()

    def after_delete(self) -> None:
        self.host.unlink_all(self.relation_name, delete=self.delete_on_unlink)

    def reconcile(self) -> SyncPlan:
        """Link and unlink related records so the relation matches the reference value."""

        if self._reference is None:
            return SyncPlan()
        if not self._manual_override:
            # an unassigned value follows the relation, never reverts it
            self.is_reference_relation_dirty()

        host = self.host
        relation = self.relation
        fields = relation.primary_key_fields
        reference_map = collect_reference_map(self._reference, fields)
        plan = plan_sync(
            reference_map,
            self.related_records(),
            fields,
            primary_key=host.primary_key,
        )

        to_link: list[object] = []
        if plan.link_keys:
            to_link = relation.repository.find_all(plan.link_keys)
            if len(to_link) < len(plan.link_keys):
                log.warning(
                    "Relation %r: %d of %d referenced %s records were not found and are skipped",
                    self.relation_name,
                    len(plan.link_keys) - len(to_link),
                    len(plan.link_keys),
                    relation.related_type.__name__,
                )

        for record in plan.unlink:
            host.unlink(self.relation_name, record, delete=self.delete_on_unlink)
        for record in to_link:
            host.link(
                self.relation_name,
                record,
                compose_extra_columns(self._extra_columns, record),
            )

        log.debug(
            "Reconciled relation %r: unlinked=%d, linked=%d",
            self.relation_name,
            len(plan.unlink),
            len(to_link),
        )
        self._manual_override = False
        return plan

    # Internals --------------------------------------------------------------

    @property
    def _key_field(self) -> str:
        return self.relation.primary_key_fields[0]

    def _is_populated(self) -> bool:
        return self.host.is_relation_populated(self.relation_name)

    def _load_primary_keys(self) -> list[PrimaryKey]:
        host = self.host
        return [host.primary_key(record) for record in self.related_records()]

    def _init_reference_value(self) -> None:
        keys = self._load_primary_keys()
        self._relation_hash.record(keys)
        self.load_reference_keys(keys)
