"""Dispatch table routing reference attribute access to reconcilers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from linkmany.config.errors import ConfigurationError

from .reconciler import LinkManyToManyReconciler

if TYPE_CHECKING:
    from collections.abc import Iterator

    from linkmany.config.links import LinkConfig


class UnknownReferenceAttributeError(AttributeError):
    """Raised when no reconciler is registered under an attribute name."""


class ReferenceRegistry:
    """Reconcilers of one owner record, keyed by reference attribute name."""

    def __init__(self, host: object) -> None:
        self.host = host
        self._reconcilers: dict[str, LinkManyToManyReconciler] = {}

    def attach(self, config: LinkConfig) -> LinkManyToManyReconciler:
        """Create, validate and register a reconciler for ``config``."""

        if config.attribute in self._reconcilers:
            raise ConfigurationError(
                f'Reference attribute "{config.attribute}" is already registered.'
            )
        reconciler = LinkManyToManyReconciler(config)
        reconciler.attach(self.host)
        self._reconcilers[config.attribute] = reconciler
        return reconciler

    def detach(self, attribute: str) -> None:
        self.reconciler(attribute).detach()
        del self._reconcilers[attribute]

    def detach_all(self) -> None:
        for reconciler in self._reconcilers.values():
            reconciler.detach()
        self._reconcilers.clear()

    def reconciler(self, attribute: str) -> LinkManyToManyReconciler:
        try:
            return self._reconcilers[attribute]
        except KeyError:
            raise UnknownReferenceAttributeError(
                f'Unknown reference attribute "{attribute}".'
            ) from None

    def get(self, attribute: str) -> list[object]:
        return self.reconciler(attribute).get_reference_value()

    def set(self, attribute: str, value: object) -> None:
        self.reconciler(attribute).set_reference_value(value)

    def __contains__(self, attribute: object) -> bool:
        return attribute in self._reconcilers

    def __iter__(self) -> Iterator[LinkManyToManyReconciler]:
        return iter(list(self._reconcilers.values()))

    def __len__(self) -> int:
        return len(self._reconcilers)

    def after_insert(self) -> None:
        for reconciler in self:
            reconciler.after_insert()

    def after_update(self) -> None:
        for reconciler in self:
            reconciler.after_update()

    def after_delete(self) -> None:
        for reconciler in self:
            reconciler.after_delete()
