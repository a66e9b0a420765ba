"""Reference attributes for SQLAlchemy-mapped owner classes.

Example::

    @dataclass(eq=False, kw_only=True)
    class Item(ReferenceOwner):
        id: int | None = None
        name: str = ""

        tag_ids = ReferenceAttribute("tags")
        category_ids = ReferenceAttribute(
            "categories",
            delete_on_unlink=False,
            extra_columns={"linked_at": lambda category: datetime.now(UTC)},
        )

``Item`` is mapped imperatively with ``tags``/``categories`` relationships
through their junction tables. Reading ``item.tag_ids`` returns the linked tag
ids; assigning it takes effect when ``SqlAlchemyOwnerRepository`` saves the
item.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self, overload

from linkmany.config.links import DEFAULT_DELETE_ON_UNLINK, LinkConfig
from linkmany.domain.reconciliation import ReferenceRegistry

from .host import SqlAlchemyLinkHost

if TYPE_CHECKING:
    from collections.abc import Mapping

_REGISTRY_KEY = "_reference_registry"


class ReferenceAttribute:
    """Descriptor exposing one reference attribute; dispatches by attribute name."""

    def __init__(
        self,
        relation: str,
        *,
        extra_columns: Mapping[str, object] | None = None,
        delete_on_unlink: bool = DEFAULT_DELETE_ON_UNLINK,
    ) -> None:
        self.relation = relation
        self.extra_columns = dict(extra_columns or {})
        self.delete_on_unlink = delete_on_unlink
        self.attribute = ""

    def __set_name__(self, owner: type[Any], name: str) -> None:
        self.attribute = name

    @property
    def config(self) -> LinkConfig:
        return LinkConfig(
            relation=self.relation,
            attribute=self.attribute,
            extra_columns=self.extra_columns,
            delete_on_unlink=self.delete_on_unlink,
        )

    @overload
    def __get__(self, instance: None, owner: type[Any]) -> Self: ...

    @overload
    def __get__(self, instance: ReferenceOwner, owner: type[Any]) -> list[object]: ...

    def __get__(self, instance: ReferenceOwner | None, owner: type[Any]) -> Self | list[object]:
        if instance is None:
            return self
        return instance.attach_references().get(self.attribute)

    def __set__(self, instance: ReferenceOwner, value: object) -> None:
        instance.attach_references().set(self.attribute, value)


class ReferenceOwner:
    """Mixin for mapped classes declaring ``ReferenceAttribute`` descriptors.

    Each instance gets one ``ReferenceRegistry`` holding a reconciler per declared
    attribute. It is built on first use; dataclass owners build it eagerly in
    ``__post_init__``.
    """

    @classmethod
    def reference_configs(cls) -> list[LinkConfig]:
        declared: dict[str, ReferenceAttribute] = {}
        for klass in reversed(cls.__mro__):
            for value in vars(klass).values():
                if isinstance(value, ReferenceAttribute):
                    declared[value.attribute] = value
        return [attribute.config for attribute in declared.values()]

    def __post_init__(self) -> None:
        self.attach_references()

    def attach_references(self) -> ReferenceRegistry:
        """Return the reference registry, attaching declared attributes on first call."""

        registry = self.__dict__.get(_REGISTRY_KEY)
        if registry is None:
            registry = ReferenceRegistry(SqlAlchemyLinkHost(self))
            try:
                for config in type(self).reference_configs():
                    registry.attach(config)
            except Exception:
                registry.detach_all()
                raise
            self.__dict__[_REGISTRY_KEY] = registry
        return registry

    @property
    def references(self) -> ReferenceRegistry:
        return self.attach_references()

    def attach_reference(self, config: LinkConfig) -> None:
        """Attach an additional reference attribute at runtime."""

        self.attach_references().attach(config)

    def detach_references(self) -> None:
        registry = self.__dict__.pop(_REGISTRY_KEY, None)
        if registry is not None:
            registry.detach_all()

    def get_reference(self, attribute: str) -> list[object]:
        return self.attach_references().get(attribute)

    def set_reference(self, attribute: str, value: object) -> None:
        self.attach_references().set(attribute, value)
