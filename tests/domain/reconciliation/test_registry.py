from __future__ import annotations

import pytest

from linkmany.config import ConfigurationError, LinkConfig
from linkmany.domain.reconciliation import ReferenceRegistry, UnknownReferenceAttributeError
from tests.support.fake_host import FakeLinkHost, make_records


@pytest.fixture
def host() -> FakeLinkHost:
    return FakeLinkHost(make_records(1, 2, 3), linked_ids=(1,))


@pytest.fixture
def registry(host: FakeLinkHost) -> ReferenceRegistry:
    registry = ReferenceRegistry(host)
    registry.attach(LinkConfig(relation="tags", attribute="tag_ids"))
    return registry


def test_registry_dispatches_by_attribute(registry: ReferenceRegistry) -> None:
    assert "tag_ids" in registry
    assert len(registry) == 1
    assert registry.get("tag_ids") == [1]

    registry.set("tag_ids", [2])

    assert registry.get("tag_ids") == [2]
    assert registry.reconciler("tag_ids").is_reference_manual_override()


def test_registry_rejects_duplicate_attribute(registry: ReferenceRegistry) -> None:
    with pytest.raises(ConfigurationError, match='"tag_ids" is already registered'):
        registry.attach(LinkConfig(relation="tags", attribute="tag_ids"))


def test_registry_reports_unknown_attribute(registry: ReferenceRegistry) -> None:
    with pytest.raises(UnknownReferenceAttributeError, match='"label_ids"'):
        registry.get("label_ids")
    with pytest.raises(AttributeError):
        registry.set("label_ids", [1])


def test_registry_does_not_register_failed_attach(registry: ReferenceRegistry) -> None:
    with pytest.raises(ConfigurationError):
        registry.attach(LinkConfig(relation="labels", attribute="label_ids"))

    assert "label_ids" not in registry


def test_registry_fans_out_lifecycle_hooks(host: FakeLinkHost, registry: ReferenceRegistry) -> None:
    registry.set("tag_ids", [1, 2])

    registry.after_update()
    assert host.calls == [("link", 2)]

    registry.attach(LinkConfig(relation="tags", attribute="kept_ids", delete_on_unlink=False))
    host.calls.clear()
    registry.after_delete()
    assert host.calls == [("unlink_all", True), ("unlink_all", False)]


def test_detach_removes_reconcilers(registry: ReferenceRegistry) -> None:
    reconciler = registry.reconciler("tag_ids")

    registry.detach("tag_ids")

    assert "tag_ids" not in registry
    assert not reconciler.is_attached

    registry.attach(LinkConfig(relation="tags", attribute="tag_ids"))
    registry.detach_all()
    assert len(registry) == 0
