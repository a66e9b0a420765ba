from __future__ import annotations

from linkmany.domain.reconciliation.keys import collect_reference_map
from linkmany.domain.reconciliation.plan import SyncPlan, plan_sync
from tests.support.fake_host import FakeRecord, make_records


def _primary_key(record: object) -> dict[str, object]:
    assert isinstance(record, FakeRecord)
    return {"id": record.id}


def _plan(reference: list[dict[str, object]], live: list[FakeRecord]) -> SyncPlan:
    return plan_sync(
        collect_reference_map(reference, ("id",)),
        live,
        ("id",),
        primary_key=_primary_key,
    )


def test_plan_sync_computes_both_sides() -> None:
    live = make_records(1, 2, 3)

    plan = _plan([{"id": 2}, {"id": 3}, {"id": 4}], live)

    assert plan.unlink == [live[0]]
    assert plan.link_keys == [{"id": 4}]
    assert not plan.is_empty


def test_plan_sync_is_empty_when_in_sync() -> None:
    plan = _plan([{"id": 1}, {"id": 2}], make_records(2, 1))

    assert plan.is_empty


def test_plan_sync_clears_everything_for_empty_reference() -> None:
    live = make_records(1, 2)

    plan = _plan([], live)

    assert plan.unlink == live
    assert plan.link_keys == []


def test_plan_sync_compares_keys_as_text() -> None:
    plan = _plan([{"id": "1"}], make_records(1))

    assert plan.is_empty


def test_empty_plan_defaults() -> None:
    assert SyncPlan().is_empty
