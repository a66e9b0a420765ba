from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import event, insert, select

from linkmany.adapters.sqlalchemy import ReferenceAttribute
from linkmany.config import LinkConfig
from linkmany.domain.reconciliation import CompositeKeyError, ReferenceValueError
from tests.support.catalog import (
    Item,
    Tag,
    item_category_table,
    item_feature_table,
    item_tag_table,
    junction_ids,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.orm import Session

    from linkmany.adapters.sqlalchemy import SqlAlchemyOwnerRepository


@pytest.fixture
def statements(sqlite_session: Session) -> Iterator[list[str]]:
    """Collect every SQL statement issued on the session's connection."""

    captured: list[str] = []
    engine = sqlite_session.get_bind()

    def before_cursor_execute(*args: Any) -> None:
        captured.append(args[2])

    event.listen(engine, "before_cursor_execute", before_cursor_execute)
    try:
        yield captured
    finally:
        event.remove(engine, "before_cursor_execute", before_cursor_execute)


def _writes(statements: list[str]) -> list[str]:
    return [sql for sql in statements if sql.lstrip().upper().startswith(("INSERT", "DELETE"))]


def _load(items: SqlAlchemyOwnerRepository[Item], item_id: int) -> Item:
    item = items.get(item_id)
    assert item is not None
    return item


def test_reference_attribute_reads_linked_ids(items: SqlAlchemyOwnerRepository[Item]) -> None:
    item = _load(items, 1)

    assert item.tag_ids == [1, 2, 3]
    assert item.category_ids == []
    assert isinstance(Item.tag_ids, ReferenceAttribute)


def test_assigned_ids_are_linked_on_save(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 1)
    item.tag_ids = [2, 3, 4]

    items.save(item)
    sqlite_session.commit()

    assert junction_ids(sqlite_session, item_tag_table, 1) == {2, 3, 4}
    assert item.tag_ids == [2, 3, 4]
    assert not item.references.reconciler("tag_ids").is_reference_manual_override()


def test_unlink_happens_before_link(
    items: SqlAlchemyOwnerRepository[Item], statements: list[str]
) -> None:
    item = _load(items, 1)
    item.tag_ids = [2, 3, 4]
    statements.clear()

    items.save(item)

    writes = _writes(statements)
    assert len(writes) == 2
    assert writes[0].lstrip().upper().startswith("DELETE FROM ITEM_TAG")
    assert writes[1].lstrip().upper().startswith("INSERT INTO ITEM_TAG")


def test_second_save_is_a_no_op(
    items: SqlAlchemyOwnerRepository[Item], statements: list[str]
) -> None:
    item = _load(items, 1)
    item.tag_ids = [2, 3, 4]
    items.save(item)
    statements.clear()

    items.save(item)

    assert _writes(statements) == []


def test_untouched_attribute_writes_nothing(
    items: SqlAlchemyOwnerRepository[Item], statements: list[str]
) -> None:
    item = _load(items, 1)
    assert item.tag_ids == [1, 2, 3]
    statements.clear()

    items.save(item)

    assert _writes(statements) == []


def test_empty_list_unlinks_everything(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 1)
    item.tag_ids = []

    items.save(item)

    assert junction_ids(sqlite_session, item_tag_table, 1) == set()
    assert item.tag_ids == []


def test_mixed_reference_values(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 2)
    tag = sqlite_session.get(Tag, 10)
    item.tag_ids = [tag, 20, {"id": 4}, 20]

    assert item.tag_ids == [10, 20, 4]
    items.save(item)

    assert junction_ids(sqlite_session, item_tag_table, 2) == {4, 10, 20}


def test_single_record_assignment(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 2)
    item.tag_ids = sqlite_session.get(Tag, 4)

    items.save(item)

    assert junction_ids(sqlite_session, item_tag_table, 2) == {4}


def test_bare_scalar_is_rejected(items: SqlAlchemyOwnerRepository[Item]) -> None:
    item = _load(items, 1)

    with pytest.raises(ReferenceValueError):
        item.tag_ids = 5

    assert item.tag_ids == [1, 2, 3]


def test_missing_ids_are_skipped(
    sqlite_session: Session,
    items: SqlAlchemyOwnerRepository[Item],
    caplog: pytest.LogCaptureFixture,
) -> None:
    item = _load(items, 2)
    item.tag_ids = [4, 999]

    with caplog.at_level(logging.WARNING):
        items.save(item)

    assert junction_ids(sqlite_session, item_tag_table, 2) == {4}
    assert "were not found" in caplog.text


def test_attributes_reconcile_independently(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 1)
    item.category_ids = [2]

    items.save(item)

    assert junction_ids(sqlite_session, item_category_table, 1) == {2}
    assert junction_ids(sqlite_session, item_tag_table, 1) == {1, 2, 3}
    assert junction_ids(sqlite_session, item_feature_table, 1) == set()


def test_extra_columns_are_stored_with_new_links(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 2)
    item.category_ids = [1, 100]

    items.save(item)

    rows = sqlite_session.execute(
        select(
            item_category_table.c.category_id,
            item_category_table.c.linked_by,
            item_category_table.c.rank,
        )
        .where(item_category_table.c.item_id == 2)
        .order_by(item_category_table.c.category_id)
    ).all()
    assert [tuple(row) for row in rows] == [(1, "manual", 10), (100, "manual", 1000)]


def test_unlink_without_delete_keeps_junction_rows(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 2)
    item.feature_ids = [1, 2]
    items.save(item)
    sqlite_session.commit()

    item.feature_ids = [2]
    items.save(item)

    assert item.feature_ids == [2]
    assert junction_ids(sqlite_session, item_feature_table, 2) == {1, 2}

    sqlite_session.commit()
    assert item.feature_ids == [1, 2]


def test_relink_after_unlink_without_delete_reuses_row(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 1)
    item.feature_ids = [1, 2]
    items.save(item)
    item.feature_ids = [1]
    items.save(item)

    item.feature_ids = [1, 2]
    items.save(item)

    assert junction_ids(sqlite_session, item_feature_table, 1) == {1, 2}
    assert item.feature_ids == [1, 2]

    sqlite_session.commit()
    assert item.feature_ids == [1, 2]


def test_external_relation_change_is_picked_up(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 1)
    assert item.tag_ids == [1, 2, 3]

    sqlite_session.execute(insert(item_tag_table).values(item_id=1, tag_id=4))
    sqlite_session.expire(item, ["tags"])

    assert item.tag_ids == [1, 2, 3, 4]


def test_assigned_value_survives_relation_reload(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 2)
    item.tag_ids = [10]

    sqlite_session.expire(item, ["tags"])
    assert item.tag_ids == [10]

    items.save(item)
    assert junction_ids(sqlite_session, item_tag_table, 2) == {10}


def test_delete_unlinks_all(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 1)

    items.remove(item)

    assert junction_ids(sqlite_session, item_tag_table, 1) == set()


def test_delete_keeps_rows_when_unlink_does_not_delete(
    sqlite_session: Session, items: SqlAlchemyOwnerRepository[Item]
) -> None:
    item = _load(items, 2)
    item.feature_ids = [1, 3]
    item.tag_ids = [4]
    items.save(item)

    items.remove(item)

    assert junction_ids(sqlite_session, item_feature_table, 2) == {1, 3}
    assert junction_ids(sqlite_session, item_tag_table, 2) == set()


def test_composite_relation_is_rejected_without_queries(
    items: SqlAlchemyOwnerRepository[Item], statements: list[str]
) -> None:
    item = _load(items, 1)
    statements.clear()

    with pytest.raises(CompositeKeyError, match='Model "Edition" defines multiple PK fields'):
        item.attach_reference(LinkConfig(relation="editions", attribute="edition_ids"))

    assert statements == []
    assert "edition_ids" not in item.references


def test_detached_references_are_rebuilt(items: SqlAlchemyOwnerRepository[Item]) -> None:
    item = _load(items, 1)
    item.tag_ids = [4]

    item.detach_references()

    assert item.tag_ids == [1, 2, 3]
    assert item.get_reference("tag_ids") == [1, 2, 3]
