from __future__ import annotations

from linkmany.domain.reconciliation.extra_columns import (
    ComputedColumn,
    LiteralColumn,
    as_extra_column,
    compose_extra_columns,
    normalize_extra_columns,
)
from tests.support.fake_host import FakeRecord


def test_plain_values_become_literal_columns() -> None:
    assert as_extra_column("manual") == LiteralColumn("manual")
    assert as_extra_column(None) == LiteralColumn(None)


def test_callables_become_computed_columns() -> None:
    column = as_extra_column(lambda record: record.id * 2)

    assert isinstance(column, ComputedColumn)
    assert column.resolve(FakeRecord(id=4)) == 8


def test_explicit_columns_pass_through() -> None:
    literal = LiteralColumn(len)

    assert as_extra_column(literal) is literal
    assert literal.resolve(FakeRecord(id=1)) is len


def test_compose_extra_columns_resolves_each_column_once() -> None:
    seen: list[object] = []

    def rank(record: FakeRecord) -> int:
        seen.append(record.id)
        return int(record.id) * 10

    columns = normalize_extra_columns({"source": "import", "rank": rank})

    values = compose_extra_columns(columns, FakeRecord(id=3))

    assert values == {"source": "import", "rank": 30}
    assert seen == [3]


def test_compose_extra_columns_without_columns() -> None:
    assert compose_extra_columns({}, FakeRecord(id=1)) == {}
