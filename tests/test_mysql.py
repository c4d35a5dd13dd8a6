import pytest

from dbmeta.errors import NotSupportedError
from dbmeta.metadata import Filter
from dbmeta.mysql import SYSTEM_SCHEMAS, new_reader
from dbmeta.reader import with_limit


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rows = []

    def execute(self, qstr, args):
        self.conn.executed.append((qstr, list(args)))
        self.rows = self.conn.results.pop(0) if self.conn.results else []

    def fetchall(self):
        return self.rows

    def close(self):
        pass


class FakeConnection:
    def __init__(self, *results):
        self.results = list(results)
        self.executed = []

    def cursor(self):
        return FakeCursor(self)


def test_schemas_exclude_system_schemas_with_question_marks():
    conn = FakeConnection([("sakila", "def"), ("world", "def")])
    result = new_reader(conn).schemas(Filter())
    assert [s.schema for s in result] == ["sakila", "world"]
    qstr, args = conn.executed[0]
    assert args == list(SYSTEM_SCHEMAS)
    assert "schema_name NOT IN (?, ?, ?, ?)" in qstr
    assert "$" not in qstr


def test_schemas_with_system_lists_all():
    conn = FakeConnection([("mysql", "def")])
    result = new_reader(conn).schemas(Filter(with_system=True))
    assert len(result) == 1
    assert conn.executed[0][1] == []


def test_sequences_not_supported():
    with pytest.raises(NotSupportedError):
        new_reader(FakeConnection()).sequences(Filter())


def test_tables_never_union_sequences():
    conn = FakeConnection([])
    new_reader(conn).tables(Filter(types=["BASE TABLE", "SEQUENCE"]))
    qstr, args = conn.executed[0]
    assert "information_schema.sequences" not in qstr
    assert args == list(SYSTEM_SCHEMAS) + ["BASE TABLE", "SEQUENCE"]


def test_only_visible_uses_current_database():
    conn = FakeConnection([])
    new_reader(conn).tables(Filter(only_visible=True, with_system=True))
    assert "table_schema LIKE COALESCE(DATABASE(), '%')" in conn.executed[0][0]


def test_columns_use_column_type():
    conn = FakeConnection(
        [("def", "sakila", "film", "title", 1, "varchar(255)", "", "NO", 255, 0, 10, 1020)]
    )
    result = new_reader(conn).columns(Filter(schema="sakila", parent="film"))
    assert [c.data_type for c in result] == ["varchar(255)"]
    qstr = conn.executed[0][0]
    assert "column_type" in qstr
    assert "numeric_precision_radix" not in qstr


def test_constraints_join_condition():
    conn = FakeConnection([])
    new_reader(conn).constraints(Filter())
    assert "AND r.referenced_table_name = f.table_name" in conn.executed[0][0]


def test_constraint_columns_skip_check_constraints():
    conn = FakeConnection([])
    new_reader(conn).constraint_columns(Filter())
    qstr = conn.executed[0][0]
    assert "constraint_column_usage" not in qstr
    assert "key_column_usage" in qstr


def test_privilege_summaries_skip_usage_privileges():
    conn = FakeConnection([])
    new_reader(conn).privilege_summaries(Filter())
    qstr = conn.executed[0][0]
    assert "usage_privileges" not in qstr
    assert "table_privileges" in qstr


def test_limit_option():
    conn = FakeConnection([])
    new_reader(conn, with_limit(1000)).schemas(Filter())
    assert conn.executed[0][0].endswith("LIMIT 1000")


def test_readers_are_independent():
    first = new_reader(FakeConnection(), with_limit(1000))
    second = new_reader(FakeConnection())
    assert first.limit == 1000
    assert second.limit == 0