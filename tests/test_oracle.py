import pytest

from dbmeta.metadata import Bool, Filter
from dbmeta.oracle import SYSTEM_SCHEMAS, OracleFormats, OracleReader, new_reader
from dbmeta.reader import with_dry_run


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rows = []
        self.description = None

    def execute(self, query, params=None):
        self.conn.queries.append((query, tuple(params or ())))
        self.rows = self.conn.results.pop(0) if self.conn.results else []
        return self

    def fetchall(self):
        rows, self.rows = self.rows, []
        return rows

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def __iter__(self):
        return iter(self.fetchall())

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeConnection:
    def __init__(self, *results):
        self.results = list(results)
        self.queries = []

    def cursor(self):
        return FakeCursor(self)

    def execute(self, query, params=None):
        return self.cursor().execute(query, params)


def test_conditions_default_excludes_system_schemas():
    reader = new_reader(FakeConnection())
    conds, vals = reader.conditions(
        Filter(), OracleFormats(schema="o.owner LIKE %s", not_schemas="o.owner NOT IN (%s)")
    )
    assert conds == ["o.owner NOT IN (" + SYSTEM_SCHEMAS + ")"]
    assert vals == []


def test_conditions_upper_cases_and_numbers_placeholders():
    reader = new_reader(FakeConnection())
    formats = OracleFormats(
        schema="o.owner LIKE %s",
        parent="o.table_name LIKE :%d",
        name="o.index_name LIKE :%d",
        types="o.object_type IN (%s)",
    )
    f = Filter(schema="hr", parent="emp%", name="idx", types=["table", "view"], with_system=True)
    conds, vals = reader.conditions(f, formats)
    assert vals == ["HR", "EMP%", "IDX", "TABLE", "VIEW"]
    assert conds == [
        "o.owner LIKE :1",
        "o.table_name LIKE :2",
        "o.index_name LIKE :3",
        "o.object_type IN (:4, :5)",
    ]


def test_conditions_only_visible_uses_current_user():
    reader = new_reader(FakeConnection())
    conds, vals = reader.conditions(
        Filter(only_visible=True, with_system=True), OracleFormats(schema="o.owner LIKE %s")
    )
    assert conds == ["o.owner LIKE user"]
    assert vals == []


def test_schemas_reads_usernames():
    conn = FakeConnection([("HR",), ("SCOTT",)])
    result = new_reader(conn).schemas(Filter(name="s%"))
    assert [s.schema for s in result] == ["HR", "SCOTT"]
    query, params = conn.queries[0]
    assert "username LIKE :1" in query
    assert params == ("S%",)


def test_tables_with_synonyms_adds_union():
    conn = FakeConnection([("HR", "EMP", "TABLE"), ("HR", "E", "SYNONYM")])
    result = new_reader(conn).tables(Filter(name="e%", types=["TABLE", "SYNONYM"]))
    records = list(result)
    assert [(t.schema, t.name, t.type) for t in records] == [
        ("HR", "EMP", "TABLE"),
        ("HR", "E", "SYNONYM"),
    ]
    query, params = conn.queries[0]
    assert "FROM all_synonyms s" in query
    assert "UNION ALL" in query
    assert params == ("E%", "TABLE", "SYNONYM", "E%")


def test_columns_map_nullable_flag():
    conn = FakeConnection([("HR", "EMP", "ID", 1, "NUMBER", "NO", 22, 0, 10, 0)])
    result = list(new_reader(conn).columns(Filter(parent="emp")))
    assert len(result) == 1
    col = result[0]
    assert col.is_nullable == Bool.NO
    assert col.data_type == "NUMBER"
    assert col.num_prec_radix == 10
    assert conn.queries[0][1] == ("EMP",)


def test_functions_always_restrict_object_type():
    conn = FakeConnection([("P", "HR", "P", 1)])
    result = list(new_reader(conn).functions(Filter(with_system=True)))
    assert [(fn.name, fn.type) for fn in result] == [("P", "1")]
    assert "b.object_type = 'PACKAGE'" in conn.queries[0][0]


def test_indexes_and_index_columns():
    conn = FakeConnection(
        [("HR", "EMP", "EMP_PK", "NO")],
        [("HR", "EMP", "EMP_PK", "ID", 1)],
    )
    reader = new_reader(conn)
    indexes = list(reader.indexes(Filter(parent="emp")))
    assert indexes[0].is_unique == Bool.NO
    columns = list(reader.index_columns(Filter(parent="emp")))
    assert [(c.index_name, c.name, c.ordinal_position) for c in columns] == [("EMP_PK", "ID", 1)]


def test_catalogs():
    conn = FakeConnection([("ORCL",), ("REMOTE",)])
    result = list(new_reader(conn).catalogs(Filter()))
    assert [c.catalog for c in result] == ["ORCL", "REMOTE"]


def test_dry_run_returns_empty_sets():
    conn = FakeConnection([("HR",)])
    reader = OracleReader(conn, with_dry_run(True))
    assert list(reader.schemas(Filter())) == []
    assert list(reader.tables(Filter())) == []
    assert conn.queries == []


@pytest.mark.parametrize("with_system", [True, False])
def test_not_schemas_condition_follows_with_system(with_system):
    reader = new_reader(FakeConnection())
    conds, _ = reader.conditions(
        Filter(with_system=with_system), OracleFormats(not_schemas="x NOT IN (%s)")
    )
    assert (len(conds) == 0) is with_system