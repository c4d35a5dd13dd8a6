import sqlite3

import pytest

from dbmeta.errors import NotSupportedError
from dbmeta.infoschema_base import (
    ClauseName,
    Formats,
    InformationSchemaBase,
    with_current_schema,
    with_custom_clauses,
    with_data_type_formatter,
    with_functions,
    with_placeholder,
    with_sequences,
    with_system_schemas,
)
from dbmeta.metadata import Bool, Filter
from dbmeta.reader import with_dry_run, with_limit, with_logger


class FakeCursor:
    def __init__(self, db):
        self.db = db

    def execute(self, qstr, args):
        self.db.executed.append((qstr, tuple(args)))

    def fetchall(self):
        return list(self.db.rows)

    def close(self):
        pass


class FakeDB:
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.executed = []

    def cursor(self):
        return FakeCursor(self)


SCHEMA_FORMATS = Formats(
    catalog="cat LIKE %s",
    schema="sch LIKE %s",
    not_schemas="sch NOT IN (%s)",
    name="nm LIKE %s",
    types="tp IN (%s)",
)


def test_conditions_excludes_system_schemas():
    reader = InformationSchemaBase(FakeDB())
    conds, vals = reader.conditions(1, Filter(catalog="c", schema="s"), SCHEMA_FORMATS)
    assert conds == ["cat LIKE $1", "sch LIKE $2", "sch NOT IN ($3)"]
    assert vals == ["c", "s", "information_schema"]


def test_conditions_keeps_requested_system_schema():
    reader = InformationSchemaBase(FakeDB(), [with_system_schemas(["a", "b"])])
    conds, vals = reader.conditions(1, Filter(schema="a"), SCHEMA_FORMATS)
    assert vals == ["a", "b"]
    assert conds[-1] == "sch NOT IN ($2)"


def test_conditions_with_system_and_types():
    reader = InformationSchemaBase(FakeDB(), [with_placeholder(lambda n: "?")])
    conds, vals = reader.conditions(
        5, Filter(with_system=True, types=["VIEW", "TABLE"]), SCHEMA_FORMATS
    )
    assert conds == ["tp IN (?, ?)"]
    assert vals == ["VIEW", "TABLE"]


def test_conditions_only_visible_uses_current_schema():
    reader = InformationSchemaBase(
        FakeDB(), [with_current_schema("CURRENT_SCHEMA"), with_system_schemas([])]
    )
    conds, vals = reader.conditions(1, Filter(only_visible=True), SCHEMA_FORMATS)
    assert conds == ["sch LIKE CURRENT_SCHEMA"]
    assert vals == []


def test_columns_parses_rows_and_formats_type():
    db = FakeDB([("db", "public", "t", "id", 1, "integer", "", "NO", 32, 0, 2, 0)])
    reader = InformationSchemaBase(
        db,
        [with_data_type_formatter(lambda c: f"{c.data_type}({c.column_size})")],
        [with_limit(10)],
    )
    result = reader.columns(Filter(parent="t"))
    assert result.next()
    col = result.get()
    assert col.data_type == "integer(32)"
    assert col.is_nullable == Bool.NO
    assert col.num_prec_radix == 2
    assert not result.next()
    qstr, args = db.executed[0]
    assert qstr.endswith("\nLIMIT 10")
    assert "ORDER BY table_catalog, table_schema, table_name, ordinal_position" in qstr
    assert args == ("information_schema", "t")


def test_custom_clause_replaces_expression():
    db = FakeDB()
    reader = InformationSchemaBase(
        db, [with_custom_clauses({ClauseName.COLUMNS_DATA_TYPE: "column_type"})]
    )
    reader.columns(Filter())
    assert "column_type" in db.executed[0][0]
    assert reader.clauses[ClauseName.COLUMNS_DATA_TYPE] == "column_type"


def test_dry_run_returns_empty_and_logs():
    db = FakeDB([("x", "y")])
    logged = []
    reader = InformationSchemaBase(db, [], [with_dry_run(True), with_logger(logged.append)])
    result = reader.schemas(Filter())
    assert len(result) == 0
    assert db.executed == []
    assert "information_schema.schemata" in logged[0]


def test_functions_not_supported():
    reader = InformationSchemaBase(FakeDB(), [with_functions(False)])
    with pytest.raises(NotSupportedError):
        reader.functions(Filter())
    with pytest.raises(NotSupportedError):
        reader.function_columns(Filter())


def test_sequences_not_supported():
    reader = InformationSchemaBase(FakeDB(), [with_sequences(False)])
    with pytest.raises(NotSupportedError):
        reader.sequences(Filter())


def test_tables_adds_sequences_union():
    db = FakeDB()
    reader = InformationSchemaBase(db)
    reader.tables(Filter(types=["SEQUENCE"]))
    qstr, args = db.executed[0]
    assert "FROM information_schema.sequences" in qstr
    assert "sequence_schema NOT IN ($3)" in qstr
    assert args == ("information_schema", "SEQUENCE", "information_schema")


def test_functions_and_sequences_map_rows():
    db = FakeDB([("f_1", "db", "public", "f", "FUNCTION", "int", "body", "SQL", "YES", "DEFINER")])
    reader = InformationSchemaBase(db)
    fn = list(reader.functions(Filter()))[0]
    assert (fn.specific_name, fn.name, fn.result_type, fn.security) == (
        "f_1", "f", "int", "DEFINER"
    )
    db.rows = [("db", "public", "seq", "bigint", "1", "1", "100", "1", "NO")]
    seq = list(reader.sequences(Filter()))[0]
    assert seq.cycles == Bool.NO
    assert seq.values() == ["bigint", "1", "1", "100", "1", Bool.NO]


@pytest.fixture
def sqlite_db():
    conn = sqlite3.connect(":memory:")
    conn.execute("ATTACH DATABASE ':memory:' AS information_schema")
    conn.execute(
        "CREATE TABLE information_schema.tables "
        "(table_catalog TEXT, table_schema TEXT, table_name TEXT, table_type TEXT)"
    )
    conn.executemany(
        "INSERT INTO information_schema.tables VALUES (?, ?, ?, ?)",
        [
            ("main", "public", "users", "BASE TABLE"),
            ("main", "public", "orders", "BASE TABLE"),
            ("main", "information_schema", "tables", "VIEW"),
        ],
    )
    conn.execute(
        "CREATE TABLE information_schema.schemata (schema_name TEXT, catalog_name TEXT)"
    )
    conn.executemany(
        "INSERT INTO information_schema.schemata VALUES (?, ?)",
        [("public", "main"), ("information_schema", "main")],
    )
    yield conn
    conn.close()


def test_sqlite_tables_and_schemas(sqlite_db):
    reader = InformationSchemaBase(
        sqlite_db, [with_placeholder(lambda n: "?"), with_sequences(False)]
    )
    names = [t.name for t in reader.tables(Filter(schema="public"))]
    assert names == ["orders", "users"]
    schemas = [s.schema for s in reader.schemas(Filter())]
    assert schemas == ["public"]
    all_schemas = [s.schema for s in reader.schemas(Filter(with_system=True))]
    assert all_schemas == ["information_schema", "public"]