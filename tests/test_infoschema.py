import pytest

from dbmeta.errors import NotSupportedError
from dbmeta.infoschema import InformationSchema, new
from dbmeta.infoschema_base import (
    ClauseName,
    with_check_constraints,
    with_column_privileges,
    with_constraints,
    with_custom_clauses,
    with_indexes,
    with_placeholder,
    with_table_privileges,
    with_usage_privileges,
)
from dbmeta.metadata import Bool, Filter
from dbmeta.reader import with_dry_run, with_limit


class FakeCursor:
    def __init__(self, db):
        self.db = db

    def execute(self, qstr, params):
        self.db.executed.append((qstr, tuple(params)))

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


def test_indexes_query_and_values():
    db = FakeDB()
    new()(db).indexes(Filter(schema="public", name="idx%"))
    qstr, params = db.executed[0]
    assert params == ("public", "information_schema", "idx%")
    assert "index_schema LIKE $1" in qstr
    assert "index_schema NOT IN ($2)" in qstr
    assert "index_name LIKE $3" in qstr
    assert qstr.index(" WHERE ") < qstr.index("GROUP BY")
    assert qstr.endswith("ORDER BY table_catalog, index_schema, table_name, index_name")


def test_indexes_rows_are_parsed():
    db = FakeDB([("def", "db", "t", "PRIMARY", "YES", "YES", "BTREE")])
    result = new()(db).indexes(Filter())
    assert len(result) == 1
    assert result.next()
    rec = result.get()
    assert rec.name == "PRIMARY"
    assert rec.table == "t"
    assert rec.is_unique == Bool.YES
    assert rec.is_primary == Bool.YES
    assert rec.type == "BTREE"


def test_index_columns_rows_and_placeholder():
    db = FakeDB([("def", "db", "t", "idx", "a", "int", "2")])
    reader = new(with_placeholder(lambda n: "?"))(db)
    result = reader.index_columns(Filter(parent="t", with_system=True))
    qstr, params = db.executed[0]
    assert "i.table_name LIKE ?" in qstr
    assert params == ("t",)
    rec = list(result)[0]
    assert rec.index_name == "idx"
    assert rec.ordinal_position == 2


@pytest.mark.parametrize(
    "option, method",
    [
        (with_indexes(False), "indexes"),
        (with_indexes(False), "index_columns"),
        (with_constraints(False), "constraints"),
        (with_constraints(False), "constraint_columns"),
    ],
)
def test_disabled_features_raise(option, method):
    reader = new(option)(FakeDB())
    with pytest.raises(NotSupportedError):
        getattr(reader, method)(Filter())


def test_privilege_summaries_not_supported_without_views():
    reader = new(
        with_table_privileges(False),
        with_column_privileges(False),
        with_usage_privileges(False),
    )(FakeDB())
    with pytest.raises(NotSupportedError):
        reader.privilege_summaries(Filter())


def test_constraints_join_condition_clause():
    db = FakeDB()
    new()(db).constraints(Filter())
    new(with_custom_clauses(
        {ClauseName.CONSTRAINT_JOIN_COND: "AND r.referenced_table_name = f.table_name"}
    ))(db).constraints(Filter())
    default_q, custom_q = db.executed[0][0], db.executed[1][0]
    assert "r.referenced_table_name" not in default_q
    assert "AND r.referenced_table_name = f.table_name" in custom_q
    assert "t.is_deferrable" in default_q


def test_constraints_rows_are_parsed():
    row = ("def", "db", "t", "fk_t", "FOREIGN KEY", "NO", "NO", "def", "db", "u",
           "pk_u", "NONE", "CASCADE", "RESTRICT", "")
    result = new()(FakeDB([row])).constraints(Filter())
    rec = list(result)[0]
    assert rec.type == "FOREIGN KEY"
    assert rec.is_deferrable == Bool.NO
    assert rec.foreign_table == "u"
    assert rec.update_rule == "CASCADE"
    assert rec.delete_rule == "RESTRICT"


def test_constraint_columns_with_check_constraints():
    db = FakeDB([("def", "db", "t", "fk", "a", "3", "def", "db", "u", "b")])
    result = new()(db).constraint_columns(Filter(name="fk", with_system=True))
    qstr, params = db.executed[0]
    assert "constraint_column_usage" in qstr
    assert "UNION ALL" in qstr
    assert "c.constraint_name LIKE $1" in qstr
    assert "c.constraint_name LIKE $2" in qstr
    assert params == ("fk", "fk")
    rec = list(result)[0]
    assert rec.ordinal_position == 3
    assert rec.foreign_name == "b"


def test_constraint_columns_without_check_constraints():
    db = FakeDB()
    new(with_check_constraints(False))(db).constraint_columns(Filter(name="fk", with_system=True))
    qstr, params = db.executed[0]
    assert "constraint_column_usage" not in qstr
    assert "c.constraint_name LIKE $1" in qstr
    assert params == ("fk",)


def test_privilege_summaries_are_aggregated_per_object():
    rows = [
        ("def", "db", "t1", "BASE TABLE", "", "alice", "bob", "SELECT", 1),
        ("def", "db", "t1", "BASE TABLE", "", "alice", "bob", "UPDATE", 0),
        ("def", "db", "t1", "BASE TABLE", "c1", "carol", "bob", "INSERT", 0),
        ("def", "db", "t2", "VIEW", "", "", "", "", 0),
    ]
    result = new()(FakeDB(rows)).privilege_summaries(Filter())
    summaries = list(result)
    assert [s.name for s in summaries] == ["t1", "t2"]
    assert str(summaries[0].object_privileges) == "alice=SELECT*,UPDATE/bob"
    assert str(summaries[0].column_privileges) == "c1:\n  carol=INSERT/bob"
    assert summaries[1].object_type == "VIEW"
    assert len(summaries[1].object_privileges) == 0
    assert len(summaries[1].column_privileges) == 0


def test_privilege_summaries_query_structure():
    db = FakeDB()
    reader = new(
        with_column_privileges(False),
        with_usage_privileges(False),
        with_custom_clauses({ClauseName.PRIVILEGES_GRANTOR: "''"}),
    )(db)
    reader.privilege_summaries(Filter(types=["BASE TABLE"], with_system=True))
    qstr, params = db.executed[0]
    assert qstr.startswith("SELECT * FROM (\n")
    assert ") AS subquery" in qstr
    assert "column_privileges" not in qstr
    assert "usage_privileges" not in qstr
    assert "COALESCE('', '') AS grantor" in qstr
    assert "object_type IN ($1)" in qstr
    assert params == ("BASE TABLE",)


def test_dry_run_returns_empty_sets_without_querying():
    db = FakeDB([("x",)])
    reader = new()(db, with_dry_run(True))
    assert len(reader.indexes(Filter())) == 0
    assert len(reader.constraint_columns(Filter())) == 0
    assert len(reader.privilege_summaries(Filter())) == 0
    assert db.executed == []


def test_limit_is_appended():
    db = FakeDB()
    new()(db, with_limit(7)).index_columns(Filter())
    assert db.executed[0][0].endswith("\nLIMIT 7")


def test_factory_builds_independent_readers():
    factory = new(with_indexes(False))
    first_db, second_db = FakeDB(), FakeDB()
    first = factory(first_db)
    second = factory(second_db, with_limit(3))
    assert isinstance(first, InformationSchema)
    assert first is not second
    assert first.db is first_db
    assert second.db is second_db
    assert first.limit == 0
    assert second.limit == 3
    assert first.has_indexes is False and second.has_indexes is False