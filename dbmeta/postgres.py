"""Metadata reader for PostgreSQL, built on the system catalogs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .infoschema import new as new_information_schema
from .infoschema_base import (
    ClauseName,
    with_current_schema,
    with_custom_clauses,
    with_data_type_formatter,
    with_indexes,
    with_system_schemas,
    _flag,
)
from .errors import NoRowsError
from .metadata import (
    Catalog,
    CatalogSet,
    Column,
    ColumnStat,
    ColumnStatSet,
    Filter,
    Index,
    IndexColumn,
    IndexColumnSet,
    IndexSet,
    Table,
    TableSet,
    Trigger,
    TriggerSet,
)
from .reader import LoggingReader, PluginReader, ReaderOption

CATALOG_COLUMNS = ("Catalog", "Owner", "Encoding", "Collate", "Ctype", "Access privileges")

_COLUMN_SIZE = (
    "COALESCE(character_maximum_length, numeric_precision, datetime_precision, "
    "interval_precision, 0)"
)

_TABLE_KINDS = {
    "TABLE": ("r", "p", "s", "f"),
    "VIEW": ("v",),
    "MATERIALIZED VIEW": ("m",),
    "SEQUENCE": ("S",),
}


def data_type_formatter(col: Column) -> str:
    """Spell out a column's data type with its size, as PostgreSQL displays it."""
    data_type, size = col.data_type, col.column_size
    if data_type in ("bit", "character"):
        return f"{data_type}({size})"
    if data_type in ("bit varying", "character varying"):
        return f"{data_type}({size})" if size else data_type
    if data_type == "numeric":
        return f"numeric({size},{col.decimal_digits})" if size else data_type
    if data_type == "time without time zone":
        return f"time({size}) without time zone"
    if data_type == "time with time zone":
        return f"time({size}) with time zone"
    if data_type == "timestamp without time zone":
        return f"timestamp({size}) without time zone"
    if data_type == "timestamp with time zone":
        return f"timestamp({size}) with time zone"
    return data_type


def parse_pg_array(value: Any) -> list[str | None]:
    """Parse a one-dimensional array literal such as ``{a,"b c",NULL}``.

    ``None`` gives an empty list; a list or tuple is returned as a list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    text = str(value).strip()
    if len(text) < 2 or text[0] != "{" or text[-1] != "}":
        raise ValueError(f"not an array literal: {value!r}")
    body = text[1:-1]
    if not body:
        return []
    items: list[str | None] = []
    chars = iter(body)
    current: list[str] = []
    quoted = False
    in_quotes = False
    for ch in chars:
        if in_quotes:
            if ch == "\\":
                escaped = next(chars, None)
                if escaped is None:
                    raise ValueError(f"unterminated escape in {value!r}")
                current.append(escaped)
            elif ch == '"':
                in_quotes = False
            else:
                current.append(ch)
        elif ch == '"':
            if current:
                raise ValueError(f"unexpected quote in {value!r}")
            quoted = in_quotes = True
        elif ch == ",":
            items.append(_array_item(current, quoted))
            current, quoted = [], False
        elif ch in "{}":
            raise ValueError(f"nested arrays are not supported: {value!r}")
        elif ch == "\\":
            escaped = next(chars, None)
            if escaped is None:
                raise ValueError(f"unterminated escape in {value!r}")
            current.append(escaped)
        else:
            current.append(ch)
    if in_quotes:
        raise ValueError(f"unterminated quote in {value!r}")
    items.append(_array_item(current, quoted))
    return items


def _array_item(chars: list[str], quoted: bool) -> str | None:
    item = "".join(chars)
    if quoted:
        return item
    item = item.strip()
    if item.upper() == "NULL":
        return None
    return item


@dataclass
class PostgresCatalog(Catalog):
    """A database with its owner, encoding, locale and access privileges."""

    owner: str = ""
    encoding: str = ""
    collate: str = ""
    ctype: str = ""
    access_privileges: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.owner,
            self.encoding,
            self.collate,
            self.ctype,
            self.access_privileges,
        ]

    def get_catalog(self) -> Catalog:
        return Catalog(catalog=self.catalog)


class PostgresReader(LoggingReader):
    """Reads catalogs, tables, column statistics, indexes and triggers."""

    def __init__(self, db: Any, *args: ReaderOption) -> None:
        self.limit = 0
        super().__init__(db, *args)

    def set_limit(self, limit: int) -> None:
        """Limit the number of rows every query returns; 0 means no limit."""
        self.limit = limit

    def _fetch(
        self, qstr: str, conds: Sequence[str], order: str, vals: Sequence[Any]
    ) -> list[tuple]:
        if conds:
            qstr += "\nWHERE " + " AND ".join(conds)
        if order:
            qstr += "\nORDER BY " + order
        if self.limit:
            qstr += f"\nLIMIT {self.limit}"
        with self.query(qstr, *vals) as cursor:
            return [tuple(row) for row in cursor.fetchall()]

    def catalogs(self, f: Filter) -> CatalogSet:
        """All databases of the server."""
        qstr = (
            'SELECT d.datname as "Name",\n'
            '       pg_catalog.pg_get_userbyid(d.datdba) as "Owner",\n'
            '       pg_catalog.pg_encoding_to_char(d.encoding) as "Encoding",\n'
            '       d.datcollate as "Collate",\n'
            '       d.datctype as "Ctype",\n'
            "       COALESCE(pg_catalog.array_to_string(d.datacl, E'\\n'),'')"
            ' AS "Access privileges"\n'
            "FROM pg_catalog.pg_database d"
        )
        rows = self._fetch(qstr, [], "1", [])
        results = [
            PostgresCatalog(
                catalog=name,
                owner=owner,
                encoding=encoding,
                collate=collate,
                ctype=ctype,
                access_privileges=privileges,
            )
            for name, owner, encoding, collate, ctype, privileges in rows
        ]
        return CatalogSet(results, CATALOG_COLUMNS)

    def tables(self, f: Filter) -> TableSet:
        """Relations matching schemas, names and types, with size estimates."""
        qstr = (
            'SELECT n.nspname as "Schema",\n'
            '  c.relname as "Name",\n'
            "  CASE c.relkind WHEN 'r' THEN 'table' WHEN 'v' THEN 'view'"
            " WHEN 'm' THEN 'materialized view' WHEN 'i' THEN 'index'"
            " WHEN 'S' THEN 'sequence' WHEN 's' THEN 'special'"
            " WHEN 'f' THEN 'foreign table' WHEN 'p' THEN 'partitioned table'"
            " WHEN 'I' THEN 'partitioned index' ELSE 'unknown' END as \"Type\",\n"
            "  COALESCE((c.reltuples / NULLIF(c.relpages, 0)) * "
            "(pg_catalog.pg_relation_size(c.oid) / current_setting('block_size')::int), 0)"
            '::bigint as "Rows",\n'
            '  pg_catalog.pg_size_pretty(pg_catalog.pg_table_size(c.oid)) as "Size",\n'
            "  COALESCE(pg_catalog.obj_description(c.oid, 'pg_class'), '')"
            ' as "Description"\n'
            "FROM pg_catalog.pg_class c\n"
            "     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace\n"
        )
        conds = ["n.nspname !~ '^pg_toast' AND c.relkind != 'c'"]
        vals: list[Any] = []
        if f.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        if not f.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'information_schema')")
        if f.schema:
            vals.append(f.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if f.name:
            vals.append(f.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if f.types:
            holders = ["''"]
            for type_ in f.types:
                for kind in _TABLE_KINDS.get(type_, ()):
                    vals.append(kind)
                    holders.append(f"${len(vals)}")
            conds.append(f"c.relkind IN ({', '.join(holders)})")
        try:
            rows = self._fetch(qstr, conds, "1, 3, 2", vals)
        except NoRowsError:
            return TableSet([])
        return TableSet(
            [
                Table(
                    schema=schema,
                    name=name,
                    type=type_,
                    rows=int(row_count),
                    size=size,
                    comment=comment,
                )
                for schema, name, type_, row_count, size, comment in rows
            ]
        )

    def column_stats(self, f: Filter) -> ColumnStatSet:
        """Planner statistics of the columns of the tables matching ``f.parent``."""
        tables = self.tables(Filter(schema=f.schema, name=f.parent, with_system=True))
        first = next(iter(tables), None)
        row_num = first.rows if first is not None else 0

        qstr = (
            "\nSELECT\n"
            "  n.nspname,\n"
            "  c.relname,\n"
            "  a.attname,\n"
            "  COALESCE(s.avg_width, 0),\n"
            "  COALESCE(s.null_frac, 0.0),\n"
            "  COALESCE(CASE WHEN n_distinct >= 0 THEN n_distinct"
            " ELSE (-n_distinct * $1) END::bigint, 0) AS n_distinct,\n"
            "  COALESCE((histogram_bounds::text::text[])[1], ''),\n"
            "  COALESCE((histogram_bounds::text::text[])"
            "[array_length(histogram_bounds::text::text[], 1)], ''),\n"
            "  most_common_vals::text::text[],\n"
            "  most_common_freqs::text::text[]\n"
            "FROM pg_catalog.pg_namespace n\n"
            "JOIN pg_catalog.pg_class c ON c.relnamespace = n.oid\n"
            "JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum > 0\n"
            "LEFT JOIN pg_catalog.pg_stats s ON n.nspname = s.schemaname"
            " AND c.relname = s.tablename AND a.attname = s.attname\n"
        )
        conds: list[str] = []
        vals: list[Any] = [row_num]
        if f.schema:
            vals.append(f.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if f.parent:
            vals.append(f.parent)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if f.name:
            vals.append(f.name)
            conds.append(f"a.attname LIKE ${len(vals)}")
        rows = self._fetch(qstr, conds, "a.attnum", vals)
        results = []
        for (schema, table, name, avg_width, null_frac, distinct, minimum, maximum,
             top_n, top_n_freqs) in rows:
            results.append(
                ColumnStat(
                    schema=schema,
                    table=table,
                    name=name,
                    avg_width=int(avg_width),
                    null_frac=float(null_frac),
                    num_distinct=int(distinct),
                    min=minimum,
                    max=maximum,
                    top_n=parse_pg_array(top_n),
                    top_n_freqs=[float(v) for v in parse_pg_array(top_n_freqs)],
                )
            )
        return ColumnStatSet(results)

    def indexes(self, f: Filter) -> IndexSet:
        """Indexes matching schemas, tables and names, with their access methods."""
        qstr = (
            "\nSELECT\n"
            "  'postgres' as \"Catalog\",\n"
            '  n.nspname as "Schema",\n'
            '  c2.relname as "Table",\n'
            '  c.relname as "Name",\n'
            "  CASE i.indisprimary WHEN TRUE THEN 'YES' ELSE 'NO' END,\n"
            "  CASE i.indisunique WHEN TRUE THEN 'YES' ELSE 'NO' END,\n"
            "  COALESCE(am.amname,\n"
            "    CASE c.relkind\n"
            "      WHEN 'i' THEN 'index'\n"
            "      WHEN 'I' THEN 'partitioned index'\n"
            "    END\n"
            '   ) as "Type"\n'
            "FROM pg_catalog.pg_class c\n"
            "     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace\n"
            "     LEFT JOIN pg_catalog.pg_index i ON i.indexrelid = c.oid\n"
            "     LEFT JOIN pg_catalog.pg_class c2 ON i.indrelid = c2.oid\n"
            "     LEFT JOIN pg_am am ON am.oid=c.relam"
        )
        conds = ["c.relkind IN ('i','I','')", "n.nspname !~ '^pg_toast'"]
        if f.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        vals: list[Any] = []
        if not f.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'information_schema')")
        if f.schema:
            vals.append(f.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if f.parent:
            vals.append(f.parent)
            conds.append(f"c2.relname LIKE ${len(vals)}")
        if f.name:
            vals.append(f.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        rows = self._fetch(qstr, conds, "1, 2, 4", vals)
        # The columns are read in this order on purpose: unique first, then primary.
        return IndexSet(
            [
                Index(
                    catalog=catalog,
                    schema=schema,
                    table=table,
                    name=name,
                    is_unique=_flag(unique),
                    is_primary=_flag(primary),
                    type=type_ or "",
                )
                for catalog, schema, table, name, unique, primary, type_ in rows
            ]
        )

    def index_columns(self, f: Filter) -> IndexColumnSet:
        """Columns of the indexes matching schemas, tables and names."""
        qstr = (
            "\nSELECT\n"
            "  'postgres' as \"Catalog\",\n"
            '  n.nspname as "Schema",\n'
            '  c2.relname as "Table",\n'
            '  c.relname as "IndexName",\n'
            '  a.attname AS "Name",\n'
            '  pg_catalog.format_type(a.atttypid, a.atttypmod) AS "DataType",\n'
            '  a.attnum AS "OrdinalPosition"\n'
            "FROM pg_catalog.pg_class c\n"
            "     JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace\n"
            "     JOIN pg_catalog.pg_index i ON i.indexrelid = c.oid\n"
            "     JOIN pg_catalog.pg_class c2 ON i.indrelid = c2.oid\n"
            "     JOIN pg_catalog.pg_attribute a ON c.oid = a.attrelid\n"
        )
        conds = [
            "c.relkind IN ('i','I','')",
            "n.nspname <> 'pg_catalog'",
            "n.nspname <> 'information_schema'",
            "n.nspname !~ '^pg_toast'",
            "a.attnum > 0",
            "NOT a.attisdropped",
        ]
        if f.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        vals: list[Any] = []
        if not f.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'pg_toast', 'information_schema')")
        if f.schema:
            vals.append(f.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if f.parent:
            vals.append(f.parent)
            conds.append(f"c2.relname LIKE ${len(vals)}")
        if f.name:
            vals.append(f.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        rows = self._fetch(qstr, conds, "1, 2, 3, 4, 7", vals)
        return IndexColumnSet(
            [
                IndexColumn(
                    catalog=catalog,
                    schema=schema,
                    table=table,
                    index_name=index_name,
                    name=name,
                    data_type=data_type,
                    ordinal_position=int(position),
                )
                for catalog, schema, table, index_name, name, data_type, position in rows
            ]
        )

    def triggers(self, f: Filter) -> TriggerSet:
        """User-visible triggers matching schemas, tables and names."""
        qstr = (
            "SELECT\n"
            "  n.nspname,\n"
            "  c.relname,\n"
            "  t.tgname,\n"
            "  pg_catalog.pg_get_triggerdef(t.oid, true)\n"
            "FROM\n"
            "  pg_catalog.pg_trigger t\n"
            "  JOIN pg_catalog.pg_class c ON c.oid = t.tgrelid\n"
            "  LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace"
        )
        conds = [
            "(\n"
            "  NOT t.tgisinternal OR (t.tgisinternal AND t.tgenabled = 'D')\n"
            "    OR\n"
            "      EXISTS (SELECT 1 FROM pg_catalog.pg_depend WHERE objid = t.oid\n"
            "    AND\n"
            "      refclassid = 'pg_catalog.pg_trigger'::pg_catalog.regclass)\n"
            ")"
        ]
        vals: list[Any] = []
        if f.schema:
            vals.append(f.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if f.parent:
            vals.append(f.parent)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if f.name:
            vals.append(f.name)
            conds.append(f"t.tgname LIKE ${len(vals)}")
        rows = self._fetch(qstr, conds, "t.tgname", vals)
        return TriggerSet(
            [
                Trigger(schema=schema, table=table, name=name, definition=definition)
                for schema, table, name, definition in rows
            ]
        )


_information_schema = new_information_schema(
    with_indexes(False),
    with_custom_clauses(
        {
            ClauseName.COLUMNS_COLUMN_SIZE: _COLUMN_SIZE,
            ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE: _COLUMN_SIZE,
        }
    ),
    with_system_schemas(["pg_catalog", "pg_toast", "information_schema"]),
    with_current_schema("CURRENT_SCHEMA"),
    with_data_type_formatter(data_type_formatter),
)


def new_reader(db: Any, *args: ReaderOption) -> PluginReader:
    """Build a PostgreSQL reader over a DB-API connection.

    The system catalogs serve what they can; the information schema serves
    the rest.
    """
    return PluginReader(_information_schema(db, *args), PostgresReader(db, *args))