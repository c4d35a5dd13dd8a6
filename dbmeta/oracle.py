"""Metadata reader for Oracle, built on the ``all_*`` data dictionary views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .errors import NoRowsError
from .infoschema_base import _flag
from .metadata import (
    Catalog,
    CatalogSet,
    Column,
    ColumnSet,
    Filter,
    Function,
    FunctionColumn,
    FunctionColumnSet,
    FunctionSet,
    Index,
    IndexColumn,
    IndexColumnSet,
    IndexSet,
    Schema,
    SchemaSet,
    Table,
    TableSet,
)
from .reader import LoggingReader, ReaderOption

SYSTEM_SCHEMAS = "'CTXSYS', 'FLOWS_FILES', 'MDSYS', 'OUTLN', 'SYS', 'SYSTEM', 'XDB', 'XS$NULL'"


@dataclass(frozen=True)
class OracleFormats:
    """Condition templates.

    ``schema`` and ``types`` take a string (``%s``); ``parent`` and ``name``
    take the number of a bind variable (``:%d``); ``not_schemas`` takes the
    quoted list of system schemas.
    """

    schema: str = ""
    not_schemas: str = ""
    parent: str = ""
    name: str = ""
    types: str = ""


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _number(value: Any) -> int:
    return 0 if value is None else int(value)


class OracleReader(LoggingReader):
    """Reads catalogs, schemas, tables, columns, functions and indexes."""

    def __init__(self, db: Any, *args: ReaderOption) -> None:
        self.system_schemas = SYSTEM_SCHEMAS
        super().__init__(db, *args)

    def _fetch(self, qstr: str, vals: Sequence[Any] = ()) -> list[tuple] | None:
        """Run a query; ``None`` when it was not run at all."""
        try:
            with self.query(qstr, *vals) as cursor:
                return [tuple(row) for row in cursor.fetchall()]
        except NoRowsError:
            return None

    def conditions(self, filter: Filter, formats: OracleFormats) -> tuple[list[str], list[Any]]:
        """Build WHERE conditions and their upper-cased values."""
        param = 1
        conds: list[str] = []
        vals: list[Any] = []
        if filter.schema and formats.schema:
            vals.append(filter.schema.upper())
            conds.append(formats.schema % f":{param}")
            param += 1
        if not filter.with_system and formats.not_schemas:
            conds.append(formats.not_schemas % self.system_schemas)
        if filter.only_visible and formats.schema:
            conds.append(formats.schema % "user")
        if filter.parent and formats.parent:
            vals.append(filter.parent.upper())
            conds.append(formats.parent % param)
            param += 1
        if filter.name and formats.name:
            vals.append(filter.name.upper())
            conds.append(formats.name % param)
            param += 1
        if filter.types and formats.types:
            holders = []
            for type_ in filter.types:
                vals.append(type_.upper())
                holders.append(f":{param}")
                param += 1
            if holders:
                conds.append(formats.types % ", ".join(holders))
        return conds, vals

    def catalogs(self, f: Filter) -> CatalogSet:
        """The database itself and the databases reachable through links."""
        qstr = (
            "SELECT\n"
            "  UPPER(Value) AS catalog\n"
            "FROM v$parameter o\n"
            "WHERE name = 'db_name'\n"
            "UNION ALL\n"
            "SELECT\n"
            "  db_link AS catalog\n"
            "FROM dba_db_links\n"
            "ORDER BY catalog\n"
        )
        rows = self._fetch(qstr) or []
        return CatalogSet([Catalog(catalog=_text(name)) for (name,) in rows], ("Catalog",))

    def schemas(self, f: Filter) -> SchemaSet:
        """Users, which are the schemas of an Oracle database."""
        qstr = "SELECT\n  username\nFROM all_users\n"
        conds, vals = self.conditions(
            f, OracleFormats(name="username LIKE :%d", not_schemas="username NOT IN (%s)")
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        qstr += "\nORDER BY username"
        rows = self._fetch(qstr, vals) or []
        return SchemaSet([Schema(schema=_text(name)) for (name,) in rows])

    def tables(self, f: Filter) -> TableSet:
        """Objects matching schemas, names and types; synonyms when asked for."""
        qstr = (
            "SELECT\n"
            "o.owner AS table_schem,\n"
            "o.object_name AS table_name,\n"
            "o.object_type AS table_type\n"
            "FROM all_objects o\n"
        )
        conds, vals = self.conditions(
            f,
            OracleFormats(
                schema="o.owner LIKE %s",
                not_schemas="o.owner NOT IN (%s)",
                name="o.object_name LIKE :%d",
                types="o.object_type IN (%s)",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        if "SYNONYM" in f.types:
            qstr += (
                "\nUNION ALL\n"
                "SELECT\n"
                "  s.owner AS table_schem,\n"
                "  s.synonym_name AS table_name,\n"
                "  'SYNONYM' AS table_type\n"
                "FROM all_synonyms s\n"
            )
            syn_conds, syn_vals = self.conditions(
                f,
                OracleFormats(
                    schema="s.owner LIKE %s",
                    not_schemas="s.owner NOT IN (%s)",
                    name="s.synonym_name LIKE :%d",
                ),
            )
            vals = vals + syn_vals
            if syn_conds:
                qstr += " WHERE " + " AND ".join(syn_conds)
        qstr += "\nORDER BY table_schem, table_name, table_type"
        rows = self._fetch(qstr, vals) or []
        return TableSet(
            [
                Table(schema=_text(schema), name=_text(name), type=_text(type_))
                for schema, name, type_ in rows
            ]
        )

    def columns(self, f: Filter) -> ColumnSet:
        """Columns of the tables matching schemas and ``f.parent``."""
        qstr = (
            "SELECT\n"
            "  c.owner,\n"
            "  c.table_name,\n"
            "  c.column_name,\n"
            "  c.column_id AS ordinal_position,\n"
            "  c.data_type,\n"
            "  CASE c.nullable\n"
            "    WHEN 'Y' THEN 'YES'\n"
            "    ELSE  'NO'  END AS nullable,\n"
            "  COALESCE(c.data_length, c.data_precision, 0),\n"
            "  COALESCE(c.data_scale, 0),\n"
            "  CASE c.data_type\n"
            "           WHEN 'FLOAT'  THEN  2\n"
            "           WHEN 'NUMBER' THEN 10\n"
            "  ELSE  0  END AS num_prec_radix,\n"
            "  COALESCE(c.char_col_decl_length, 0) as char_octet_length\n"
            "FROM all_tab_columns c\n"
        )
        conds, vals = self.conditions(
            f,
            OracleFormats(
                schema="c.owner LIKE %s",
                not_schemas="c.owner NOT IN (%s)",
                parent="c.table_name LIKE :%d",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        qstr += "\nORDER BY c.owner, c.table_name, c.column_id"
        rows = self._fetch(qstr, vals) or []
        return ColumnSet(
            [
                Column(
                    schema=_text(schema),
                    table=_text(table),
                    name=_text(name),
                    ordinal_position=_number(position),
                    data_type=_text(data_type),
                    is_nullable=_flag(nullable),
                    column_size=_number(size),
                    decimal_digits=_number(scale),
                    num_prec_radix=_number(radix),
                    char_octet_length=_number(octets),
                )
                for (schema, table, name, position, data_type, nullable, size, scale,
                     radix, octets) in rows
            ]
        )

    def functions(self, f: Filter) -> FunctionSet:
        """Procedures, functions and package members matching schemas and names."""
        qstr = (
            "SELECT\n"
            "  decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'), a.object_name)\n"
            "         ,b.object_name) as specific_name,\n"
            "  b.owner   as procedure_schem,\n"
            "  decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'), a.object_name)\n"
            "         ,b.object_name) as procedure_name,\n"
            "  decode (b.object_type,'PACKAGE',decode(a.position,0,2,1,1,0),\n"
            "          decode(b.object_type,'PROCEDURE',1,'FUNCTION',2,0)) as procedure_type\n"
            "FROM all_arguments a\n"
            "JOIN all_objects b ON b.object_id = a.object_id AND a.sequence  = 1\n"
        )
        conds, vals = self.conditions(
            f,
            OracleFormats(
                schema="b.owner LIKE %s",
                not_schemas="b.owner NOT IN (%s)",
                name="b.object_name LIKE :%d",
                types="b.object_type IN (%s)",
            ),
        )
        conds.append(
            "(b.object_type = 'PROCEDURE' OR b.object_type = 'FUNCTION'"
            " OR b.object_type = 'PACKAGE')"
        )
        qstr += " WHERE " + " AND ".join(conds)
        qstr += "\nORDER BY procedure_schem, procedure_name, procedure_type"
        rows = self._fetch(qstr, vals) or []
        return FunctionSet(
            [
                Function(
                    specific_name=_text(specific),
                    schema=_text(schema),
                    name=_text(name),
                    type=_text(type_),
                )
                for specific, schema, name, type_ in rows
            ]
        )

    def function_columns(self, f: Filter) -> FunctionColumnSet:
        """Arguments of the procedures and functions matching ``f.parent``."""
        qstr = (
            "SELECT\n"
            "     a.owner   as procedure_schem,\n"
            "     decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'),a.object_name),\n"
            "             b.object_name) as procedure_name,\n"
            "     decode(a.position,0,'RETURN_VALUE',a.argument_name) as column_name,\n"
            "     a.position       as ordinal_position,\n"
            "     decode(a.position,0,5,decode(a.in_out,'IN',1,'IN/OUT',2,'OUT',4))"
            " as column_type,\n"
            "     a.data_type      as type_name,\n"
            "     COALESCE(a.data_length, a.data_precision, 0) as column_size,\n"
            "     COALESCE(a.data_scale, 0) as decimal_digits,\n"
            "     COALESCE(a.radix, 0) as num_prec_radix\n"
            "FROM all_objects b\n"
            "JOIN all_arguments a ON b.object_id = a.object_id AND a.data_level = 0\n"
        )
        conds, vals = self.conditions(
            f,
            OracleFormats(
                schema="a.owner LIKE %s",
                not_schemas="a.owner NOT IN (%s)",
                parent="b.object_name LIKE :%d",
            ),
        )
        conds.append("b.object_type = 'PROCEDURE' OR b.object_type = 'FUNCTION'")
        qstr += " WHERE " + " AND ".join(conds)
        qstr += "\nORDER BY procedure_schem, procedure_name, ordinal_position"
        rows = self._fetch(qstr, vals) or []
        return FunctionColumnSet(
            [
                FunctionColumn(
                    schema=_text(schema),
                    function_name=_text(function_name),
                    name=_text(name),
                    ordinal_position=_number(position),
                    type=_text(type_),
                    data_type=_text(data_type),
                    column_size=_number(size),
                    decimal_digits=_number(scale),
                    num_prec_radix=_number(radix),
                )
                for (schema, function_name, name, position, type_, data_type, size,
                     scale, radix) in rows
            ]
        )

    def indexes(self, f: Filter) -> IndexSet:
        """Indexes matching schemas, tables and names."""
        qstr = (
            "SELECT\n"
            "  o.owner,\n"
            "  o.table_name,\n"
            "  o.index_name,\n"
            "  decode(o.uniqueness,'UNIQUE','NO','YES')\n"
            "FROM all_indexes o\n"
        )
        conds, vals = self.conditions(
            f,
            OracleFormats(
                schema="o.owner LIKE %s",
                not_schemas="o.owner NOT IN (%s)",
                parent="o.table_name LIKE :%d",
                name="o.index_name LIKE :%d",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        qstr += "\nORDER BY o.owner, o.table_name, o.index_name"
        rows = self._fetch(qstr, vals) or []
        return IndexSet(
            [
                Index(
                    schema=_text(schema),
                    table=_text(table),
                    name=_text(name),
                    is_unique=_flag(unique),
                )
                for schema, table, name, unique in rows
            ]
        )

    def index_columns(self, f: Filter) -> IndexColumnSet:
        """Columns of the indexes matching schemas, tables and names."""
        qstr = (
            "SELECT\n"
            "  o.owner,\n"
            "  o.table_name,\n"
            "  o.index_name,\n"
            "  b.column_name,\n"
            "  b.column_position\n"
            "FROM all_indexes o\n"
            "JOIN all_ind_columns b ON o.owner = b.index_owner AND o.index_name = b.index_name\n"
        )
        conds, vals = self.conditions(
            f,
            OracleFormats(
                schema="o.owner LIKE %s",
                not_schemas="o.owner NOT IN (%s)",
                parent="o.table_name LIKE :%d",
                name="o.index_name LIKE :%d",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        qstr += "\nORDER BY o.owner, o.table_name, o.index_name, b.column_position"
        rows = self._fetch(qstr, vals) or []
        return IndexColumnSet(
            [
                IndexColumn(
                    schema=_text(schema),
                    table=_text(table),
                    index_name=_text(index_name),
                    name=_text(name),
                    ordinal_position=_number(position),
                )
                for schema, table, index_name, name, position in rows
            ]
        )


def new_reader(db: Any, *args: ReaderOption) -> OracleReader:
    """Build an Oracle reader over a DB-API connection."""
    return OracleReader(db, *args)