"""Metadata reader over the standard ``information_schema`` views.

The reader tries to be database agnostic; options describe which views
exist and which expressions to use for some of the columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from .errors import NoRowsError, NotSupportedError
from .metadata import (
    Bool,
    Column,
    ColumnSet,
    Filter,
    Function,
    FunctionColumn,
    FunctionColumnSet,
    FunctionSet,
    Schema,
    SchemaSet,
    Sequence as SequenceRecord,
    SequenceSet,
    Table,
    TableSet,
)
from .reader import LoggingReader, ReaderOption


class ClauseName(str, Enum):
    """Names of column expressions that a database may replace."""

    COLUMNS_DATA_TYPE = "columns.data_type"
    COLUMNS_COLUMN_SIZE = "columns.column_size"
    COLUMNS_NUMERIC_SCALE = "columns.numeric_scale"
    COLUMNS_NUMERIC_PREC_RADIX = "columns.numeric_precision_radix"
    COLUMNS_CHAR_OCTET_LENGTH = "columns.character_octet_length"

    FUNCTION_COLUMNS_COLUMN_SIZE = "function_columns.column_size"
    FUNCTION_COLUMNS_NUMERIC_SCALE = "function_columns.numeric_scale"
    FUNCTION_COLUMNS_NUMERIC_PREC_RADIX = "function_columns.numeric_precision_radix"
    FUNCTION_COLUMNS_CHAR_OCTET_LENGTH = "function_columns.character_octet_length"

    FUNCTIONS_SECURITY_TYPE = "functions.security_type"

    CONSTRAINT_IS_DEFERRABLE = "constraint_columns.is_deferrable"
    CONSTRAINT_INITIALLY_DEFERRED = "constraint_columns.initially_deferred"
    CONSTRAINT_JOIN_COND = "constraint_join.fk"

    SEQUENCE_COLUMNS_INCREMENT = "sequence_columns.increment"

    PRIVILEGES_GRANTOR = "privileges.grantor"


_DEFAULT_CLAUSES: dict[ClauseName, str] = {
    ClauseName.COLUMNS_DATA_TYPE: "data_type",
    ClauseName.COLUMNS_COLUMN_SIZE: (
        "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)"
    ),
    ClauseName.COLUMNS_NUMERIC_SCALE: "COALESCE(numeric_scale, 0)",
    ClauseName.COLUMNS_NUMERIC_PREC_RADIX: "COALESCE(numeric_precision_radix, 10)",
    ClauseName.COLUMNS_CHAR_OCTET_LENGTH: "COALESCE(character_octet_length, 0)",
    ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE: (
        "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)"
    ),
    ClauseName.FUNCTION_COLUMNS_NUMERIC_SCALE: "COALESCE(numeric_scale, 0)",
    ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX: "COALESCE(numeric_precision_radix, 10)",
    ClauseName.FUNCTION_COLUMNS_CHAR_OCTET_LENGTH: "COALESCE(character_octet_length, 0)",
    ClauseName.FUNCTIONS_SECURITY_TYPE: "security_type",
    ClauseName.CONSTRAINT_IS_DEFERRABLE: "t.is_deferrable",
    ClauseName.CONSTRAINT_INITIALLY_DEFERRED: "t.initially_deferred",
    ClauseName.CONSTRAINT_JOIN_COND: "",
    ClauseName.SEQUENCE_COLUMNS_INCREMENT: "increment",
    ClauseName.PRIVILEGES_GRANTOR: "grantor",
}


@dataclass(frozen=True)
class Formats:
    """Condition templates; each holds one ``%s`` for a placeholder or list."""

    catalog: str = ""
    schema: str = ""
    not_schemas: str = ""
    parent: str = ""
    reference: str = ""
    name: str = ""
    types: str = ""


def _flag(value: Any) -> Bool | str:
    """Turn a YES/NO/empty value into a Bool, keeping other values as they are."""
    try:
        return Bool(value)
    except ValueError:
        return value


def _default_placeholder(n: int) -> str:
    return f"${n}"


def _default_data_type(col: Column) -> str:
    return col.data_type


class InformationSchemaBase(LoggingReader):
    """Reads schemas, tables, columns, functions and sequences.

    ``options`` configure the information schema itself (see the ``with_*``
    functions of this module); ``reader_options`` configure query logging,
    dry runs, timeouts and limits.
    """

    def __init__(
        self,
        db: Any,
        options: Iterable[ReaderOption] = (),
        reader_options: Iterable[ReaderOption] = (),
    ) -> None:
        self.pf: Callable[[int], str] = _default_placeholder
        self.has_functions = True
        self.has_sequences = True
        self.has_indexes = True
        self.has_constraints = True
        self.has_check_constraints = True
        self.has_table_privileges = True
        self.has_column_privileges = True
        self.has_usage_privileges = True
        self.clauses: dict[ClauseName, str] = dict(_DEFAULT_CLAUSES)
        self.limit = 0
        self.system_schemas: list[str] = ["information_schema"]
        self.current_schema = ""
        self.data_type_formatter: Callable[[Column], str] = _default_data_type
        for option in options:
            option(self)
        super().__init__(db, *reader_options)

    def set_limit(self, limit: int) -> None:
        """Limit the number of rows every query returns; 0 means no limit."""
        self.limit = limit

    def conditions(
        self, base_param: int, filter: Filter, formats: Formats
    ) -> tuple[list[str], list[Any]]:
        """Build WHERE conditions and their values, numbering placeholders from ``base_param``."""
        conds: list[str] = []
        vals: list[Any] = []
        param = base_param

        def add(fmt: str, value: Any) -> None:
            nonlocal param
            vals.append(value)
            conds.append(fmt % self.pf(param))
            param += 1

        def add_list(fmt: str, values: Iterable[Any]) -> None:
            nonlocal param
            holders = []
            for value in values:
                vals.append(value)
                holders.append(self.pf(param))
                param += 1
            if holders:
                conds.append(fmt % ", ".join(holders))

        if filter.catalog and formats.catalog:
            add(formats.catalog, filter.catalog)
        if filter.schema and formats.schema:
            add(formats.schema, filter.schema)
        if not filter.with_system and formats.not_schemas and self.system_schemas:
            add_list(
                formats.not_schemas,
                (s for s in self.system_schemas if s != filter.schema),
            )
        if filter.only_visible and formats.schema and self.current_schema:
            conds.append(formats.schema % self.current_schema)
        if filter.parent and formats.parent:
            add(formats.parent, filter.parent)
        if filter.reference and formats.reference:
            add(formats.reference, filter.reference)
        if filter.name and formats.name:
            add(formats.name, filter.name)
        if filter.types and formats.types:
            add_list(formats.types, filter.types)
        return conds, vals

    def _fetch(
        self, qstr: str, conds: Sequence[str], order: str, vals: Sequence[Any]
    ) -> list[tuple]:
        """Run the query with conditions, ordering and limit; [] when not run."""
        if conds:
            qstr += "\nWHERE " + " AND ".join(conds)
        if order:
            qstr += "\nORDER BY " + order
        if self.limit:
            qstr += f"\nLIMIT {self.limit}"
        try:
            with self.query(qstr, *vals) as cursor:
                return [tuple(row) for row in cursor.fetchall()]
        except NoRowsError:
            return []

    def columns(self, f: Filter) -> ColumnSet:
        """Columns from the selected catalog (or all), matching schemas and tables."""
        select = [
            "table_catalog",
            "table_schema",
            "table_name",
            "column_name",
            "ordinal_position",
            self.clauses[ClauseName.COLUMNS_DATA_TYPE],
            "COALESCE(column_default, '')",
            "COALESCE(is_nullable, '') AS is_nullable",
            self.clauses[ClauseName.COLUMNS_COLUMN_SIZE],
            self.clauses[ClauseName.COLUMNS_NUMERIC_SCALE],
            self.clauses[ClauseName.COLUMNS_NUMERIC_PREC_RADIX],
            self.clauses[ClauseName.COLUMNS_CHAR_OCTET_LENGTH],
        ]
        qstr = "SELECT\n  " + ",\n  ".join(select) + " FROM information_schema.columns\n"
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="table_catalog LIKE %s",
                schema="table_schema LIKE %s",
                not_schemas="table_schema NOT IN (%s)",
                parent="table_name LIKE %s",
            ),
        )
        rows = self._fetch(
            qstr, conds, "table_catalog, table_schema, table_name, ordinal_position", vals
        )
        results = []
        for (catalog, schema, table, name, position, data_type, default,
             nullable, size, scale, radix, octets) in rows:
            rec = Column(
                catalog=catalog,
                schema=schema,
                table=table,
                name=name,
                ordinal_position=int(position),
                data_type=data_type,
                default=default,
                is_nullable=_flag(nullable),
                column_size=int(size),
                decimal_digits=int(scale),
                num_prec_radix=int(radix),
                char_octet_length=int(octets),
            )
            rec.data_type = self.data_type_formatter(rec)
            results.append(rec)
        return ColumnSet(results)

    def tables(self, f: Filter) -> TableSet:
        """Tables from the selected catalog (or all), matching schemas, names and types."""
        qstr = (
            "SELECT\n"
            "  table_catalog,\n"
            "  table_schema,\n"
            "  table_name,\n"
            "  table_type\n"
            "FROM information_schema.tables\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="table_catalog LIKE %s",
                schema="table_schema LIKE %s",
                not_schemas="table_schema NOT IN (%s)",
                name="table_name LIKE %s",
                types="table_type IN (%s)",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        if self.has_sequences and "SEQUENCE" in f.types:
            qstr += (
                "\nUNION ALL\n"
                "SELECT\n"
                "  sequence_catalog AS table_catalog,\n"
                "  sequence_schema AS table_schema,\n"
                "  sequence_name AS table_name,\n"
                "  'SEQUENCE' AS table_type\n"
                "FROM information_schema.sequences\n"
            )
            seq_conds, seq_vals = self.conditions(
                len(vals) + 1,
                f,
                Formats(
                    catalog="sequence_catalog LIKE %s",
                    schema="sequence_schema LIKE %s",
                    not_schemas="sequence_schema NOT IN (%s)",
                    name="sequence_name LIKE %s",
                ),
            )
            vals = vals + seq_vals
            if seq_conds:
                qstr += " WHERE " + " AND ".join(seq_conds)
        rows = self._fetch(
            qstr, [], "table_catalog, table_schema, table_type, table_name", vals
        )
        return TableSet(
            [
                Table(catalog=catalog, schema=schema, name=name, type=type_)
                for catalog, schema, name, type_ in rows
            ]
        )

    def schemas(self, f: Filter) -> SchemaSet:
        """Schemas from the selected catalog (or all), matching names."""
        qstr = (
            "SELECT\n"
            "  schema_name,\n"
            "  catalog_name\n"
            "FROM information_schema.schemata\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="catalog_name LIKE %s",
                name="schema_name LIKE %s",
                not_schemas="schema_name NOT IN (%s)",
            ),
        )
        rows = self._fetch(qstr, conds, "catalog_name, schema_name", vals)
        return SchemaSet([Schema(schema=schema, catalog=catalog) for schema, catalog in rows])

    def functions(self, f: Filter) -> FunctionSet:
        """Functions from the selected catalog (or all), matching schemas, names and types."""
        if not self.has_functions:
            raise NotSupportedError()
        select = [
            "specific_name",
            "routine_catalog",
            "routine_schema",
            "routine_name",
            "COALESCE(routine_type, '')",
            "COALESCE(data_type, '')",
            "routine_definition",
            "COALESCE(external_language, routine_body) AS language",
            "is_deterministic",
            self.clauses[ClauseName.FUNCTIONS_SECURITY_TYPE],
        ]
        qstr = "SELECT\n  " + ",\n  ".join(select) + " FROM information_schema.routines\n"
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="routine_catalog LIKE %s",
                schema="routine_schema LIKE %s",
                not_schemas="routine_schema NOT IN (%s)",
                name="routine_name LIKE %s",
                types="routine_type IN (%s)",
            ),
        )
        rows = self._fetch(
            qstr,
            conds,
            "routine_catalog, routine_schema, routine_name, COALESCE(routine_type, '')",
            vals,
        )
        results = [
            Function(
                specific_name=specific,
                catalog=catalog,
                schema=schema,
                name=name,
                type=type_,
                result_type=result_type,
                source=source,
                language=language,
                volatility=volatility,
                security=security,
            )
            for (specific, catalog, schema, name, type_, result_type, source,
                 language, volatility, security) in rows
        ]
        return FunctionSet(results)

    def function_columns(self, f: Filter) -> FunctionColumnSet:
        """Function arguments from the selected catalog (or all), matching schemas and functions."""
        if not self.has_functions:
            raise NotSupportedError()
        select = [
            "specific_catalog",
            "specific_schema",
            "specific_name",
            "COALESCE(parameter_name, '')",
            "ordinal_position",
            "COALESCE(parameter_mode, '')",
            "COALESCE(data_type, '')",
            self.clauses[ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE],
            self.clauses[ClauseName.FUNCTION_COLUMNS_NUMERIC_SCALE],
            self.clauses[ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX],
            self.clauses[ClauseName.FUNCTION_COLUMNS_CHAR_OCTET_LENGTH],
        ]
        qstr = "SELECT\n  " + ",\n  ".join(select) + " FROM information_schema.parameters\n"
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="specific_catalog LIKE %s",
                schema="specific_schema LIKE %s",
                not_schemas="specific_schema NOT IN (%s)",
                parent="specific_name LIKE %s",
            ),
        )
        rows = self._fetch(
            qstr,
            conds,
            "specific_catalog, specific_schema, specific_name, ordinal_position, "
            "COALESCE(parameter_name, '')",
            vals,
        )
        results = [
            FunctionColumn(
                catalog=catalog,
                schema=schema,
                function_name=function_name,
                name=name,
                ordinal_position=int(position),
                type=mode,
                data_type=data_type,
                column_size=int(size),
                decimal_digits=int(scale),
                num_prec_radix=int(radix),
                char_octet_length=int(octets),
            )
            for (catalog, schema, function_name, name, position, mode, data_type,
                 size, scale, radix, octets) in rows
        ]
        return FunctionColumnSet(results)

    def sequences(self, f: Filter) -> SequenceSet:
        """Sequences from the selected catalog (or all), matching schemas and names."""
        if not self.has_sequences:
            raise NotSupportedError()
        select = [
            "sequence_catalog",
            "sequence_schema",
            "sequence_name",
            "data_type",
            "start_value",
            "minimum_value",
            "maximum_value",
            self.clauses[ClauseName.SEQUENCE_COLUMNS_INCREMENT],
            "cycle_option",
        ]
        qstr = "SELECT\n  " + ",\n  ".join(select) + " FROM information_schema.sequences\n"
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="sequence_catalog LIKE %s",
                schema="sequence_schema LIKE %s",
                not_schemas="sequence_schema NOT IN (%s)",
                name="sequence_name LIKE %s",
            ),
        )
        rows = self._fetch(qstr, conds, "sequence_catalog, sequence_schema, sequence_name", vals)
        results = [
            SequenceRecord(
                catalog=catalog,
                schema=schema,
                name=name,
                data_type=data_type,
                start=start,
                min=minimum,
                max=maximum,
                increment=increment,
                cycles=_flag(cycles),
            )
            for (catalog, schema, name, data_type, start, minimum, maximum,
                 increment, cycles) in rows
        ]
        return SequenceSet(results)


def _setter(attribute: str, value: Any) -> ReaderOption:
    def apply(reader: Any) -> None:
        setattr(reader, attribute, value)

    return apply


def with_placeholder(pf: Callable[[int], str]) -> ReaderOption:
    """Generate placeholders with ``pf``, usually returning ``?`` or ``$n``."""
    return _setter("pf", pf)


def with_custom_clauses(clauses: dict[ClauseName, str]) -> ReaderOption:
    """Use different expressions for some columns."""

    def apply(reader: Any) -> None:
        reader.clauses.update(clauses)

    return apply


def with_functions(enabled: bool) -> ReaderOption:
    """Whether the ``routines`` and ``parameters`` views exist."""
    return _setter("has_functions", enabled)


def with_indexes(enabled: bool) -> ReaderOption:
    """Whether the ``statistics`` view exists."""
    return _setter("has_indexes", enabled)


def with_constraints(enabled: bool) -> ReaderOption:
    """Whether the constraint views exist."""
    return _setter("has_constraints", enabled)


def with_check_constraints(enabled: bool) -> ReaderOption:
    """Whether the ``constraint_column_usage`` view exists."""
    return _setter("has_check_constraints", enabled)


def with_sequences(enabled: bool) -> ReaderOption:
    """Whether the ``sequences`` view exists."""
    return _setter("has_sequences", enabled)


def with_table_privileges(enabled: bool) -> ReaderOption:
    """Whether the ``table_privileges`` view exists."""
    return _setter("has_table_privileges", enabled)


def with_column_privileges(enabled: bool) -> ReaderOption:
    """Whether the ``column_privileges`` view exists."""
    return _setter("has_column_privileges", enabled)


def with_usage_privileges(enabled: bool) -> ReaderOption:
    """Whether the ``usage_privileges`` view exists."""
    return _setter("has_usage_privileges", enabled)


def with_system_schemas(schemas: Iterable[str]) -> ReaderOption:
    """Schemas that are left out unless the filter asks for system objects."""
    return _setter("system_schemas", list(schemas))


def with_current_schema(expr: str) -> ReaderOption:
    """Expression for the current schema, used when only visible objects are wanted."""
    return _setter("current_schema", expr)


def with_data_type_formatter(formatter: Callable[[Column], str]) -> ReaderOption:
    """Build the displayed data type of a column with ``formatter``."""
    return _setter("data_type_formatter", formatter)