"""Structured database metadata records and the result sets holding them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Iterator, Protocol, Sequence

from .errors import MetadataError
from .privileges import ColumnPrivileges, ObjectPrivileges


class Bool(str, Enum):
    """A tri-state yes/no flag as reported by information schemas."""

    UNKNOWN = ""
    YES = "YES"
    NO = "NO"

    def __str__(self) -> str:
        return self.value


@dataclass
class Filter:
    """Patterns and flags that select which objects a reader returns."""

    catalog: str = ""
    schema: str = ""
    parent: str = ""
    reference: str = ""
    name: str = ""
    types: list[str] = field(default_factory=list)
    with_system: bool = False
    only_visible: bool = False


class Result(Protocol):
    def values(self) -> list[Any]: ...


@dataclass
class Catalog:
    catalog: str = ""

    def values(self) -> list[Any]:
        return [self.catalog]

    def get_catalog(self) -> Catalog:
        return self


@dataclass
class Schema:
    schema: str = ""
    catalog: str = ""

    def values(self) -> list[Any]:
        return [self.schema, self.catalog]


@dataclass
class Table:
    catalog: str = ""
    schema: str = ""
    name: str = ""
    type: str = ""
    rows: int = 0
    size: str = ""
    comment: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.name,
            self.type,
            self.rows,
            self.size,
            self.comment,
        ]


@dataclass
class Column:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    ordinal_position: int = 0
    data_type: str = ""
    default: str = ""
    column_size: int = 0
    decimal_digits: int = 0
    num_prec_radix: int = 0
    char_octet_length: int = 0
    is_nullable: Bool | str = Bool.UNKNOWN

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.table,
            self.name,
            self.data_type,
            self.is_nullable,
            self.default,
            self.column_size,
            self.decimal_digits,
            self.num_prec_radix,
            self.char_octet_length,
        ]


@dataclass
class ColumnStat:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    avg_width: int = 0
    null_frac: float = 0.0
    num_distinct: int = 0
    min: str = ""
    max: str = ""
    mean: str = ""
    top_n: list[str] = field(default_factory=list)
    top_n_freqs: list[float] = field(default_factory=list)

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.table,
            self.name,
            self.avg_width,
            self.null_frac,
            self.num_distinct,
            self.min,
            self.max,
            self.mean,
            self.top_n,
            self.top_n_freqs,
        ]


@dataclass
class Index:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    is_primary: Bool | str = Bool.UNKNOWN
    is_unique: Bool | str = Bool.UNKNOWN
    type: str = ""
    columns: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.name,
            self.table,
            self.is_primary,
            self.is_unique,
            self.type,
        ]


@dataclass
class IndexColumn:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    index_name: str = ""
    name: str = ""
    data_type: str = ""
    ordinal_position: int = 0

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.table,
            self.index_name,
            self.name,
            self.data_type,
        ]


@dataclass
class Constraint:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    type: str = ""
    is_deferrable: Bool | str = Bool.UNKNOWN
    is_initially_deferred: Bool | str = Bool.UNKNOWN
    foreign_catalog: str = ""
    foreign_schema: str = ""
    foreign_table: str = ""
    foreign_name: str = ""
    match_type: str = ""
    update_rule: str = ""
    delete_rule: str = ""
    check_clause: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.table,
            self.name,
            self.type,
            self.is_deferrable,
            self.is_initially_deferred,
            self.foreign_catalog,
            self.foreign_schema,
            self.foreign_table,
            self.foreign_name,
            self.match_type,
            self.update_rule,
            self.delete_rule,
        ]


@dataclass
class ConstraintColumn:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    constraint: str = ""
    name: str = ""
    ordinal_position: int = 0
    foreign_catalog: str = ""
    foreign_schema: str = ""
    foreign_table: str = ""
    foreign_constraint: str = ""
    foreign_name: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.table,
            self.constraint,
            self.name,
            self.foreign_catalog,
            self.foreign_schema,
            self.foreign_table,
            self.foreign_constraint,
            self.foreign_name,
        ]


@dataclass
class Function:
    catalog: str = ""
    schema: str = ""
    name: str = ""
    result_type: str = ""
    arg_types: str = ""
    type: str = ""
    volatility: str = ""
    security: str = ""
    language: str = ""
    source: str = ""
    specific_name: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.name,
            self.result_type,
            self.arg_types,
            self.type,
            self.volatility,
            self.security,
            self.language,
            self.source,
        ]


@dataclass
class FunctionColumn:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    function_name: str = ""
    ordinal_position: int = 0
    type: str = ""
    data_type: str = ""
    column_size: int = 0
    decimal_digits: int = 0
    num_prec_radix: int = 0
    char_octet_length: int = 0

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.function_name,
            self.name,
            self.type,
            self.data_type,
            self.column_size,
            self.decimal_digits,
            self.num_prec_radix,
            self.char_octet_length,
        ]


@dataclass
class Sequence:
    catalog: str = ""
    schema: str = ""
    name: str = ""
    data_type: str = ""
    start: str = ""
    min: str = ""
    max: str = ""
    increment: str = ""
    cycles: Bool | str = Bool.UNKNOWN

    def values(self) -> list[Any]:
        return [
            self.data_type,
            self.start,
            self.min,
            self.max,
            self.increment,
            self.cycles,
        ]


@dataclass
class PrivilegeSummary:
    """Privileges granted on one table, view or sequence."""

    catalog: str = ""
    schema: str = ""
    name: str = ""
    object_type: str = ""
    object_privileges: ObjectPrivileges = field(default_factory=ObjectPrivileges)
    column_privileges: ColumnPrivileges = field(default_factory=ColumnPrivileges)

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.name,
            self.object_type,
            self.object_privileges,
            self.column_privileges,
        ]


@dataclass
class Trigger:
    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    definition: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog,
            self.schema,
            self.table,
            self.name,
            self.definition,
        ]


class ResultSet:
    """Rows of metadata records with a cursor, a row filter and column names.

    ``filter`` selects which records are visible; ``scan_values`` replaces the
    records' own ``values()`` when scanning.
    """

    default_columns: ClassVar[tuple[str, ...]] = ()

    def __init__(self, results: Sequence[Any], columns: Sequence[str] | None = None) -> None:
        self.results: list[Any] = list(results)
        self.columns: list[str] = list(self.default_columns if columns is None else columns)
        self.filter: Callable[[Any], bool] | None = None
        self.scan_values: Callable[[Any], Sequence[Any]] | None = None
        self._current = 0

    def _visible(self, record: Any) -> bool:
        return self.filter is None or self.filter(record)

    def __len__(self) -> int:
        return sum(1 for record in self.results if self._visible(record))

    def __iter__(self) -> Iterator[Any]:
        return (record for record in self.results if self._visible(record))

    def reset(self) -> None:
        """Move the cursor back before the first row."""
        self._current = 0

    def next(self) -> bool:
        """Advance to the next visible row; return False past the last one."""
        self._current += 1
        while self._current <= len(self.results) and not self._visible(
            self.results[self._current - 1]
        ):
            self._current += 1
        return self._current <= len(self.results)

    def _record(self) -> Any:
        if not 1 <= self._current <= len(self.results):
            raise MetadataError("no current row")
        return self.results[self._current - 1]

    def get(self) -> Any:
        """Return the record at the cursor."""
        return self._record()

    def scan(self) -> list[Any]:
        """Return the values of the row at the cursor."""
        record = self._record()
        if self.scan_values is None:
            return list(record.values())
        return list(self.scan_values(record))

    def close(self) -> None:
        """Release the result set; holding nothing, this only resets the cursor."""
        self.reset()

    def __enter__(self) -> ResultSet:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class CatalogSet(ResultSet):
    default_columns = ("Catalog",)

    def get(self) -> Catalog:
        return self._record().get_catalog()


class SchemaSet(ResultSet):
    default_columns = ("Schema", "Catalog")


class TableSet(ResultSet):
    default_columns = ("Catalog", "Schema", "Name", "Type", "Rows", "Size", "Comment")


class ColumnSet(ResultSet):
    default_columns = (
        "Catalog",
        "Schema",
        "Table",
        "Name",
        "Type",
        "Nullable",
        "Default",
        "Size",
        "Decimal Digits",
        "Precision Radix",
        "Octet Length",
    )


class ColumnStatSet(ResultSet):
    default_columns = (
        "Catalog",
        "Schema",
        "Table",
        "Name",
        "Average width",
        "Nulls fraction",
        "Distinct values",
        "Minimum value",
        "Maximum value",
        "Mean value",
        "Top N common values",
        "Top N values freqs",
    )


class IndexSet(ResultSet):
    default_columns = ("Catalog", "Schema", "Name", "Table", "Is primary", "Is unique", "Type")


class IndexColumnSet(ResultSet):
    default_columns = ("Catalog", "Schema", "Table", "Index name", "Name", "Data type")


class ConstraintSet(ResultSet):
    default_columns = (
        "Catalog",
        "Schema",
        "Table",
        "Name",
        "Type",
        "Is deferrable",
        "Initially deferred",
        "Foreign catalog",
        "Foreign schema",
        "Foreign table",
        "Foreign name",
        "Match type",
        "Update rule",
        "Delete rule",
        "Check Clause",
    )


class ConstraintColumnSet(ResultSet):
    default_columns = (
        "Catalog",
        "Schema",
        "Table",
        "Constraint",
        "Name",
        "Foreign Catalog",
        "Foreign Schema",
        "Foreign Table",
        "Foreign Constraint",
        "Foreign Name",
    )


class FunctionSet(ResultSet):
    default_columns = (
        "Catalog",
        "Schema",
        "Name",
        "Result data type",
        "Argument data types",
        "Type",
        "Volatility",
        "Security",
        "Language",
        "Source code",
    )


class FunctionColumnSet(ResultSet):
    default_columns = (
        "Catalog",
        "Schema",
        "Function name",
        "Name",
        "Type",
        "Data type",
        "Size",
        "Decimal Digits",
        "Precision Radix",
        "Octet Length",
    )


class SequenceSet(ResultSet):
    default_columns = ("Type", "Start", "Min", "Max", "Increment", "Cycles?")


class PrivilegeSummarySet(ResultSet):
    default_columns = ("Schema", "Name", "Type", "Access privileges", "Column privileges")


class TriggerSet(ResultSet):
    default_columns = ("Catalog", "Schema", "Table", "Name", "Definition")