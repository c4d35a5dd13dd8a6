"""Metadata reader for MySQL, based on its ``information_schema``."""

from __future__ import annotations

from typing import Any

from .infoschema import InformationSchema, new
from .infoschema_base import (
    ClauseName,
    with_check_constraints,
    with_current_schema,
    with_custom_clauses,
    with_placeholder,
    with_sequences,
    with_system_schemas,
    with_usage_privileges,
)
from .reader import ReaderOption

SYSTEM_SCHEMAS = ("mysql", "information_schema", "performance_schema", "sys")

_factory = new(
    with_placeholder(lambda _n: "?"),
    with_sequences(False),
    with_check_constraints(False),
    with_custom_clauses(
        {
            ClauseName.COLUMNS_DATA_TYPE: "column_type",
            ClauseName.COLUMNS_NUMERIC_PREC_RADIX: "10",
            ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX: "10",
            ClauseName.CONSTRAINT_IS_DEFERRABLE: "''",
            ClauseName.CONSTRAINT_INITIALLY_DEFERRED: "''",
            ClauseName.PRIVILEGES_GRANTOR: "''",
            ClauseName.CONSTRAINT_JOIN_COND: "AND r.referenced_table_name = f.table_name",
        }
    ),
    with_system_schemas(SYSTEM_SCHEMAS),
    with_current_schema("COALESCE(DATABASE(), '%')"),
    with_usage_privileges(False),
)


def new_reader(db: Any, *args: ReaderOption) -> InformationSchema:
    """Build a MySQL reader over a DB-API connection."""
    return _factory(db, *args)