"""Full ``information_schema`` reader: indexes, constraints and privileges too."""

from __future__ import annotations

from typing import Any, Callable

from .errors import NotSupportedError
from .infoschema_base import ClauseName, Formats, InformationSchemaBase, _flag
from .metadata import (
    Constraint,
    ConstraintColumn,
    ConstraintColumnSet,
    ConstraintSet,
    Filter,
    Index,
    IndexColumn,
    IndexColumnSet,
    IndexSet,
    PrivilegeSummary,
    PrivilegeSummarySet,
)
from .privileges import ColumnPrivilege, ColumnPrivileges, ObjectPrivilege, ObjectPrivileges
from .reader import ReaderOption


class InformationSchema(InformationSchemaBase):
    """Reads every kind of metadata the ``information_schema`` views offer."""

    def indexes(self, f: Filter) -> IndexSet:
        """Indexes from the selected catalog (or all), matching schemas and names."""
        if not self.has_indexes:
            raise NotSupportedError()
        qstr = (
            "SELECT\n"
            "  table_catalog,\n"
            "  index_schema,\n"
            "  table_name,\n"
            "  index_name,\n"
            "  CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END AS is_unique,\n"
            "  CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END AS is_primary,\n"
            "  index_type\n"
            "FROM information_schema.statistics\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="table_catalog LIKE %s",
                schema="index_schema LIKE %s",
                not_schemas="index_schema NOT IN (%s)",
                parent="table_name LIKE %s",
                name="index_name LIKE %s",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        qstr += (
            "\nGROUP BY table_catalog, index_schema, table_name, index_name,\n"
            "  CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END,\n"
            "  CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END,\n"
            "  index_type"
        )
        rows = self._fetch(qstr, [], "table_catalog, index_schema, table_name, index_name", vals)
        return IndexSet(
            [
                Index(
                    catalog=catalog,
                    schema=schema,
                    table=table,
                    name=name,
                    is_unique=_flag(unique),
                    is_primary=_flag(primary),
                    type=type_,
                )
                for catalog, schema, table, name, unique, primary, type_ in rows
            ]
        )

    def index_columns(self, f: Filter) -> IndexColumnSet:
        """Index columns from the selected catalog (or all), matching schemas and indexes."""
        if not self.has_indexes:
            raise NotSupportedError()
        qstr = (
            "SELECT\n"
            "  i.table_catalog,\n"
            "  i.table_schema,\n"
            "  i.table_name,\n"
            "  i.index_name,\n"
            "  i.column_name,\n"
            "  c.data_type,\n"
            "  i.seq_in_index\n"
            "\n"
            "FROM information_schema.statistics i\n"
            "JOIN information_schema.columns c ON\n"
            "  i.table_catalog = c.table_catalog AND\n"
            "  i.table_schema = c.table_schema AND\n"
            "  i.table_name = c.table_name AND\n"
            "  i.column_name = c.column_name\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="i.table_catalog LIKE %s",
                schema="index_schema LIKE %s",
                not_schemas="index_schema NOT IN (%s)",
                parent="i.table_name LIKE %s",
                name="index_name LIKE %s",
            ),
        )
        rows = self._fetch(
            qstr,
            conds,
            "i.table_catalog, index_schema, table_name, index_name, seq_in_index",
            vals,
        )
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

    def constraints(self, f: Filter) -> ConstraintSet:
        """Constraints from the selected catalog (or all), matching schemas and names."""
        if not self.has_constraints:
            raise NotSupportedError()
        select = [
            "t.constraint_catalog",
            "t.table_schema",
            "t.table_name",
            "t.constraint_name",
            "t.constraint_type",
            self.clauses[ClauseName.CONSTRAINT_IS_DEFERRABLE],
            self.clauses[ClauseName.CONSTRAINT_INITIALLY_DEFERRED],
            "COALESCE(r.unique_constraint_catalog, '') AS foreign_catalog",
            "COALESCE(r.unique_constraint_schema, '') AS foreign_schema",
            "COALESCE(f.table_name, '') AS foreign_table",
            "COALESCE(r.unique_constraint_name, '') AS foreign_constraint",
            "COALESCE(r.match_option, '') AS match_options",
            "COALESCE(r.update_rule, '') AS update_rule",
            "COALESCE(r.delete_rule, '') AS delete_rule",
            "COALESCE(c.check_clause, '') AS check_clause",
        ]
        qstr = (
            "SELECT\n  "
            + ",\n  ".join(select)
            + "\nFROM information_schema.table_constraints t\n"
            "LEFT JOIN information_schema.referential_constraints r"
            " ON t.constraint_catalog = r.constraint_catalog\n"
            "  AND t.constraint_schema = r.constraint_schema\n"
            "  AND t.constraint_name = r.constraint_name\n"
            "  AND t.constraint_type = 'FOREIGN KEY'\n"
            "LEFT JOIN information_schema.table_constraints f"
            " ON r.unique_constraint_catalog = f.constraint_catalog\n"
            "  AND r.unique_constraint_schema = f.constraint_schema\n"
            "  AND r.unique_constraint_name = f.constraint_name\n"
            "  " + self.clauses[ClauseName.CONSTRAINT_JOIN_COND] + "\n"
            "LEFT JOIN information_schema.check_constraints c"
            " ON t.constraint_catalog = c.constraint_catalog\n"
            "  AND t.constraint_schema = c.constraint_schema\n"
            "  AND t.constraint_name = c.constraint_name\n"
        )
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="t.constraint_catalog LIKE %s",
                schema="t.table_schema LIKE %s",
                not_schemas="t.table_schema NOT IN (%s)",
                parent="t.table_name LIKE %s",
                reference="f.table_name LIKE %s",
                name="t.constraint_name LIKE %s",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
        rows = self._fetch(
            qstr, [], "t.constraint_catalog, t.table_schema, t.table_name, t.constraint_name", vals
        )
        return ConstraintSet(
            [
                Constraint(
                    catalog=catalog,
                    schema=schema,
                    table=table,
                    name=name,
                    type=type_,
                    is_deferrable=_flag(deferrable),
                    is_initially_deferred=_flag(deferred),
                    foreign_catalog=foreign_catalog,
                    foreign_schema=foreign_schema,
                    foreign_table=foreign_table,
                    foreign_name=foreign_name,
                    match_type=match_type,
                    update_rule=update_rule,
                    delete_rule=delete_rule,
                    check_clause=check_clause,
                )
                for (catalog, schema, table, name, type_, deferrable, deferred,
                     foreign_catalog, foreign_schema, foreign_table, foreign_name,
                     match_type, update_rule, delete_rule, check_clause) in rows
            ]
        )

    def constraint_columns(self, f: Filter) -> ConstraintColumnSet:
        """Constraint columns from the selected catalog (or all), matching schemas and constraints."""
        if not self.has_constraints:
            raise NotSupportedError()
        vals: list[Any] = []
        qstr = ""
        if self.has_check_constraints:
            qstr = (
                "SELECT\n"
                "  c.constraint_catalog,\n"
                "  c.table_schema,\n"
                "  c.table_name,\n"
                "  c.constraint_name,\n"
                "  c.column_name,\n"
                "  1 AS ordinal_position,\n"
                "  '' AS foreign_catalog,\n"
                "  '' AS foreign_schema,\n"
                "  '' AS foreign_table,\n"
                "  '' AS foreign_name\n"
                "FROM information_schema.constraint_column_usage c\n"
            )
            conds, check_vals = self.conditions(
                len(vals) + 1,
                f,
                Formats(
                    catalog="c.constraint_catalog LIKE %s",
                    schema="c.table_schema LIKE %s",
                    not_schemas="c.table_schema NOT IN (%s)",
                    parent="c.table_name LIKE %s",
                    name="c.constraint_name LIKE %s",
                ),
            )
            if conds:
                qstr += " WHERE " + " AND ".join(conds)
                vals.extend(check_vals)
            qstr += "\nUNION ALL\n"
        qstr += (
            "SELECT\n"
            "  c.constraint_catalog,\n"
            "  c.table_schema,\n"
            "  c.table_name,\n"
            "  c.constraint_name,\n"
            "  c.column_name,\n"
            "  c.ordinal_position,\n"
            "  COALESCE(f.constraint_catalog, '') AS foreign_catalog,\n"
            "  COALESCE(f.table_schema, '') AS foreign_schema,\n"
            "  COALESCE(f.table_name, '') AS foreign_table,\n"
            "  COALESCE(f.column_name, '') AS foreign_name\n"
            "FROM information_schema.key_column_usage c\n"
            "LEFT JOIN information_schema.referential_constraints r"
            " ON c.constraint_catalog = r.constraint_catalog\n"
            "  AND c.constraint_schema = r.constraint_schema\n"
            "  AND c.constraint_name = r.constraint_name\n"
            "LEFT JOIN information_schema.key_column_usage f"
            " ON r.unique_constraint_catalog = f.constraint_catalog\n"
            "  AND r.unique_constraint_schema = f.constraint_schema\n"
            "  AND r.unique_constraint_name = f.constraint_name\n"
            "  " + self.clauses[ClauseName.CONSTRAINT_JOIN_COND] + "\n"
            "  AND c.position_in_unique_constraint = f.ordinal_position\n"
        )
        conds, key_vals = self.conditions(
            len(vals) + 1,
            f,
            Formats(
                catalog="c.constraint_catalog LIKE %s",
                schema="c.table_schema LIKE %s",
                not_schemas="c.table_schema NOT IN (%s)",
                parent="c.table_name LIKE %s",
                reference="f.table_name LIKE %s",
                name="c.constraint_name LIKE %s",
            ),
        )
        if conds:
            qstr += " WHERE " + " AND ".join(conds)
            vals.extend(key_vals)
        rows = self._fetch(
            qstr,
            [],
            "constraint_catalog, table_schema, table_name, constraint_name, "
            "ordinal_position, column_name",
            vals,
        )
        return ConstraintColumnSet(
            [
                ConstraintColumn(
                    catalog=catalog,
                    schema=schema,
                    table=table,
                    constraint=constraint,
                    name=name,
                    ordinal_position=int(position),
                    foreign_catalog=foreign_catalog,
                    foreign_schema=foreign_schema,
                    foreign_table=foreign_table,
                    foreign_name=foreign_name,
                )
                for (catalog, schema, table, constraint, name, position, foreign_catalog,
                     foreign_schema, foreign_table, foreign_name) in rows
            ]
        )

    def privilege_summaries(self, f: Filter) -> PrivilegeSummarySet:
        """Privileges on tables, views and sequences, one summary per object."""
        if not (
            self.has_table_privileges or self.has_column_privileges or self.has_usage_privileges
        ):
            raise NotSupportedError()
        conds, vals = self.conditions(
            1,
            f,
            Formats(
                catalog="object_catalog LIKE %s",
                schema="object_schema LIKE %s",
                not_schemas="object_schema NOT IN (%s)",
                name="object_name LIKE %s",
                types="object_type IN (%s)",
            ),
        )
        grantor = self.clauses[ClauseName.PRIVILEGES_GRANTOR]
        grantable = "CASE WHEN is_grantable='YES' THEN 1 ELSE 0 END AS is_grantable"
        queries: list[str] = []
        if self.has_table_privileges:
            select = [
                "t.table_catalog AS object_catalog",
                "t.table_schema AS object_schema",
                "t.table_name AS object_name",
                "t.table_type AS object_type",
                "'' AS column_name",
                "COALESCE(grantee, '') AS grantee",
                "COALESCE(" + grantor + ", '') AS grantor",
                "COALESCE(privilege_type, '') AS privilege_type",
                grantable,
            ]
            # Tables sit on the left so that objects without privileges are listed too.
            queries.append(
                "SELECT\n  " + ", ".join(select) + "\n"
                "FROM information_schema.tables t\n"
                "LEFT JOIN information_schema.table_privileges tp\n"
                "  ON t.table_catalog = tp.table_catalog AND t.table_schema = tp.table_schema"
                " AND t.table_name = tp.table_name"
            )
        if self.has_column_privileges:
            select = [
                "t.table_catalog AS object_catalog",
                "t.table_schema AS object_schema",
                "t.table_name AS object_name",
                "t.table_type AS object_type",
                "column_name",
                "grantee",
                grantor + " AS grantor",
                "privilege_type",
                grantable,
            ]
            queries.append(
                "SELECT\n  " + ", ".join(select) + "\n"
                "FROM information_schema.column_privileges cp\n"
                "LEFT JOIN information_schema.tables t\n"
                "  ON t.table_catalog = cp.table_catalog AND t.table_schema = cp.table_schema"
                " AND t.table_name = cp.table_name"
            )
        if self.has_usage_privileges:
            select = [
                "object_catalog",
                "object_schema",
                "object_name",
                "object_type",
                "'' AS column_name",
                "grantee",
                grantor + " AS grantor",
                "privilege_type",
                grantable,
            ]
            queries.append(
                "SELECT\n  " + ", ".join(select) + "\n"
                "FROM information_schema.usage_privileges"
            )
        qstr = "SELECT * FROM (\n" + "\nUNION ALL\n".join(queries) + "\n) AS subquery"
        rows = self._fetch(
            qstr,
            conds,
            "object_catalog, object_schema, object_type, object_name, column_name, "
            "grantee, grantor, privilege_type",
            vals,
        )
        # Rows come ordered by object, so consecutive rows of one object are merged.
        results: list[PrivilegeSummary] = []
        current: PrivilegeSummary | None = None
        for (catalog, schema, name, object_type, column, grantee, grantor_name,
             privilege_type, is_grantable) in rows:
            if current is None or (current.catalog, current.schema, current.name) != (
                catalog,
                schema,
                name,
            ):
                current = PrivilegeSummary(
                    catalog=catalog,
                    schema=schema,
                    name=name,
                    object_type=object_type,
                    object_privileges=ObjectPrivileges(),
                    column_privileges=ColumnPrivileges(),
                )
                results.append(current)
            if not privilege_type:
                continue
            if not column:
                current.object_privileges.append(
                    ObjectPrivilege(
                        grantee=grantee,
                        grantor=grantor_name,
                        privilege_type=privilege_type,
                        is_grantable=bool(is_grantable),
                    )
                )
            else:
                current.column_privileges.append(
                    ColumnPrivilege(
                        column=column,
                        grantee=grantee,
                        grantor=grantor_name,
                        privilege_type=privilege_type,
                        is_grantable=bool(is_grantable),
                    )
                )
        return PrivilegeSummarySet(results)


def new(*args: ReaderOption) -> Callable[..., InformationSchema]:
    """Return a factory building readers configured with the given options.

    The factory takes a DB-API connection and reader options such as
    logging, dry runs, timeouts and limits.
    """
    options = tuple(args)

    def factory(db: Any, *reader_options: ReaderOption) -> InformationSchema:
        return InformationSchema(db, options, reader_options)

    return factory