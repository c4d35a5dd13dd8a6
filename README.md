# dbmeta

Read database metadata, such as catalogs, schemas, tables, columns, indexes,
constraints, functions, sequences, triggers and privileges, as structured
Python objects.

The readers take a DB-API style connection. They build SQL against the
`information_schema` views, or against the system catalogs of PostgreSQL and
the data dictionary of Oracle. Each call returns a result set of dataclass
records.

## Installation

```
pip install dbmeta
```

The package needs nothing outside the standard library.

## Usage

Make a reader for your database. Then call it with a `Filter`:

```python
from dbmeta.metadata import Filter
from dbmeta import postgres

reader = postgres.new_reader(connection)

for table in reader.tables(Filter(schema="public", types=["TABLE", "VIEW"])):
    print(table.schema, table.name, table.type, table.rows)

for column in reader.columns(Filter(schema="public", parent="film")):
    print(column.name, column.data_type, column.is_nullable)
```

The `catalog`, `schema`, `parent`, `reference` and `name` fields of a `Filter`
hold SQL `LIKE` patterns. `types` lists the object types to include. By
default the reader leaves out system schemas. Set `with_system=True` to
include them. Set `only_visible=True` to limit results to the current schema,
where the reader knows how to find it.

The reader puts its queries through `cursor.execute(sql, params)` with the
placeholder style of the target database. That is `$1, $2, …` for PostgreSQL
and the generic `information_schema` reader, `?` for MySQL, and `:1, :2, …`
for Oracle. The connection's driver must accept that style.

### Readers

- `dbmeta.infoschema.new(*options)` returns a factory,
  `factory(db, *reader_options)`, that builds an `InformationSchema` reader.
  The reader provides `schemas`, `tables`, `columns`, `functions`,
  `function_columns`, `sequences`, `indexes`, `index_columns`, `constraints`,
  `constraint_columns` and `privilege_summaries`. Options from
  `dbmeta.infoschema_base` describe which views the database has and which SQL
  expressions to use:
  - `with_placeholder`
  - `with_custom_clauses`, keyed by `ClauseName`
  - `with_functions`
  - `with_indexes`
  - `with_constraints`
  - `with_check_constraints`
  - `with_sequences`
  - `with_table_privileges`
  - `with_column_privileges`
  - `with_usage_privileges`
  - `with_system_schemas`
  - `with_current_schema`
  - `with_data_type_formatter`
- `dbmeta.postgres.new_reader(db, *reader_options)` returns a `PluginReader`.
  For catalogs, tables, column statistics, indexes, index columns and
  triggers, it uses `PostgresReader`, which queries `pg_catalog`. For the rest
  it uses `information_schema`. Column data types come out in the form
  PostgreSQL displays, such as `character varying(4)` or
  `timestamp(6) without time zone`; see `data_type_formatter`.
  `parse_pg_array` parses one-dimensional array literals such as
  `{a,"b c",NULL}`.
- `dbmeta.mysql.new_reader(db, *reader_options)` returns the
  `information_schema` reader set up for MySQL. It has no sequences, no check
  constraints and no usage privileges, and it uses `?` placeholders.
- `dbmeta.oracle.new_reader(db, *reader_options)` returns an `OracleReader`.
  It queries the `all_*` dictionary views for catalogs, schemas, tables
  (synonyms too when `"SYNONYM"` is among the types), columns, functions,
  function columns, indexes and index columns. It upper-cases filter values.
- `dbmeta.reader.PluginReader(*readers)` combines readers. For each kind of
  metadata, the last reader that provides it wins.

A kind of metadata that a reader cannot provide raises
`dbmeta.errors.NotSupportedError`.

### Reader options

Options from `dbmeta.reader` work with every reader:

```python
from dbmeta.reader import with_logger, with_dry_run, with_timeout, with_limit

reader = postgres.new_reader(connection, with_limit(100), with_timeout(3.0))
```

- `with_logger(func)` calls `func` with each query, then with its parameters.
- `with_dry_run(True)` skips running queries. The `information_schema` and
  Oracle readers then return empty result sets. The PostgreSQL catalog queries
  return an empty set for `tables`, and raise `dbmeta.errors.NoRowsError` for
  the others.
- `with_timeout(seconds_or_timedelta)` calls the connection's `interrupt()`
  once the time runs out, if the connection has such a method.
- `with_limit(n)` appends `LIMIT n` to queries. This applies to readers that
  support it: the `information_schema` and PostgreSQL readers.

### Result sets

Every call returns a `ResultSet` subclass, such as `TableSet` or `ColumnSet`.
You can use a result set in these ways:

- Iterate over it.
- Take its `len()`.
- Use it as a context manager.
- Step through it cursor-style with `next()`, `get()`, `scan()` and `reset()`.

Its `columns` attribute holds the column headings. `scan()` returns the
values under those headings. You can set `filter` to hide records, and
`scan_values` to change what `scan()` returns.

### Privileges

`ObjectPrivileges` and `ColumnPrivileges` are lists that print as compact
grant lists, such as `user1=INSERT*,SELECT/user1`. A `*` marks a privilege
the grantee may grant on to others. Sort them, with their `sort()` method,
before you print them.

## What the package does not do

The package reads metadata and nothing more. It does not include:

- database drivers or connection handling
- a command-line tool
- formatting of the results into human-readable description tables

Those are left to the application that uses it.