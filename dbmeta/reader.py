"""Composable metadata readers and a query helper that logs its queries."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Callable, Iterator

from .errors import NoRowsError, NotSupportedError

ReaderOption = Callable[[Any], None]

_READER_METHODS = (
    "catalogs",
    "schemas",
    "tables",
    "columns",
    "column_stats",
    "indexes",
    "index_columns",
    "triggers",
    "constraints",
    "constraint_columns",
    "functions",
    "function_columns",
    "sequences",
    "privilege_summaries",
)


class PluginReader:
    """A reader composed of other readers.

    For every kind of metadata the last given reader that provides it wins;
    asking for a kind no reader provides raises NotSupportedError.
    """

    def __init__(self, *args: Any) -> None:
        self._methods: dict[str, Callable] = {}
        for reader in args:
            for name in _READER_METHODS:
                method = getattr(reader, name, None)
                if callable(method):
                    self._methods[name] = method

    def _call(self, name: str, f: Any) -> Any:
        try:
            method = self._methods[name]
        except KeyError:
            raise NotSupportedError() from None
        return method(f)

    def catalogs(self, f):
        return self._call("catalogs", f)

    def schemas(self, f):
        return self._call("schemas", f)

    def tables(self, f):
        return self._call("tables", f)

    def columns(self, f):
        return self._call("columns", f)

    def column_stats(self, f):
        return self._call("column_stats", f)

    def indexes(self, f):
        return self._call("indexes", f)

    def index_columns(self, f):
        return self._call("index_columns", f)

    def triggers(self, f):
        return self._call("triggers", f)

    def constraints(self, f):
        return self._call("constraints", f)

    def constraint_columns(self, f):
        return self._call("constraint_columns", f)

    def functions(self, f):
        return self._call("functions", f)

    def function_columns(self, f):
        return self._call("function_columns", f)

    def sequences(self, f):
        return self._call("sequences", f)

    def privilege_summaries(self, f):
        return self._call("privilege_summaries", f)


class LoggingReader:
    """Runs queries on a DB-API connection, optionally logging them first.

    Options are callables applied to the reader on construction.
    """

    def __init__(self, db: Any, *args: ReaderOption) -> None:
        self.db = db
        self.logger: Callable[[str], Any] | None = None
        self.dry_run = False
        self.timeout: float = 0.0
        for option in args:
            option(self)

    @contextmanager
    def query(self, qstr: str, *args: Any) -> Iterator[Any]:
        """Execute ``qstr`` and yield the cursor holding its rows.

        Raises NoRowsError in dry-run mode. With a timeout set, the
        connection is interrupted once the time runs out, if it supports it.
        """
        if self.logger is not None:
            self.logger(qstr)
            self.logger(str(list(args)))
        if self.dry_run:
            raise NoRowsError()
        timer = None
        interrupt = getattr(self.db, "interrupt", None)
        if self.timeout and callable(interrupt):
            timer = threading.Timer(self.timeout, interrupt)
            timer.daemon = True
            timer.start()
        cursor = self.db.cursor()
        try:
            cursor.execute(qstr, args)
            yield cursor
        finally:
            if timer is not None:
                timer.cancel()
            cursor.close()


def with_logger(logger: Callable[[str], Any]) -> ReaderOption:
    """Log every query and its arguments through ``logger`` before running it."""

    def apply(reader: Any) -> None:
        reader.logger = logger

    return apply


def with_dry_run(dry_run: bool) -> ReaderOption:
    """Skip running queries altogether."""

    def apply(reader: Any) -> None:
        reader.dry_run = dry_run

    return apply


def with_timeout(timeout: float | timedelta) -> ReaderOption:
    """Limit how long a single query may run, in seconds."""
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)

    def apply(reader: Any) -> None:
        reader.timeout = seconds

    return apply


def with_limit(limit: int) -> ReaderOption:
    """Limit the rows of a single query, if the reader supports it."""

    def apply(reader: Any) -> None:
        set_limit = getattr(reader, "set_limit", None)
        if callable(set_limit):
            set_limit(limit)

    return apply