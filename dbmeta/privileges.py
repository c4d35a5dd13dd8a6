"""Privileges granted on database objects and their compact text form."""

from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from operator import attrgetter
from typing import Iterable


@dataclass(frozen=True)
class ObjectPrivilege:
    """A privilege granted on a database object."""

    grantee: str
    grantor: str
    privilege_type: str
    is_grantable: bool = False

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (self.grantee, self.grantor, self.privilege_type)


@dataclass(frozen=True)
class ColumnPrivilege:
    """A privilege granted on a single column."""

    column: str
    grantee: str
    grantor: str
    privilege_type: str
    is_grantable: bool = False

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.column, self.grantee, self.grantor, self.privilege_type)


def _type_str(privilege: ObjectPrivilege | ColumnPrivilege) -> str:
    """Mark grantable privileges with a trailing asterisk."""
    if privilege.is_grantable:
        return privilege.privilege_type + "*"
    return privilege.privilege_type


def _line(grantee: str, grantor: str, privileges: Iterable) -> str:
    types = ",".join(_type_str(p) for p in privileges)
    if grantor:
        return f"{grantee}={types}/{grantor}"
    return f"{grantee}={types}"


_by_grant = attrgetter("grantee", "grantor")


class ObjectPrivileges(list):
    """Privileges on an object; ``str()`` expects them to be sorted."""

    def sort(self, *, key=None, reverse: bool = False) -> None:
        super().sort(key=key or attrgetter("sort_key"), reverse=reverse)

    def __str__(self) -> str:
        return "\n".join(
            _line(grantee, grantor, group)
            for (grantee, grantor), group in groupby(self, key=_by_grant)
        )


class ColumnPrivileges(list):
    """Privileges on columns; ``str()`` expects them to be sorted."""

    def sort(self, *, key=None, reverse: bool = False) -> None:
        super().sort(key=key or attrgetter("sort_key"), reverse=reverse)

    def __str__(self) -> str:
        blocks = []
        for column, column_group in groupby(self, key=attrgetter("column")):
            lines = [
                "  " + _line(grantee, grantor, group)
                for (grantee, grantor), group in groupby(column_group, key=_by_grant)
            ]
            blocks.append(f"{column}:\n" + "\n".join(lines))
        return "\n".join(blocks)