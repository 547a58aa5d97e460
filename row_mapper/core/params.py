"""Statement parameters.

The store writes every statement with `:name` placeholders and binds
values through dicts. Drivers using the ``pyformat`` style get the
statement rewritten to `%(name)s`, leaving string literals and PostgreSQL
`::typecast` syntax untouched.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from typing import Any

# :name, but not ::typecast and not inside words
_PARAM_PATTERN = re.compile(r"(?<![:\w]):([a-zA-Z_]\w*)")

# Captured so that re.split keeps the literals at odd indexes
_STRING_LITERAL_PATTERN = re.compile(r"('(?:[^'\\]|\\.)*')")

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def normalize_params(sql: str, paramstyle: str) -> str:
    """Rewrite :name placeholders for the driver's paramstyle.

    Args:
        sql: Statement written with :name placeholders.
        paramstyle: 'named' (returned as is) or 'pyformat' (%(name)s).

    Returns:
        The statement in the driver's placeholder syntax.
    """
    if paramstyle == "named":
        return sql
    return _to_pyformat(sql)


@lru_cache(maxsize=256)
def _to_pyformat(sql: str) -> str:
    pieces = _STRING_LITERAL_PATTERN.split(sql)
    converted = []
    for index, piece in enumerate(pieces):
        # Literal percent signs must be doubled once the driver formats the statement
        piece = piece.replace("%", "%%")
        if index % 2 == 0:
            piece = _PARAM_PATTERN.sub(r"%(\1)s", piece)
        converted.append(piece)
    return "".join(converted)


def quote_identifier(name: str) -> str:
    """Double-quote a table or column name after validating it.

    Raises:
        ValueError: If the name is not a plain SQL identifier.
    """
    if not _IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def bind_values(values: Mapping[str, Any], prefix: str = "v_") -> dict[str, Any]:
    """Parameters for column values, named ``{prefix}{column}``."""
    return {f"{prefix}{column}": value for column, value in values.items()}


def column_list(columns: Iterable[str], prefix: str = "v_") -> tuple[str, str]:
    """Quoted column list and matching placeholder list for an INSERT."""
    columns = list(columns)
    return (
        ", ".join(quote_identifier(column) for column in columns),
        ", ".join(f":{prefix}{column}" for column in columns),
    )


def assignments(columns: Iterable[str], prefix: str = "v_") -> str:
    """SET clause body binding each column to ``:{prefix}{column}``."""
    return ", ".join(f"{quote_identifier(column)} = :{prefix}{column}" for column in columns)


def in_clause(column: str, keys: list[Any], prefix: str = "k") -> tuple[str, dict[str, Any]]:
    """``column IN (...)`` condition with one placeholder per key."""
    params = {f"{prefix}{i}": key for i, key in enumerate(keys)}
    placeholders = ", ".join(f":{name}" for name in params)
    return f"{quote_identifier(column)} IN ({placeholders})", params
