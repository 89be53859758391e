"""
scan_detector/sql_formatter.py

Rebuild the literal SQL of an intercepted query:
- Collapse whitespace runs to a single space
- Resolve each parameter mapping to a value (additional param > scalar > property)
- Render numbers bare, strings/dates single-quoted, anything else as ''
- Replace each `?` left to right with the rendered literal
"""

from __future__ import annotations

import datetime
import numbers
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional

from scan_detector.config import DATE_FORMAT, TIME_FORMAT

WHITESPACE = re.compile(r"\s+")
PLACEHOLDER = "?"

# values passed as the whole parameter object are used directly
SCALAR_TYPES = (
    str, bytes, bool, numbers.Number, Decimal, uuid.UUID,
    datetime.date, datetime.datetime, datetime.time,
)


@dataclass(frozen=True)
class ParameterMapping:
    property: str
    mode: str = "IN"


@dataclass
class BoundSql:
    """A read query as seen by the hook: `?` template plus parameter sources."""
    sql: str
    parameter_mappings: List[ParameterMapping] = field(default_factory=list)
    parameter_object: Any = None
    additional_parameters: Mapping = field(default_factory=dict)

    def has_additional_parameter(self, name: str) -> bool:
        return name in self.additional_parameters


def beautify_sql(sql: str) -> str:
    return WHITESPACE.sub(" ", sql)


def read_property(obj: Any, path: str) -> Any:
    """Read `a.b.c` off nested mappings/objects; missing -> None."""
    value = obj
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def resolve_value(bound_sql: BoundSql, mapping: ParameterMapping) -> Any:
    name = mapping.property
    parameter_object = bound_sql.parameter_object
    if bound_sql.has_additional_parameter(name):
        return bound_sql.additional_parameters[name]
    if parameter_object is None:
        return None
    if isinstance(parameter_object, SCALAR_TYPES):
        return parameter_object
    return read_property(parameter_object, name)


def render_value(value: Any) -> str:
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date)):
        return f"'{value.strftime(DATE_FORMAT)}'"
    if isinstance(value, datetime.time):
        return f"'{value.strftime(TIME_FORMAT)}'"
    if isinstance(value, str):
        return f"'{value}'"
    return "''"


def format_sql(bound_sql: BoundSql, sql: Optional[str] = None) -> str:
    """Replace placeholders with literal values.

    Substitution is a plain first-match replace, so a string value that
    itself contains `?` shifts every later value one placeholder to the left.
    """
    sql = beautify_sql(bound_sql.sql if sql is None else sql)

    parameters = [
        render_value(resolve_value(bound_sql, m))
        for m in bound_sql.parameter_mappings
        if m.mode != "OUT"
    ]

    for value in parameters:
        sql = sql.replace(PLACEHOLDER, value, 1)
    return sql


def get_sql(bound_sql: BoundSql) -> str:
    """Full literal SQL for the bound query ('' for an empty template)."""
    if not bound_sql.sql:
        return ""
    return format_sql(bound_sql)
