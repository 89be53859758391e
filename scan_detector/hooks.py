"""
scan_detector/hooks.py

SQLAlchemy event listeners that hand read queries to the detector:
- ORM: `do_orm_execute` on a Session class / sessionmaker / session
- Core: `before_execute` on an Engine
The statement is compiled later, on the detector's worker, against a
qmark copy of the engine dialect so placeholders come out as `?`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, List

from sqlalchemy import event
from sqlalchemy.engine import Dialect, Engine
from sqlalchemy.orm import ORMExecuteState
from sqlalchemy.sql.elements import TextClause

from scan_detector.sql_formatter import BoundSql, ParameterMapping


READ_PREFIXES = ("select", "with")


@lru_cache(maxsize=None)
def _qmark_dialect(dialect_cls) -> Dialect:
    return dialect_cls(paramstyle="qmark")


def is_read_statement(statement) -> bool:
    if isinstance(statement, TextClause):
        return statement.text.lstrip().lower().startswith(READ_PREFIXES)
    return bool(getattr(statement, "is_select", False))


def bound_sql_from_statement(statement, dialect: Dialect, additional_parameters=None) -> BoundSql:
    """Compile a SQLAlchemy statement into a `?` template plus its parameters."""
    if additional_parameters:
        # expanding IN binds need their values before render_postcompile
        statement = statement.params(dict(additional_parameters))
    compiled = statement.compile(
        dialect=_qmark_dialect(type(dialect)),
        compile_kwargs={"render_postcompile": True},
    )
    mappings = []
    for name in compiled.positiontup or ():
        bind = compiled.binds.get(name)
        mode = "OUT" if bind is not None and bind.isoutparam else "IN"
        mappings.append(ParameterMapping(name, mode))

    return BoundSql(
        sql=compiled.string,
        parameter_mappings=mappings,
        parameter_object=compiled.params,
        additional_parameters=dict(additional_parameters or {}),
    )


@dataclass
class InterceptedCall:
    """A read statement caught by a hook, not yet compiled."""
    statement: Any
    dialect: Dialect
    parameters: Mapping = field(default_factory=dict)

    def bound_sql(self) -> BoundSql:
        return bound_sql_from_statement(self.statement, self.dialect, self.parameters)


def _parameter_sets(params) -> List[dict]:
    """One dict per execution parameter set (several for executemany)."""
    if isinstance(params, Mapping):
        return [dict(params)]
    sets = [dict(p) for p in params or () if isinstance(p, Mapping)]
    return sets or [{}]


def attach_orm_hook(target, dialect: Dialect, on_query: Callable[[InterceptedCall], None]) -> Callable[[], None]:
    """Listen for ORM selects on `target`; returns a function that detaches."""

    def _do_orm_execute(orm_execute_state: ORMExecuteState):
        if not is_read_statement(orm_execute_state.statement):
            return
        for params in _parameter_sets(orm_execute_state.parameters):
            on_query(InterceptedCall(orm_execute_state.statement, dialect, params))

    event.listen(target, "do_orm_execute", _do_orm_execute)
    return lambda: event.remove(target, "do_orm_execute", _do_orm_execute)


def attach_engine_hook(engine: Engine, on_query: Callable[[InterceptedCall], None]) -> Callable[[], None]:
    """Listen for Core read statements on `engine`; returns a function that detaches."""

    def _before_execute(conn, clauseelement, multiparams, params, execution_options):
        # exec_driver_sql hands over a plain string
        if isinstance(clauseelement, str) or not is_read_statement(clauseelement):
            return
        for additional in _parameter_sets(params or multiparams):
            on_query(InterceptedCall(clauseelement, engine.dialect, additional))

    event.listen(engine, "before_execute", _before_execute)
    return lambda: event.remove(engine, "before_execute", _before_execute)
