"""
scan_detector/detector.py

Full-table-scan detector for dev/test profiles:
- Rebuilds the literal SQL of each intercepted read query
- Runs `explain <sql>` on a pooled connection, off the caller's thread
- Logs an error for every plan row whose access type is ALL
Failures are logged and swallowed; the original query always proceeds.
"""
from __future__ import annotations

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from scan_detector.config import (
    ACCESS_TYPE_COLUMN,
    APP_PROFILE,
    FULL_SCAN_MARKER,
    SCAN_ERROR_CODE,
    SCAN_WORKERS,
    is_profile_active,
)
from scan_detector.hooks import attach_engine_hook, attach_orm_hook
from scan_detector.sql_formatter import BoundSql, get_sql

# ---------------- Setup ----------------
logger = logging.getLogger("scan_detector")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

ERROR_TEMPLATE = "系统错误[errorCode%s]: "
EXPLAIN_PREFIX = "explain "


class FullTableScanError(RuntimeError):
    """Logged (never raised) when a plan row reports a full table scan."""

    def __init__(self, sql: str):
        super().__init__(f"当前sql触发全表扫描，请立即优化! sql: {sql}")
        self.sql = sql


def _close(handle, name: str) -> None:
    try:
        handle.close()
    except Exception:
        logger.exception("failed to close explain %s", name)


def _is_orm_target(target) -> bool:
    if isinstance(target, type):
        return issubclass(target, Session)
    return isinstance(target, (Session, sessionmaker))


# ---------------- Detector ----------------
class ScanDetector:
    def __init__(self, engine: Engine, executor: Optional[Executor] = None, max_workers: int = SCAN_WORKERS):
        self.engine = engine
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="scan-detector"
        )
        self._detach: List[Callable[[], None]] = []

    # ---------- Hooks ----------
    def install(self, target=None) -> "ScanDetector":
        """Attach to an Engine (Core) or a Session class/sessionmaker/session (ORM)."""
        target = self.engine if target is None else target
        if isinstance(target, Engine):
            self._detach.append(attach_engine_hook(target, self.on_query))
        elif _is_orm_target(target):
            self._detach.append(attach_orm_hook(target, self.engine.dialect, self.on_query))
        else:
            raise TypeError(f"Cannot intercept queries on {target!r}")
        return self

    def uninstall(self) -> None:
        while self._detach:
            self._detach.pop()()

    def shutdown(self, wait: bool = True) -> None:
        self.uninstall()
        self.executor.shutdown(wait=wait)

    # ---------- Analysis ----------
    def on_query(self, call: Any) -> None:
        """Fire-and-forget: queue the explain analysis and return at once."""
        try:
            self.executor.submit(self.analyze, call)
        except Exception:
            logger.exception("failed to dispatch explain plan analysis")

    def analyze(self, call: Any) -> int:
        """Explain one query; returns how many plan rows are full table scans."""
        try:
            bound_sql = call if isinstance(call, BoundSql) else call.bound_sql()
            sql = get_sql(bound_sql)
            if not sql.strip():
                logger.debug("empty statement, nothing to explain")
                return 0
            explain_sql = EXPLAIN_PREFIX + sql
            return self.inspect_plan(explain_sql, self.explain(explain_sql))
        except Exception:
            logger.exception("execute explain plan sql exception!")
            return 0

    def explain(self, explain_sql: str) -> List[Sequence]:
        conn = self.engine.raw_connection()
        try:
            cursor = conn.cursor()
            try:
                cursor.execute(explain_sql)
                return list(cursor.fetchall())
            finally:
                _close(cursor, "cursor")
        finally:
            _close(conn, "connection")

    def inspect_plan(self, explain_sql: str, rows) -> int:
        found = 0
        for row in rows:
            access_type = row[ACCESS_TYPE_COLUMN]
            if access_type is not None and str(access_type) == FULL_SCAN_MARKER:
                found += 1
                logger.error(
                    ERROR_TEMPLATE + "%s", SCAN_ERROR_CODE, FullTableScanError(explain_sql), stack_info=True
                )
        return found


def install_scan_detector(engine: Engine, target=None, profile: Optional[str] = None, **kwargs) -> Optional[ScanDetector]:
    """Install a detector when the profile allows it, else return None."""
    active = profile or APP_PROFILE
    if not is_profile_active(active):
        logger.info("Scan detector disabled for profile %r", active)
        return None
    detector = ScanDetector(engine, **kwargs).install(target)
    logger.info("Scan detector enabled for profile %r", active)
    return detector
