"""
scan_detector/database.py

Centralized database utilities:
- get_engine: build SQLAlchemy engine from DB_URL
- get_default_engine: lazily built shared engine
- execute_query: run SQL through the pool (and any installed hooks)
"""

from typing import Optional

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from scan_detector.config import DB_URL

_engine: Optional[Engine] = None


# ---------------- Engine ----------------
def get_engine(url: str = DB_URL) -> Engine:
    """Return a SQLAlchemy engine with connection pooling."""
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=5,
        max_overflow=10,
        future=True
    )


def get_default_engine() -> Engine:
    """Shared engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# ---------------- Query Execution ----------------
def execute_query(sql: str, params=None, engine: Optional[Engine] = None):
    """
    Run SQL through the pool.
    - If query is SELECT/WITH -> returns DataFrame
    - Otherwise -> returns affected row count
    """
    eng = engine or get_default_engine()
    sql_clean = sql.strip().rstrip(";")
    stmt = text(sql_clean)

    if sql_clean.lower().startswith(("select", "with")):
        with eng.connect() as conn:
            return pd.read_sql(stmt, conn, params=params)

    with eng.begin() as conn:
        result = conn.execute(stmt, params or {})
        return result.rowcount
