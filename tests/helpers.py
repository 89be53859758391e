# tests/helpers.py
from concurrent.futures import Executor, Future

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    name = Column(String(50))
    created_at = Column(DateTime)


# MySQL EXPLAIN: id, select_type, table, partitions, type, ...
FULL_SCAN_ROW = (1, "SIMPLE", "users", None, "ALL", None, None, None, 1000, 100.0, "Using where")
INDEX_ROW = (1, "SIMPLE", "users", None, "index", "PRIMARY", "PRIMARY", "4", 1, 100.0, None)


class InlineExecutor(Executor):
    """Runs submitted work on the calling thread."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as e:
            future.set_exception(e)
        return future


class FakeCursor:
    def __init__(self, rows, error=None, close_error=None):
        self.rows = rows
        self.error = error
        self.close_error = close_error
        self.executed = []
        self.closed = False

    def execute(self, sql):
        self.executed.append(sql)
        if self.error:
            raise self.error

    def fetchall(self):
        return self.rows

    def close(self):
        self.closed = True
        if self.close_error:
            raise self.close_error


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.closed = False

    def cursor(self):
        return self._cursor

    def close(self):
        self.closed = True


class FakeEngine:
    """Stands in for the pool: hands out fake DBAPI connections."""

    def __init__(self, rows=(), error=None, close_error=None):
        self.rows = list(rows)
        self.error = error
        self.close_error = close_error
        self.connections = []

    def raw_connection(self):
        conn = FakeConnection(FakeCursor(self.rows, self.error, self.close_error))
        self.connections.append(conn)
        return conn

    @property
    def cursors(self):
        return [c._cursor for c in self.connections]
