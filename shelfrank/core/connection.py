from __future__ import annotations
import duckdb
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Union
import pyarrow as pa

Params = Optional[Union[list, dict]]

class DuckDBConnection:
    """DuckDB handle holding the borrow log and the book catalogue."""
    def __init__(
        self,
        database: Union[str, Path] = ":memory:",
        memory_limit: Optional[str] = None,
        threads: Optional[int] = None,
    ):
        self._database = str(database)
        self.conn = duckdb.connect(self._database)
        settings = {"memory_limit": f"'{memory_limit}'" if memory_limit else None, "threads": threads}
        for name, value in settings.items():
            if value: self.conn.execute(f"SET {name}={value}")

    def execute(self, query: str, params: Params = None) -> duckdb.DuckDBPyConnection:
        return self.conn.execute(query, params)

    def query(self, query: str, params: Params = None) -> pa.Table:
        result = self.execute(query, params).arrow()
        # newer duckdb hands back a RecordBatchReader
        return result.read_all() if hasattr(result, "read_all") else result

    def rows(self, query: str, params: Params = None) -> List[dict]:
        return self.query(query, params).to_pylist()

    def row_count(self, table_name: str) -> int:
        return self.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]

    def table_exists(self, table_name: str) -> bool:
        return self._probe(f"SELECT 1 FROM {table_name} LIMIT 0")

    def column_exists(self, table_name: str, column_name: str) -> bool:
        return self._probe(f"SELECT {column_name} FROM {table_name} LIMIT 0")

    def _probe(self, query: str) -> bool:
        try:
            self.conn.execute(query)
        except duckdb.Error:
            return False
        return True

    def create_index(self, table_name: str, column: str):
        self.execute(f"CREATE INDEX IF NOT EXISTS idx_{table_name}_{column} ON {table_name}({column})")

    @contextmanager
    def staged(self, name: str, frame: Any) -> Iterator[str]:
        """Expose ``frame`` as the view ``name`` for the duration of the block."""
        self.conn.register(name, frame)
        try:
            yield name
        finally:
            self.conn.unregister(name)

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *_):
        self.close()

    def __repr__(self) -> str:
        return f"DuckDBConnection(database={self._database!r})"
