from __future__ import annotations
from typing import Any, Dict, List, Union
from pathlib import Path
import narwhals as nw
from shelfrank.core.connection import DuckDBConnection

BOOK_OPTIONAL_COLUMNS: Dict[str, str] = {
    "author": "VARCHAR",
    "category": "VARCHAR",
    "publisher": "VARCHAR",
    "description": "VARCHAR",
    "available_count": "INTEGER",
}

def _schema_names(df) -> List[str]:
    try: return list(df.collect_schema().names())
    except AttributeError: return list(df.columns)

def _read_file(conn: DuckDBConnection, source: Union[str, Path]):
    p = str(source)
    if p.endswith(".csv"): return conn.query(f"SELECT * FROM read_csv_auto('{p}')")
    if p.endswith(".parquet"): return conn.query(f"SELECT * FROM read_parquet('{p}')")
    raise ValueError("Unsupported file type")

def _to_frame(conn, source):
    if isinstance(source, (str, Path)): source = _read_file(conn, source)
    try: df = nw.from_native(source)
    except TypeError: raise ValueError(f"Unsupported source type: {type(source).__name__}")
    if isinstance(df, nw.LazyFrame): df = df.collect()
    return df
def _prepare_source(source: Any, rename: Dict[str, str], required: List[str], conn: DuckDBConnection):
    df = _to_frame(conn, source)
    names = _schema_names(df)
    missing = [c for c in rename if c not in names]
    if missing: raise ValueError(f"Missing columns: {missing}")
    df = df.rename({k: v for k, v in rename.items() if k != v}).drop_nulls(subset=required)
    return df.to_native()

def _upsert(conn: DuckDBConnection, staged: str, table_name: str, append: bool):
    if not append or not conn.table_exists(table_name):
        conn.execute(f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM {staged}")
    else:
        conn.execute(f"INSERT INTO {table_name} BY NAME SELECT * FROM {staged}")

def load_borrows(conn, source, user_col="user_id", book_col="book_id", time_col="borrow_time", table_name="borrows", append=False) -> int:
    """Load borrow events (user, book, borrow time) into ``table_name``.

    Rows missing any of the three fields are dropped. Returns the table's row count.
    """
    frame = _prepare_source(source, {user_col: "user_id", book_col: "book_id", time_col: "borrow_time"}, ["user_id", "book_id", "borrow_time"], conn)
    with conn.staged("_tmp_source", frame) as staged:
        conn.execute(f"""
            CREATE OR REPLACE TEMP TABLE _tmp_borrows AS
            SELECT user_id::VARCHAR AS user_id, book_id::VARCHAR AS book_id, borrow_time::TIMESTAMP AS borrow_time
            FROM {staged}
        """)
    _upsert(conn, "_tmp_borrows", table_name, append)
    conn.create_index(table_name, "user_id")
    conn.create_index(table_name, "book_id")
    return conn.row_count(table_name)

def _book_select_list(conn: DuckDBConnection, staged: str) -> str:
    cols = ["book_id::VARCHAR AS book_id", "title::VARCHAR AS title"]
    for col, sql_type in BOOK_OPTIONAL_COLUMNS.items():
        src = col if conn.column_exists(staged, col) else "NULL"
        cols.append(f"{src}::{sql_type} AS {col}")
    return ", ".join(cols)

def load_books(conn, source, id_col="book_id", title_col="title", table_name="books", append=False) -> int:
    """Load catalogue metadata. Optional columns (author, category, ...) are NULL when absent."""
    frame = _prepare_source(source, {id_col: "book_id", title_col: "title"}, ["book_id", "title"], conn)
    with conn.staged("_tmp_source", frame) as staged:
        conn.execute(f"CREATE OR REPLACE TEMP TABLE _tmp_books AS SELECT {_book_select_list(conn, staged)} FROM {staged}")
    _upsert(conn, "_tmp_books", table_name, append)
    conn.create_index(table_name, "book_id")
    return conn.row_count(table_name)
