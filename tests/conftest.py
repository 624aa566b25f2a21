# ---------------------------------------------------------------------------
# Tests configuration
# ---------------------------------------------------------------------------

from datetime import datetime, timedelta

import pytest

from shelfrank.core.connection import DuckDBConnection
from shelfrank.core.ingestion import load_borrows, load_books
from shelfrank.core.repository import BorrowRepository, BorrowRecord, CoBorrower, BookMetadata, DuckDBBorrowRepository
from shelfrank.datasets import generate_library_borrows, generate_library_catalogue
from shelfrank.datasets.library import REFERENCE_TIME


class StaticRepository(BorrowRepository):
    """In-memory repository over (user, book, borrow_time) tuples; records every call."""

    def __init__(self, borrows, titles=None):
        self.borrows = [(str(u), str(b), t) for u, b, t in borrows]
        self.titles = {str(k): v for k, v in (titles or {}).items()}
        self.calls = []

    def _sorted(self, rows, key_idx):
        rows = sorted(rows, key=lambda r: r[key_idx])
        return sorted(rows, key=lambda r: r[2], reverse=True)

    def find_borrow_history(self, user_id):
        self.calls.append(("history", str(user_id)))
        rows = self._sorted([r for r in self.borrows if r[0] == str(user_id)], 1)
        return [BorrowRecord(b, t) for _, b, t in rows]

    def find_co_borrowers(self, book_id):
        self.calls.append(("co_borrowers", str(book_id)))
        rows = self._sorted([r for r in self.borrows if r[1] == str(book_id)], 0)
        return [CoBorrower(u, t) for u, _, t in rows]

    def find_book_metadata(self, book_id):
        self.calls.append(("metadata", str(book_id)))
        title = self.titles.get(str(book_id))
        return BookMetadata(str(book_id), title) if title is not None else None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def now():
    """Fixed clock shared by the borrow dataset and the builders."""
    return REFERENCE_TIME


@pytest.fixture
def conn():
    """In-memory DuckDB connection for each test."""
    db = DuckDBConnection()  # :memory:
    yield db
    db.close()


@pytest.fixture
def borrows_df(now):
    return generate_library_borrows(now=now)


@pytest.fixture
def catalogue_df():
    return generate_library_catalogue()


@pytest.fixture
def loaded_conn(conn, borrows_df, catalogue_df):
    """Connection with the library borrow log and catalogue loaded."""
    load_borrows(conn, borrows_df)
    load_books(conn, catalogue_df)
    return conn


@pytest.fixture
def repository(loaded_conn):
    return DuckDBBorrowRepository(loaded_conn)


@pytest.fixture
def example_repository(now):
    """U1 borrowed B1 ten days ago; U2 borrowed B1 five days ago and B2 three days ago."""
    return StaticRepository(
        [
            ("U1", "B1", now - timedelta(days=10)),
            ("U2", "B1", now - timedelta(days=5)),
            ("U2", "B2", now - timedelta(days=3)),
        ],
        titles={"B1": "The Left Hand of Darkness", "B2": "The Dispossessed"},
    )


@pytest.fixture
def make_repository():
    """Factory for in-memory repositories: ``make_repository(borrows, titles=None)``."""
    return StaticRepository
