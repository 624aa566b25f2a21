"""Read-only access to borrowing history and catalogue metadata."""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional
from shelfrank.core.connection import DuckDBConnection


@dataclass(frozen=True)
class BorrowRecord:
    """One entry of a reader's borrow history."""

    book_id: str
    borrow_time: datetime


@dataclass(frozen=True)
class CoBorrower:
    """A reader who borrowed a given book, and when."""

    user_id: str
    borrow_time: datetime


@dataclass(frozen=True)
class BookMetadata:
    book_id: str
    title: str
    author: Optional[str] = None
    category: Optional[str] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    available_count: Optional[int] = None


class BorrowRepository(ABC):
    """Source of borrow events and book metadata for the recommender.

    Histories and co-borrower lists are returned most recent first.
    Implementations let their own errors propagate; the recommender does
    not retry.
    """

    @abstractmethod
    def find_borrow_history(self, user_id: Any) -> List[BorrowRecord]:
        ...

    @abstractmethod
    def find_co_borrowers(self, book_id: Any) -> List[CoBorrower]:
        ...

    @abstractmethod
    def find_book_metadata(self, book_id: Any) -> Optional[BookMetadata]:
        ...


class DuckDBBorrowRepository(BorrowRepository):
    def __init__(self, conn: DuckDBConnection, borrows_table: str = "borrows", books_table: str = "books"):
        self.conn = conn
        self.borrows_table, self.books_table = borrows_table, books_table

    def find_borrow_history(self, user_id: Any) -> List[BorrowRecord]:
        rows = self.conn.rows(
            f"SELECT book_id, borrow_time FROM {self.borrows_table} WHERE user_id = ? ORDER BY borrow_time DESC, book_id",
            [str(user_id)],
        )
        return [BorrowRecord(r["book_id"], r["borrow_time"]) for r in rows]

    def find_co_borrowers(self, book_id: Any) -> List[CoBorrower]:
        rows = self.conn.rows(
            f"SELECT user_id, borrow_time FROM {self.borrows_table} WHERE book_id = ? ORDER BY borrow_time DESC, user_id",
            [str(book_id)],
        )
        return [CoBorrower(r["user_id"], r["borrow_time"]) for r in rows]

    def find_book_metadata(self, book_id: Any) -> Optional[BookMetadata]:
        if not self.conn.table_exists(self.books_table): return None
        rows = self.conn.rows(f"SELECT * FROM {self.books_table} WHERE book_id = ? LIMIT 1", [str(book_id)])
        if not rows: return None
        r = rows[0]
        return BookMetadata(
            book_id=r["book_id"],
            title=r["title"],
            author=r.get("author"),
            category=r.get("category"),
            publisher=r.get("publisher"),
            description=r.get("description"),
            available_count=r.get("available_count"),
        )

    def __repr__(self) -> str:
        return f"DuckDBBorrowRepository(borrows={self.borrows_table!r}, books={self.books_table!r})"
