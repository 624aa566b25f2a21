"""
shelfrank.datasets.library — A small two-community lending library.
"""
from __future__ import annotations
import pandas as pd
from datetime import datetime, timedelta
from typing import Optional

REFERENCE_TIME = datetime(2024, 6, 1, 12, 0, 0)


def generate_library_borrows(now: Optional[datetime] = None, seed: Optional[int] = None) -> pd.DataFrame:
    """
    Generate a borrow log with two reading communities and one bridge reader.

    Structure:
    - **Science fiction** (B1 Dune, B2 Foundation, B3 Hyperion,
      B4 Neuromancer): readers R1-R4.
    - **Classics** (B5 Pride and Prejudice, B6 Jane Eyre, B7 Emma,
      B8 Middlemarch): readers R5-R8.
    - **Bridge**: R9 borrowed Neuromancer and Pride and Prejudice, the only
      link between the two communities.

    Borrow times are expressed as days before ``now`` (default
    ``REFERENCE_TIME``), so decay weights are reproducible.

    Columns: ``user_id``, ``book_id``, ``borrow_time``

    Returns
    -------
    pd.DataFrame
        20 rows across 9 readers and 8 books.

    Example
    -------
    >>> from shelfrank.datasets import generate_library_borrows
    >>> df = generate_library_borrows()
    >>> df[df["user_id"] == "R9"]
    """
    now = now or REFERENCE_TIME
    borrows = [
        # Science fiction
        ("R1", "B1", 30), ("R1", "B2", 20),
        ("R2", "B1", 10), ("R2", "B3", 5),
        ("R3", "B2", 15), ("R3", "B3", 12), ("R3", "B4", 3),
        ("R4", "B1", 40), ("R4", "B4", 8),
        # Classics
        ("R5", "B5", 25), ("R5", "B6", 18),
        ("R6", "B5", 9), ("R6", "B7", 4),
        ("R7", "B6", 14), ("R7", "B7", 11), ("R7", "B8", 2),
        ("R8", "B5", 35), ("R8", "B8", 6),
        # Bridge
        ("R9", "B4", 7), ("R9", "B5", 1),
    ]
    rows = [(u, b, now - timedelta(days=d)) for u, b, d in borrows]
    return pd.DataFrame(rows, columns=["user_id", "book_id", "borrow_time"])


def generate_library_catalogue() -> pd.DataFrame:
    """
    Catalogue metadata for the books in ``generate_library_borrows``.

    Columns: ``book_id``, ``title``, ``author``, ``category``
    """
    books = [
        ("B1", "Dune", "Frank Herbert", "Science Fiction"),
        ("B2", "Foundation", "Isaac Asimov", "Science Fiction"),
        ("B3", "Hyperion", "Dan Simmons", "Science Fiction"),
        ("B4", "Neuromancer", "William Gibson", "Science Fiction"),
        ("B5", "Pride and Prejudice", "Jane Austen", "Classics"),
        ("B6", "Jane Eyre", "Charlotte Bronte", "Classics"),
        ("B7", "Emma", "Jane Austen", "Classics"),
        ("B8", "Middlemarch", "George Eliot", "Classics"),
    ]
    return pd.DataFrame(books, columns=["book_id", "title", "author", "category"])
