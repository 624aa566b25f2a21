"""
shelfrank.datasets — Synthetic library borrow logs for examples and tests.

Each generator produces a ready-to-use ``pd.DataFrame`` with documented
columns and a known co-borrowing structure.
"""

from .library import generate_library_borrows, generate_library_catalogue

__all__ = [
    "generate_library_borrows",
    "generate_library_catalogue",
]
