"""
Example: Co-borrowing recommendations with explanations.

Loads the synthetic two-community library, then asks for recommendations
for a science-fiction reader and for the bridge reader who borrowed from
both communities.
"""

import logging

from shelfrank import ShelfRank, RecommenderConfig
from shelfrank.datasets import generate_library_borrows, generate_library_catalogue
from shelfrank.datasets.library import REFERENCE_TIME


def main():
    config = RecommenderConfig.default()
    logging.basicConfig(level=config.log_level)

    with ShelfRank(config=config) as db:
        db.load_borrows(generate_library_borrows())
        db.load_books(generate_library_catalogue())

        for reader in ["R1", "R9"]:
            print(f"\n--- Recommendations for {reader} ---")
            for rec in db.explain(reader, n=5, now=REFERENCE_TIME):
                print(f"{rec.score:.4f}  {rec.title:<22} {rec.summary}")
                for path in rec.paths[1:]:
                    print(f"        also via {path.source_book_title!r} ({path.contribution:.3f})")

        # Same result as an Arrow table
        print(db.recommend("R9", n=3, now=REFERENCE_TIME).to_pandas()[["book_id", "title", "score", "reason"]])


if __name__ == "__main__":
    main()
