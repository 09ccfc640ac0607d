# Path: scripts/quick_search_demo.py
# Purpose: Simple CLI to find library images similar to a query image.
# Layer: scripts.
# Details: Loads the cached fingerprints of a folder and ranks them against the query.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import AppSettings
from core.session import LibrarySession


def main() -> None:
    """Execute a quick similarity search from the command line."""

    parser = argparse.ArgumentParser(description="Find images similar to a query image")
    parser.add_argument("--image", type=Path, required=True, help="Query image")
    parser.add_argument("--folder", type=Path, default=None, help="Indexed library folder")
    parser.add_argument("--threshold", type=int, default=None, help="Minimum similarity in percent")
    parser.add_argument("--k", type=int, default=None, help="Maximum number of results")
    parser.add_argument(
        "--mode", choices=["auto", "pixel", "semantic", "hybrid"], default="auto", help="Scoring mode"
    )
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.folder is not None:
        settings.library_root = args.folder
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    with LibrarySession(settings) as session:
        session.open(settings.library_root)
        if args.mode != "pixel":
            session.load_embedder()
        results = session.search_file(args.image, mode=args.mode, threshold=args.threshold, max_results=args.k)

    if not results:
        print("No similar images found")
    for result in results:
        print(f"{result.item_id} {result.score:.3f}")


if __name__ == "__main__":
    main()
