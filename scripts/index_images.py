# Path: scripts/index_images.py
# Purpose: CLI tool to scan an image folder and build its fingerprint cache.
# Layer: scripts.
# Details: Wires scanning, the library session, and tqdm progress bars together; Ctrl+C stops at the next chunk.

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tqdm import tqdm

from config import AppSettings
from core.session import LibrarySession

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def main() -> None:
    """Run both indexing phases over a folder of images."""

    parser = argparse.ArgumentParser(description="Build the lookalike fingerprint cache for a folder")
    parser.add_argument("--folder", type=Path, default=None, help="Folder containing images to index")
    parser.add_argument("--cache-dir", type=Path, default=None, help="Directory holding cache documents")
    parser.add_argument("--model-dir", type=Path, default=None, help="Directory containing the embedding model")
    parser.add_argument("--no-embedding", action="store_true", help="Skip the embedding phase")
    parser.add_argument("--chunk-size", type=int, default=None, help="Images fingerprinted per chunk")
    args = parser.parse_args()

    settings = AppSettings.from_env()
    if args.folder is not None:
        settings.library_root = args.folder
    if args.cache_dir is not None:
        settings.cache.directory = args.cache_dir
    if args.model_dir is not None:
        settings.embedder.model_dir = args.model_dir
    if args.chunk_size is not None:
        settings.indexer.chunk_size = args.chunk_size
    if args.no_embedding:
        settings.embedder.enabled = False

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    bars: Dict[str, tqdm] = {}

    def on_progress(processed: int, total: int, phase: str) -> None:
        bar = bars.get(phase)
        if bar is None:
            bar = bars[phase] = tqdm(total=total, desc=phase, unit="img")
        bar.n = processed
        bar.refresh()

    session = LibrarySession(settings)
    try:
        session.open(settings.library_root)
        items = session.refresh_items()
        print(f"Found {session.image_count} images under {settings.library_root}")

        if session.embedder is not None:
            session.load_embedder(settings.embedder.model_dir)

        worker = session.start_indexing(on_progress)
        try:
            while worker.is_alive():
                worker.join(0.2)
        except KeyboardInterrupt:
            session.stop_indexing()
            worker.join()
            print("Interrupted; progress so far is kept in the cache")
    finally:
        for bar in bars.values():
            bar.close()
        session.close()

    embedded = sum(1 for record in session.cache.items().values() if record.is_embedding_complete)
    print(f"Cached {session.cache.count()} of {len(items)} items ({embedded} with embeddings) in {session.storage.path}")


if __name__ == "__main__":
    main()
