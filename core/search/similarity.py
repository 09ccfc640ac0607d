# Path: core/search/similarity.py
# Purpose: Compare perceptual hashes, color histograms, and embeddings.
# Layer: core/search.
# Details: Stateless scoring primitives; per-mode weighting lives in strategies.py, ranking in ranking.py.

from __future__ import annotations

from typing import Optional, Sequence

import imagehash
import numpy as np

from core.fingerprint.phash import HASH_HEX_LENGTH

MAX_HAMMING_BITS = 256


def hamming_distance(hash_a: Optional[str], hash_b: Optional[str]) -> int:
    """Count differing bits between two hex hashes; mismatched or missing hashes score worst."""

    if not hash_a or not hash_b or len(hash_a) != len(hash_b):
        return MAX_HAMMING_BITS
    try:
        if len(hash_a) == HASH_HEX_LENGTH:
            return int(imagehash.hex_to_hash(hash_a) - imagehash.hex_to_hash(hash_b))
        # Shorter hashes are not square bit grids, which hex_to_hash rejects.
        return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")
    except (TypeError, ValueError):
        return MAX_HAMMING_BITS


def phash_score(hash_a: Optional[str], hash_b: Optional[str]) -> float:
    """Map Hamming distance onto [0, 1], 1 meaning identical hashes."""

    distance = min(hamming_distance(hash_a, hash_b), MAX_HAMMING_BITS)
    return 1.0 - distance / MAX_HAMMING_BITS


def histogram_similarity(hist_a: Optional[Sequence[float]], hist_b: Optional[Sequence[float]]) -> float:
    """Cosine similarity of two histograms; 0 for empty, zero-magnitude, or mismatched vectors."""

    if hist_a is None or hist_b is None or len(hist_a) != len(hist_b) or len(hist_a) == 0:
        return 0.0
    a = np.asarray(hist_a, dtype=np.float64)
    b = np.asarray(hist_b, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def embedding_similarity(emb_a: Optional[Sequence[float]], emb_b: Optional[Sequence[float]]) -> float:
    """Dot product of unit vectors remapped from [-1, 1] onto [0, 1]."""

    if not emb_a or not emb_b or len(emb_a) != len(emb_b):
        return 0.0
    dot = float(np.dot(np.asarray(emb_a, dtype=np.float64), np.asarray(emb_b, dtype=np.float64)))
    return (float(np.clip(dot, -1.0, 1.0)) + 1.0) / 2.0
