# Path: core/fingerprint/histogram.py
# Purpose: Compute normalized 4x4x4 RGB color histograms from RGBA pixel grids.
# Layer: core/fingerprint.
# Details: Mostly transparent pixels are ignored; an image without visible pixels yields all zeros.

from __future__ import annotations

from typing import List

import numpy as np

HISTOGRAM_SIZE = 64
BINS_PER_CHANNEL = 4
HISTOGRAM_BINS = BINS_PER_CHANNEL ** 3
ALPHA_THRESHOLD = 128

_BIN_WIDTH = 256 // BINS_PER_CHANNEL


def compute_color_histogram(pixels: np.ndarray) -> List[float]:
    """Return 64 bin frequencies that sum to 1 (or all zeros) for an RGBA uint8 array."""

    flat = pixels.reshape(-1, 4)
    visible = flat[flat[:, 3] >= ALPHA_THRESHOLD]
    if visible.shape[0] == 0:
        return [0.0] * HISTOGRAM_BINS

    channel_bins = np.minimum(visible[:, :3].astype(np.int64) // _BIN_WIDTH, BINS_PER_CHANNEL - 1)
    index = (
        channel_bins[:, 0] * BINS_PER_CHANNEL * BINS_PER_CHANNEL
        + channel_bins[:, 1] * BINS_PER_CHANNEL
        + channel_bins[:, 2]
    )
    counts = np.bincount(index, minlength=HISTOGRAM_BINS).astype(np.float64)
    return (counts / visible.shape[0]).tolist()
