"""Shared test fixtures for fingerprinting, cache, indexing, and search tests."""

import time
from pathlib import Path
from typing import Callable, Tuple

import numpy as np
import pytest
from PIL import Image

from core.cache.storage import JsonDocumentStorage
from core.cache.store import CacheStore
from core.embedders.base import Embedder
from core.fingerprint.computer import FingerprintComputer
from core.imaging.decoder import PixelDecoder


class FakeEmbedder(Embedder):
    """Deterministic embedder: the vector is the mean RGB colour plus a constant."""

    name = "fake"
    dim = 4
    input_size = 16

    def __init__(self, decoder=None, fail_load=False):
        super().__init__(decoder=decoder)
        self.fail_load = fail_load
        self.load_calls = 0
        self.embed_calls = 0

    def _load(self, model_location):
        self.load_calls += 1
        if self.fail_load:
            raise FileNotFoundError(f"No model at {model_location}")

    def embed_pixels(self, pixels):
        self.embed_calls += 1
        mean = pixels[..., :3].reshape(-1, 3).mean(axis=0) / 255.0
        return np.array([mean[0], mean[1], mean[2], 0.1], dtype=np.float32)


def _save(path: Path, array: np.ndarray) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(array.astype(np.uint8)).save(path)
    return path


@pytest.fixture
def solid_image(tmp_path) -> Callable[..., Path]:
    """Write a 64x64 single-colour PNG and return its path."""

    def make(name: str, color: Tuple[int, ...]) -> Path:
        channels = len(color)
        array = np.zeros((64, 64, channels), dtype=np.uint8)
        array[:, :] = color
        return _save(tmp_path / name, array)

    return make


@pytest.fixture
def gradient_image(tmp_path) -> Callable[..., Path]:
    """Write a 64x64 horizontal grey gradient, optionally mirrored."""

    def make(name: str, reverse: bool = False) -> Path:
        ramp = np.linspace(0, 255, 64, dtype=np.float64)
        if reverse:
            ramp = ramp[::-1]
        array = np.repeat(np.tile(ramp, (64, 1))[..., np.newaxis], 3, axis=2)
        return _save(tmp_path / name, array)

    return make


@pytest.fixture
def broken_image(tmp_path) -> Path:
    path = tmp_path / "broken.png"
    path.write_bytes(b"definitely not a png")
    return path


@pytest.fixture
def library(tmp_path, solid_image, gradient_image):
    """A small library folder with four images and one text file."""

    root = tmp_path / "library"
    items = [
        solid_image("library/red.png", (220, 20, 20)),
        solid_image("library/red_copy.png", (220, 20, 20)),
        solid_image("library/blue.png", (20, 20, 220)),
        gradient_image("library/nested/gradient.png"),
    ]
    (root / "notes.txt").write_text("not an image", encoding="utf-8")
    return root, items


@pytest.fixture
def decoder():
    return PixelDecoder(timeout=None)


@pytest.fixture
def computer(decoder) -> FingerprintComputer:
    return FingerprintComputer(decoder)


@pytest.fixture
def storage(tmp_path) -> JsonDocumentStorage:
    return JsonDocumentStorage.for_library(tmp_path / "cache", "Test Library")


@pytest.fixture
def cache(storage):
    store = CacheStore(storage, save_delay=60.0)
    store.open("/library")
    yield store
    store.flush()


@pytest.fixture
def fake_embedder(decoder) -> FakeEmbedder:
    return FakeEmbedder(decoder=decoder)


class BrokenEmbedder(FakeEmbedder):
    """Loads fine but fails every inference."""

    def embed_pixels(self, pixels):
        raise ValueError("inference exploded")


@pytest.fixture
def broken_embedder(decoder) -> BrokenEmbedder:
    return BrokenEmbedder(decoder=decoder)


@pytest.fixture
def failing_embedder(decoder) -> FakeEmbedder:
    return FakeEmbedder(decoder=decoder, fail_load=True)


class SlowEmbedder(FakeEmbedder):
    """Takes long enough to load that concurrent callers overlap."""

    def _load(self, model_location):
        time.sleep(0.1)
        super()._load(model_location)


@pytest.fixture
def slow_embedder(decoder) -> SlowEmbedder:
    return SlowEmbedder(decoder=decoder)
