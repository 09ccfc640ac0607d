"""Tests for perceptual hashing, colour histograms, and the fingerprint computer."""

import threading

import numpy as np
import pytest

from core.fingerprint.computer import FingerprintComputer
from core.fingerprint.histogram import HISTOGRAM_BINS, compute_color_histogram
from core.fingerprint.phash import HASH_HEX_LENGTH, block_values, compute_perceptual_hash
from core.imaging.decoder import PixelDecoder
from core.models.errors import DecodeError
from core.search.similarity import hamming_distance, histogram_similarity


def _grid(size, color):
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[:, :] = color
    return pixels


class TestPerceptualHash:
    """Tests for the 256-bit block hash."""

    def test_hash_is_64_hex_chars(self):
        value = compute_perceptual_hash(_grid(32, (10, 200, 30, 255)))
        assert len(value) == HASH_HEX_LENGTH
        int(value, 16)

    def test_bright_solid_sets_every_bit(self):
        assert compute_perceptual_hash(_grid(32, (255, 255, 255, 255))) == "f" * 64

    def test_dark_solid_clears_every_bit(self):
        assert compute_perceptual_hash(_grid(32, (0, 0, 0, 255))) == "0" * 64

    def test_transparent_pixels_count_as_white(self):
        assert compute_perceptual_hash(_grid(32, (0, 0, 0, 0))) == "f" * 64

    def test_block_values_sum_rgb(self):
        blocks = block_values(_grid(32, (1, 2, 3, 255)))
        assert blocks.shape == (16, 16)
        assert int(blocks[0, 0]) == 4 * 6

    def test_block_values_reject_uneven_grid(self):
        with pytest.raises(ValueError):
            block_values(_grid(30, (0, 0, 0, 255)))

    def test_mirrored_gradients_differ(self, gradient_image, computer):
        left = computer.compute_perceptual_hash(gradient_image("left.png"))
        right = computer.compute_perceptual_hash(gradient_image("right.png", reverse=True))
        assert hamming_distance(left, right) > 128

    def test_identical_files_hash_identically(self, gradient_image, computer):
        first = computer.compute_perceptual_hash(gradient_image("a.png"))
        second = computer.compute_perceptual_hash(gradient_image("b.png"))
        assert hamming_distance(first, second) == 0


class TestColorHistogram:
    """Tests for the 4x4x4 RGB histogram."""

    def test_solid_colour_fills_single_bin(self):
        histogram = compute_color_histogram(_grid(64, (220, 20, 20, 255)))
        assert len(histogram) == HISTOGRAM_BINS
        assert histogram[3 * 16] == pytest.approx(1.0)
        assert sum(histogram) == pytest.approx(1.0)

    def test_transparent_image_is_all_zeros(self):
        assert compute_color_histogram(_grid(64, (255, 0, 0, 0))) == [0.0] * HISTOGRAM_BINS

    def test_semi_transparent_pixels_are_ignored(self):
        pixels = _grid(64, (0, 0, 255, 255))
        pixels[:32] = (255, 0, 0, 100)
        histogram = compute_color_histogram(pixels)
        assert histogram[3] == pytest.approx(1.0)
        assert histogram[48] == 0.0

    def test_mixed_image_splits_mass(self):
        pixels = _grid(64, (0, 0, 0, 255))
        pixels[:, 32:] = (255, 255, 255, 255)
        histogram = compute_color_histogram(pixels)
        assert histogram[0] == pytest.approx(0.5)
        assert histogram[63] == pytest.approx(0.5)


class TestFingerprintComputer:
    """Tests for file-level fingerprinting."""

    def test_fingerprint_has_both_signals(self, solid_image, computer):
        fingerprint = computer.compute_fingerprint(solid_image("red.png", (220, 20, 20)))
        assert len(fingerprint.perceptual_hash) == HASH_HEX_LENGTH
        assert len(fingerprint.color_histogram) == HISTOGRAM_BINS

    def test_fingerprint_matches_single_signal_methods(self, gradient_image, computer):
        path = gradient_image("gradient.png")
        fingerprint = computer.compute_fingerprint(path)
        assert fingerprint.perceptual_hash == computer.compute_perceptual_hash(path)
        assert fingerprint.color_histogram == pytest.approx(computer.compute_color_histogram(path))

    def test_unreadable_file_raises_decode_error(self, broken_image, computer):
        with pytest.raises(DecodeError):
            computer.compute_fingerprint(broken_image)

    def test_missing_file_raises_decode_error(self, tmp_path, computer):
        with pytest.raises(DecodeError):
            computer.compute_fingerprint(tmp_path / "missing.png")

    def test_decoder_with_timeout_returns_rgba_grid(self, solid_image):
        decoder = PixelDecoder(timeout=5.0)
        pixels = decoder.decode(solid_image("blue.png", (20, 20, 220)), 32)
        assert pixels.shape == (32, 32, 4)
        assert pixels.dtype == np.uint8
        assert tuple(pixels[0, 0]) == (20, 20, 220, 255)

    def test_default_decoder_is_created(self, solid_image):
        computer = FingerprintComputer()
        fingerprint = computer.compute_fingerprint(solid_image("white.png", (255, 255, 255)))
        assert fingerprint.perceptual_hash == "f" * 64

    def test_distinct_colours_share_no_histogram_mass(self, solid_image, computer):
        red = computer.compute_fingerprint(solid_image("red.png", (220, 20, 20)))
        blue = computer.compute_fingerprint(solid_image("blue.png", (20, 20, 220)))
        assert histogram_similarity(red.color_histogram, blue.color_histogram) == pytest.approx(0.0, abs=1e-9)
        assert histogram_similarity(red.color_histogram, red.color_histogram) == pytest.approx(1.0)


class TestDecoderTimeout:
    """Tests for the per-decode deadline."""

    def test_slow_decode_raises_decode_error(self, monkeypatch, solid_image):
        path = solid_image("slow.png", (20, 20, 220))
        release = threading.Event()
        original = PixelDecoder._read

        def slow_read(image_path):
            release.wait(2.0)
            return original(image_path)

        monkeypatch.setattr(PixelDecoder, "_read", staticmethod(slow_read))
        decoder = PixelDecoder(timeout=0.05)
        try:
            with pytest.raises(DecodeError, match="Timed out"):
                decoder.load(path)
        finally:
            release.set()

    def test_hung_decode_does_not_delay_the_next_one(self, monkeypatch, solid_image):
        hung = solid_image("hung.png", (220, 20, 20))
        quick = solid_image("quick.png", (20, 220, 20))
        release = threading.Event()
        original = PixelDecoder._read

        def read(image_path):
            if image_path.name == "hung.png":
                release.wait(2.0)
            return original(image_path)

        monkeypatch.setattr(PixelDecoder, "_read", staticmethod(read))
        decoder = PixelDecoder(timeout=0.2)
        try:
            for _ in range(4):
                with pytest.raises(DecodeError):
                    decoder.load(hung)
            pixels = decoder.decode(quick, 8)
            assert tuple(pixels[0, 0]) == (20, 220, 20, 255)
        finally:
            release.set()

    def test_decode_errors_pass_through_the_worker(self, broken_image):
        with pytest.raises(DecodeError, match="Failed to decode"):
            PixelDecoder(timeout=1.0).load(broken_image)
