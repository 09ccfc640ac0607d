# Path: core/imaging/__init__.py
# Purpose: Package initializer for pixel decoding helpers.
# Layer: core/imaging.
# Details: Exposes the timeout-bounded Pillow decoder.

from .decoder import PixelDecoder

__all__ = ["PixelDecoder"]
