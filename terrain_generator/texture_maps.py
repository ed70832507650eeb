# terrain_generator/texture_maps.py

"""
================================================================================
TEXTURE ENCODING UTILITIES
================================================================================
This module converts the generated float maps into 8-bit RGB arrays that can
be written as images or uploaded as byte textures.

It is designed to be a pure, stateless utility with no dependencies on any
graphics API.
================================================================================
"""
import numpy as np


def normals_to_rgb(normal_map: np.ndarray) -> np.ndarray:
    """
    Encodes unit normals (x, y, z) in [-1, 1] as RGB bytes, the usual
    normal map convention of 128 meaning zero.
    """
    encoded = (np.clip(normal_map, -1.0, 1.0) * 0.5 + 0.5) * 255.0
    return np.round(encoded).astype(np.uint8)


def heights_to_grayscale(heights: np.ndarray) -> np.ndarray:
    """Normalizes an elevation grid to [0, 255] and stacks it into an RGB array."""
    low = float(heights.min())
    span = float(heights.max()) - low
    if span > 0:
        normalized = (heights - low) / span
    else:
        # A perfectly flat grid maps to black.
        normalized = np.zeros_like(heights, dtype=float)

    gray_values = (normalized * 255).astype(np.uint8)
    return np.stack([gray_values] * 3, axis=-1)
