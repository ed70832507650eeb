# terrain_generator/normals.py

"""
================================================================================
SURFACE NORMAL SYNTHESIS
================================================================================
This module derives per-texel surface normals from a grid of elevation
samples using finite differences with the four axis neighbours.

Data Contract:
---------------
- Inputs:
    - heights: (rows, cols) elevation grid.
    - xs, zs: World positions of the grid columns and rows.
- Outputs:
    - A float32 array of shape (rows, cols, 3) holding unit normals.
- Side Effects: Logs generation timing.
- Invariants: Normals are computed from a completely sampled grid. Border
  texels only use the neighbours that exist; nothing wraps around.
================================================================================
"""

import logging
import time

import numpy as np
from numba import njit

from .errors import InvalidParameter
from .noise import NoiseEngine


@njit
def _cross(ax, ay, az, bx, by, bz):
    return ay * bz - az * by, az * bx - ax * bz, ax * by - ay * bx

@njit
def _surface_normals(heights, xs, zs):
    """
    For every texel, sums -cross(a - current, b - current) over the
    counter-clockwise neighbour pairs (left, bottom), (bottom, right),
    (right, top) and (top, left) that exist, then normalizes.
    """
    rows, cols = heights.shape
    normals = np.zeros((rows, cols, 3))

    for z in range(rows):
        for x in range(cols):
            cx = xs[x]
            cy = heights[z, x]
            cz = zs[z]

            has_left = x > 0
            has_bottom = z > 0
            has_right = x < cols - 1
            has_top = z < rows - 1

            # Neighbour vectors relative to the current texel.
            lx = ly = lz = 0.0
            bx = by = bz = 0.0
            rx = ry = rz = 0.0
            tx = ty = tz = 0.0
            if has_left:
                lx = xs[x - 1] - cx
                ly = heights[z, x - 1] - cy
            if has_bottom:
                by = heights[z - 1, x] - cy
                bz = zs[z - 1] - cz
            if has_right:
                rx = xs[x + 1] - cx
                ry = heights[z, x + 1] - cy
            if has_top:
                ty = heights[z + 1, x] - cy
                tz = zs[z + 1] - cz

            nx = ny = nz = 0.0
            if has_left and has_bottom:
                c0, c1, c2 = _cross(lx, ly, lz, bx, by, bz)
                nx -= c0
                ny -= c1
                nz -= c2
            if has_bottom and has_right:
                c0, c1, c2 = _cross(bx, by, bz, rx, ry, rz)
                nx -= c0
                ny -= c1
                nz -= c2
            if has_right and has_top:
                c0, c1, c2 = _cross(rx, ry, rz, tx, ty, tz)
                nx -= c0
                ny -= c1
                nz -= c2
            if has_top and has_left:
                c0, c1, c2 = _cross(tx, ty, tz, lx, ly, lz)
                nx -= c0
                ny -= c1
                nz -= c2

            # A texel without any neighbour pair keeps the zero vector.
            length = np.sqrt(nx * nx + ny * ny + nz * nz)
            if length > 0.0:
                normals[z, x, 0] = nx / length
                normals[z, x, 1] = ny / length
                normals[z, x, 2] = nz / length

    return normals


class SurfaceNormalSynthesizer:
    """Computes the terrain normal map and the seamless detail map."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

    def compute(self, heights: np.ndarray, xs: np.ndarray, zs: np.ndarray) -> np.ndarray:
        heights = np.ascontiguousarray(heights, dtype=np.float64)
        xs = np.ascontiguousarray(xs, dtype=np.float64)
        zs = np.ascontiguousarray(zs, dtype=np.float64)
        if heights.ndim != 2 or heights.shape != (zs.size, xs.size):
            raise InvalidParameter(
                f"Height grid of shape {heights.shape} does not match {zs.size} rows x {xs.size} columns."
            )
        return _surface_normals(heights, xs, zs).astype(np.float32)

    def normal_map(self, noise: NoiseEngine, width: float, depth: float, columns: int, rows: int,
                   map_width: int, map_height: int, heights: np.ndarray = None) -> np.ndarray:
        """
        Normal map of the terrain at (map_height, map_width) texels. Texel
        positions are stretched onto the vertex grid, so the map covers the
        same surface at any resolution. `heights` (the mesh elevation grid) is
        reused when the resolution matches the grid; otherwise the noise is
        resampled at every texel.
        """
        if map_width < 2 or map_height < 2:
            raise InvalidParameter(f"The normal map needs at least 2x2 texels, got {map_width}x{map_height}.")
        if columns < 2 or rows < 2:
            raise InvalidParameter(f"The vertex grid needs at least 2x2 vertices, got {columns}x{rows}.")

        start_time = time.perf_counter()

        step_x = width / columns
        step_z = depth / rows
        width_divisor = (map_width - 1) / (columns - 1)
        height_divisor = (map_height - 1) / (rows - 1)

        xs = (np.arange(map_width) / width_divisor) * step_x
        zs = (np.arange(map_height) / height_divisor) * step_z

        if heights is not None and heights.shape == (map_height, map_width) == (rows, columns):
            self.logger.debug("Normal map matches the vertex grid, reusing mesh heights.")
        else:
            sample_x, sample_z = np.meshgrid(xs, zs)
            heights = noise.sample_layered(sample_x, sample_z)

        normals = self.compute(heights, xs, zs)
        self.logger.info(
            f"Normal map generated: {map_width}x{map_height} texels "
            f"({time.perf_counter() - start_time:.2f}s)."
        )
        return normals

    def seamless_map(self, noise: NoiseEngine, resolution: int) -> np.ndarray:
        """Normal map of the tileable detail noise, sampled on the integer grid."""
        if resolution < 1:
            raise InvalidParameter(f"Seamless map resolution must be 1 or higher, got {resolution}.")

        start_time = time.perf_counter()

        coords = np.arange(resolution, dtype=np.float64)
        sample_x, sample_z = np.meshgrid(coords, coords)
        heights = noise.sample_seamless_layered(sample_x, sample_z)

        normals = self.compute(heights, coords, coords)
        self.logger.info(
            f"Seamless map generated: {resolution}x{resolution} texels "
            f"({time.perf_counter() - start_time:.2f}s)."
        )
        return normals
