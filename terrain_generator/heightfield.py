# terrain_generator/heightfield.py

"""
================================================================================
HEIGHTFIELD MESH GENERATION
================================================================================
This module builds the terrain mesh: a regular grid of vertices whose
elevation comes from layered noise, and the triangle strip index list used
to draw it.

Data Contract:
---------------
- Inputs:
    - noise (NoiseEngine): A standard (non-seamless) engine. Borrowed, not
      owned; it can be swapped with set_noise().
    - width, depth: Size of the surface in world units.
    - columns, rows: Vertex count along x and z.
- Outputs:
    - vertices: Structured array of VERTEX_DTYPE, row-major (rows x columns).
    - indices: uint32 triangle strip list with PRIMITIVE_RESTART_INDEX after
      every row.
- Side Effects: Logs generation timing.
- Invariants: The lowest vertex has y == 0 exactly and the highest has
  y == height_range.
================================================================================
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import config as DEFAULTS
from .buffers import ReleasableBuffer
from .errors import InvalidParameter
from .noise import NoiseEngine

# Position (x, y, z) followed by the texture coordinate (u, v), packed the
# way the vertex buffer expects them.
VERTEX_DTYPE = np.dtype([
    ('position', np.float32, 3),
    ('tex_coord', np.float32, 2),
])


def index_count(columns: int, rows: int) -> int:
    """Two indices per column for every row pair, plus one restart marker per row pair."""
    return 2 * columns * (rows - 1) + (rows - 1)


@dataclass
class HeightfieldMesh:
    vertices: np.ndarray
    indices: np.ndarray
    columns: int
    rows: int
    height_range: float
    # True when the index list was rebuilt and the downstream buffer needs
    # to be reallocated.
    resized: bool = True

    @property
    def vertex_count(self) -> int:
        return self.columns * self.rows

    def heights(self) -> np.ndarray:
        """Elevation grid of shape (rows, columns)."""
        return self.vertices['position'][:, 1].reshape(self.rows, self.columns)


class HeightfieldGenerator:
    """Builds and owns the vertex and index buffers of the terrain mesh."""

    def __init__(self, noise: NoiseEngine, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self.noise = noise

        self.vertices = ReleasableBuffer("vertex", self.logger)
        self.indices = ReleasableBuffer("index", self.logger)

        self.min_elevation = 0.0
        self.max_elevation = 0.0
        self.height_range = 0.0
        self.columns = 0
        self.rows = 0

        # Config of the noise the held vertices were sampled from.
        self.noise_config = None

        # Grid shape of the index list currently held.
        self._index_shape = None

    def set_noise(self, noise: NoiseEngine):
        self.noise = noise

    def compute_vertices(self, width: float, depth: float, columns: int, rows: int) -> np.ndarray:
        """
        Samples the noise on the grid and builds the vertex array. The mesh is
        centred on the origin of the XZ plane and rebased so its lowest
        point sits at y = 0.
        """
        _check_surface(width, depth)
        _check_grid(columns, rows)

        step_x = width / columns
        step_z = depth / rows

        # 1. Sample every grid point. The rebasing constant is only known
        #    once the whole grid has been sampled.
        grid_x = np.arange(columns, dtype=np.float64) * step_x
        grid_z = np.arange(rows, dtype=np.float64) * step_z
        sample_x, sample_z = np.meshgrid(grid_x, grid_z)
        elevation = self.noise.sample_layered(sample_x, sample_z)
        self.noise_config = self.noise.config

        self.min_elevation = float(elevation.min())
        self.max_elevation = float(elevation.max())

        # 2. Rebase the elevation so the lowest point is exactly 0.
        vertices = np.empty(columns * rows, dtype=VERTEX_DTYPE)
        positions = vertices['position']
        positions[:, 0] = (sample_x - width / 2.0).ravel()
        positions[:, 1] = (elevation - self.min_elevation).ravel()
        positions[:, 2] = (depth / 2.0 - sample_z).ravel()

        u, v = np.meshgrid(np.arange(columns) / (columns - 1.0), np.arange(rows) / (rows - 1.0))
        vertices['tex_coord'][:, 0] = u.ravel()
        vertices['tex_coord'][:, 1] = v.ravel()

        # Rounded the same way as the stored positions, so the highest vertex
        # matches the reported range exactly.
        self.height_range = float(np.float32(self.max_elevation - self.min_elevation))
        self.columns = columns
        self.rows = rows
        return self.vertices.store(vertices)

    def compute_indices(self, columns: int, rows: int) -> np.ndarray:
        """
        Triangle strip indices: for each row pair, the bottom and top index
        of every column alternately, then the restart marker.
        """
        _check_grid(columns, rows)

        bottom = np.arange(columns * (rows - 1), dtype=np.uint32).reshape(rows - 1, columns)
        strips = np.empty((rows - 1, 2 * columns + 1), dtype=np.uint32)
        strips[:, 0:2 * columns:2] = bottom
        strips[:, 1:2 * columns:2] = bottom + columns
        strips[:, -1] = DEFAULTS.PRIMITIVE_RESTART_INDEX

        self._index_shape = (columns, rows)
        return self.indices.store(strips.ravel())

    def generate(self, width: float, depth: float, columns: int, rows: int) -> HeightfieldMesh:
        """
        Recomputes the vertices. The index list only depends on the grid
        shape, so it is reused when the shape is unchanged and still held.
        """
        start_time = time.perf_counter()

        vertices = self.compute_vertices(width, depth, columns, rows)
        resized = self._index_shape != (columns, rows) or not self.indices.is_held
        if resized:
            indices = self.compute_indices(columns, rows)
        else:
            indices = self.indices.data
            self.logger.debug("Vertex grid unchanged, reusing the index list.")

        elapsed = time.perf_counter() - start_time
        self.logger.info(
            f"Heightfield generated: {columns}x{rows} vertices, {indices.size} indices, "
            f"height range {self.height_range:.3f} ({elapsed:.2f}s)."
        )
        return HeightfieldMesh(vertices, indices, columns, rows, self.height_range, resized)

    def heights(self) -> Optional[np.ndarray]:
        """Rebased elevation grid (rows, columns), or None if the vertices were released."""
        if not self.vertices.is_held:
            return None
        return self.vertices.data['position'][:, 1].reshape(self.rows, self.columns)

    def release(self):
        """Frees the vertex and index buffers once they have been uploaded."""
        self.vertices.release()
        self.indices.release()
        self._index_shape = None
        self.noise_config = None


def _check_surface(width: float, depth: float):
    if not (width > 0.0 and depth > 0.0):
        raise InvalidParameter(f"Surface width and depth must be greater than 0, got {width}x{depth}.")


def _check_grid(columns: int, rows: int):
    if columns < 2 or rows < 2:
        raise InvalidParameter(f"The vertex grid needs at least 2x2 vertices, got {columns}x{rows}.")
