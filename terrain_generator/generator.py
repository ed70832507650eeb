# terrain_generator/generator.py

"""
================================================================================
CORE TERRAIN GENERATOR
================================================================================
This module contains the main TerrainGenerator class, the single object a
rendering layer talks to. It owns the noise engines, the mesh generator, the
normal synthesizer and all output buffers.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): A dictionary of terrain parameters which can override
      the internal defaults. Expected keys include 'seed', 'layer_count',
      'surface_width', 'vertex_detail' and a nested 'seamless' dictionary.
    - logger: A configured Python logging object for runtime messages.
- Outputs (from methods):
    - HeightfieldMesh with vertex and index arrays.
    - float32 normal maps of shape (height, width, 3).
- Side Effects: Logs messages using the provided logger.
- Invariants: Given the same seed and configuration, the output is
  deterministic. Every call recomputes its output in full and blocks until
  it is done.
================================================================================
"""

import logging
import time

import numpy as np

from . import config as DEFAULTS
from .buffers import ReleasableBuffer
from .errors import InvalidParameter, ModeMismatch
from .heightfield import HeightfieldGenerator, HeightfieldMesh
from .noise import NoiseConfig, NoiseEngine, NoiseType
from .normals import SurfaceNormalSynthesizer


class TerrainGenerator:
    """
    Generates the terrain mesh and its texture maps. This class is
    backend-only and does not touch any graphics API.
    """
    def __init__(self, config: dict, logger: logging.Logger):
        """
        Initializes the terrain generator.

        Args:
            config (dict): User-defined parameters to override defaults.
            logger (logging.Logger): The logger instance for all output.
        """
        self.logger = logger
        self.user_config = config
        self.logger.info("TerrainGenerator initializing...")

        # --- Consolidate Configuration ---
        self.settings = {
            'surface_width': self.user_config.get('surface_width', DEFAULTS.DEFAULT_SURFACE_WIDTH),
            'surface_depth': self.user_config.get('surface_depth', DEFAULTS.DEFAULT_SURFACE_DEPTH),
            'vertex_detail': self.user_config.get('vertex_detail', DEFAULTS.DEFAULT_VERTEX_DETAIL),
            'normal_map_detail': self.user_config.get('normal_map_detail', DEFAULTS.DEFAULT_NORMAL_MAP_DETAIL),
        }
        _check_surface_settings(self.settings['surface_width'], self.settings['surface_depth'])
        _check_detail('vertex_detail', self.settings['vertex_detail'])
        _check_detail('normal_map_detail', self.settings['normal_map_detail'])

        # --- Initialize Noise ---
        self.noise = NoiseEngine(NoiseConfig.from_dict(self.user_config), logger)
        self.seamless_noise = NoiseEngine(
            NoiseConfig.seamless_from_dict(self.user_config.get('seamless', {})), logger
        )

        # --- Mesh and Map Builders ---
        self.heightfield = HeightfieldGenerator(self.noise, logger)
        self.normals = SurfaceNormalSynthesizer(logger)

        self.normal_map = ReleasableBuffer("normal map", logger)
        self.seamless_map = ReleasableBuffer("seamless map", logger)

        self.logger.info(
            f"TerrainGenerator initialized with seed {self.noise.seed}, surface "
            f"{self.settings['surface_width']}x{self.settings['surface_depth']}, "
            f"vertex detail {self.settings['vertex_detail']}, "
            f"normal map detail {self.settings['normal_map_detail']}."
        )

    # --- Public Properties ---

    @property
    def vertices_per_side(self) -> int:
        return DEFAULTS.VERTICES_PER_DETAIL * self.settings['vertex_detail']

    @property
    def normal_map_size(self) -> int:
        return DEFAULTS.NORMAL_MAP_TEXELS_PER_DETAIL * self.settings['normal_map_detail']

    @property
    def height_range(self) -> float:
        """Highest elevation of the last mesh. The lowest is always 0."""
        return self.heightfield.height_range

    # --- Noise Configuration ---

    def configure_noise(self, seed: int, layer_count: int, start_frequency: float, frequency_factor: float,
                        weight_divisor: float, amplitude: float, noise_type=NoiseType.PERLIN):
        """Retunes the terrain noise. A new seed rebuilds the permutation table."""
        # Validate the complete set before touching the engine.
        new_config = NoiseConfig(seed, layer_count, start_frequency, frequency_factor,
                                 weight_divisor, amplitude, noise_type)

        if new_config.seed != self.noise.seed:
            self.noise.set_seed(new_config.seed)
        self.noise.set_layer_count(new_config.layer_count)
        self.noise.set_start_frequency(new_config.start_frequency)
        self.noise.set_frequency_factor(new_config.frequency_factor)
        self.noise.set_weight_divisor(new_config.weight_divisor)
        self.noise.set_amplitude(new_config.amplitude)
        self.noise.set_noise_type(new_config.noise_type)
        self.logger.info(f"Terrain noise configured: {new_config}")

    def configure_seamless_noise(self, seed: int, start_layer: int, end_layer: int, texture_resolution: int,
                                 weight_divisor: float, amplitude: float, noise_type=NoiseType.PERLIN):
        """Replaces the tileable detail noise."""
        config = NoiseConfig.seamless(seed, start_layer, end_layer, texture_resolution,
                                      weight_divisor, amplitude, noise_type)
        self.seamless_noise = NoiseEngine(config, self.logger)
        self.logger.info(f"Seamless noise configured: {config}")

    def randomize_seed(self, rng: np.random.Generator = None) -> int:
        """Picks a random terrain seed in [1, MAX_SEED]."""
        rng = rng or np.random.default_rng()
        seed = int(rng.integers(1, DEFAULTS.MAX_SEED, endpoint=True))
        self.noise.set_seed(seed)
        return seed

    def reset_seed(self) -> int:
        """Returns to the configured (or default) terrain seed."""
        seed = self.user_config.get('seed', DEFAULTS.DEFAULT_SEED)
        self.noise.set_seed(seed)
        return seed

    # --- Generation ---

    def generate_heightfield(self, width: float = None, depth: float = None,
                             vertex_detail: int = None) -> HeightfieldMesh:
        """
        Builds the terrain mesh with (128 * vertex_detail)^2 vertices. Omitted
        arguments keep their current setting.
        """
        width = self.settings['surface_width'] if width is None else width
        depth = self.settings['surface_depth'] if depth is None else depth
        vertex_detail = self.settings['vertex_detail'] if vertex_detail is None else vertex_detail
        _check_surface_settings(width, depth)
        _check_detail('vertex_detail', vertex_detail)

        self.settings['surface_width'] = width
        self.settings['surface_depth'] = depth
        self.settings['vertex_detail'] = vertex_detail

        side = self.vertices_per_side
        return self.heightfield.generate(width, depth, side, side)

    def generate_normal_map(self, detail: int = None) -> np.ndarray:
        """
        Builds the terrain normal map with (256 * detail)^2 texels. Mesh
        heights are reused when the map matches the vertex grid.
        """
        detail = self.settings['normal_map_detail'] if detail is None else detail
        _check_detail('normal_map_detail', detail)
        self.settings['normal_map_detail'] = detail

        size = self.normal_map_size
        side = self.vertices_per_side

        heights = self.heightfield.heights()
        if heights is not None and self.heightfield.noise_config != self.noise.config:
            self.logger.debug("Noise changed since the mesh was generated, resampling the normal map.")
            heights = None

        normals = self.normals.normal_map(
            self.noise,
            self.settings['surface_width'], self.settings['surface_depth'],
            side, side, size, size,
            heights=heights
        )
        return self.normal_map.store(normals)

    def generate_seamless_map(self, noise_config: NoiseConfig = None, resolution: int = None) -> np.ndarray:
        """
        Builds the normal map of the tileable detail noise. A given
        noise_config replaces the current seamless noise; the resolution
        defaults to the texture resolution of that noise.
        """
        if noise_config is not None:
            if not noise_config.is_seamless:
                raise ModeMismatch("The seamless map needs a config built with NoiseConfig.seamless().")
            self.seamless_noise = NoiseEngine(noise_config, self.logger)
        if resolution is None:
            resolution = self.seamless_noise.config.texture_resolution
        if resolution is None or resolution < 1:
            raise InvalidParameter(f"Seamless map resolution must be 1 or higher, got {resolution}.")

        normals = self.normals.seamless_map(self.seamless_noise, resolution)
        return self.seamless_map.store(normals)

    def regenerate(self) -> tuple[HeightfieldMesh, np.ndarray]:
        """
        Full regeneration from the current settings: the mesh first, then the
        normal map, which needs the completed height grid.
        """
        start_time = time.perf_counter()
        mesh = self.generate_heightfield()
        normal_map = self.generate_normal_map()
        self.logger.info(f"Terrain regenerated in {time.perf_counter() - start_time:.2f} seconds.")
        return mesh, normal_map

    # --- Explicit Release ---

    def release_normal_map(self):
        self.normal_map.release()

    def release_seamless_map(self):
        self.seamless_map.release()

    def release_mesh_buffers(self):
        self.heightfield.release()


def _check_surface_settings(width: float, depth: float):
    if not (width > 0 and depth > 0):
        raise InvalidParameter(f"Surface width and depth must be greater than 0, got {width}x{depth}.")


def _check_detail(name: str, detail: int):
    if isinstance(detail, bool) or not isinstance(detail, (int, np.integer)):
        raise InvalidParameter(f"{name} must be an integer, got {detail!r}.")
    if detail < 1:
        raise InvalidParameter(f"{name} must be 1 or higher, got {detail}.")
