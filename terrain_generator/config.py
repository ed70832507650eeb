# terrain_generator/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the terrain
generator. These values are used if they are not explicitly provided by the
user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC TERRAIN.
Instead, pass a configuration dictionary to the TerrainGenerator instance.
================================================================================
"""

# --- Terrain Noise ---
DEFAULT_SEED = 5
DEFAULT_LAYER_COUNT = 1
DEFAULT_START_FREQUENCY = 20.0
DEFAULT_FREQUENCY_FACTOR = 2.0
DEFAULT_WEIGHT_DIVISOR = 2.0
DEFAULT_AMPLITUDE = 42.0
DEFAULT_NOISE_TYPE = "perlin"

# Upper bound for randomly picked seeds.
MAX_SEED = 9999999

# --- Seamless Detail Noise ---
# The detail texture repeats across the terrain, so it is generated from the
# tileable noise variant with its own seed.
DEFAULT_SEAMLESS_SEED = 20340
DEFAULT_SEAMLESS_START_LAYER = 2
DEFAULT_SEAMLESS_END_LAYER = 10
DEFAULT_SEAMLESS_RESOLUTION = 2048
DEFAULT_SEAMLESS_WEIGHT_DIVISOR = 2.2
DEFAULT_SEAMLESS_AMPLITUDE = 100.0
DEFAULT_SEAMLESS_NOISE_TYPE = "perlin"

# --- Surface Geometry ---
DEFAULT_SURFACE_WIDTH = 128.0
DEFAULT_SURFACE_DEPTH = 128.0
DEFAULT_VERTEX_DETAIL = 1
DEFAULT_NORMAL_MAP_DETAIL = 1

# Vertices per row/column for each step of vertex detail.
VERTICES_PER_DETAIL = 128
# Normal map texels per side for each step of normal map detail.
NORMAL_MAP_TEXELS_PER_DETAIL = 256

# --- Noise Algorithm Constants ---
# Size of the standard permutation table. Must be a power of two so that
# lattice coordinates can be wrapped with a bitmask.
PERMUTATION_SIZE = 256
# Number of 2D gradient directions, evenly spaced around the circle.
GRADIENT_COUNT = 8
# Layered 2D terrain noise samples at (coordinate * frequency / FREQUENCY_SCALE).
FREQUENCY_SCALE = 1000.0
# Per-octave coordinate offset. Starts at OCTAVE_OFFSET_START and grows by
# OCTAVE_OFFSET_GROWTH so that octaves do not line up on the lattice axes.
OCTAVE_OFFSET_START = 7.19
OCTAVE_OFFSET_GROWTH = 1.73
# Octave frequency ratio of the tileable noise. Each octave doubles the
# permutation table, so the frequency has to double with it.
SEAMLESS_FREQUENCY_FACTOR = 2.0

# --- Mesh Topology ---
# Primitive restart index separating the triangle strips of two rows.
PRIMITIVE_RESTART_INDEX = 0xFFFFFFFF
