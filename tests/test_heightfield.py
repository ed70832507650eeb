import math

import numpy as np
import pytest

from terrain_generator import (
    VERTEX_DTYPE, HeightfieldGenerator, InvalidParameter, ModeMismatch, NoiseConfig, NoiseEngine,
)
from terrain_generator.config import PRIMITIVE_RESTART_INDEX
from terrain_generator.heightfield import index_count


@pytest.fixture
def generator():
    return HeightfieldGenerator(NoiseEngine(NoiseConfig(seed=5)))


@pytest.fixture
def default_mesh(generator):
    return generator.generate(128.0, 128.0, 128, 128)


def test_default_terrain_sizes(default_mesh):
    assert default_mesh.vertices.dtype == VERTEX_DTYPE
    assert default_mesh.vertex_count == 16384
    assert default_mesh.vertices.size == 16384
    assert default_mesh.indices.size == 32639
    assert default_mesh.indices.dtype == np.uint32
    assert index_count(128, 128) == 32639


def test_elevation_is_rebased_to_zero(default_mesh):
    heights = default_mesh.vertices['position'][:, 1]
    assert heights.min() == 0.0
    assert heights.max() == default_mesh.height_range
    # Peak-to-peak range can exceed the amplitude, see "Concrete scenario bound" in DESIGN.md.
    assert 0.0 < default_mesh.height_range <= 42.0 * math.sqrt(2.0)


def test_strip_indices(default_mesh):
    indices = default_mesh.indices
    restarts = indices == PRIMITIVE_RESTART_INDEX
    assert restarts.sum() == 127
    assert np.all(indices[~restarts] < 16384)
    assert list(indices[:4]) == [0, 128, 1, 129]
    # Each strip ends with the top-right vertex of its row pair, then the marker.
    assert indices[255] == 255
    assert indices[256] == PRIMITIVE_RESTART_INDEX
    assert indices[257] == 128
    assert indices[-1] == PRIMITIVE_RESTART_INDEX


def test_small_grid_indices(generator):
    indices = generator.compute_indices(3, 2)
    assert list(indices) == [0, 3, 1, 4, 2, 5, PRIMITIVE_RESTART_INDEX]


def test_positions_are_centred(default_mesh):
    positions = default_mesh.vertices['position']
    np.testing.assert_array_equal(positions[0, [0, 2]], [-64.0, 64.0])
    np.testing.assert_array_equal(positions[1, [0, 2]], [-63.0, 64.0])
    np.testing.assert_array_equal(positions[128, [0, 2]], [-64.0, 63.0])
    np.testing.assert_array_equal(positions[-1, [0, 2]], [63.0, -63.0])


def test_texture_coordinates_span_unit_square(default_mesh):
    tex = default_mesh.vertices['tex_coord']
    np.testing.assert_array_equal(tex[0], [0.0, 0.0])
    np.testing.assert_array_equal(tex[127], [1.0, 0.0])
    np.testing.assert_array_equal(tex[-1], [1.0, 1.0])
    assert tex.min() == 0.0
    assert tex.max() == 1.0


def test_heights_grid_matches_vertices(generator, default_mesh):
    grid = default_mesh.heights()
    assert grid.shape == (128, 128)
    assert grid[3, 7] == default_mesh.vertices['position'][3 * 128 + 7, 1]
    np.testing.assert_array_equal(generator.heights(), grid)


def test_generation_is_deterministic(default_mesh):
    other = HeightfieldGenerator(NoiseEngine(NoiseConfig(seed=5))).generate(128.0, 128.0, 128, 128)
    assert np.array_equal(other.vertices, default_mesh.vertices)
    assert np.array_equal(other.indices, default_mesh.indices)
    assert other.height_range == default_mesh.height_range


def test_different_seed_changes_the_terrain(default_mesh):
    other = HeightfieldGenerator(NoiseEngine(NoiseConfig(seed=6))).generate(128.0, 128.0, 128, 128)
    assert not np.array_equal(other.vertices['position'], default_mesh.vertices['position'])


def test_index_list_is_reused_for_an_unchanged_grid(generator):
    first = generator.generate(64.0, 64.0, 16, 16)
    assert first.resized

    second = generator.generate(32.0, 32.0, 16, 16)
    assert not second.resized
    assert second.indices is first.indices

    third = generator.generate(32.0, 32.0, 16, 8)
    assert third.resized
    assert third.indices.size == index_count(16, 8)


def test_release_frees_buffers(generator):
    generator.generate(16.0, 16.0, 8, 8)
    generator.release()
    assert generator.heights() is None
    assert not generator.vertices.is_held
    assert not generator.indices.is_held

    mesh = generator.generate(16.0, 16.0, 8, 8)
    assert mesh.resized
    assert generator.indices.is_held


@pytest.mark.parametrize("width, depth, columns, rows", [
    (0.0, 10.0, 8, 8),
    (10.0, -1.0, 8, 8),
    (10.0, 10.0, 1, 8),
    (10.0, 10.0, 8, 0),
])
def test_invalid_surface_is_rejected(generator, width, depth, columns, rows):
    with pytest.raises(InvalidParameter):
        generator.generate(width, depth, columns, rows)


def test_set_noise_swaps_the_engine(generator, default_mesh):
    generator.set_noise(NoiseEngine(NoiseConfig(seed=5, amplitude=10.0)))
    mesh = generator.generate(128.0, 128.0, 128, 128)
    assert mesh.height_range == pytest.approx(default_mesh.height_range * 10.0 / 42.0, rel=1e-5)


def test_seamless_engine_cannot_build_a_mesh():
    engine = NoiseEngine(NoiseConfig.seamless(1, 1, 3, 32, 2.0, 1.0))
    with pytest.raises(ModeMismatch):
        HeightfieldGenerator(engine).generate(16.0, 16.0, 8, 8)


def test_mesh_remembers_the_noise_it_was_sampled_from(generator):
    assert generator.noise_config is None
    generator.generate(16.0, 16.0, 8, 8)
    sampled_with = generator.noise.config
    assert generator.noise_config == sampled_with

    generator.noise.set_seed(9)
    assert generator.noise_config == sampled_with
    assert generator.noise_config != generator.noise.config

    generator.release()
    assert generator.noise_config is None
