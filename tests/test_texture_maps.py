import numpy as np

from terrain_generator.texture_maps import heights_to_grayscale, normals_to_rgb


def test_normals_to_rgb_encoding():
    normals = np.array([[[0.0, 1.0, 0.0], [0.0, -1.0, 0.0]]], dtype=np.float32)
    rgb = normals_to_rgb(normals)
    assert rgb.dtype == np.uint8
    assert rgb.shape == (1, 2, 3)
    assert rgb[0, 0].tolist() == [128, 255, 128]
    assert rgb[0, 1].tolist() == [128, 0, 128]


def test_heights_to_grayscale_spans_full_range():
    heights = np.array([[0.0, 5.0], [10.0, 2.5]])
    gray = heights_to_grayscale(heights)
    assert gray.shape == (2, 2, 3)
    assert gray[0, 0].tolist() == [0, 0, 0]
    assert gray[1, 0].tolist() == [255, 255, 255]


def test_flat_heights_map_to_black():
    gray = heights_to_grayscale(np.full((3, 3), 7.0))
    assert not gray.any()
