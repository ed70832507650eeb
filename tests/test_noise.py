import math
import warnings

import numpy as np
import pytest

from terrain_generator import DomainWarning, InvalidParameter, ModeMismatch, NoiseConfig, NoiseEngine, NoiseType
from terrain_generator.noise import compute_start_weight, gradient_set


def make_engine(**overrides):
    params = dict(seed=5, layer_count=1, start_frequency=20.0, frequency_factor=2.0,
                  weight_divisor=2.0, amplitude=42.0)
    params.update(overrides)
    return NoiseEngine(NoiseConfig(**params))


def make_seamless_engine(start_layer=2, end_layer=5, resolution=64, **overrides):
    params = dict(seed=11, start_layer=start_layer, end_layer=end_layer, texture_resolution=resolution,
                  weight_divisor=2.0, amplitude=1.0)
    params.update(overrides)
    return NoiseEngine(NoiseConfig.seamless(**params))


def sample_grid(n=16, spacing=3.7):
    coords = np.arange(n) * spacing
    return np.meshgrid(coords, coords)


# --- Configuration ------------------------------------------------------------

@pytest.mark.parametrize("field, value", [
    ("layer_count", 0),
    ("start_frequency", 0.0),
    ("frequency_factor", -1.0),
    ("weight_divisor", 0.0),
    ("amplitude", -0.5),
])
def test_invalid_config_is_rejected(field, value):
    with pytest.raises(InvalidParameter):
        NoiseConfig(**{field: value})


def test_invalid_parameter_is_a_value_error():
    with pytest.raises(ValueError):
        NoiseConfig(layer_count=-1)


def test_noise_type_parsing():
    assert NoiseType.parse("ridged") is NoiseType.RIDGED
    assert NoiseType.parse("Billowy") is NoiseType.BILLOWY
    assert NoiseType.parse(3) is NoiseType.COSINE
    assert NoiseConfig(noise_type="cosine").noise_type is NoiseType.COSINE
    with pytest.raises(InvalidParameter):
        NoiseType.parse("bogus")
    with pytest.raises(InvalidParameter):
        NoiseType.parse(9)


def test_seamless_config_derives_frequency_and_layer_count():
    config = NoiseConfig.seamless(20340, 2, 10, 2048, 2.2, 100.0)
    assert config.is_seamless
    assert config.layer_count == 9
    assert config.start_frequency == 512.0
    assert config.frequency_factor == 2.0


@pytest.mark.parametrize("start_layer, end_layer, resolution", [
    (-1, 3, 64),
    (4, 3, 64),
    (1, 3, 0),
])
def test_invalid_seamless_config_is_rejected(start_layer, end_layer, resolution):
    with pytest.raises(InvalidParameter):
        NoiseConfig.seamless(1, start_layer, end_layer, resolution, 2.0, 1.0)


def test_seamless_config_rejects_inconsistent_fields():
    config = NoiseConfig.seamless(1, 1, 3, 64, 2.0, 1.0)
    with pytest.raises(InvalidParameter):
        config.replace(layer_count=5)
    with pytest.raises(InvalidParameter):
        config.replace(frequency_factor=3.0)
    with pytest.raises(InvalidParameter):
        NoiseConfig(start_layer=1)


def test_config_from_dict_falls_back_to_defaults():
    config = NoiseConfig.from_dict({'seed': 77, 'noise_type': 'billowy'})
    assert config.seed == 77
    assert config.layer_count == 1
    assert config.amplitude == 42.0
    assert config.noise_type is NoiseType.BILLOWY
    assert not config.is_seamless


# --- Weights and gradients ----------------------------------------------------

@pytest.mark.parametrize("layer_count", [1, 2, 3, 5, 8, 12])
@pytest.mark.parametrize("weight_divisor", [0.5, 1.0, 2.0, 3.7])
def test_octave_weights_sum_to_one(layer_count, weight_divisor):
    engine = make_engine(layer_count=layer_count, weight_divisor=weight_divisor)
    weights = engine.octave_weights()
    assert weights.size == layer_count
    assert weights.sum() == pytest.approx(1.0, abs=1e-5)


def test_single_octave_has_full_weight():
    assert compute_start_weight(1, 2.0) == 1.0
    assert compute_start_weight(2, 2.0) == pytest.approx(2.0 / 3.0)


def test_gradient_set_is_eight_unit_vectors():
    gradients = gradient_set()
    assert gradients.shape == (8, 2)
    np.testing.assert_allclose(np.hypot(gradients[:, 0], gradients[:, 1]), 1.0)
    np.testing.assert_allclose(gradients[2], [0.0, 1.0], atol=1e-12)


# --- Standard noise -----------------------------------------------------------

def test_noise_is_zero_on_lattice_points():
    engine = make_engine()
    xs, ys = np.meshgrid(np.arange(6.0), np.arange(6.0))
    assert np.all(engine.sample_2d(xs, ys) == 0.0)
    assert np.all(engine.sample_1d(np.arange(10.0)) == 0.0)


def test_noise_is_bounded():
    engine = make_engine()
    xs, ys = sample_grid(40, 0.173)
    values = engine.sample_2d(xs, ys)
    assert np.all(np.abs(values) <= math.sqrt(0.5) + 1e-9)
    assert np.abs(values).max() > 0.0
    assert np.all(np.abs(engine.sample_1d(np.linspace(0.0, 50.0, 500))) <= 1.0)


def test_scalar_and_array_inputs():
    engine = make_engine()
    value = engine.sample_2d(1.3, 2.7)
    assert isinstance(value, float)
    values = engine.sample_2d(np.array([1.3, 4.1]), np.array([2.7, 0.2]))
    assert values.shape == (2,)
    assert values[0] == value
    assert isinstance(engine.sample_layered(10.0, 20.0), float)
    assert engine.sample_layered_1d(np.arange(5.0)).shape == (5,)


def test_layered_sampling_is_deterministic():
    xs, ys = sample_grid()
    a = make_engine(layer_count=4).sample_layered(xs, ys)
    b = make_engine(layer_count=4).sample_layered(xs, ys)
    assert np.array_equal(a, b)

    c = make_engine(layer_count=4, seed=6).sample_layered(xs, ys)
    assert not np.array_equal(a, c)


def test_layered_sampling_is_bounded_by_amplitude():
    xs, ys = sample_grid(32, 7.9)
    values = make_engine(layer_count=6).sample_layered(xs, ys)
    assert np.all(np.abs(values) <= 42.0)


def test_set_seed_rebuilds_tables():
    engine = make_engine(layer_count=3)
    xs, ys = sample_grid()
    original = engine.sample_layered(xs, ys)

    engine.set_seed(6)
    assert engine.seed == 6
    assert not np.array_equal(engine.sample_layered(xs, ys), original)

    engine.set_seed(5)
    assert np.array_equal(engine.sample_layered(xs, ys), original)


def test_setters_update_config_and_weights():
    engine = make_engine()
    engine.set_layer_count(3)
    engine.set_weight_divisor(3.0)
    engine.set_amplitude(10.0)
    engine.set_start_frequency(5.0)
    engine.set_frequency_factor(1.5)
    engine.set_noise_type("ridged")

    config = engine.config
    assert (config.layer_count, config.weight_divisor, config.amplitude) == (3, 3.0, 10.0)
    assert (config.start_frequency, config.frequency_factor) == (5.0, 1.5)
    assert config.noise_type is NoiseType.RIDGED
    assert engine.octave_weights().sum() == pytest.approx(1.0)
    assert engine.start_weight == pytest.approx(1.0 / (1.0 + 1.0 / 3.0 + 1.0 / 9.0))


def test_invalid_setter_leaves_engine_unchanged():
    engine = make_engine(layer_count=2)
    with pytest.raises(InvalidParameter):
        engine.set_layer_count(0)
    with pytest.raises(InvalidParameter):
        engine.set_weight_divisor(-2.0)
    assert engine.config.layer_count == 2
    assert engine.config.weight_divisor == 2.0


@pytest.mark.parametrize("noise_type, raw, expected", [
    (NoiseType.PERLIN, -0.5, -0.5),
    (NoiseType.BILLOWY, -0.5, 0.5),
    (NoiseType.RIDGED, -0.5, 0.5),
    (NoiseType.RIDGED, 0.25, 0.75),
    (NoiseType.COSINE, -0.5, 1.0 - abs(math.cos(-0.5))),
])
def test_transforms(noise_type, raw, expected):
    engine = make_engine(noise_type=noise_type)
    assert engine.transform(raw) == pytest.approx(expected)


def test_billowy_and_ridged_noise_are_non_negative():
    xs, ys = sample_grid()
    for noise_type in (NoiseType.BILLOWY, NoiseType.RIDGED, NoiseType.COSINE):
        values = make_engine(layer_count=3, noise_type=noise_type).sample_layered(xs, ys)
        assert np.all(values >= 0.0)


def test_negative_coordinates_are_clamped_with_a_warning(caplog):
    engine = make_engine()
    with pytest.warns(DomainWarning):
        clamped = engine.sample_2d(-3.0, 0.5)
    assert engine.domain_warnings == 1
    assert "non-negative" in caplog.text

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        expected = engine.sample_2d(0.0, 0.5)
    assert clamped == expected
    assert engine.domain_warnings == 1


def test_only_offending_coordinates_are_clamped():
    engine = make_engine(layer_count=2)
    with pytest.warns(DomainWarning):
        values = engine.sample_layered(np.array([-5.0, 3.0]), np.array([4.0, -1.0]))
    assert engine.domain_warnings == 2
    assert values[0] == engine.sample_layered(0.0, 4.0)
    assert values[1] == engine.sample_layered(3.0, 0.0)


# --- Seamless noise -----------------------------------------------------------

def test_seamless_tables_match_octaves():
    engine = make_seamless_engine(start_layer=2, end_layer=5)
    assert engine.permutations.sizes == [4, 8, 16, 32]
    assert engine.octave_weights().sum() == pytest.approx(1.0)


def test_seamless_noise_wraps_with_the_table_period():
    engine = make_seamless_engine()
    xs = np.array([0.25, 1.5, 3.75, 9.125, 14.5])
    ys = np.array([0.5, 2.25, 7.75, 0.125, 11.0])

    # Octave 2 holds 16 entries.
    base = engine.sample_seamless_2d(xs, ys, 2, 15)
    np.testing.assert_allclose(engine.sample_seamless_2d(xs + 16, ys, 2, 15), base, atol=1e-12)
    np.testing.assert_allclose(engine.sample_seamless_2d(xs, ys + 16, 2, 15), base, atol=1e-12)

    # A smaller limit wraps earlier.
    small = engine.sample_seamless_2d(xs, ys, 2, 7)
    np.testing.assert_allclose(engine.sample_seamless_2d(xs + 8, ys, 2, 7), small, atol=1e-12)


def test_seamless_layered_noise_tiles_with_the_texture_resolution():
    engine = make_seamless_engine(resolution=64)
    xs, ys = np.meshgrid(np.arange(0.0, 64.0, 5.5), np.arange(0.0, 64.0, 4.25))
    base = engine.sample_seamless_layered(xs, ys)
    assert np.abs(base).max() > 0.0
    np.testing.assert_allclose(engine.sample_seamless_layered(xs + 64, ys), base, atol=1e-9)
    np.testing.assert_allclose(engine.sample_seamless_layered(xs, ys + 64), base, atol=1e-9)


def test_seamless_sampling_is_deterministic():
    xs, ys = sample_grid(8, 2.5)
    a = make_seamless_engine().sample_seamless_layered(xs, ys)
    b = make_seamless_engine().sample_seamless_layered(xs, ys)
    assert np.array_equal(a, b)


@pytest.mark.parametrize("layer, limit", [(2, 6), (2, 31), (9, 3), (-1, 3), (0, -1)])
def test_invalid_seamless_layer_or_limit(layer, limit):
    engine = make_seamless_engine()
    with pytest.raises(InvalidParameter):
        engine.sample_seamless_2d(1.0, 1.0, layer, limit)


def test_set_layer_range_rebuilds_tables():
    engine = make_seamless_engine(start_layer=2, end_layer=5, resolution=64)
    engine.set_layer_range(1, 3)
    assert engine.permutations.sizes == [2, 4, 8]
    assert engine.config.layer_count == 3
    assert engine.config.start_frequency == 32.0


# --- Mode mismatch ------------------------------------------------------------

def test_seamless_entry_points_on_standard_engine():
    engine = make_engine()
    with pytest.raises(ModeMismatch):
        engine.sample_seamless_2d(1.0, 1.0, 0, 3)
    with pytest.raises(ModeMismatch):
        engine.sample_seamless_layered(1.0, 1.0)
    with pytest.raises(ModeMismatch):
        engine.set_layer_range(1, 3)


def test_standard_entry_points_on_seamless_engine():
    engine = make_seamless_engine()
    with pytest.raises(ModeMismatch):
        engine.sample_1d(1.0)
    with pytest.raises(ModeMismatch):
        engine.sample_2d(1.0, 1.0)
    with pytest.raises(ModeMismatch):
        engine.sample_layered(1.0, 1.0)
    with pytest.raises(ModeMismatch):
        engine.sample_layered_1d(1.0)


# --- Octave composition -------------------------------------------------------

POINTS = [(37.0, 91.0), (0.0, 0.0), (512.25, 3.5), (1234.5, 987.125)]


def test_layered_noise_multiplies_frequency_and_shifts_each_octave():
    engine = make_engine(layer_count=4, start_frequency=20.0, frequency_factor=2.5,
                         weight_divisor=3.0, amplitude=42.0, noise_type="ridged")

    for x, y in POINTS:
        frequency, weight, offset = 20.0, engine.start_weight, 7.19
        expected = 0.0
        for octave in range(4):
            if octave > 0:
                frequency *= 2.5
                weight /= 3.0
                offset *= 1.73
            scale = frequency / 1000.0
            raw = engine.sample_2d((x + offset) * scale, (y + offset * 2) * scale)
            expected += engine.transform(raw) * weight
        assert engine.sample_layered(x, y) == pytest.approx(expected * 42.0, abs=1e-9)


def test_layered_1d_noise_divides_frequency_per_octave():
    engine = make_engine(layer_count=3, start_frequency=20.0, frequency_factor=2.0,
                         weight_divisor=2.0, amplitude=5.0, noise_type="billowy")

    for x in (0.5, 37.0, 91.25, 300.0):
        frequency, weight = 20.0, engine.start_weight
        expected = 0.0
        for octave in range(3):
            if octave > 0:
                frequency /= 2.0
                weight /= 2.0
            expected += engine.transform(engine.sample_1d(x / frequency)) * weight
        assert engine.sample_layered_1d(x) == pytest.approx(expected * 5.0, abs=1e-9)


def test_seamless_layered_noise_uses_one_table_per_octave():
    engine = make_seamless_engine(start_layer=2, end_layer=5, resolution=64,
                                  weight_divisor=2.2, amplitude=3.0)
    assert engine.config.start_frequency == 16.0

    for x, y in [(37.0, 51.0), (0.0, 0.0), (12.5, 63.75)]:
        frequency, weight, offset = 16.0, engine.start_weight, 7.19
        expected = 0.0
        for octave in range(4):
            if octave > 0:
                frequency /= 2.0
                weight /= 2.2
                offset *= 1.73
            limit = 2 ** (octave + 2) - 1
            raw = engine.sample_seamless_2d((x + offset) / frequency, (y + offset * 2) / frequency,
                                            octave, limit)
            expected += engine.transform(raw) * weight
        assert engine.sample_seamless_layered(x, y) == pytest.approx(expected * 3.0, abs=1e-9)
