# terrain_generator/noise.py

"""
================================================================================
GRADIENT NOISE ENGINE
================================================================================
This module provides 1D and 2D gradient ("Perlin") noise, a tileable 2D
variant, multi-octave layering and the four output transforms.

Data Contract:
---------------
- Inputs (on initialization):
    - config (NoiseConfig): Seed, octave parameters and noise type. A config
      built with NoiseConfig.seamless() selects the tileable variant.
    - logger: Optional logging object for runtime messages.
- Outputs (from methods):
    - Floats for scalar coordinates, NumPy float64 arrays shaped like the
      (broadcast) coordinate arrays otherwise.
- Side Effects: Logs a warning and issues a DomainWarning when a negative
  coordinate is clamped to 0.
- Invariants: Given the same config, the output is deterministic. The
  weights of all octaves sum to 1 before the amplitude is applied.
================================================================================
"""

import logging
import math
import warnings
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional

import numpy as np
from numba import njit

from . import config as DEFAULTS
from .errors import DomainWarning, InvalidParameter, ModeMismatch
from .permutation import PermutationTable

# Module level copies so the compiled kernels see them as constants.
_PERM_MASK = DEFAULTS.PERMUTATION_SIZE - 1
_GRADIENT_MASK = DEFAULTS.GRADIENT_COUNT - 1
_FREQUENCY_SCALE = DEFAULTS.FREQUENCY_SCALE
_OFFSET_START = DEFAULTS.OCTAVE_OFFSET_START
_OFFSET_GROWTH = DEFAULTS.OCTAVE_OFFSET_GROWTH


class NoiseType(IntEnum):
    PERLIN = 0
    BILLOWY = 1
    RIDGED = 2
    COSINE = 3

    @classmethod
    def parse(cls, value) -> "NoiseType":
        """Accepts a NoiseType, its integer value or its (case-insensitive) name."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise InvalidParameter(f"Unknown noise type '{value}'.") from None
        try:
            return cls(value)
        except ValueError:
            raise InvalidParameter(f"Unknown noise type {value!r}.") from None


# ------------------------------------------------------------------------------
# Compiled kernels
# ------------------------------------------------------------------------------

@njit
def _lerp(a, b, x):
    "Linear interpolation."
    return a + x * (b - a)

@njit
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)

@njit
def _smoothstep(t):
    "3t^2 - 2t^3"
    return (3 - 2 * t) * t * t

@njit
def _transform(value, noise_type):
    # noise_type follows the NoiseType values.
    if noise_type == 1:
        return abs(value)
    elif noise_type == 2:
        return 1.0 - abs(value)
    elif noise_type == 3:
        return 1.0 - abs(np.cos(value))
    return value

@njit
def _noise_1d(perm, gradients_1d, x):
    """Gradient noise on the 1D lattice, blended with the cubic smoothstep."""
    xi = int(np.floor(x))
    xf = x - xi

    dp0 = xf * gradients_1d[perm[xi & _PERM_MASK] & _PERM_MASK]
    dp1 = (xf - 1.0) * gradients_1d[perm[(xi + 1) & _PERM_MASK] & _PERM_MASK]

    return _lerp(dp0, dp1, _smoothstep(xf))

@njit
def _noise_2d(perm, mask, gradients, x, y):
    """
    Gradient noise on the 2D lattice. `mask` wraps lattice coordinates into
    `perm`, so the field repeats every (mask + 1) units.
    """
    xi = int(np.floor(x))
    yi = int(np.floor(y))

    xf = x - xi
    yf = y - yi

    row0 = perm[yi & mask]
    row1 = perm[(yi + 1) & mask]

    g00 = gradients[perm[(xi + row0) & mask] & _GRADIENT_MASK]
    g10 = gradients[perm[(xi + 1 + row0) & mask] & _GRADIENT_MASK]
    g01 = gradients[perm[(xi + row1) & mask] & _GRADIENT_MASK]
    g11 = gradients[perm[(xi + 1 + row1) & mask] & _GRADIENT_MASK]

    dp00 = g00[0] * xf + g00[1] * yf
    dp10 = g10[0] * (xf - 1.0) + g10[1] * yf
    dp01 = g01[0] * xf + g01[1] * (yf - 1.0)
    dp11 = g11[0] * (xf - 1.0) + g11[1] * (yf - 1.0)

    u = _fade(xf)
    v = _fade(yf)

    x1 = _lerp(dp00, dp10, u)
    x2 = _lerp(dp01, dp11, u)
    return _lerp(x1, x2, v)

@njit
def _noise_1d_grid(perm, gradients_1d, x):
    rows, cols = x.shape
    out = np.empty((rows, cols))
    for i in range(rows):
        for j in range(cols):
            out[i, j] = _noise_1d(perm, gradients_1d, x[i, j])
    return out

@njit
def _noise_2d_grid(perm, mask, gradients, x, y):
    rows, cols = x.shape
    out = np.empty((rows, cols))
    for i in range(rows):
        for j in range(cols):
            out[i, j] = _noise_2d(perm, mask, gradients, x[i, j], y[i, j])
    return out

@njit
def _transform_grid(values, noise_type):
    rows, cols = values.shape
    out = np.empty((rows, cols))
    for i in range(rows):
        for j in range(cols):
            out[i, j] = _transform(values[i, j], noise_type)
    return out

@njit
def _layered_noise_1d(perm, gradients_1d, x, layer_count, start_frequency,
                      frequency_factor, start_weight, weight_divisor, amplitude, noise_type):
    """
    Sums `layer_count` octaves of 1D noise. The coordinate is divided by the
    frequency, which is itself divided by `frequency_factor` per octave.
    """
    rows, cols = x.shape
    total_noise = np.zeros((rows, cols))

    for i in range(rows):
        for j in range(cols):
            frequency = start_frequency
            weight = start_weight
            noise_val = 0.0

            for octave in range(layer_count):
                if octave > 0:
                    frequency /= frequency_factor
                    weight /= weight_divisor
                value = _noise_1d(perm, gradients_1d, x[i, j] / frequency)
                noise_val += _transform(value, noise_type) * weight

            total_noise[i, j] = noise_val * amplitude

    return total_noise

@njit
def _layered_noise_2d(perm, gradients, x, y, layer_count, start_frequency,
                      frequency_factor, start_weight, weight_divisor, amplitude, noise_type):
    """
    Sums `layer_count` octaves of 2D noise. The frequency is multiplied by
    `frequency_factor` per octave and every octave is shifted by a growing
    offset (twice as large on y) to avoid axis aligned artifacts.
    """
    rows, cols = x.shape
    total_noise = np.zeros((rows, cols))

    for i in range(rows):
        for j in range(cols):
            offset = _OFFSET_START
            frequency = start_frequency
            weight = start_weight
            noise_val = 0.0

            for octave in range(layer_count):
                if octave > 0:
                    frequency *= frequency_factor
                    weight /= weight_divisor
                    offset *= _OFFSET_GROWTH
                scale = frequency / _FREQUENCY_SCALE
                value = _noise_2d(perm, _PERM_MASK, gradients,
                                  (x[i, j] + offset) * scale,
                                  (y[i, j] + offset * 2) * scale)
                noise_val += _transform(value, noise_type) * weight

            total_noise[i, j] = noise_val * amplitude

    return total_noise

@njit
def _seamless_layered_noise_2d(tables, offsets, gradients, x, y, start_frequency,
                               frequency_factor, start_weight, weight_divisor, amplitude, noise_type):
    """
    Sums one octave per packed permutation table. Octave k reads table k and
    wraps with its size, the coordinate is divided by the frequency, and the
    frequency is divided by `frequency_factor` per octave.
    """
    rows, cols = x.shape
    octaves = offsets.shape[0] - 1
    total_noise = np.zeros((rows, cols))

    for i in range(rows):
        for j in range(cols):
            offset = _OFFSET_START
            frequency = start_frequency
            weight = start_weight
            noise_val = 0.0

            for octave in range(octaves):
                if octave > 0:
                    frequency /= frequency_factor
                    weight /= weight_divisor
                    offset *= _OFFSET_GROWTH
                start = offsets[octave]
                stop = offsets[octave + 1]
                value = _noise_2d(tables[start:stop], stop - start - 1, gradients,
                                  (x[i, j] + offset) / frequency,
                                  (y[i, j] + offset * 2) / frequency)
                noise_val += _transform(value, noise_type) * weight

            total_noise[i, j] = noise_val * amplitude

    return total_noise


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------

def compute_start_weight(layer_count: int, weight_divisor: float) -> float:
    """Weight of the first octave, chosen so that all octave weights sum to 1."""
    return 1.0 / sum(weight_divisor ** -i for i in range(layer_count))


def gradient_set() -> np.ndarray:
    """Unit vectors evenly spaced around the circle, shape (GRADIENT_COUNT, 2)."""
    angles = np.arange(DEFAULTS.GRADIENT_COUNT) * (2.0 * math.pi / DEFAULTS.GRADIENT_COUNT)
    return np.column_stack((np.cos(angles), np.sin(angles)))


@dataclass(frozen=True)
class NoiseConfig:
    """
    Parameters of a noise engine. Build tileable configs with
    NoiseConfig.seamless(), which derives the layer count, start frequency
    and frequency factor from the layer range and texture resolution.
    """
    seed: int = DEFAULTS.DEFAULT_SEED
    layer_count: int = DEFAULTS.DEFAULT_LAYER_COUNT
    start_frequency: float = DEFAULTS.DEFAULT_START_FREQUENCY
    frequency_factor: float = DEFAULTS.DEFAULT_FREQUENCY_FACTOR
    weight_divisor: float = DEFAULTS.DEFAULT_WEIGHT_DIVISOR
    amplitude: float = DEFAULTS.DEFAULT_AMPLITUDE
    noise_type: NoiseType = NoiseType.PERLIN
    start_layer: Optional[int] = None
    end_layer: Optional[int] = None
    texture_resolution: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'noise_type', NoiseType.parse(self.noise_type))
        self.validate()

    @property
    def is_seamless(self) -> bool:
        return self.texture_resolution is not None

    @classmethod
    def seamless(cls, seed: int, start_layer: int, end_layer: int, texture_resolution: int,
                 weight_divisor: float, amplitude: float, noise_type=NoiseType.PERLIN) -> "NoiseConfig":
        _check_layer_range(start_layer, end_layer, texture_resolution)
        return cls(
            seed=seed,
            layer_count=end_layer - start_layer + 1,
            start_frequency=texture_resolution / float(1 << start_layer),
            frequency_factor=DEFAULTS.SEAMLESS_FREQUENCY_FACTOR,
            weight_divisor=weight_divisor,
            amplitude=amplitude,
            noise_type=noise_type,
            start_layer=start_layer,
            end_layer=end_layer,
            texture_resolution=texture_resolution,
        )

    @classmethod
    def from_dict(cls, config: dict) -> "NoiseConfig":
        """Terrain noise config from a user dictionary, falling back to the defaults."""
        return cls(
            seed=config.get('seed', DEFAULTS.DEFAULT_SEED),
            layer_count=config.get('layer_count', DEFAULTS.DEFAULT_LAYER_COUNT),
            start_frequency=config.get('start_frequency', DEFAULTS.DEFAULT_START_FREQUENCY),
            frequency_factor=config.get('frequency_factor', DEFAULTS.DEFAULT_FREQUENCY_FACTOR),
            weight_divisor=config.get('weight_divisor', DEFAULTS.DEFAULT_WEIGHT_DIVISOR),
            amplitude=config.get('amplitude', DEFAULTS.DEFAULT_AMPLITUDE),
            noise_type=config.get('noise_type', DEFAULTS.DEFAULT_NOISE_TYPE),
        )

    @classmethod
    def seamless_from_dict(cls, config: dict) -> "NoiseConfig":
        """Tileable noise config from a user dictionary, falling back to the defaults."""
        return cls.seamless(
            seed=config.get('seed', DEFAULTS.DEFAULT_SEAMLESS_SEED),
            start_layer=config.get('start_layer', DEFAULTS.DEFAULT_SEAMLESS_START_LAYER),
            end_layer=config.get('end_layer', DEFAULTS.DEFAULT_SEAMLESS_END_LAYER),
            texture_resolution=config.get('resolution', DEFAULTS.DEFAULT_SEAMLESS_RESOLUTION),
            weight_divisor=config.get('weight_divisor', DEFAULTS.DEFAULT_SEAMLESS_WEIGHT_DIVISOR),
            amplitude=config.get('amplitude', DEFAULTS.DEFAULT_SEAMLESS_AMPLITUDE),
            noise_type=config.get('noise_type', DEFAULTS.DEFAULT_SEAMLESS_NOISE_TYPE),
        )

    def validate(self):
        if self.layer_count < 1:
            raise InvalidParameter(f"layer_count must be 1 or higher, got {self.layer_count}.")
        if not self.start_frequency > 0.0:
            raise InvalidParameter(f"start_frequency must be greater than 0, got {self.start_frequency}.")
        if not self.frequency_factor > 0.0:
            raise InvalidParameter(f"frequency_factor must be greater than 0, got {self.frequency_factor}.")
        if not self.weight_divisor > 0.0:
            raise InvalidParameter(f"weight_divisor must be greater than 0, got {self.weight_divisor}.")
        if not self.amplitude >= 0.0:
            raise InvalidParameter(f"amplitude must be 0 or higher, got {self.amplitude}.")

        layer_fields = (self.start_layer, self.end_layer, self.texture_resolution)
        if all(f is None for f in layer_fields):
            return
        if any(f is None for f in layer_fields):
            raise InvalidParameter(
                "start_layer, end_layer and texture_resolution must be given together."
            )
        _check_layer_range(self.start_layer, self.end_layer, self.texture_resolution)
        if self.layer_count != self.end_layer - self.start_layer + 1:
            raise InvalidParameter(
                f"A seamless config with layers {self.start_layer}..{self.end_layer} "
                f"needs layer_count {self.end_layer - self.start_layer + 1}, got {self.layer_count}."
            )
        if self.frequency_factor != DEFAULTS.SEAMLESS_FREQUENCY_FACTOR:
            raise InvalidParameter("Seamless noise requires a frequency_factor of 2.")
        if not math.isclose(self.start_frequency, self.texture_resolution / float(1 << self.start_layer)):
            raise InvalidParameter(
                "Seamless start_frequency is derived from texture_resolution / 2^start_layer."
            )

    def replace(self, **changes) -> "NoiseConfig":
        return replace(self, **changes)


def _check_layer_range(start_layer: int, end_layer: int, texture_resolution: int):
    if start_layer < 0:
        raise InvalidParameter(f"start_layer must be 0 or higher, got {start_layer}.")
    if end_layer < start_layer:
        raise InvalidParameter(
            f"end_layer ({end_layer}) must not be lower than start_layer ({start_layer})."
        )
    if texture_resolution <= 0:
        raise InvalidParameter(f"texture_resolution must be greater than 0, got {texture_resolution}.")


# ------------------------------------------------------------------------------
# Engine
# ------------------------------------------------------------------------------

class NoiseEngine:
    """
    Evaluates gradient noise for one NoiseConfig. The standard and tileable
    families are chosen by the config and cannot be switched afterwards.
    """

    def __init__(self, config: NoiseConfig, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self._config = config
        self.is_seamless = config.is_seamless

        # Number of coordinates clamped to 0 since construction.
        self.domain_warnings = 0

        self._init_tables()
        self._start_weight = compute_start_weight(config.layer_count, config.weight_divisor)

        mode = "seamless" if self.is_seamless else "standard"
        self.logger.debug(
            f"NoiseEngine ({mode}) initialized with seed {config.seed}, "
            f"{config.layer_count} layer(s), type {config.noise_type.name}."
        )

    def _init_tables(self):
        """(Re)builds the permutation tables and the gradient set for the current seed."""
        config = self._config
        if self.is_seamless:
            self.permutations = PermutationTable.seamless(config.seed, config.start_layer, config.layer_count)
            self._packed_tables, self._table_offsets = self.permutations.flat()
        else:
            self.permutations = PermutationTable.standard(config.seed)
        self.gradients = gradient_set()

    # --- Properties -----------------------------------------------------------

    @property
    def config(self) -> NoiseConfig:
        return self._config

    @property
    def seed(self) -> int:
        return self._config.seed

    @property
    def start_weight(self) -> float:
        return self._start_weight

    def octave_weights(self) -> np.ndarray:
        """Weight of every octave before the amplitude is applied."""
        return self._start_weight / self._config.weight_divisor ** np.arange(self._config.layer_count)

    # --- Mutators -------------------------------------------------------------

    def _update(self, **changes):
        self._config = self._config.replace(**changes)
        self._start_weight = compute_start_weight(self._config.layer_count, self._config.weight_divisor)

    def set_seed(self, seed: int):
        """Sets a new seed and rebuilds tables and gradients before returning."""
        self._update(seed=seed)
        self._init_tables()
        self.logger.debug(f"NoiseEngine reseeded with {seed}.")

    def set_layer_count(self, layer_count: int):
        self._update(layer_count=layer_count)

    def set_start_frequency(self, start_frequency: float):
        self._update(start_frequency=start_frequency)

    def set_frequency_factor(self, frequency_factor: float):
        self._update(frequency_factor=frequency_factor)

    def set_weight_divisor(self, weight_divisor: float):
        self._update(weight_divisor=weight_divisor)

    def set_amplitude(self, amplitude: float):
        self._update(amplitude=amplitude)

    def set_noise_type(self, noise_type):
        self._update(noise_type=NoiseType.parse(noise_type))

    def set_layer_range(self, start_layer: int, end_layer: int, texture_resolution: int = None):
        """Changes the octave range of a seamless engine. The tables are rebuilt."""
        self._require_seamless("set_layer_range")
        config = self._config
        self._config = NoiseConfig.seamless(
            seed=config.seed,
            start_layer=start_layer,
            end_layer=end_layer,
            texture_resolution=texture_resolution or config.texture_resolution,
            weight_divisor=config.weight_divisor,
            amplitude=config.amplitude,
            noise_type=config.noise_type,
        )
        self._start_weight = compute_start_weight(self._config.layer_count, self._config.weight_divisor)
        self._init_tables()

    # --- Helpers --------------------------------------------------------------

    def _require_standard(self, caller: str):
        if self.is_seamless:
            raise ModeMismatch(f"{caller}() called on a seamless noise engine.")

    def _require_seamless(self, caller: str):
        if not self.is_seamless:
            raise ModeMismatch(f"{caller}() called on a standard noise engine.")

    def _prepare(self, caller: str, *coords):
        """
        Broadcasts the coordinates into contiguous (1, N) float grids for the
        kernels and clamps negative values to 0.
        Returns the original shape and the grids.
        """
        arrays = np.broadcast_arrays(*[np.asarray(c, dtype=np.float64) for c in coords])
        shape = arrays[0].shape
        grids = [np.ascontiguousarray(a.reshape(1, -1)) for a in arrays]

        clamped = 0
        for k, grid in enumerate(grids):
            negative = grid < 0.0
            if negative.any():
                clamped += int(negative.sum())
                grids[k] = np.where(negative, 0.0, grid)

        if clamped:
            self.domain_warnings += clamped
            message = (f"{caller}(): this noise only supports non-negative coordinates, "
                       f"{clamped} value(s) set to 0.0.")
            self.logger.warning(message)
            warnings.warn(message, DomainWarning, stacklevel=3)

        return shape, grids

    @staticmethod
    def _restore(shape, values: np.ndarray):
        if shape == ():
            return float(values[0, 0])
        return values.reshape(shape)

    # --- Standard noise -------------------------------------------------------

    def transform(self, value):
        """Applies the configured noise type to raw noise values."""
        values = np.asarray(value, dtype=np.float64)
        grid = np.ascontiguousarray(values.reshape(1, -1))
        return self._restore(values.shape, _transform_grid(grid, int(self._config.noise_type)))

    def sample_1d(self, x):
        """Raw 1D gradient noise."""
        self._require_standard("sample_1d")
        shape, (gx,) = self._prepare("sample_1d", x)
        values = _noise_1d_grid(self.permutations[0], self.permutations.gradients_1d, gx)
        return self._restore(shape, values)

    def sample_2d(self, x, y):
        """Raw 2D gradient noise."""
        self._require_standard("sample_2d")
        shape, (gx, gy) = self._prepare("sample_2d", x, y)
        values = _noise_2d_grid(self.permutations[0], _PERM_MASK, self.gradients, gx, gy)
        return self._restore(shape, values)

    def sample_layered_1d(self, x):
        self._require_standard("sample_layered_1d")
        shape, (gx,) = self._prepare("sample_layered_1d", x)
        c = self._config
        values = _layered_noise_1d(
            self.permutations[0], self.permutations.gradients_1d, gx,
            c.layer_count, c.start_frequency, c.frequency_factor,
            self._start_weight, c.weight_divisor, c.amplitude, int(c.noise_type)
        )
        return self._restore(shape, values)

    def sample_layered(self, x, y):
        """Fractal sum of all octaves of 2D noise, scaled by the amplitude."""
        self._require_standard("sample_layered")
        shape, (gx, gy) = self._prepare("sample_layered", x, y)
        c = self._config
        values = _layered_noise_2d(
            self.permutations[0], self.gradients, gx, gy,
            c.layer_count, c.start_frequency, c.frequency_factor,
            self._start_weight, c.weight_divisor, c.amplitude, int(c.noise_type)
        )
        return self._restore(shape, values)

    # --- Seamless noise -------------------------------------------------------

    def sample_seamless_2d(self, x, y, layer: int, limit: int):
        """
        Raw 2D noise from the permutation table of octave `layer`, wrapped with
        `limit`. The result repeats every (limit + 1) units on both axes.
        """
        self._require_seamless("sample_seamless_2d")
        if not 0 <= layer < len(self.permutations):
            raise InvalidParameter(
                f"layer must be in [0, {len(self.permutations)}), got {layer}."
            )
        table = self.permutations[layer]
        period = limit + 1
        if period <= 0 or (period & limit) != 0 or period > table.size:
            raise InvalidParameter(
                f"limit + 1 must be a power of two no larger than {table.size}, got limit {limit}."
            )

        shape, (gx, gy) = self._prepare("sample_seamless_2d", x, y)
        values = _noise_2d_grid(table, int(limit), self.gradients, gx, gy)
        return self._restore(shape, values)

    def sample_seamless_layered(self, x, y):
        """
        Fractal sum of all tileable octaves. The field repeats every
        `texture_resolution` units on both axes.
        """
        self._require_seamless("sample_seamless_layered")
        shape, (gx, gy) = self._prepare("sample_seamless_layered", x, y)
        c = self._config
        values = _seamless_layered_noise_2d(
            self._packed_tables, self._table_offsets, self.gradients, gx, gy,
            c.start_frequency, c.frequency_factor, self._start_weight,
            c.weight_divisor, c.amplitude, int(c.noise_type)
        )
        return self._restore(shape, values)
