# terrain_generator/permutation.py

"""
================================================================================
SEEDED PERMUTATION TABLES
================================================================================
This module builds the shuffled index tables the gradient noise uses to pick
a pseudo-random gradient for every lattice point.

Data Contract:
---------------
- Inputs:
    - seed: Integer that fully determines the shuffle.
    - sizes: One table size per octave. Every size is a power of two so that
      lattice coordinates can be wrapped with `& (size - 1)`.
- Outputs:
    - tables: A list of int64 arrays, each a permutation of [0, size).
    - gradients_1d: Optional random 1D gradients in [-1, 1].
- Side Effects: None.
- Invariants: Every table is a bijection on its index range. Re-running
  init() with the same seed rebuilds exactly the same tables.
================================================================================
"""

import numpy as np
from numba import njit

from . import config as DEFAULTS
from .errors import InvalidParameter


@njit
def _shuffle(table, draws):
    """Swaps every entry with the entry picked by the matching draw."""
    for i in range(table.shape[0]):
        j = draws[i]
        tmp = table[i]
        table[i] = table[j]
        table[j] = tmp


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


class PermutationTable:
    """One or more seeded permutation tables, rebuilt on every reseed."""

    def __init__(self, seed: int, sizes, with_1d_gradients: bool = False):
        sizes = [int(s) for s in sizes]
        if not sizes:
            raise InvalidParameter("At least one permutation table is required.")
        for size in sizes:
            if not _is_power_of_two(size):
                raise InvalidParameter(
                    f"Permutation table size must be a positive power of two, got {size}."
                )

        self.sizes = sizes
        self.with_1d_gradients = with_1d_gradients
        self.tables = []
        self.gradients_1d = None
        self.seed = None
        self.init(seed)

    @classmethod
    def standard(cls, seed: int) -> "PermutationTable":
        """A single 256 entry table plus the random gradients for 1D noise."""
        return cls(seed, [DEFAULTS.PERMUTATION_SIZE], with_1d_gradients=True)

    @classmethod
    def seamless(cls, seed: int, start_layer: int, layer_count: int) -> "PermutationTable":
        """
        One table per octave. Octave i gets 2^(i + start_layer) entries, which
        is the period of that octave's noise on the integer lattice.
        """
        if start_layer < 0:
            raise InvalidParameter(f"start_layer must be 0 or higher, got {start_layer}.")
        if layer_count < 1:
            raise InvalidParameter(f"layer_count must be 1 or higher, got {layer_count}.")
        return cls(seed, [1 << (i + start_layer) for i in range(layer_count)])

    def init(self, seed: int):
        """
        Reseeds the random engine and rebuilds all tables from the identity.
        The tables are drawn in octave order from a single engine.
        """
        rng = np.random.default_rng(seed)
        tables = []
        for size in self.sizes:
            table = np.arange(size, dtype=np.int64)
            draws = rng.integers(0, np.iinfo(np.uint32).max, size=size,
                                 dtype=np.uint32, endpoint=True)
            _shuffle(table, draws.astype(np.int64) & (size - 1))
            tables.append(table)

        self.tables = tables
        if self.with_1d_gradients:
            self.gradients_1d = rng.uniform(-1.0, 1.0, DEFAULTS.PERMUTATION_SIZE)
        self.seed = seed

    def flat(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Packs all tables into one array for the compiled kernels.
        Table i lives at packed[offsets[i]:offsets[i + 1]].
        """
        offsets = np.zeros(len(self.tables) + 1, dtype=np.int64)
        offsets[1:] = np.cumsum(self.sizes)
        return np.concatenate(self.tables), offsets

    def is_bijection(self) -> bool:
        return all(np.array_equal(np.sort(t), np.arange(t.size)) for t in self.tables)

    def __len__(self):
        return len(self.tables)

    def __getitem__(self, layer: int) -> np.ndarray:
        return self.tables[layer]
