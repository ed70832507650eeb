# terrain_generator/buffers.py

"""
Owned output buffers with an explicit release.

The generated meshes and texture maps are only needed until a renderer has
copied them out, so every output lives in a ReleasableBuffer that can be
emptied as soon as it has been consumed.
"""

import logging
from typing import Optional

import numpy as np


class ReleasableBuffer:
    """Holds one computed array until the consumer releases it."""

    def __init__(self, name: str, logger: logging.Logger = None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self._data: Optional[np.ndarray] = None

    @property
    def data(self) -> Optional[np.ndarray]:
        """The held array, or None once released."""
        return self._data

    @property
    def is_held(self) -> bool:
        return self._data is not None

    @property
    def nbytes(self) -> int:
        return 0 if self._data is None else self._data.nbytes

    def store(self, data: np.ndarray) -> np.ndarray:
        """Replaces the held array."""
        self._data = data
        return data

    def release(self):
        if self._data is not None:
            self.logger.debug(f"Releasing {self.name} buffer ({self._data.nbytes} bytes).")
        self._data = None
