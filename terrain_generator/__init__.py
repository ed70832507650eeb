# terrain_generator/__init__.py

# This file makes the 'terrain_generator' directory a Python package.
# We also use it to define the public API of the package.

from .errors import DomainWarning, InvalidParameter, ModeMismatch, TerrainGeneratorError
from .permutation import PermutationTable
from .noise import NoiseConfig, NoiseEngine, NoiseType
from .heightfield import VERTEX_DTYPE, HeightfieldGenerator, HeightfieldMesh
from .normals import SurfaceNormalSynthesizer
from .generator import TerrainGenerator

__all__ = [
    "DomainWarning", "InvalidParameter", "ModeMismatch", "TerrainGeneratorError",
    "PermutationTable", "NoiseConfig", "NoiseEngine", "NoiseType",
    "VERTEX_DTYPE", "HeightfieldGenerator", "HeightfieldMesh",
    "SurfaceNormalSynthesizer", "TerrainGenerator",
]
