# terrain_generator/errors.py

"""
Error taxonomy of the terrain generator.

InvalidParameter and ModeMismatch abort the operation that raised them.
DomainWarning is only ever issued as a warning: the offending coordinate has
already been clamped and the computation continues.
"""


class TerrainGeneratorError(Exception):
    """Base class for all errors raised by the terrain generator."""


class InvalidParameter(TerrainGeneratorError, ValueError):
    """A size, detail, frequency or layer parameter is out of range."""


class ModeMismatch(TerrainGeneratorError, TypeError):
    """A seamless entry point was called on a standard noise engine, or vice versa."""


class DomainWarning(UserWarning):
    """A negative coordinate was passed to the noise and clamped to 0."""
