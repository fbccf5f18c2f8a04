"""Exceptions raised by the terragrid pipeline.

Malformed input lines are not errors; they are reported as
:class:`~terragrid.core.pointcloud.ParseDiagnostic` records instead.
"""
from __future__ import annotations


class TerragridError(Exception):
    """Base class for all pipeline failures."""


class IoFailure(TerragridError, OSError):
    """A source could not be read or a sink could not be written."""


class EmptySetError(TerragridError, ValueError):
    """An operation needed at least one point and got none."""


class InvalidConfigurationError(TerragridError, ValueError):
    """A numeric or structural parameter violates its constraint."""


class InvalidSpacingError(InvalidConfigurationError):
    pass


class NoDataError(TerragridError, ValueError):
    """Interpolation was attempted against zero source points."""
