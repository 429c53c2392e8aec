"""Exception taxonomy for pathdisrupt analyses."""

from __future__ import annotations


class PathDisruptError(Exception):
    """Base class for analysis-level failures."""


class DataAlignmentError(PathDisruptError):
    """Sample identifiers cannot be matched or classified."""


class DegenerateInputError(PathDisruptError):
    """Too few genes/samples, or zero variance, for the requested statistic."""


class DisconnectedGraphError(PathDisruptError):
    """A k-nearest-neighbour graph has more than one connected component."""

    def __init__(self, message: str, k: int | None = None, n_components: int | None = None):
        super().__init__(message)
        self.k = k
        self.n_components = n_components


class ResourceExhaustionError(PathDisruptError, UserWarning):
    """Requested work exceeds the configured compute budget.

    Also a ``UserWarning`` so it can be emitted through ``warnings.warn``.
    """
