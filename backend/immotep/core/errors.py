"""Exception hierarchy shared by the immotep batch jobs.

Fatal errors (unreadable source, storage unreachable, missing config) are
raised to the caller. Row and batch level problems are counted and logged
by the jobs themselves and never surface as exceptions.
"""
from __future__ import annotations


class ImmotepError(Exception):
    """Base class for every immotep failure."""


class ConfigError(ImmotepError):
    """Invalid or missing runtime configuration."""


class IngestError(ImmotepError):
    """Source or reference file cannot be opened or decoded."""


class StorageError(ImmotepError):
    """Storage is unreachable or does not support a required operation."""


class GeocodeError(ImmotepError):
    """The geocoding service call failed (network, timeout, non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
