"""
Exceptions raised by ghostguide.

Row-level problems during an import are never raised; they are collected as
strings on each ParsedEntry. Only problems the caller has to react to end up here.
"""

from __future__ import annotations


class GhostGuideError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(GhostGuideError):
    """Invalid configuration, e.g. a malformed channel roster file."""


class ImportFileError(GhostGuideError):
    """The import file could not be read or decoded."""


class StoreError(GhostGuideError):
    """A schedule store operation failed (unknown id, invalid entry, I/O)."""


class TitleLookupError(GhostGuideError):
    """A title lookup against the metadata provider failed."""


class LookupConfigError(TitleLookupError):
    """No API key is configured for the metadata provider."""


class LookupRequestError(TitleLookupError):
    """The HTTP request to the metadata provider failed."""
