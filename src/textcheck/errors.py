"""Error taxonomy shared by the storage and analysis services.

Only ``NotFoundError`` and ``ValidationFailedError`` are ever described to a
client. Every other kind is reported as a generic internal error at the HTTP
boundary, with full context left in the logs.
"""

from __future__ import annotations


class TextcheckError(Exception):
    """Base class for all domain errors."""


class NotFoundError(TextcheckError):
    """A blob, analysis result or artifact does not exist."""


class ValidationFailedError(TextcheckError):
    """An upload was rejected (missing, empty or not plain text)."""


class UpstreamUnavailableError(TextcheckError):
    """A call to another service failed or returned an unexpected status."""


class RenderFailedError(UpstreamUnavailableError):
    """The word-cloud renderer failed or returned something that is not a PNG."""


class PersistenceFailedError(TextcheckError):
    """The database or the payload directory could not complete an operation."""
