"""
Error types raised by SoundWave components.
"""

from __future__ import annotations


class SoundwaveError(Exception):
    """Base class for errors surfaced to API and CLI callers."""


class EmbeddingUnavailable(SoundwaveError):
    """The embedding provider could not produce a vector."""


class MalformedEmbedding(SoundwaveError):
    """A stored embedding could not be decoded into a numeric vector."""


class StoreUnavailable(SoundwaveError):
    """The song store could not complete a read or write."""


class AnalysisFailed(SoundwaveError):
    """The lyrics/mood analysis service rejected or garbled a request."""


class UploadFailed(SoundwaveError):
    """The audio file could not be published to the public file host."""


class InvalidUpload(SoundwaveError):
    """The uploaded file is empty, too large, or not audio."""
