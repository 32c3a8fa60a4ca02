"""Exception hierarchy shared by the core and infrastructure layers."""

from __future__ import annotations


class PlateFoldersError(Exception):
    """Base class for every error raised by this application."""


class ValidationError(PlateFoldersError):
    """Input rejected before any side effect happened."""


class RecognitionFailure(PlateFoldersError):
    """The text recognizer could not process an image."""


class ExternalAssetError(PlateFoldersError):
    """A call into the external asset library failed."""


class PersistenceError(PlateFoldersError):
    """The durable photo store is unreachable or corrupt."""
