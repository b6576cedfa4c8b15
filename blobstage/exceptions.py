"""Custom exception hierarchy for blobstage."""

from __future__ import annotations


class BlobStageError(Exception):
    """Base exception for all blobstage-specific errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BlobStageError):
    """Raised when configuration is invalid or missing."""
    pass


class CredentialError(ConfigurationError):
    """Raised when storage credentials are missing or malformed."""
    pass


class StorageError(BlobStageError):
    """Raised when blob storage operations fail."""
    pass


class ContainerExistsError(StorageError):
    """Raised by a backend when the container it was asked to create already exists."""
    pass


class ContainerInitializationError(StorageError):
    """Raised when the container cannot be created at startup."""
    pass


class UploadSubmissionError(StorageError):
    """Raised when a staged file cannot be handed to the upload pool."""
    pass


class EvidenceSerializationError(BlobStageError):
    """Raised when inbound metadata cannot be serialized as evidence."""
    pass


class StagingWriteError(BlobStageError, OSError):
    """Raised when an artifact cannot be written to the staging directory."""
    pass
