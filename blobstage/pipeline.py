"""Stage-then-upload pipeline for inbound payloads and receipts.

Each artifact is written to the staging directory on the caller's thread, then
handed to the blob container's upload pool. The persist call returns as soon as
the upload is submitted. When the upload finishes the staging file is deleted
on success, or kept and the failure logged otherwise. Upload failures are not
reported back to the caller and are not retried.
"""

from __future__ import annotations

import os
import shutil
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import BinaryIO, Callable
from uuid import uuid4

from loguru import logger

from blobstage.container import ContainerManager
from blobstage.evidence import EvidenceWriter, JsonEvidenceWriter
from blobstage.exceptions import (
    ConfigurationError,
    EvidenceSerializationError,
    StagingWriteError,
    UploadSubmissionError,
)
from blobstage.keys import ArtifactDescriptor, ArtifactKind, base_name, derive_key, sanitize_identifier
from blobstage.logging_config import setup_logging
from blobstage.models import Header, InboundMetadata
from blobstage.settings import Settings, StorageSettings, get_settings
from blobstage.storage import BlobContainer, BlobService, UploadOutcome

COPY_BUFFER_SIZE = 64 * 1024


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StagedUploader:
    def __init__(
        self,
        staging_dir: Path,
        containers: ContainerManager,
        container_name: str,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.staging_dir = staging_dir
        self.containers = containers
        self.container_name = container_name
        self.clock = clock
        self._closed = False

    def staging_path(self, descriptor: ArtifactDescriptor) -> Path:
        return self.staging_dir / base_name(descriptor)

    def stage(self, descriptor: ArtifactDescriptor, write: Callable[[BinaryIO], None]) -> Path:
        """Write an artifact to its staging path.

        Content goes to a hidden sibling file first and is renamed into place,
        so the staging name never refers to a partially written file.

        Raises:
            StagingWriteError: If writing or serializing fails. Nothing is uploaded.
        """
        target = self.staging_path(descriptor)
        partial_path = target.with_name(f".{target.name}.{uuid4().hex}.partial")
        try:
            with partial_path.open("wb") as fp:
                write(fp)
            os.replace(partial_path, target)
        except (OSError, ValueError, EvidenceSerializationError) as exc:
            self._discard(partial_path)
            raise StagingWriteError(
                f"Unable to persist {descriptor.kind.value}: {exc}",
                {"kind": descriptor.kind.value, "path": str(target)},
            ) from exc
        except Exception:
            self._discard(partial_path)
            raise
        return target

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Unable to remove partial staging file {}: {}", path, exc)

    def upload(self, descriptor: ArtifactDescriptor, staging_path: Path) -> "Future[UploadOutcome]":
        """Submit a staged file for asynchronous upload and return without waiting."""
        if self._closed:
            raise UploadSubmissionError(
                "Pipeline is closed, upload not submitted",
                {"path": str(staging_path)},
            )

        key = derive_key(descriptor, self.clock())
        container = self.containers.get(self.container_name)
        try:
            future = container.submit_upload(
                key,
                staging_path,
                on_complete=partial(self._on_upload_complete, staging_path, container),
            )
        except RuntimeError as exc:
            raise UploadSubmissionError(
                f"Unable to submit upload of {staging_path}: {exc}",
                {"path": str(staging_path), "key": key},
            ) from exc

        logger.debug("Submitted {} for upload to {}/{}", staging_path, container.name, key)
        return future

    def _on_upload_complete(
        self,
        staging_path: Path,
        container: BlobContainer,
        outcome: UploadOutcome,
    ) -> None:
        # Runs on the upload pool. Only deletes the staging file and logs.
        url = container.url_for(outcome.key)
        if not outcome.succeeded:
            logger.warning(
                "Failed to upload temporary file {} to blob URL {}, status code was {} ({})",
                staging_path,
                url,
                outcome.status_code,
                outcome.reason,
            )
            return

        logger.info("Uploaded file to {}, deleting temporary local file {}", url, staging_path)
        try:
            staging_path.unlink()
        except OSError as exc:
            logger.warning("Unable to delete temporary file {} after upload: {}", staging_path, exc)

    def close(self, wait: bool = True) -> None:
        """Stop accepting artifacts and, by default, wait for pending uploads."""
        self._closed = True
        self.containers.close(wait=wait)


class PayloadPersister:
    def __init__(self, uploader: StagedUploader) -> None:
        self.uploader = uploader

    def persist_payload(self, transmission_identifier: str, header: Header, payload_stream: BinaryIO) -> Path:
        """Stage a payload document and schedule its upload.

        Returns the staging path. The upload may still be running, and the file
        may already be gone, by the time the caller looks at it.
        """
        logger.debug("Payload received with id {}", sanitize_identifier(transmission_identifier))
        descriptor = ArtifactDescriptor.for_artifact(ArtifactKind.PAYLOAD, transmission_identifier, header)
        staging_path = self.uploader.stage(
            descriptor,
            lambda out: shutil.copyfileobj(payload_stream, out, COPY_BUFFER_SIZE),
        )
        logger.info("Payload temporarily persisted to: {}", staging_path)
        self.uploader.upload(descriptor, staging_path)
        return staging_path


class ReceiptPersister:
    def __init__(self, uploader: StagedUploader, evidence_writer: EvidenceWriter) -> None:
        self.uploader = uploader
        self.evidence_writer = evidence_writer

    def persist_receipt(self, metadata: InboundMetadata) -> None:
        logger.debug("Receipt received with id {}", sanitize_identifier(metadata.transmission_identifier))
        descriptor = ArtifactDescriptor.for_artifact(
            ArtifactKind.RECEIPT, metadata.transmission_identifier, metadata.header
        )
        staging_path = self.uploader.stage(
            descriptor,
            lambda out: self.evidence_writer.write(out, metadata),
        )
        logger.info("Receipt temporarily persisted to: {}", staging_path)
        self.uploader.upload(descriptor, staging_path)


@dataclass
class Pipeline:
    uploader: StagedUploader
    payloads: PayloadPersister
    receipts: ReceiptPersister

    def close(self, wait: bool = True) -> None:
        self.uploader.close(wait=wait)

    def __enter__(self) -> "Pipeline":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def build_blob_service(storage: StorageSettings) -> BlobService:
    if storage.backend == "local":
        from blobstage.storage.local import LocalBlobService  # noqa: PLC0415

        return LocalBlobService(storage.local_root, max_workers=storage.max_workers)

    from blobstage.storage.azure import AzureBlobService  # noqa: PLC0415

    credentials = storage.credentials()
    try:
        return AzureBlobService(credentials, block_size=storage.block_size, max_workers=storage.max_workers)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid storage account configuration: {exc}",
            {"account_url": credentials.account_url},
        ) from exc


def _prepare_staging_dir(directory: Path, create: bool) -> None:
    if create:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigurationError(
                f"Unable to create staging directory: {exc}",
                {"directory": str(directory)},
            ) from exc
    elif not directory.is_dir():
        raise ConfigurationError("Staging directory does not exist", {"directory": str(directory)})


def create_pipeline(
    settings: Settings | None = None,
    evidence_writer: EvidenceWriter | None = None,
    service: BlobService | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Pipeline:
    """Build a ready-to-use pipeline.

    The container is created (or found to exist) before this returns, so a
    storage or credential problem fails here rather than on the first artifact.

    Raises:
        ConfigurationError: Missing or malformed credentials, unusable staging directory.
        ContainerInitializationError: The container could not be created.
    """
    settings = settings or get_settings()
    _prepare_staging_dir(settings.staging.directory, settings.staging.create)

    service = service or build_blob_service(settings.storage)
    containers = ContainerManager(service)
    containers.ensure_container(settings.storage.container_name)

    uploader = StagedUploader(
        settings.staging.directory,
        containers,
        settings.storage.container_name,
        clock=clock,
    )
    logger.debug(
        "Initialized pipeline, staging directory: {}, container: {}",
        settings.staging.directory,
        settings.storage.container_name,
    )
    return Pipeline(
        uploader=uploader,
        payloads=PayloadPersister(uploader),
        receipts=ReceiptPersister(uploader, evidence_writer or JsonEvidenceWriter()),
    )


def load_pipeline(
    config_path: Path | None = None,
    evidence_writer: EvidenceWriter | None = None,
    clock: Callable[[], datetime] = _utcnow,
) -> Pipeline:
    """Host entry point: load settings, configure logging, then build the pipeline.

    Logging is configured first so that container creation is already
    recorded by the configured sinks.
    """
    settings = Settings.load(config_path)
    setup_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        log_file=settings.logging.file,
    )
    return create_pipeline(settings, evidence_writer=evidence_writer, clock=clock)


__all__ = [
    "Pipeline",
    "PayloadPersister",
    "ReceiptPersister",
    "StagedUploader",
    "build_blob_service",
    "create_pipeline",
    "load_pipeline",
]
