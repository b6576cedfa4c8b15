"""Blob storage abstraction (Azure Blob Storage or local filesystem fallback)."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from loguru import logger

# Status reported for a confirmed blob write.
CREATED = 201


class UploadStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadOutcome:
    """Terminal result of one asynchronous upload."""

    key: str
    status: UploadStatus
    status_code: int | None = None
    reason: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is UploadStatus.SUCCEEDED

    @classmethod
    def success(cls, key: str, status_code: int = CREATED) -> "UploadOutcome":
        return cls(key=key, status=UploadStatus.SUCCEEDED, status_code=status_code)

    @classmethod
    def failure(cls, key: str, reason: str, status_code: int | None = None) -> "UploadOutcome":
        return cls(key=key, status=UploadStatus.FAILED, status_code=status_code, reason=reason)


class BlobContainer(Protocol):
    name: str

    def create(self) -> None:  # raises ContainerExistsError on conflict
        ...

    def submit_upload(
        self,
        key: str,
        src_path: Path,
        on_complete: "Callable[[UploadOutcome], None] | None" = None,
    ) -> "Future[UploadOutcome]":
        ...

    def url_for(self, key: str) -> str:
        ...

    def close(self, wait: bool = True) -> None:
        ...


UploadFn = Callable[[str, Path], UploadOutcome]


def run_upload(
    upload: UploadFn,
    key: str,
    src_path: Path,
    on_complete: "Callable[[UploadOutcome], None] | None" = None,
) -> UploadOutcome:
    """Worker-side body of an upload job.

    Runs ``upload`` and then ``on_complete`` on the same pool thread, so the
    continuation never runs on the submitting thread. An unexpected exception
    is logged and reported as a failed outcome.
    """
    try:
        outcome = upload(key, src_path)
    except Exception as exc:
        logger.opt(exception=exc).error("Upload of {} to {} raised unexpectedly", src_path, key)
        outcome = UploadOutcome.failure(key, f"unexpected error: {exc!r}")
    if on_complete is not None:
        on_complete(outcome)
    return outcome


class BlobService(Protocol):
    def container(self, name: str) -> BlobContainer:
        ...


__all__ = [
    "CREATED",
    "BlobContainer",
    "BlobService",
    "UploadOutcome",
    "UploadStatus",
    "run_upload",
]
