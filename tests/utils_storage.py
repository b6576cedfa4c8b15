from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from blobstage.exceptions import ContainerExistsError, StorageError
from blobstage.storage import UploadOutcome, run_upload


class FakeContainer:
    """In-memory container; uploads run on a real thread pool."""

    def __init__(self, name: str, service: "FakeBlobService") -> None:
        self.name = name
        self.service = service
        self.blobs: dict[str, bytes] = {}
        self.fail_with: UploadOutcome | None = None
        self.release = threading.Event()
        self.release.set()
        self.closed = False
        self._executor = ThreadPoolExecutor(max_workers=4)

    def create(self) -> None:
        self.service.create_calls += 1
        if self.service.create_error is not None:
            raise self.service.create_error
        if self.name in self.service.existing:
            raise ContainerExistsError(f"Container '{self.name}' already exists")
        self.service.existing.add(self.name)

    def url_for(self, key: str) -> str:
        return f"memory://{self.name}/{key}"

    def submit_upload(
        self,
        key: str,
        src_path: Path,
        on_complete: "Callable[[UploadOutcome], None] | None" = None,
    ) -> "Future[UploadOutcome]":
        return self._executor.submit(run_upload, self._upload, key, src_path, on_complete)

    def _upload(self, key: str, src_path: Path) -> UploadOutcome:
        self.release.wait(timeout=5)
        if self.fail_with is not None:
            return self.fail_with
        self.blobs[key] = src_path.read_bytes()
        return UploadOutcome.success(key)

    def close(self, wait: bool = True) -> None:
        self.closed = True
        self._executor.shutdown(wait=wait)


class FakeBlobService:
    def __init__(self, existing: set[str] | None = None, create_error: StorageError | None = None) -> None:
        self.existing = set(existing or ())
        self.create_error = create_error
        self.create_calls = 0
        self.containers: list[FakeContainer] = []

    def container(self, name: str) -> FakeContainer:
        handle = FakeContainer(name, self)
        self.containers.append(handle)
        return handle
