from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path, PurePosixPath
from typing import Callable

from blobstage.exceptions import ContainerExistsError, StorageError
from blobstage.storage import CREATED, UploadOutcome, run_upload


class LocalBlobContainer:
    def __init__(self, root: Path, name: str, max_workers: int = 4) -> None:
        self.root = root / name
        self.name = name
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"local-upload-{name}",
        )

    def create(self) -> None:
        try:
            self.root.mkdir(parents=True)
        except FileExistsError as exc:
            raise ContainerExistsError(
                f"Container '{self.name}' already exists",
                {"container": self.name},
            ) from exc
        except OSError as exc:
            raise StorageError(
                f"Failed to create container '{self.name}': {exc}",
                {"container": self.name, "path": str(self.root)},
            ) from exc

    def path_for(self, key: str) -> Path:
        return self.root.joinpath(*PurePosixPath(key).parts)

    def url_for(self, key: str) -> str:
        return self.path_for(key).resolve().as_uri()

    def submit_upload(
        self,
        key: str,
        src_path: Path,
        on_complete: "Callable[[UploadOutcome], None] | None" = None,
    ) -> "Future[UploadOutcome]":
        return self._executor.submit(run_upload, self._upload, key, src_path, on_complete)

    def _upload(self, key: str, src_path: Path) -> UploadOutcome:
        target = self.path_for(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(src_path.read_bytes())
        except OSError as exc:
            return UploadOutcome.failure(key, str(exc))
        return UploadOutcome.success(key, CREATED)

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class LocalBlobService:
    """Directory-per-container stand-in for blob storage, used in development."""

    def __init__(self, root: Path, max_workers: int = 4) -> None:
        self.root = root
        self.max_workers = max_workers
        self.root.mkdir(parents=True, exist_ok=True)

    def container(self, name: str) -> LocalBlobContainer:
        return LocalBlobContainer(self.root, name, max_workers=self.max_workers)


__all__ = ["LocalBlobContainer", "LocalBlobService"]
