from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable

from azure.core.exceptions import AzureError, HttpResponseError, ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContainerClient
from loguru import logger

from blobstage.exceptions import ContainerExistsError, StorageError
from blobstage.storage import CREATED, UploadOutcome, run_upload
from blobstage.storage.credentials import StorageCredentials


class AzureBlobContainer:
    def __init__(self, client: ContainerClient, max_workers: int = 4) -> None:
        self.client = client
        self.name = client.container_name
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"blob-upload-{self.name}",
        )

    def create(self) -> None:
        try:
            self.client.create_container()
        except ResourceExistsError as exc:
            raise ContainerExistsError(
                f"Container '{self.name}' already exists",
                {"container": self.name},
            ) from exc
        except HttpResponseError as exc:
            raise StorageError(
                f"Failed to create container '{self.name}': {exc.reason or exc.message}",
                {"container": self.name, "status_code": str(exc.status_code)},
            ) from exc
        except AzureError as exc:
            raise StorageError(
                f"Failed to create container '{self.name}': {exc}",
                {"container": self.name},
            ) from exc

    def url_for(self, key: str) -> str:
        return self.client.get_blob_client(key).url

    def submit_upload(
        self,
        key: str,
        src_path: Path,
        on_complete: "Callable[[UploadOutcome], None] | None" = None,
    ) -> "Future[UploadOutcome]":
        return self._executor.submit(run_upload, self._upload, key, src_path, on_complete)

    def _upload(self, key: str, src_path: Path) -> UploadOutcome:
        blob = self.client.get_blob_client(key)
        try:
            with src_path.open("rb") as fp:
                blob.upload_blob(fp, overwrite=True)
        except HttpResponseError as exc:
            return UploadOutcome.failure(key, exc.reason or exc.message, status_code=exc.status_code)
        except (AzureError, OSError) as exc:
            return UploadOutcome.failure(key, str(exc))
        return UploadOutcome.success(key, CREATED)

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class AzureBlobService:
    """Blob service backed by ``azure-storage-blob``.

    Block size bounds both the single-put threshold and the staged block size,
    so files larger than one block are uploaded as a committed block list.
    """

    def __init__(
        self,
        credentials: StorageCredentials,
        block_size: int = 8 * 1024 * 1024,
        max_workers: int = 4,
        client: Any | None = None,
    ) -> None:
        self.credentials = credentials
        self.max_workers = max_workers
        self.client = client or BlobServiceClient(
            account_url=credentials.account_url,
            credential={
                "account_name": credentials.account_name,
                "account_key": credentials.account_key,
            },
            max_block_size=block_size,
            max_single_put_size=block_size,
        )
        logger.debug(
            "Initialized Azure blob service for account {} at {}",
            credentials.account_name,
            credentials.account_url,
        )

    def container(self, name: str) -> AzureBlobContainer:
        return AzureBlobContainer(self.client.get_container_client(name), max_workers=self.max_workers)


__all__ = ["AzureBlobContainer", "AzureBlobService"]
