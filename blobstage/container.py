from __future__ import annotations

import threading

from loguru import logger

from blobstage.exceptions import ContainerExistsError, ContainerInitializationError, StorageError
from blobstage.storage import BlobContainer, BlobService


class ContainerManager:
    """Creates each container at most once per process and caches its handle.

    A conflict from the backend means the container is already there and is
    treated as success. Any other failure is fatal for the caller.
    """

    def __init__(self, service: BlobService) -> None:
        self.service = service
        self._handles: dict[str, BlobContainer] = {}
        self._lock = threading.Lock()

    def ensure_container(self, name: str) -> BlobContainer:
        if not name:
            raise ContainerInitializationError("Container name must not be empty")

        with self._lock:
            handle = self._handles.get(name)
            if handle is not None:
                return handle

            handle = self.service.container(name)
            logger.debug("Attempting to create container '{}'", name)
            try:
                handle.create()
            except ContainerExistsError:
                logger.debug("The container '{}' already exists, continuing", name)
            except StorageError as exc:
                handle.close(wait=False)
                raise ContainerInitializationError(
                    f"Failed to create container '{name}'",
                    {"container": name, **exc.details},
                ) from exc
            else:
                logger.info("Created container '{}'", name)

            self._handles[name] = handle
            return handle

    def get(self, name: str) -> BlobContainer:
        """Return the cached handle for a container created by ``ensure_container``."""
        handle = self._handles.get(name)
        if handle is None:
            raise StorageError(f"Container '{name}' has not been initialized", {"container": name})
        return handle

    def close(self, wait: bool = True) -> None:
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            handle.close(wait=wait)


__all__ = ["ContainerManager"]
