from pathlib import Path

import pytest

from blobstage.container import ContainerManager
from blobstage.exceptions import ContainerInitializationError, StorageError
from blobstage.storage.local import LocalBlobService
from tests.utils_storage import FakeBlobService


def test_ensure_container_creates_once_and_caches_handle() -> None:
    service = FakeBlobService()
    manager = ContainerManager(service)

    first = manager.ensure_container("oxalisinbound")
    second = manager.ensure_container("oxalisinbound")

    assert first is second
    assert service.create_calls == 1
    assert manager.get("oxalisinbound") is first


def test_existing_container_is_treated_as_success() -> None:
    service = FakeBlobService(existing={"oxalisinbound"})

    handle = ContainerManager(service).ensure_container("oxalisinbound")

    assert handle.name == "oxalisinbound"
    assert service.create_calls == 1


def test_second_process_sees_conflict_without_error() -> None:
    service = FakeBlobService()

    ContainerManager(service).ensure_container("oxalisinbound")
    ContainerManager(service).ensure_container("oxalisinbound")

    assert service.create_calls == 2


def test_other_create_failures_are_fatal() -> None:
    service = FakeBlobService(create_error=StorageError("denied", {"status_code": "403"}))
    manager = ContainerManager(service)

    with pytest.raises(ContainerInitializationError) as excinfo:
        manager.ensure_container("oxalisinbound")

    assert excinfo.value.details["status_code"] == "403"
    assert service.containers[0].closed
    with pytest.raises(StorageError):
        manager.get("oxalisinbound")


def test_empty_name_is_rejected() -> None:
    with pytest.raises(ContainerInitializationError):
        ContainerManager(FakeBlobService()).ensure_container("")


def test_close_releases_handles() -> None:
    service = FakeBlobService()
    manager = ContainerManager(service)
    manager.ensure_container("oxalisinbound")

    manager.close()

    assert service.containers[0].closed
    with pytest.raises(StorageError):
        manager.get("oxalisinbound")


def test_local_backend_is_idempotent(tmp_path: Path) -> None:
    service = LocalBlobService(tmp_path / "blobs")

    ContainerManager(service).ensure_container("oxalisinbound")
    ContainerManager(service).ensure_container("oxalisinbound")

    assert (tmp_path / "blobs" / "oxalisinbound").is_dir()
