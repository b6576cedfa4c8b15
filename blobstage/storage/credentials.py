"""Azure Storage connection string parsing."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from blobstage.exceptions import CredentialError

DEFAULT_PROTOCOL = "https"
DEFAULT_ENDPOINT_SUFFIX = "core.windows.net"


@dataclass(frozen=True)
class StorageCredentials:
    account_name: str
    account_key: str
    protocol: str = DEFAULT_PROTOCOL
    endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX
    blob_endpoint: str | None = None

    @property
    def account_url(self) -> str:
        if self.blob_endpoint:
            return self.blob_endpoint.rstrip("/")
        return f"{self.protocol}://{self.account_name}.blob.{self.endpoint_suffix}"

    def __repr__(self) -> str:
        return f"StorageCredentials(account_name={self.account_name!r}, account_url={self.account_url!r})"


def _validate_account_key(account_key: str) -> None:
    try:
        decoded = base64.b64decode(account_key, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CredentialError("Invalid account key: not valid base64") from exc
    if not decoded:
        raise CredentialError("Invalid account key: empty")


def _validate_account_name(account_name: str) -> None:
    if not (3 <= len(account_name) <= 24 and account_name.isalnum() and account_name.islower()):
        raise CredentialError(
            "Invalid account name: expected 3-24 lowercase letters or digits",
            {"account_name": account_name},
        )


def credentials_from_account(account_name: str, account_key: str) -> StorageCredentials:
    account_name = account_name.strip()
    account_key = account_key.strip()
    _validate_account_name(account_name)
    _validate_account_key(account_key)
    return StorageCredentials(account_name=account_name, account_key=account_key)


def parse_connection_string(value: str) -> StorageCredentials:
    """Parse an Azure Storage connection string.

    ``AccountName`` and ``AccountKey`` are required. ``DefaultEndpointsProtocol``,
    ``EndpointSuffix`` and ``BlobEndpoint`` are optional. Keys are matched
    case-insensitively and values may contain ``=`` (base64 padding).

    Raises:
        CredentialError: If the string is empty, a segment is malformed, or a
            required part is missing or invalid. The account key is never
            included in the error.
    """
    if not value or not value.strip():
        raise CredentialError("Connection string is empty")

    parts: dict[str, str] = {}
    for segment in value.strip().split(";"):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, item = segment.partition("=")
        if not sep or not key.strip():
            raise CredentialError(
                "Malformed connection string segment",
                {"segment": key.strip() or "<empty>"},
            )
        parts[key.strip().lower()] = item.strip()

    account_name = parts.get("accountname")
    account_key = parts.get("accountkey")
    if not account_name:
        raise CredentialError("Connection string is missing AccountName")
    if not account_key:
        raise CredentialError("Connection string is missing AccountKey")

    protocol = parts.get("defaultendpointsprotocol", DEFAULT_PROTOCOL).lower()
    if protocol not in {"http", "https"}:
        raise CredentialError("Unsupported DefaultEndpointsProtocol", {"protocol": protocol})

    blob_endpoint = parts.get("blobendpoint") or None
    if blob_endpoint is None:
        _validate_account_name(account_name)
    elif not blob_endpoint.startswith(("http://", "https://")):
        raise CredentialError("BlobEndpoint must be an http(s) URL", {"blob_endpoint": blob_endpoint})
    _validate_account_key(account_key)

    return StorageCredentials(
        account_name=account_name,
        account_key=account_key,
        protocol=protocol,
        endpoint_suffix=parts.get("endpointsuffix") or DEFAULT_ENDPOINT_SUFFIX,
        blob_endpoint=blob_endpoint,
    )


__all__ = [
    "StorageCredentials",
    "credentials_from_account",
    "parse_connection_string",
]
