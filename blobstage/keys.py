"""Storage key derivation for inbound artifacts.

Keys have the form ``<kind>/<yyyy>/<MM>/<dd>/<receiver>_<sender>_<transmission>.<suffix>``.
Identifier characters outside ``[A-Za-z0-9.-]`` are replaced with ``_``; distinct
raw identifiers may therefore collapse onto the same key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from blobstage.models import Header

_UNSAFE = re.compile(r"[^A-Za-z0-9.\-]")


class ArtifactKind(str, Enum):
    PAYLOAD = "payload"
    RECEIPT = "receipt"

    @property
    def prefix(self) -> str:
        return self.value

    @property
    def suffix(self) -> str:
        return _SUFFIXES[self]


_SUFFIXES = {
    ArtifactKind.PAYLOAD: "payload.xml",
    ArtifactKind.RECEIPT: "receipt.dat",
}


@dataclass(frozen=True)
class ArtifactDescriptor:
    transmission_identifier: str
    sender: str
    receiver: str
    kind: ArtifactKind
    suffix: str

    @classmethod
    def for_artifact(cls, kind: ArtifactKind, transmission_identifier: str, header: Header) -> "ArtifactDescriptor":
        return cls(
            transmission_identifier=transmission_identifier,
            sender=header.sender,
            receiver=header.receiver,
            kind=kind,
            suffix=kind.suffix,
        )


def sanitize_identifier(value: str | None) -> str:
    return _UNSAFE.sub("_", value or "")


def base_name(descriptor: ArtifactDescriptor) -> str:
    """File name shared by the staging file and the last key segment."""
    return "{}_{}_{}.{}".format(
        sanitize_identifier(descriptor.receiver),
        sanitize_identifier(descriptor.sender),
        sanitize_identifier(descriptor.transmission_identifier),
        descriptor.suffix,
    )


def date_partition(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y/%m/%d")


def derive_key(descriptor: ArtifactDescriptor, now: datetime | None = None) -> str:
    return f"{descriptor.kind.prefix}/{date_partition(now)}/{base_name(descriptor)}"


__all__ = [
    "ArtifactDescriptor",
    "ArtifactKind",
    "base_name",
    "date_partition",
    "derive_key",
    "sanitize_identifier",
]
