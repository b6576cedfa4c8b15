from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class Header:
    """Routing header of an inbound transmission."""

    sender: str
    receiver: str


@dataclass(frozen=True)
class InboundMetadata:
    """Metadata of a received transmission, serialized as the receipt artifact."""

    transmission_identifier: str
    header: Header
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attributes: dict[str, Any] = field(default_factory=dict)


__all__ = ["Header", "InboundMetadata"]
