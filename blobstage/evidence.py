from __future__ import annotations

import json
from typing import BinaryIO, Protocol

from blobstage.exceptions import EvidenceSerializationError
from blobstage.models import InboundMetadata


class EvidenceWriter(Protocol):
    def write(self, output_stream: BinaryIO, metadata: InboundMetadata) -> None:  # raises EvidenceSerializationError
        ...


class JsonEvidenceWriter:
    """Writes inbound metadata as a UTF-8 JSON document."""

    def __init__(self, indent: int | None = 2) -> None:
        self.indent = indent

    def write(self, output_stream: BinaryIO, metadata: InboundMetadata) -> None:
        document = {
            "transmission_identifier": metadata.transmission_identifier,
            "sender": metadata.header.sender,
            "receiver": metadata.header.receiver,
            "received_at": metadata.received_at.isoformat(),
            "attributes": metadata.attributes,
        }
        try:
            encoded = json.dumps(document, indent=self.indent, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise EvidenceSerializationError(
                f"Unable to serialize evidence: {exc}",
                {"transmission_identifier": metadata.transmission_identifier},
            ) from exc
        output_stream.write(encoded.encode("utf-8"))


__all__ = ["EvidenceWriter", "JsonEvidenceWriter"]
