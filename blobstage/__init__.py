"""blobstage - stage inbound payloads and receipts on disk, then upload them to blob storage.

The payload and receipt persisters share one staging and upload path; see
``blobstage.pipeline.create_pipeline`` for the entry point.
"""

from .keys import ArtifactDescriptor, ArtifactKind, derive_key, sanitize_identifier
from .models import Header, InboundMetadata
from .pipeline import Pipeline, PayloadPersister, ReceiptPersister, create_pipeline, load_pipeline

__all__ = [
    "ArtifactDescriptor",
    "ArtifactKind",
    "Header",
    "InboundMetadata",
    "Pipeline",
    "PayloadPersister",
    "ReceiptPersister",
    "create_pipeline",
    "load_pipeline",
    "derive_key",
    "sanitize_identifier",
]
