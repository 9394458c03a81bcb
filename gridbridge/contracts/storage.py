"""Azure Blob Storage event data."""
from .base import AzureEventData

BLOB_CREATED_EVENT_TYPE = "Microsoft.Storage.BlobCreated"
BLOB_DELETED_EVENT_TYPE = "Microsoft.Storage.BlobDeleted"


class StorageDiagnostics(AzureEventData):
    batch_id: str | None = None


class BlobEventData(AzureEventData):
    api: str | None = None
    blob_type: str | None = None
    client_request_id: str | None = None
    content_length: int | None = None
    content_type: str | None = None
    e_tag: str | None = None
    request_id: str | None = None
    sequencer: str | None = None
    storage_diagnostics: StorageDiagnostics | None = None
    url: str | None = None
