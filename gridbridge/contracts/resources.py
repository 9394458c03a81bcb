"""Azure Resource Manager event data (resource write/delete/action)."""
from typing import Any

from .base import AzureEventData

RESOURCE_WRITE_SUCCESS_EVENT_TYPE = "Microsoft.Resources.ResourceWriteSuccess"
RESOURCE_WRITE_FAILURE_EVENT_TYPE = "Microsoft.Resources.ResourceWriteFailure"
RESOURCE_DELETE_SUCCESS_EVENT_TYPE = "Microsoft.Resources.ResourceDeleteSuccess"
RESOURCE_DELETE_FAILURE_EVENT_TYPE = "Microsoft.Resources.ResourceDeleteFailure"


class AzureResourceEventData(AzureEventData):
    tenant_id: str | None = None
    subscription_id: str | None = None
    resource_group: str | None = None
    resource_provider: str | None = None
    resource_uri: str | None = None
    operation_name: str | None = None
    status: str | None = None
    authorization: dict[str, Any] | None = None
    claims: dict[str, Any] | None = None
    correlation_id: str | None = None
    http_request: dict[str, Any] | None = None
