"""Event Grid subscription validation handshake contracts."""
from .base import AzureEventData

SUBSCRIPTION_VALIDATION_EVENT_TYPE = "Microsoft.EventGrid.SubscriptionValidationEvent"


class SubscriptionValidationEventData(AzureEventData):
    validation_code: str | None = None
    validation_url: str | None = None


class SubscriptionValidationResponse(AzureEventData):
    validation_response: str
