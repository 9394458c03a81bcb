"""Shared configuration for Azure event data contracts."""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AzureEventData(BaseModel):
    """Event data with camelCase wire names; unknown fields are ignored."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")
