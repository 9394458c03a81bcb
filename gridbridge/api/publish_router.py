import uuid
from datetime import datetime, timezone

import structlog
from azure.core.exceptions import AzureError
from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import get_settings
from ..errors import CircuitOpenError, EventPublishingError
from ..events.models import CloudEvent, EventGridEvent, EventSchema
from ..publishing.publisher import EventGridPublisher
from .dependencies import authorize_request, get_publisher
from .schemas import PublishRequest, PublishResponse

log = structlog.get_logger()

router = APIRouter(prefix="/v1", dependencies=[Depends(authorize_request)])


def _build_event(req: PublishRequest, cloud_event_source: str) -> EventGridEvent | CloudEvent:
    event_id = req.id or str(uuid.uuid4())
    event_time = req.event_time or datetime.now(timezone.utc)
    if req.event_schema is EventSchema.CLOUD_EVENT:
        return CloudEvent(
            id=event_id,
            source=req.source or cloud_event_source,
            type=req.event_type,
            subject=req.subject,
            time=event_time,
            datacontenttype="application/json",
            data=req.data,
        )
    return EventGridEvent(
        id=event_id,
        subject=req.subject,
        event_type=req.event_type,
        event_time=event_time,
        data_version=req.data_version,
        data=req.data,
    )


@router.post("/publish", response_model=PublishResponse, status_code=202, response_model_by_alias=True)
async def publish_event(
    req: PublishRequest,
    request: Request,
    publisher: EventGridPublisher = Depends(get_publisher),
):
    """Publish an ad hoc event to the configured Event Grid topic."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    event = _build_event(req, settings.CLOUD_EVENT_SOURCE)

    try:
        await publisher.publish(event)
    except CircuitOpenError as exc:
        raise HTTPException(503, detail=str(exc))
    except AzureError as exc:
        log.warning("publish.rejected", error=str(exc), error_type=type(exc).__name__)
        raise HTTPException(502, detail="Event Grid rejected the event")
    except EventPublishingError as exc:
        raise HTTPException(502, detail=str(exc))

    return PublishResponse(id=event.id, status="accepted", event_schema=req.event_schema)
