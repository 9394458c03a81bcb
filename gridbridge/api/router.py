from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..errors import EventParsingError
from ..services.receiver import EventReceiver
from ..stores.base import ReceivedEvent
from .dependencies import authorize_request, get_receiver
from .schemas import EventListResponse, WebhookResponse

WEBHOOK_PATH = "/v1/webhook"

router = APIRouter(prefix="/v1", dependencies=[Depends(authorize_request)])


@router.post("/webhook", response_model=WebhookResponse)
async def receive_events(request: Request, receiver: EventReceiver = Depends(get_receiver)):
    """Event Grid delivery endpoint, for both Event Grid and CloudEvents schemas."""
    body = await request.body()
    try:
        batch = await receiver.receive(body, session_id=getattr(request.state, "correlation_id", None))
    except ValueError as exc:
        # EventParsingError is a ValueError too
        detail = str(exc) if isinstance(exc, EventParsingError) else f"Invalid event delivery: {exc}"
        raise HTTPException(400, detail=detail)

    return WebhookResponse(
        session_id=batch.session_id,
        count=len(batch.events),
        event_ids=[event.id for event in batch.events],
    )


@router.get("/events", response_model=EventListResponse)
async def list_events(
    limit: int = Query(25, ge=1, le=1000),
    receiver: EventReceiver = Depends(get_receiver),
):
    events = list(await receiver.list_recent(limit=limit))
    return EventListResponse(total=len(events), events=events)


@router.get("/events/{event_id}", response_model=ReceivedEvent)
async def get_event(event_id: str, receiver: EventReceiver = Depends(get_receiver)):
    received = await receiver.get(event_id)
    if received is None:
        raise HTTPException(404, detail=f"No event received with ID '{event_id}'")
    return received
