"""Request dependencies shared by the API routers."""
import structlog
from fastapi import HTTPException, Request

from ..publishing.publisher import EventGridPublisher
from ..services.receiver import EventReceiver

log = structlog.get_logger()

ANONYMOUS_PRINCIPAL = "anonymous"


async def authorize_request(request: Request) -> str:
    """
    Run the app's webhook authorization, when one is configured.

    Returns:
        The authenticated principal name
    """
    authorization = getattr(request.app.state, "authorization", None)
    if authorization is None:
        log.debug("auth.skipped", reason="authorization_not_configured")
        return ANONYMOUS_PRINCIPAL
    return await authorization(request)


def get_receiver(request: Request) -> EventReceiver:
    return request.app.state.receiver


def get_publisher(request: Request) -> EventGridPublisher:
    publisher = getattr(request.app.state, "publisher", None)
    if publisher is None:
        raise HTTPException(503, detail="Event Grid publishing is not configured")
    return publisher
