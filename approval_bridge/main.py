"""
FastAPI application serving the Leave Approval Bridge.
Accepts approval requests to send and inbound chat events from the gateway.
"""

import logging
import os
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from approval_bridge.composer import ChoiceSpec
from approval_bridge.config import settings
from approval_bridge.engine import CompositionError, get_engine
from approval_bridge.models import ContactProfile, EventKind, InboundEvent, MediaAttachment
from approval_bridge.transport import TransportError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# Pydantic models for API
class ButtonModel(BaseModel):
    body: str | None = Field(None, description="Button label")
    label: str | None = Field(None, description="Alternative key for the label")
    id: str | None = Field(None, description="Explicit action id, origin:decision:request_id")


class SendRequest(BaseModel):
    """Request model for the send endpoint."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "chatId": "120363406616265454@g.us",
                "type": "buttons",
                "body": "Permohonan cuti baharu pada 12/11/2025: Ahmad Ali (LOWBED)",
                "buttons": [{"body": "Approve"}, {"body": "Reject"}],
                "metadata": {"request_id": "42", "date_range_label": "12/11/2025"},
            }
        }
    )

    chatId: str = Field(..., description="Target chat")
    type: str | None = Field(None, description="'buttons' for an interactive request")
    content: str | None = Field(None, description="Plain text to send")
    body: str | None = None
    buttons: list[ButtonModel] = Field(default_factory=list)
    title: str | None = None
    footer: str | None = None
    metadata: dict | None = None
    request_id: str | None = None
    mentions: list[str] = Field(default_factory=list)
    mentionNumbers: list[str] = Field(default_factory=list)
    base64: str | None = Field(None, description="File content, raw base64 or a data URL")
    mimeType: str | None = None
    filename: str | None = None
    caption: str | None = None

    def media(self) -> MediaAttachment | None:
        if not (self.base64 and self.mimeType):
            return None
        return MediaAttachment.from_base64(self.base64, self.mimeType, self.filename)


class SendResponse(BaseModel):
    id: str | None


class ContactModel(BaseModel):
    id: str | None = None
    number: str | None = None
    pushname: str | None = None
    name: str | None = None
    shortName: str | None = None


class EventRequest(BaseModel):
    """Inbound chat event forwarded by the gateway."""

    type: str = Field(..., description="'buttons_response', 'chat' or 'text'")
    chatId: str | None = None
    body: str = ""
    messageId: str | None = None
    author: str | None = None
    fromMe: bool = False
    selectedButtonId: str | None = None
    selectedButtonText: str | None = None
    quotedMessageId: str | None = None
    quotedBody: str | None = None
    contact: ContactModel | None = None

    def to_event(self) -> InboundEvent:
        if self.type == EventKind.BUTTON_RESPONSE.value:
            kind = EventKind.BUTTON_RESPONSE
        elif self.type in ("chat", "text"):
            kind = EventKind.TEXT
        else:
            kind = EventKind.OTHER
        contact = None
        if self.contact:
            contact = ContactProfile(
                id=self.contact.id,
                number=self.contact.number,
                push_name=self.contact.pushname,
                name=self.contact.name,
                short_name=self.contact.shortName,
            )
        return InboundEvent(
            kind=kind,
            chat_id=self.chatId,
            body=self.body,
            message_id=self.messageId,
            author=self.author,
            from_me=self.fromMe,
            selected_button_id=self.selectedButtonId,
            selected_button_text=self.selectedButtonText,
            quoted_message_id=self.quotedMessageId,
            quoted_body=self.quotedBody,
            contact=contact,
        )


class EventResponse(BaseModel):
    outcome: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    backend_circuit_breaker: dict


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Leave Approval Bridge")
    logger.info(f"Environment: {settings.environment}")
    get_engine()

    yield

    logger.info("Shutting down Leave Approval Bridge")
    await get_engine().close()


app = FastAPI(
    title="Leave Approval Bridge",
    description="Correlates chat approvals with pending leave requests",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": "Leave Approval Bridge", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Service status and backend circuit breaker state."""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        backend_circuit_breaker=get_engine().backend.get_circuit_breaker_state(),
    )


@app.get("/status", tags=["Health"])
async def ready():
    return {"ready": True}


@app.post("/send", response_model=SendResponse, tags=["Messaging"])
async def send(request: SendRequest):
    """
    Send an interactive approval request, a file or a plain text.

    Buttons without an explicit id get one inferred from their label
    ("Approve" -> ``auto:approve:approve``). A buttons request that also
    carries ``base64``/``mimeType`` is sent as the file, captioned with the
    body. Returns the gateway message id.
    """
    engine = get_engine()
    try:
        media = request.media()
        if request.type == "buttons":
            choices = [
                ChoiceSpec(label=b.body or b.label or "", action_id=b.id) for b in request.buttons
            ]
            message_id = await engine.send_interactive_request(
                request.chatId,
                request.body or "",
                choices,
                title=request.title,
                footer=request.footer,
                metadata=request.metadata,
                request_id=request.request_id,
                mentions=[*request.mentionNumbers, *request.mentions],
                media=media,
            )
        elif media is not None:
            message_id = await engine.transport.send_media(
                request.chatId, media, caption=request.caption
            )
        elif request.content is not None:
            message_id = await engine.transport.send_text(request.chatId, request.content)
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Provide either {content} for text OR {base64,mimeType} for media",
            )
    except (CompositionError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except (TransportError, httpx.HTTPError) as e:
        logger.error(f"Send API error: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    return SendResponse(id=message_id)


@app.post("/events", response_model=EventResponse, tags=["Messaging"])
async def events(request: EventRequest):
    """Inbound chat event from the gateway; the outcome says what the engine did with it."""
    try:
        outcome = await get_engine().handle_event(request.to_event())
    except Exception as e:
        logger.error(f"Error handling incoming message: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error handling incoming message",
        ) from e
    return EventResponse(outcome=outcome.value)


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Context store sizes and backend circuit breaker state."""
    engine = get_engine()
    return {
        "contexts": engine.store.stats(),
        "circuit_breaker": engine.backend.get_circuit_breaker_state(),
        "environment": settings.environment,
    }


if __name__ == "__main__":
    uvicorn.run(
        "approval_bridge.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
