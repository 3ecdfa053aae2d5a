"""REST API routes for InfoCapture.

Provides endpoints for:
- Creating capture sessions and reading their state
- Feeding finalized transcript chunks
- Editing custom fields, field values and the transcript
- Toggling listening (usage gated) and upgrading to Pro
- Saving sessions and streaming session signals
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from infocapture.api.auth import require_api_auth, websocket_principal
from infocapture.session.capture import CaptureSession
from infocapture.session.repository import SavedSession
from infocapture.session.service import CaptureService, SessionNotFoundError
from infocapture.session.usage import UsageLimitExceededError, UsagePolicy
from infocapture.signals.types import Signal
from infocapture.speech.supervisor import ListeningStateError
from infocapture.telemetry.errors import ErrorCode, emit_structured_error

router = APIRouter()
logger = logging.getLogger(__name__)

_service: CaptureService | None = None


def get_service() -> CaptureService:
    """Return the process-wide capture service, creating it on first use."""
    global _service
    if _service is None:
        _service = CaptureService()
    return _service


# --- Request/Response Models ---


class CreateSessionRequest(BaseModel):
    custom_fields: list[str] = Field(default_factory=list, max_length=3)


class CustomFieldsRequest(BaseModel):
    custom_fields: list[str] = Field(max_length=3)


class ChunkRequest(BaseModel):
    """One recognizer result. Only final, non-empty text is processed."""

    text: str
    is_final: bool = True


class FieldValueRequest(BaseModel):
    value: str


class TranscriptRequest(BaseModel):
    text: str


class UsageView(BaseModel):
    usage_count: int
    is_pro: bool
    remaining: int | None
    badge: str

    @classmethod
    def from_policy(cls, usage: UsagePolicy) -> UsageView:
        return cls(
            usage_count=usage.usage_count,
            is_pro=usage.is_pro,
            remaining=usage.remaining,
            badge=usage.badge(),
        )


class SessionView(BaseModel):
    """Everything the capture screen renders."""

    session_id: str
    default_fields: list[str]
    custom_fields: list[str]
    active_custom_fields: list[str]
    values: dict[str, str]
    recent_matches: list[str]
    transcript: str
    listening: bool
    usage: UsageView
    created_at: datetime

    @classmethod
    def from_session(cls, session: CaptureSession) -> SessionView:
        state = session.state
        return cls(
            session_id=state.session_id,
            default_fields=[spec.label for spec in state.registry.default_fields()],
            custom_fields=list(state.custom_fields),
            active_custom_fields=[spec.label for spec in state.registry.custom_fields()],
            values=dict(state.values),
            recent_matches=list(state.history.entries),
            transcript=state.transcript.text,
            listening=session.listening,
            usage=UsageView.from_policy(session.usage),
            created_at=state.created_at,
        )


class FieldMatchView(BaseModel):
    label: str
    value: str


class ChunkResponse(BaseModel):
    accepted: bool
    matches: list[FieldMatchView] = Field(default_factory=list)
    session: SessionView


# --- Helpers ---


def _owned_session(service: CaptureService, session_id: str, principal: str) -> CaptureSession:
    try:
        session = service.get_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if session.owner and session.owner != principal:
        raise HTTPException(status_code=403, detail="Insufficient permissions for this session")
    return session


def _check_owner(service: CaptureService, session_id: str, principal: str) -> None:
    """Ownership check that also covers closed and saved sessions."""
    owner = service.owner_of(session_id)
    if owner is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    if owner and owner != principal:
        raise HTTPException(status_code=403, detail="Insufficient permissions for this session")


# --- Endpoints ---


@router.post("/sessions", response_model=SessionView)
async def create_session(
    request: CreateSessionRequest,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    """Create a capture session with optional custom fields."""
    session = service.create_session(owner=principal, custom_fields=request.custom_fields)
    return SessionView.from_session(session)


@router.get("/sessions")
async def list_sessions(
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> list[dict[str, Any]]:
    """List the caller's live sessions."""
    return [
        {
            "session_id": session_id,
            "listening": session.listening,
            "fields_captured": len(session.state.values),
        }
        for session_id, session in service.sessions.items()
        if session.owner == principal
    ]


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    return SessionView.from_session(_owned_session(service, session_id, principal))


@router.delete("/sessions/{session_id}")
async def close_session(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> dict[str, str]:
    _owned_session(service, session_id, principal)
    await service.close_session(session_id)
    return {"session_id": session_id, "status": "closed"}


@router.post("/sessions/{session_id}/chunks", response_model=ChunkResponse)
async def ingest_chunk(
    session_id: str,
    request: ChunkRequest,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> ChunkResponse:
    """Feed one recognizer result. Interim or empty results are ignored."""
    session = _owned_session(service, session_id, principal)
    if not request.is_final or not request.text:
        return ChunkResponse(accepted=False, session=SessionView.from_session(session))

    result = await session.ingest_chunk(request.text)
    return ChunkResponse(
        accepted=True,
        matches=[FieldMatchView(label=m.label, value=m.value) for m in result.matches],
        session=SessionView.from_session(session),
    )


@router.put("/sessions/{session_id}/custom-fields", response_model=SessionView)
async def set_custom_fields(
    session_id: str,
    request: CustomFieldsRequest,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    session = _owned_session(service, session_id, principal)
    await session.set_custom_fields(request.custom_fields)
    return SessionView.from_session(session)


@router.put("/sessions/{session_id}/fields/{label}", response_model=SessionView)
async def edit_field(
    session_id: str,
    label: str,
    request: FieldValueRequest,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    """Overwrite a field value directly."""
    session = _owned_session(service, session_id, principal)
    await session.edit_field(label, request.value)
    return SessionView.from_session(session)


@router.put("/sessions/{session_id}/transcript", response_model=SessionView)
async def edit_transcript(
    session_id: str,
    request: TranscriptRequest,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    session = _owned_session(service, session_id, principal)
    await session.edit_transcript(request.text)
    return SessionView.from_session(session)


@router.post("/sessions/{session_id}/listening/start", response_model=SessionView)
async def start_listening(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    session = _owned_session(service, session_id, principal)
    try:
        await session.start_listening()
    except UsageLimitExceededError as exc:
        raise HTTPException(status_code=402, detail=str(exc)) from exc
    except ListeningStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return SessionView.from_session(session)


@router.post("/sessions/{session_id}/listening/stop", response_model=SessionView)
async def stop_listening(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SessionView:
    session = _owned_session(service, session_id, principal)
    await session.stop_listening()
    return SessionView.from_session(session)


@router.post("/upgrade", response_model=UsageView)
async def upgrade(
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> UsageView:
    """Upgrade the caller to Pro (unlimited listening)."""
    usage = service.usage_for(principal)
    usage.upgrade()
    return UsageView.from_policy(usage)


@router.get("/usage", response_model=UsageView)
async def get_usage(
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> UsageView:
    return UsageView.from_policy(service.usage_for(principal))


@router.post("/sessions/{session_id}/save", response_model=SavedSession)
async def save_session(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SavedSession:
    _owned_session(service, session_id, principal)
    return await service.save_session(session_id)


@router.get("/saved-sessions", response_model=list[SavedSession])
async def list_saved_sessions(
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> list[SavedSession]:
    """List the caller's saved sessions, most recent first."""
    return [s for s in service.repository.list_saved() if s.owner in ("", principal)]


@router.get("/saved-sessions/{session_id}", response_model=SavedSession)
async def get_saved_session(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> SavedSession:
    snapshot = service.repository.load(session_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Saved session {session_id} not found")
    if snapshot.owner and snapshot.owner != principal:
        raise HTTPException(status_code=403, detail="Insufficient permissions for this session")
    return snapshot


@router.get("/sessions/{session_id}/signals")
async def get_session_signals(
    session_id: str,
    principal: str = Depends(require_api_auth),
    service: CaptureService = Depends(get_service),
) -> list[dict[str, Any]]:
    """Get all signals for a live or closed session."""
    _check_owner(service, session_id, principal)
    try:
        signals = service.get_signals(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return [s.model_dump(mode="json") for s in signals]


# --- WebSocket for real-time Signal streaming ---


@router.websocket("/ws/sessions/{session_id}")
async def websocket_signals(
    websocket: WebSocket, session_id: str, token: str = Query(default="")
) -> None:
    """Stream a live session's signals. Pass the API token as a query parameter."""
    principal = websocket_principal(token)
    if principal is None:
        await websocket.close(code=4001, reason="Unauthorized")
        return

    service = get_service()
    session = service.sessions.get(session_id)
    if session is None:
        await websocket.close(code=4004, reason="Session not found")
        return
    if session.owner and session.owner != principal:
        await websocket.close(code=4003, reason="Forbidden")
        return

    await websocket.accept()

    async def forward(signal: Signal) -> None:
        try:
            await websocket.send_text(signal.model_dump_json())
        except Exception as exc:
            emit_structured_error(
                logger,
                code=ErrorCode.API_WEBSOCKET_SEND_FAILED,
                message=str(exc),
                suppressed=True,
                session_id=session_id,
            )
            session.signals.unsubscribe(forward)

    for signal in session.signals.signals:
        await websocket.send_text(signal.model_dump_json())
    session.signals.subscribe(forward)

    try:
        while True:
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=30)
                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                try:
                    await websocket.send_text('{"type":"keepalive"}')
                except Exception:
                    break
            except WebSocketDisconnect:
                break
    finally:
        session.signals.unsubscribe(forward)
