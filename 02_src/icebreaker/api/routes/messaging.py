"""Messaging and session API routes."""

import json

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ...app import Application


class MessageRequest(BaseModel):
    """Request model for sending a message."""

    user_id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    """Response model for message."""

    response: str | None
    state: str


class SessionResponse(BaseModel):
    """Public view of a session."""

    user_id: str
    state: str
    partner_id: str | None
    introduction: dict | None


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages", response_model=MessageResponse)
    async def send_message(request: MessageRequest) -> dict:
        """Send a user's message to their session."""
        try:
            response = await app.sessions.handle_message(
                user_id=request.user_id, text=request.text
            )
            session = app.sessions.get(request.user_id)
            state = session.state.value if session else "ended"
            return {"response": response, "state": state}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/sessions/{user_id}", response_model=SessionResponse)
    async def get_session(user_id: str) -> dict:
        """Current state of a session."""
        session = await app.sessions.load(user_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {
            "user_id": session.user_id,
            "state": session.state.value,
            "partner_id": session.partner_id,
            "introduction": (
                session.introduction.to_dict() if session.introduction else None
            ),
        }

    @router.delete("/sessions/{user_id}")
    async def end_session(user_id: str) -> dict:
        """End a session; a chatting partner goes back to waiting."""
        if not await app.sessions.end_session(user_id):
            raise HTTPException(status_code=404, detail="Session not found")
        return {"status": "ok"}

    @router.get("/sessions/{user_id}/events")
    async def stream_events(user_id: str) -> StreamingResponse:
        """Server-sent events: partner messages and notices for user_id."""

        async def event_source():
            async for message in app.outbound.listen(user_id):
                yield f"data: {json.dumps(message)}\n\n"

        return StreamingResponse(event_source(), media_type="text/event-stream")

    return router
