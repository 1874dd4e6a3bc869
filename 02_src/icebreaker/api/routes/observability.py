"""Observability API routes."""

from collections import Counter
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from ...app import Application
from ...models import SessionState


class TraceEventResponse(BaseModel):
    id: str
    event_type: str
    actor: str
    data: dict[str, Any]
    timestamp: datetime


class RegistryEntryResponse(BaseModel):
    """A user waiting for a partner."""

    user_id: str
    joined_at: datetime


class StatsResponse(BaseModel):
    """Live session counts per state, plus registry size."""

    sessions: dict[str, int]
    waiting: int
    pairs: int


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/health")
    async def health() -> dict:
        return {"ok": True}

    @router.get("/registry", response_model=list[RegistryEntryResponse])
    async def get_registry() -> list[dict]:
        """Users currently waiting for a partner, in join order."""
        entries = sorted(await app.registry.entries(), key=lambda e: e.joined_at)
        return [{"user_id": e.user_id, "joined_at": e.joined_at} for e in entries]

    @router.get("/stats", response_model=StatsResponse)
    async def get_stats() -> dict:
        counts = Counter(s.state for s in app.sessions.sessions())
        return {
            "sessions": {state.value: counts.get(state, 0) for state in SessionState},
            "waiting": len(app.registry),
            "pairs": counts.get(SessionState.CHATTING, 0) // 2,
        }

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(
            None, description="Comma-separated event types, e.g. paired,relayed"
        ),
        actor: str | None = Query(None, description="e.g. matchmaker, session:<id>"),
    ) -> list[dict]:
        """Trace events, newest first."""
        after_dt = None
        if after:
            try:
                after_dt = datetime.fromisoformat(after)
            except ValueError:
                raise HTTPException(
                    status_code=400, detail="Invalid after timestamp format"
                )

        event_types = None
        if event_type:
            event_types = [t.strip() for t in event_type.split(",") if t.strip()]

        events = await app.storage.get_trace_events(
            after=after_dt, event_types=event_types, actor=actor, limit=limit
        )
        return [
            {
                "id": e.id,
                "event_type": e.event_type,
                "actor": e.actor,
                "data": e.data,
                "timestamp": e.timestamp,
            }
            for e in events
        ]

    return router
