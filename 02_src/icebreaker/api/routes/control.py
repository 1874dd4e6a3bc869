"""Control API routes: reset and the SIM load generator."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import IApplication
from ...logging_config import get_logger

logger = get_logger(__name__)


class StatusResponse(BaseModel):
    status: str


class SimStatusResponse(BaseModel):
    """Whether the SIM scenario is currently running."""

    status: str
    running: bool


# Set by main.py; tests run without one
_sim_instance = None


def set_sim_instance(sim) -> None:
    global _sim_instance
    _sim_instance = sim


def get_sim_instance():
    return _sim_instance


def _require_sim():
    if not _sim_instance:
        raise HTTPException(status_code=404, detail="SIM not configured")
    return _sim_instance


def create_control_router(app: IApplication) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Drop every session, the registry and stored data."""
        try:
            await app.reset()
        except Exception as e:
            logger.error(f"Reset failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok"}

    @router.get("/sim", response_model=SimStatusResponse)
    async def sim_status() -> dict:
        sim = _require_sim()
        return {"status": "ok", "running": sim.running}

    @router.post("/sim/start", response_model=SimStatusResponse)
    async def start_sim() -> dict:
        """Start the virtual users in the background."""
        sim = _require_sim()
        try:
            await sim.start()
        except Exception as e:
            logger.error(f"SIM start failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok", "running": sim.running}

    @router.post("/sim/stop", response_model=SimStatusResponse)
    async def stop_sim() -> dict:
        sim = _require_sim()
        try:
            await sim.stop()
        except Exception as e:
            logger.error(f"SIM stop failed: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok", "running": sim.running}

    return router
