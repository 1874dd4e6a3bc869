"""Run the Icebreaker service: HTTP API plus an optional SIM."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from icebreaker.api import create_fastapi_app
from icebreaker.api.routes import control
from icebreaker.logging_config import get_logger, setup_logging
from sim import Sim

logger = get_logger(__name__)


def main():
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")
    setup_logging()

    host = os.getenv("API_HOST", "localhost")
    port = int(os.getenv("API_PORT", "8000"))

    # The SIM talks to this same service over HTTP
    control.set_sim_instance(Sim(api_url=f"http://{host}:{port}"))

    logger.info("Serving Icebreaker on %s:%s", host, port)
    # Our dictConfig owns the root logger
    uvicorn.run(create_fastapi_app(), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
