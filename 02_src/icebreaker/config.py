"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "icebreaker.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"

# Upper bound on registry draws per pairing attempt.
DEFAULT_MAX_PAIRING_DRAWS = 50

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_max_pairing_draws(env_value: str | None = None) -> int:
    """Resolve MAX_PAIRING_DRAWS, falling back to the default on bad input."""
    if env_value is None:
        env_value = os.getenv("MAX_PAIRING_DRAWS")
    if not env_value:
        return DEFAULT_MAX_PAIRING_DRAWS

    try:
        value = int(env_value)
    except ValueError:
        return DEFAULT_MAX_PAIRING_DRAWS
    return value if value > 0 else DEFAULT_MAX_PAIRING_DRAWS
