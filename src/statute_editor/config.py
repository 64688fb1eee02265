"""Configuration constants for statute-editor."""

import os
from pathlib import Path

# Undo log capacity. Oldest records are dropped beyond this.
MAX_HISTORY_SIZE: int = 5000

# Drafts older than this are discarded without asking.
DRAFT_MAX_AGE_SECONDS: int = 24 * 60 * 60

# Minimum seconds between two draft snapshots of a dirty session.
DRAFT_AUTOSAVE_INTERVAL: int = 30

# Temporary order numbers live at TEMP_ORDER_OFFSET + row id during a save.
TEMP_ORDER_OFFSET: int = 900_000

# Base name for freshly created components.
DEFAULT_NODE_NAME: str = "Pseudo"

# Upper bound of components created by one "add several" request.
MAX_BATCH_QUANTITY: int = 20

STATUTE_NAME_MAX_LENGTH: int = 255
ACT_NO_MAX_LENGTH: int = 100

# Directory with the database and drafts. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/statute-editor").expanduser(),
    Path("~/.statute-editor").expanduser(),
]

DATABASE_FILENAME: str = "statutes.db"
DRAFTS_DIRNAME: str = "drafts"

# Save endpoint used by the HTTP store.
DEFAULT_SERVER_URL: str = "http://localhost:3000"


def resolve_data_directory() -> Path:
    """Return the data directory: env override, first existing candidate, or the default."""
    env_dir = os.environ.get("STATUTE_EDITOR_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


def resolve_server_url() -> str:
    return os.environ.get("STATUTE_EDITOR_URL", DEFAULT_SERVER_URL).rstrip("/")
