"""Local draft snapshots of unsaved edits, one JSON file per statute."""

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from statute_editor.config import DRAFT_AUTOSAVE_INTERVAL, DRAFT_MAX_AGE_SECONDS
from statute_editor.core.edit.session import EditSession


@dataclass(frozen=True)
class Draft:
    statute_id: int
    tree: dict[str, Any]
    deleted_items: list[dict[str, Any]]
    timestamp: int  # ms since epoch

    def age_seconds(self, now: float | None = None) -> float:
        return (time.time() if now is None else now) - self.timestamp / 1000


class DraftStore:
    """Drafts live in ``directory`` as ``statute_draft_<id>.json``."""

    def __init__(self, directory: Path, *, max_age: int = DRAFT_MAX_AGE_SECONDS) -> None:
        self.directory = directory
        self.max_age = max_age

    def path_for(self, statute_id: int) -> Path:
        return self.directory / f"statute_draft_{statute_id}.json"

    def save(self, session: EditSession, *, now: float | None = None) -> Draft:
        """Write a point-in-time copy of the session's tree and ledger."""
        payload = session.build_save_payload()
        draft = Draft(
            statute_id=session.statute_id,
            tree=payload["tree"],
            deleted_items=payload["deletedItems"],
            timestamp=int((time.time() if now is None else now) * 1000),
        )
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(draft.statute_id)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(
            json.dumps(
                {
                    "tree": draft.tree,
                    "deletedItems": draft.deleted_items,
                    "timestamp": draft.timestamp,
                }
            ),
            encoding="utf-8",
        )
        tmp_path.replace(path)
        logger.info("Draft saved for statute {}", draft.statute_id)
        return draft

    def load(self, statute_id: int, *, now: float | None = None) -> Draft | None:
        """Return the draft if it exists and is younger than ``max_age``.

        Stale and unreadable drafts are deleted.
        """
        path = self.path_for(statute_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            draft = Draft(
                statute_id=statute_id,
                tree=data["tree"],
                deleted_items=list(data.get("deletedItems") or []),
                timestamp=int(data["timestamp"]),
            )
        except Exception:
            logger.opt(exception=True).warning("Discarding unreadable draft {}", path)
            path.unlink(missing_ok=True)
            return None

        if draft.age_seconds(now) >= self.max_age:
            logger.info("Discarding stale draft for statute {}", statute_id)
            path.unlink(missing_ok=True)
            return None
        return draft

    def clear(self, statute_id: int) -> None:
        self.path_for(statute_id).unlink(missing_ok=True)


def restore_draft(session: EditSession, drafts: DraftStore) -> bool:
    """Replace the session's tree with its draft, if a usable one exists."""
    draft = drafts.load(session.statute_id)
    if draft is None:
        return False
    session.restore_snapshot(draft.tree, draft.deleted_items)
    logger.info(
        "Restored draft for statute {} from {:.0f}s ago", session.statute_id, draft.age_seconds()
    )
    return True


def maybe_save_draft(
    session: EditSession,
    drafts: DraftStore,
    *,
    interval: float = DRAFT_AUTOSAVE_INTERVAL,
    now: float | None = None,
) -> bool:
    """Snapshot a dirty session when the cooldown has expired.

    On failure, logs a warning and still starts the cooldown to prevent
    retry storms.
    """
    if not session.dirty or session.saving:
        return False
    now = time.time() if now is None else now
    if session.last_draft_at is not None and now - session.last_draft_at < interval:
        return False

    session.last_draft_at = now
    try:
        drafts.save(session, now=now)
    except OSError:
        logger.opt(exception=True).warning("Draft save failed for statute {}", session.statute_id)
        return False
    return True
