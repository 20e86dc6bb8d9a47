"""Durable JSON storage for session records."""

import json
import logging
import time
from pathlib import Path
from typing import List, Optional

import aiofiles
import aiofiles.os

from agent_runtime.lib.errors import SessionPersistenceError
from agent_runtime.models.session_data import SessionData, SessionSummary, is_valid_session_id


logger = logging.getLogger(__name__)


class SessionStore:
    """Stores one pretty-printed JSON document per session id."""

    def __init__(self, storage_path: Path):
        """Initialize the store.

        Args:
            storage_path: Directory holding <session-id>.json files
        """
        self.storage_path = Path(storage_path)
        self.logger = logging.getLogger(__name__)

    def path_for(self, session_id: str) -> Path:
        """Path of the record for a session id.

        Raises:
            SessionPersistenceError: If the id is not a generated session id
        """
        if not isinstance(session_id, str) or not is_valid_session_id(session_id):
            raise SessionPersistenceError(f"Invalid session id: {session_id!r}", session_id=str(session_id))
        return self.storage_path / f"{session_id}.json"

    async def save(self, data: SessionData) -> None:
        """Write the full record atomically.

        Raises:
            SessionPersistenceError: If the record cannot be written
        """
        target = self.path_for(data.id)
        temp = target.with_name(f"{target.name}.tmp")
        payload = json.dumps(data.model_dump(mode="json"), indent=2, ensure_ascii=False)

        try:
            await aiofiles.os.makedirs(self.storage_path, exist_ok=True)
            async with aiofiles.open(temp, "w", encoding="utf-8") as f:
                await f.write(payload)
            await aiofiles.os.replace(temp, target)
        except OSError as e:
            self.logger.error(f"Failed to persist session {data.id}: {e}")
            raise SessionPersistenceError(f"Failed to save session {data.id}: {e}", session_id=data.id) from e

    async def load(self, session_id: str) -> Optional[SessionData]:
        """Load a record by id, or None if it was never saved.

        Raises:
            SessionPersistenceError: If the record exists but cannot be read
        """
        target = self.path_for(session_id)
        if not target.exists():
            return None

        try:
            async with aiofiles.open(target, "r", encoding="utf-8") as f:
                raw = json.loads(await f.read())
            return SessionData(**raw)
        except (OSError, ValueError, TypeError) as e:
            raise SessionPersistenceError(f"Failed to load session {session_id}: {e}", session_id=session_id) from e

    async def list_summaries(self) -> List[SessionSummary]:
        """Summarize every readable record, newest first."""
        if not self.storage_path.exists():
            return []

        summaries: List[SessionSummary] = []
        for path in self.storage_path.glob("*.json"):
            try:
                async with aiofiles.open(path, "r", encoding="utf-8") as f:
                    raw = json.loads(await f.read())
                summaries.append(SessionSummary(
                    id=raw["id"],
                    role=raw["role"],
                    status=raw["status"],
                    start_time=raw["start_time"],
                    end_time=raw.get("end_time"),
                    total_tokens=(raw.get("token_usage") or {}).get("total", 0),
                    chain_id=raw.get("chain_id"),
                    task_id=raw.get("task_id"),
                    nesting_depth=raw.get("nesting_depth", 0),
                    parent_session_id=raw.get("parent_session_id"),
                ))
            except (OSError, ValueError, KeyError, TypeError) as e:
                self.logger.warning(f"Skipping unreadable session file {path.name}: {e}")

        summaries.sort(key=lambda summary: summary.start_time, reverse=True)
        return summaries

    async def cleanup(self, older_than_days: int) -> int:
        """Delete records not modified within the given number of days.

        Returns:
            Number of records deleted
        """
        if not self.storage_path.exists():
            return 0

        cutoff = time.time() - older_than_days * 24 * 60 * 60
        removed = 0
        for path in self.storage_path.glob("*.json"):
            if path.stat().st_mtime < cutoff:
                await aiofiles.os.remove(path)
                removed += 1

        if removed:
            self.logger.info(f"Cleaned up {removed} sessions older than {older_than_days} days")
        return removed

    async def delete(self, session_id: str) -> bool:
        target = self.path_for(session_id)
        if not target.exists():
            return False
        await aiofiles.os.remove(target)
        return True
