"""Append-only JSONL audit log, one file per session."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from agent_runtime.models.audit_record import AuditLogEntry


logger = logging.getLogger(__name__)


class AuditLogger:
    """Writes audit entries for one session as line-delimited JSON."""

    def __init__(self, session_id: str, log_dir: Path):
        """Initialize the audit logger.

        Args:
            session_id: Session whose calls are logged
            log_dir: Directory holding audit-<session>.jsonl files
        """
        self.session_id = session_id
        self.log_dir = Path(log_dir)
        self.log_path = self.log_dir / f"audit-{session_id}.jsonl"

    async def log(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Stamp and append one entry.

        Returns:
            The entry as written
        """
        stamped = entry.model_copy(update={
            "timestamp": entry.timestamp or datetime.now(timezone.utc),
            "session": entry.session or self.session_id,
        })

        await aiofiles.os.makedirs(self.log_dir, exist_ok=True)
        async with aiofiles.open(self.log_path, "a", encoding="utf-8") as f:
            await f.write(json.dumps(stamped.to_record(), ensure_ascii=False) + "\n")

        logger.debug(f"Audit entry for {stamped.tool} in session {self.session_id}: {stamped.result}")
        return stamped

    async def read_entries(self) -> List[AuditLogEntry]:
        """Read back all entries; an absent log has none."""
        if not self.log_path.exists():
            return []

        entries = []
        async with aiofiles.open(self.log_path, "r", encoding="utf-8") as f:
            async for line in f:
                if line.strip():
                    entries.append(AuditLogEntry(**json.loads(line)))
        return entries
