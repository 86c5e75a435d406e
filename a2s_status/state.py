from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from .errors import StorageReadError, StorageWriteError
from .snapshot import ServerSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LastKnownRecord:
    snapshot: ServerSnapshot | None = None
    posted_at: float | None = None
    message_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "posted_at": self.posted_at,
            "message_id": self.message_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LastKnownRecord":
        if "messageId" in data or "lastPostAt" in data:
            return cls._from_legacy(data)
        snap = data.get("snapshot")
        posted_at = data.get("posted_at")
        message_id = data.get("message_id")
        return cls(
            snapshot=ServerSnapshot.from_dict(snap) if snap else None,
            posted_at=float(posted_at) if posted_at is not None else None,
            message_id=str(message_id) if message_id else None,
        )

    @classmethod
    def _from_legacy(cls, data: dict) -> "LastKnownRecord":
        # last_state.json written by the older Node monitor (millisecond timestamps)
        st = data.get("state") or None
        snap = None
        if st:
            snap = ServerSnapshot(
                reachable=bool(st.get("online")),
                player_count=int(st.get("players") or 0),
                capacity=int(st.get("maxplayers") or 0),
                display_name=str(st.get("name") or ""),
            )
        last_post = data.get("lastPostAt")
        message_id = data.get("messageId")
        return cls(
            snapshot=snap,
            posted_at=float(last_post) / 1000.0 if last_post else None,
            message_id=str(message_id) if message_id else None,
        )


class RecordStore:
    """JSON file holding the LastKnownRecord; one reader/writer per process."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> LastKnownRecord:
        """Strict read. Raises StorageReadError on a missing or unusable file."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise StorageReadError(f"no state file at {self.path}") from e
        except (OSError, ValueError) as e:
            raise StorageReadError(f"could not read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageReadError(f"{self.path} must hold a JSON object, got {type(data).__name__}")
        try:
            return LastKnownRecord.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageReadError(f"malformed record in {self.path}: {e}") from e

    def load(self) -> LastKnownRecord | None:
        """Lenient read used by the loop: any failure means no prior state."""
        try:
            return self.read()
        except StorageReadError as e:
            if self.path.exists():
                logger.warning("[STATE] %s (starting without prior state)", e)
            else:
                logger.debug("[STATE] %s", e)
            return None

    def save(self, record: LastKnownRecord) -> None:
        """Atomic write with .bak. Raises StorageWriteError, leaving the old file intact."""
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            if self.path.exists():
                try:
                    shutil.copyfile(self.path, self.path.with_name(self.path.name + ".bak"))
                except OSError as e:
                    logger.debug("[STATE] Could not refresh backup: %s", e)
            os.replace(tmp, self.path)
        except OSError as e:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise StorageWriteError(f"could not write {self.path}: {e}") from e
