from __future__ import annotations

import enum
from dataclasses import dataclass

from .snapshot import ServerSnapshot

COLOR_ONLINE = 0x57F287
COLOR_OFFLINE = 0xED4245

EMBED_TITLE_LIMIT = 256    # Discord hard cap per embed title
EMBED_DESC_LIMIT = 4096    # Discord hard cap per embed description


class Reason(enum.Enum):
    CHANGED = "🔄 Status changed"
    HEARTBEAT = "⏱️ Periodic update"


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    status_line: str
    color: int
    timestamp_field: str
    reason_footer: str

    def to_embed(self) -> dict:
        return {
            "color": self.color,
            "title": self.title,
            "description": self.status_line,
            "fields": [
                {"name": "Last check", "value": self.timestamp_field, "inline": True},
            ],
            "footer": {"text": self.reason_footer},
        }

    def to_message(self) -> dict:
        return {"embeds": [self.to_embed()], "allowed_mentions": {"parse": []}}


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)] + "…"


def discord_timestamp(epoch: float, style: str = "R") -> str:
    return f"<t:{int(epoch)}:{style}>"


def build_payload(snapshot: ServerSnapshot, reason: Reason, label: str, now: float) -> NotificationPayload:
    if snapshot.reachable:
        status = f"🟢 Online — **{snapshot.player_count}/{snapshot.capacity or '?'}** players"
        color = COLOR_ONLINE
    else:
        status = "🔴 Offline"
        color = COLOR_OFFLINE

    return NotificationPayload(
        title=_truncate(snapshot.display_name.strip() or label, EMBED_TITLE_LIMIT),
        status_line=_truncate(status, EMBED_DESC_LIMIT),
        color=color,
        timestamp_field=discord_timestamp(now),
        reason_footer=reason.value,
    )
