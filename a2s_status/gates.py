"""Decide whether a cycle needs to touch the webhook at all."""

from __future__ import annotations

from .snapshot import ServerSnapshot


def changed(prev: ServerSnapshot | None, curr: ServerSnapshot) -> bool:
    # Exact comparison on every field; player churn is worth a post.
    if prev is None:
        return True
    return (
        prev.reachable != curr.reachable
        or prev.player_count != curr.player_count
        or prev.capacity != curr.capacity
        or prev.display_name != curr.display_name
    )


def due(last_posted_at: float | None, now: float, heartbeat_interval: float) -> bool:
    if last_posted_at is None:
        return True
    return now - last_posted_at >= heartbeat_interval
