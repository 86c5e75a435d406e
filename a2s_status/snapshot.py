from __future__ import annotations

import logging
import socket
from dataclasses import asdict, dataclass

import a2s

from .errors import SnapshotQueryError

logger = logging.getLogger(__name__)

# Some games (ATS/ETS2 among them) report a bogus max_players over A2S;
# anything at or below this is replaced by the configured display capacity.
CAPACITY_MISREPORT_THRESHOLD = 8


@dataclass(frozen=True)
class ServerSnapshot:
    reachable: bool
    player_count: int = 0
    capacity: int = 0
    display_name: str = ""

    @classmethod
    def offline(cls, label: str = "") -> "ServerSnapshot":
        return cls(reachable=False, player_count=0, capacity=0, display_name=label)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ServerSnapshot":
        return cls(
            reachable=bool(data["reachable"]),
            player_count=int(data.get("player_count") or 0),
            capacity=int(data.get("capacity") or 0),
            display_name=str(data.get("display_name") or ""),
        )


def _as_count(v) -> int:
    try:
        n = int(v)
    except (TypeError, ValueError):
        return 0
    return max(n, 0)


# === Protocols ===
def _query_a2s(host: str, port: int, timeout: float) -> dict:
    try:
        info = a2s.info((host, port), timeout=timeout)
    except Exception as e:
        raise SnapshotQueryError(f"A2S query failed for {host}:{port}: {e}") from e
    return {
        "name": getattr(info, "server_name", "") or "",
        "players": getattr(info, "player_count", None),
        "max_players": getattr(info, "max_players", None),
    }


def _query_tcp(host: str, port: int, timeout: float) -> dict:
    # Needs a TCP listener (RCON, web panel); A2S game ports are UDP only.
    try:
        with socket.create_connection((host, port), timeout=timeout):
            pass
    except OSError as e:
        raise SnapshotQueryError(f"TCP probe failed for {host}:{port}: {e}") from e
    return {"name": "", "players": 0, "max_players": None}


PROTOCOLS = {
    "a2s": _query_a2s,
    "tcp": _query_tcp,
}


class SnapshotSource:
    """Queries one server and always answers with a ServerSnapshot.

    Query failures are logged and mapped to an offline snapshot; they never
    reach the caller.
    """

    def __init__(self, host: str, port: int, *, protocol: str = "a2s", timeout: float = 2.5,
                 attempts: int = 2, label: str = "", display_capacity: int = 0):
        if protocol not in PROTOCOLS:
            raise ValueError(f"unknown query protocol {protocol!r}")
        self.host = host
        self.port = port
        self.protocol = protocol
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self.label = label
        self.display_capacity = display_capacity

    @classmethod
    def from_settings(cls, settings) -> "SnapshotSource":
        return cls(
            settings.host,
            settings.port,
            protocol=settings.query_protocol,
            timeout=settings.query_timeout,
            attempts=settings.query_attempts,
            label=settings.server_label,
            display_capacity=settings.display_capacity,
        )

    def query(self) -> dict:
        """Raw query with bounded retries. Raises SnapshotQueryError."""
        query_fn = PROTOCOLS[self.protocol]
        last_err = None
        for attempt in range(1, self.attempts + 1):
            try:
                return query_fn(self.host, self.port, self.timeout)
            except SnapshotQueryError as e:
                last_err = e
                logger.debug("[DEBUG] Query attempt %s/%s failed: %s", attempt, self.attempts, e)
        raise last_err

    def __call__(self) -> ServerSnapshot:
        try:
            raw = self.query()
        except SnapshotQueryError as e:
            logger.info("[INFO] %s (treating as offline)", e)
            return ServerSnapshot.offline(self.label)

        capacity = _as_count(raw.get("max_players"))
        if self.display_capacity > 0 and capacity <= CAPACITY_MISREPORT_THRESHOLD:
            capacity = self.display_capacity

        return ServerSnapshot(
            reachable=True,
            player_count=_as_count(raw.get("players")),
            capacity=capacity,
            display_name=(raw.get("name") or "").strip() or self.label,
        )
