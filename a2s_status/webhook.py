from __future__ import annotations

import logging
import random
import time
from typing import NamedTuple

import requests
from requests.adapters import HTTPAdapter

from . import __version__
from .errors import MessageNotFound, NotificationTransportError

logger = logging.getLogger(__name__)

# Discord JSON error code for a deleted/invalid webhook (as opposed to a deleted message)
UNKNOWN_WEBHOOK_CODE = 10015


# === HTTP Session & helpers ===
def make_session() -> requests.Session:
    session = requests.Session()
    session.mount("https://", HTTPAdapter(pool_connections=2, pool_maxsize=4))
    session.mount("http://", HTTPAdapter(pool_connections=2, pool_maxsize=4))
    session.headers.update({"User-Agent": f"a2s-status-webhook/{__version__}"})
    return session


def _sleep_backoff(attempt: int, base: float = 0.75, cap: float = 5.0):
    delay = min(cap, base * (2 ** attempt)) + random.uniform(0, 0.25)
    time.sleep(delay)


def _retry_after(resp) -> float:
    try:
        ra = resp.headers.get("Retry-After")
        if not ra:
            ra = resp.json().get("retry_after")
        return float(ra) if ra else 1.0
    except (ValueError, AttributeError):
        return 1.0


def discord_request(session, method: str, url: str, *, json_payload=None, timeout: float = 15,
                    max_retries: int = 3):
    """Request wrapper with 429 Retry-After + 5xx backoff.

    Returns the final response (any status except exhausted 429/5xx).
    Raises NotificationTransportError when retries run out.
    """
    for attempt in range(max_retries + 1):
        try:
            resp = session.request(method, url, json=json_payload, timeout=timeout)
        except requests.RequestException as e:
            if attempt >= max_retries:
                raise NotificationTransportError(f"{method} request exception: {e}") from e
            _sleep_backoff(attempt)
            continue

        if resp.status_code == 429:
            if attempt >= max_retries:
                raise NotificationTransportError(
                    f"{method} 429 Too Many Requests (gave up after {max_retries} retries)", status=429)
            time.sleep(_retry_after(resp) + random.uniform(0, 0.25))
            continue

        # Transient 5xx
        if 500 <= resp.status_code < 600:
            if attempt >= max_retries:
                raise NotificationTransportError(f"{method} {resp.status_code} server error",
                                                 status=resp.status_code)
            _sleep_backoff(attempt)
            continue

        return resp
    raise NotificationTransportError(f"{method} exhausted retries")


def _error_code(resp):
    try:
        data = resp.json()
    except ValueError:
        return None
    return data.get("code") if isinstance(data, dict) else None


def raise_for_discord(method: str, resp) -> None:
    """Map a non-2xx response to the error class the loop branches on."""
    if 200 <= resp.status_code < 300:
        return
    errtxt = f"{method} failed ({resp.status_code}): {getattr(resp, 'text', '')[:180]}"
    if resp.status_code == 404 and _error_code(resp) != UNKNOWN_WEBHOOK_CODE:
        raise MessageNotFound(errtxt, status=404)
    raise NotificationTransportError(errtxt, status=resp.status_code)


class UpsertResult(NamedTuple):
    message_id: str
    created: bool


class WebhookClient:
    """Create/edit one message on a Discord webhook."""

    def __init__(self, webhook_url: str, session: requests.Session | None = None, *,
                 timeout: float = 20, max_retries: int = 3):
        self.webhook_url = webhook_url.rstrip("/")
        self.session = session or make_session()
        self.timeout = timeout
        self.max_retries = max_retries

    def _request(self, method: str, url: str, payload: dict):
        resp = discord_request(self.session, method, url, json_payload=payload,
                               timeout=self.timeout, max_retries=self.max_retries)
        raise_for_discord(method, resp)
        return resp

    def create(self, payload: dict) -> str:
        resp = self._request("POST", f"{self.webhook_url}?wait=true", payload)
        try:
            return str(resp.json()["id"])
        except (ValueError, KeyError, TypeError) as e:
            raise NotificationTransportError(f"Create succeeded but couldn't parse message id: {e}",
                                             status=resp.status_code) from e

    def edit(self, message_id: str, payload: dict) -> None:
        self._request("PATCH", f"{self.webhook_url}/messages/{message_id}", payload)

    def upsert(self, payload: dict, prior_message_id: str | None) -> UpsertResult:
        """Edit the tracked message, recreating it only if Discord says it is gone.

        Any other edit failure propagates; creating on an ambiguous error
        could leave two status messages in the channel.
        """
        if prior_message_id:
            try:
                self.edit(prior_message_id, payload)
                return UpsertResult(prior_message_id, False)
            except MessageNotFound:
                logger.warning("[WARN] Message %s not found (deleted?); recreating.", prior_message_id)

        return UpsertResult(self.create(payload), True)
