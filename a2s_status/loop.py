from __future__ import annotations

import enum
import logging
import threading
import time

from .errors import NotificationTransportError, StorageWriteError
from .gates import changed, due
from .presentation import Reason, build_payload
from .state import LastKnownRecord

logger = logging.getLogger(__name__)


class CycleOutcome(enum.Enum):
    SKIPPED = "skipped"
    CREATED = "created"
    EDITED = "edited"
    FAILED = "failed"


class Reconciler:
    """Keeps the webhook message in step with the server, one cycle at a time.

    ``source`` is a zero-arg callable returning a ServerSnapshot, ``client``
    exposes ``upsert(payload, prior_message_id)`` and ``store`` exposes
    ``load()``/``save(record)``.
    """

    def __init__(self, settings, source, client, store, clock=time.time):
        self.settings = settings
        self.source = source
        self.client = client
        self.store = store
        self.clock = clock
        # Last confirmed post whose record could not be written yet
        self._unsaved: LastKnownRecord | None = None

    def run_cycle(self) -> CycleOutcome:
        loaded = self.store.load()
        last = self._unsaved or loaded or LastKnownRecord()
        current = self.source()
        now = self.clock()

        is_changed = changed(last.snapshot, current)
        is_due = due(last.posted_at, now, self.settings.heartbeat_seconds)
        if not is_changed and not is_due:
            logger.debug("[CYCLE] No change and heartbeat not due.")
            return CycleOutcome.SKIPPED

        reason = Reason.CHANGED if is_changed else Reason.HEARTBEAT
        payload = build_payload(current, reason, self.settings.server_label, now)

        try:
            result = self.client.upsert(payload.to_message(), last.message_id)
        except NotificationTransportError as e:
            logger.error("[ERROR] Webhook update failed: %s", e)
            return CycleOutcome.FAILED

        record = LastKnownRecord(snapshot=current, posted_at=now, message_id=result.message_id)
        try:
            self.store.save(record)
        except StorageWriteError as e:
            # Keep tracking the live message in memory so the next cycle edits it.
            self._unsaved = record
            logger.error("[ERROR] Posted message %s but could not persist state: %s", result.message_id, e)
            return CycleOutcome.FAILED
        self._unsaved = None

        if result.created:
            logger.info("[CYCLE] Created status message %s (%s).", result.message_id, reason.name.lower())
            return CycleOutcome.CREATED
        logger.info("[CYCLE] Edited status message %s (%s).", result.message_id, reason.name.lower())
        return CycleOutcome.EDITED

    def run_forever(self, stop_event: threading.Event, monotonic=time.monotonic) -> None:
        """Run cycles on a fixed period until ``stop_event`` is set.

        The first cycle runs immediately. Cycles never overlap; ticks missed
        while a slow cycle was running are skipped, not replayed.
        """
        interval = self.settings.interval_seconds
        next_tick = monotonic()
        while not stop_event.is_set():
            try:
                self.run_cycle()
            except Exception:
                logger.exception("[ERROR] Unexpected error in cycle; will retry next tick.")

            next_tick += interval
            now = monotonic()
            if now > next_tick:
                missed = int((now - next_tick) // interval) + 1
                logger.warning("[WARN] Cycle overran the %gs interval; skipping %s tick(s).", interval, missed)
                next_tick += missed * interval
            stop_event.wait(max(0.0, next_tick - now))
