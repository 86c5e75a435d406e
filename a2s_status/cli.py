from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from logging.handlers import RotatingFileHandler

from . import __version__
from .config import load_settings
from .errors import ConfigurationError
from .loop import Reconciler
from .snapshot import SnapshotSource
from .state import RecordStore
from .webhook import WebhookClient

logger = logging.getLogger("a2s_status")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

EXIT_OK = 0
EXIT_CONFIG = 2


def setup_logging(verbose: bool = False, debug_log_file=None) -> None:
    """Console always ON (INFO+, DEBUG with --verbose); optional rotating file for DEBUG."""
    logger.setLevel(logging.DEBUG)  # master gate
    for h in list(logger.handlers):
        logger.removeHandler(h)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console)

    if debug_log_file:
        file_handler = RotatingFileHandler(debug_log_file, maxBytes=5 * 1024 * 1024, backupCount=3,
                                           encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="a2s-status",
        description="Mirror a game server's status into one auto-edited Discord webhook message.",
    )
    parser.add_argument("--env-file", help="read configuration from this .env file")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    parser.add_argument("--verbose", action="store_true", help="log DEBUG to the console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_reconciler(settings) -> Reconciler:
    return Reconciler(
        settings,
        source=SnapshotSource.from_settings(settings),
        client=WebhookClient(settings.webhook_url),
        store=RecordStore(settings.state_file),
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = load_settings(args.env_file)
    except ConfigurationError as e:
        logger.error("[ERROR] %s", e)
        return EXIT_CONFIG

    if settings.debug_log_enabled:
        setup_logging(args.verbose, settings.debug_log_file)

    logger.info("[INIT] Starting a2s-status-webhook v%s for %s:%s (%s, every %gs, heartbeat %gs)",
                __version__, settings.host, settings.port, settings.query_protocol,
                settings.interval_seconds, settings.heartbeat_seconds)
    reconciler = build_reconciler(settings)

    if args.once:
        reconciler.run_cycle()
        return EXIT_OK

    stop = threading.Event()

    def _graceful_exit(signum, frame):
        logger.info("[SHUTDOWN] Signal %s received. Finishing current cycle…", signum)
        stop.set()

    for _sig in (getattr(signal, "SIGINT", None), getattr(signal, "SIGTERM", None)):
        if _sig:
            signal.signal(_sig, _graceful_exit)

    reconciler.run_forever(stop)
    logger.info("[SHUTDOWN] Stopped.")
    return EXIT_OK
