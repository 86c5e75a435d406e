# ============================================================
# a2s-status-webhook
# Mirrors one game server's status into a single, auto-edited
# Discord webhook message.
# ============================================================

__version__ = "1.0.0"
