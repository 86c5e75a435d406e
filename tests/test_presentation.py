"""Tests for embed/payload rendering."""

import unittest

from a2s_status.presentation import (
    COLOR_OFFLINE,
    COLOR_ONLINE,
    Reason,
    build_payload,
)
from a2s_status.snapshot import ServerSnapshot

NOW = 1_760_000_000.7


class TestBuildPayload(unittest.TestCase):
    def test_online(self):
        snap = ServerSnapshot(True, 4, 20, "ATS Convoy")
        p = build_payload(snap, Reason.CHANGED, "Label", NOW)
        self.assertEqual(p.title, "ATS Convoy")
        self.assertEqual(p.status_line, "🟢 Online — **4/20** players")
        self.assertEqual(p.color, COLOR_ONLINE)
        self.assertEqual(p.timestamp_field, "<t:1760000000:R>")
        self.assertEqual(p.reason_footer, Reason.CHANGED.value)

    def test_unknown_capacity_renders_question_mark(self):
        snap = ServerSnapshot(True, 2, 0, "ATS Convoy")
        p = build_payload(snap, Reason.HEARTBEAT, "Label", NOW)
        self.assertIn("**2/?**", p.status_line)
        self.assertEqual(p.reason_footer, Reason.HEARTBEAT.value)

    def test_offline(self):
        p = build_payload(ServerSnapshot.offline(""), Reason.CHANGED, "Label", NOW)
        self.assertEqual(p.status_line, "🔴 Offline")
        self.assertEqual(p.color, COLOR_OFFLINE)

    def test_empty_name_falls_back_to_label(self):
        p = build_payload(ServerSnapshot(True, 0, 8, "   "), Reason.CHANGED, "My Label", NOW)
        self.assertEqual(p.title, "My Label")

    def test_reasons_are_distinct(self):
        self.assertNotEqual(Reason.CHANGED.value, Reason.HEARTBEAT.value)

    def test_deterministic(self):
        snap = ServerSnapshot(True, 1, 10, "X")
        self.assertEqual(build_payload(snap, Reason.CHANGED, "L", NOW),
                         build_payload(snap, Reason.CHANGED, "L", NOW))

    def test_long_title_truncated(self):
        p = build_payload(ServerSnapshot(True, 0, 8, "x" * 400), Reason.CHANGED, "L", NOW)
        self.assertEqual(len(p.title), 256)
        self.assertTrue(p.title.endswith("…"))

    def test_message_body(self):
        msg = build_payload(ServerSnapshot(True, 1, 10, "X"), Reason.CHANGED, "L", NOW).to_message()
        self.assertEqual(msg["allowed_mentions"], {"parse": []})
        embed = msg["embeds"][0]
        self.assertEqual(embed["title"], "X")
        self.assertEqual(embed["footer"]["text"], Reason.CHANGED.value)
        self.assertEqual(embed["fields"][0]["value"], "<t:1760000000:R>")


if __name__ == "__main__":
    unittest.main()
