"""Tests for durable record storage."""

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from a2s_status.errors import StorageReadError, StorageWriteError
from a2s_status.snapshot import ServerSnapshot
from a2s_status.state import LastKnownRecord, RecordStore


RECORD = LastKnownRecord(
    snapshot=ServerSnapshot(True, 3, 20, "ATS Convoy"),
    posted_at=1_760_000_000.0,
    message_id="1234567890123456789",
)


class TestRecordStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "last_state.json"
        self.store = RecordStore(self.path)

    def test_missing_file_is_absent(self):
        self.assertIsNone(self.store.load())
        with self.assertRaises(StorageReadError):
            self.store.read()

    def test_save_and_load(self):
        self.store.save(RECORD)
        self.assertEqual(self.store.load(), RECORD)
        self.assertFalse(self.path.with_name("last_state.json.tmp").exists())

    def test_corrupt_file_is_absent(self):
        self.path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(self.store.load())

    def test_wrong_shape_is_absent(self):
        self.path.write_text("[1, 2]", encoding="utf-8")
        self.assertIsNone(self.store.load())
        self.path.write_text('{"snapshot": {"player_count": 1}}', encoding="utf-8")
        self.assertIsNone(self.store.load())

    def test_backup_written_on_overwrite(self):
        self.store.save(RECORD)
        first = self.path.read_bytes()
        self.store.save(LastKnownRecord(RECORD.snapshot, RECORD.posted_at + 60, RECORD.message_id))
        self.assertEqual(self.path.with_name("last_state.json.bak").read_bytes(), first)

    def test_failed_write_leaves_previous_file(self):
        self.store.save(RECORD)
        before = self.path.read_bytes()
        with mock.patch("a2s_status.state.os.replace", side_effect=PermissionError("denied")):
            with self.assertRaises(StorageWriteError):
                self.store.save(LastKnownRecord(message_id="other"))
        self.assertEqual(self.path.read_bytes(), before)
        self.assertFalse(self.path.with_name("last_state.json.tmp").exists())

    def test_creates_parent_directory(self):
        store = RecordStore(Path(self._tmp.name) / "nested" / "state.json")
        store.save(RECORD)
        self.assertEqual(store.load(), RECORD)

    def test_reads_legacy_record(self):
        legacy = {
            "state": {"online": True, "players": 2, "maxplayers": 20, "name": "ATS Convoy"},
            "lastPostAt": 1_760_000_000_500,
            "messageId": "998877",
        }
        self.path.write_text(json.dumps(legacy), encoding="utf-8")
        rec = self.store.load()
        self.assertEqual(rec.snapshot, ServerSnapshot(True, 2, 20, "ATS Convoy"))
        self.assertAlmostEqual(rec.posted_at, 1_760_000_000.5)
        self.assertEqual(rec.message_id, "998877")

    def test_empty_record_round_trips(self):
        self.store.save(LastKnownRecord())
        self.assertEqual(self.store.load(), LastKnownRecord())


if __name__ == "__main__":
    unittest.main()
