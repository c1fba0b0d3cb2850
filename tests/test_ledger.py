from __future__ import annotations

import unittest

from core.ledger import ActivityLedger
from core.types import ActivityRecord, ledger_key
from tests.fakes import HOUR_MS, NOW_MS, FakeClock


class ActivityLedgerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.ledger = ActivityLedger(sample_rate=0.0, clock=self.clock)

    def test_record_uses_clock_when_no_timestamp_given(self):
        self.ledger.record_activity(1, 900)
        record = self.ledger.get(1, 900)
        self.assertEqual(record.last_activity, NOW_MS)
        self.assertEqual(record.user_id, "1")
        self.assertEqual(record.guild_id, "900")
        self.assertTrue(record.last_updated.endswith("Z"))

    def test_later_activity_overwrites_earlier(self):
        self.ledger.record_activity("1", "900", NOW_MS - HOUR_MS)
        self.ledger.record_activity("1", "900", NOW_MS)
        self.assertEqual(len(self.ledger), 1)
        self.assertEqual(self.ledger.get(1, 900).last_activity, NOW_MS)

    def test_same_user_in_two_guilds_is_tracked_separately(self):
        self.ledger.record_activity(1, 900, NOW_MS)
        self.ledger.record_activity(1, 901, NOW_MS - 5)
        self.assertEqual(len(self.ledger), 2)
        self.assertEqual(self.ledger.get(1, 901).last_activity, NOW_MS - 5)

    def test_bad_timestamp_is_logged_not_raised(self):
        with self.assertLogs("gridiron.ledger", level="ERROR"):
            self.ledger.record_activity(1, 900, "not-a-time")
        self.assertEqual(len(self.ledger), 0)

    def test_sampled_debug_log(self):
        ledger = ActivityLedger(sample_rate=1.0, clock=self.clock, rng=lambda: 0.0)
        with self.assertLogs("gridiron.ledger", level="DEBUG") as logs:
            ledger.record_activity(1, 900)
        self.assertIn("sample", logs.output[0])

    def test_prune_is_strictly_before_cutoff(self):
        self.ledger.record_activity(1, 900, 100)
        self.ledger.record_activity(2, 900, 99)
        self.ledger.record_activity(3, 900, 101)
        removed = self.ledger.prune(100)
        self.assertEqual(removed, 1)
        self.assertIsNone(self.ledger.get(2, 900))
        self.assertIsNotNone(self.ledger.get(1, 900))

    def test_remove(self):
        self.ledger.record_activity(1, 900)
        self.assertTrue(self.ledger.remove(1, 900))
        self.assertFalse(self.ledger.remove(1, 900))

    def test_snapshot_layout(self):
        self.ledger.record_activity(7, 900, NOW_MS)
        self.ledger.last_persisted_at = NOW_MS - 1
        snapshot = self.ledger.snapshot()
        self.assertEqual(snapshot["lastSave"], NOW_MS - 1)
        entry = snapshot["userActivity"][ledger_key("900", "7")]
        self.assertEqual(entry["userId"], "7")
        self.assertEqual(entry["guildId"], "900")
        self.assertEqual(entry["lastActivity"], NOW_MS)

    def test_snapshot_is_detached(self):
        self.ledger.record_activity(7, 900, NOW_MS)
        snapshot = self.ledger.snapshot()
        self.ledger.record_activity(8, 900, NOW_MS)
        self.assertEqual(len(snapshot["userActivity"]), 1)

    def test_load_skips_malformed_entries(self):
        data = {
            "userActivity": {
                "900-1": {"userId": "1", "guildId": "900", "lastActivity": NOW_MS},
                "900-2": {"userId": "2", "guildId": "900"},
                "900-3": "garbage",
                "900-4": {"userId": "4", "guildId": "900", "lastActivity": float(NOW_MS)},
            },
            "lastSave": NOW_MS,
        }
        with self.assertLogs("gridiron.ledger", level="WARNING"):
            loaded = self.ledger.load_snapshot(data)
        self.assertEqual(loaded, 2)
        self.assertEqual(self.ledger.get(4, 900).last_activity, NOW_MS)
        self.assertEqual(self.ledger.last_persisted_at, NOW_MS)

    def test_load_keeps_newest_duplicate(self):
        data = {
            "userActivity": {
                "900-1": {"userId": "1", "guildId": "900", "lastActivity": 5},
                "legacy": {"userId": "1", "guildId": "900", "lastActivity": 9},
            }
        }
        self.assertEqual(self.ledger.load_snapshot(data), 1)
        self.assertEqual(self.ledger.get(1, 900).last_activity, 9)
        self.assertIsNone(self.ledger.last_persisted_at)

    def test_merge_keeps_newer_live_records(self):
        self.ledger.record_activity(1, 900, NOW_MS)
        self.ledger.record_activity(3, 900, NOW_MS - 10)
        data = {
            "userActivity": {
                "900-1": {"userId": "1", "guildId": "900", "lastActivity": NOW_MS - HOUR_MS},
                "900-2": {"userId": "2", "guildId": "900", "lastActivity": NOW_MS - HOUR_MS},
                "900-3": {"userId": "3", "guildId": "900", "lastActivity": NOW_MS},
            },
            "lastSave": NOW_MS - 5,
        }

        self.assertEqual(self.ledger.load_snapshot(data, merge=True), 3)

        self.assertEqual(self.ledger.get(1, 900).last_activity, NOW_MS)
        self.assertEqual(self.ledger.get(2, 900).last_activity, NOW_MS - HOUR_MS)
        self.assertEqual(self.ledger.get(3, 900).last_activity, NOW_MS)
        self.assertEqual(self.ledger.last_persisted_at, NOW_MS - 5)

    def test_load_replaces_previous_contents(self):
        self.ledger.record_activity(1, 900)
        self.ledger.load_snapshot({"userActivity": {}})
        self.assertEqual(len(self.ledger), 0)


class ActivityRecordTests(unittest.TestCase):
    def test_round_trip_through_dict(self):
        record = ActivityRecord.at(1, 900, NOW_MS)
        self.assertEqual(ActivityRecord.from_dict(record.to_dict()), record)

    def test_missing_last_updated_is_derived(self):
        record = ActivityRecord.from_dict({"userId": "1", "guildId": "900", "lastActivity": 0})
        self.assertEqual(record.last_updated, "1970-01-01T00:00:00.000Z")

    def test_elapsed(self):
        record = ActivityRecord.at(1, 900, NOW_MS - HOUR_MS)
        self.assertEqual(record.elapsed_ms(NOW_MS), HOUR_MS)


if __name__ == "__main__":
    unittest.main()
