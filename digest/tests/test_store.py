import shutil
import tempfile
import unittest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from crawler.errors import DuplicateHandle, InvalidHandle
from crawler.schemas.models import PostRecord
from digest.models import DailyDigest
from digest.store import DigestStore


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _digest(day: str, summary: str = "summary") -> DailyDigest:
    return DailyDigest(
        date=day,
        summary=summary,
        hacks=[],
        airdrops=["FOO"],
        market_sentiment="neutral",
        posts=[PostRecord(content="gm", handle="alice")],
        created_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
    )


class DigestStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = Path(tempfile.mkdtemp())
        self.clock = _Clock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))
        self.store = DigestStore(str(self.tmpdir / "nested" / "digest.db"), clock=self.clock)

    def tearDown(self) -> None:
        self.store.engine.dispose()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_add_list_remove_handles(self):
        alice = self.store.add_handle("@Alice")
        self.clock.advance(seconds=1)
        bob = self.store.add_handle("bob")

        self.assertEqual(alice.handle, "alice")
        self.assertEqual([h.handle for h in self.store.list_handles()], ["alice", "bob"])

        self.assertTrue(self.store.remove_handle(alice.id))
        self.assertFalse(self.store.remove_handle(alice.id))
        self.assertEqual([h.id for h in self.store.list_handles()], [bob.id])

    def test_duplicate_and_invalid_handles_rejected(self):
        self.store.add_handle("alice")
        with self.assertRaises(DuplicateHandle):
            self.store.add_handle("@ALICE")
        with self.assertRaises(InvalidHandle):
            self.store.add_handle("no way!")
        self.assertEqual(len(self.store.list_handles()), 1)

    def test_save_and_get_round_trip(self):
        self.store.save_digest(_digest("2026-10-19"))
        loaded = self.store.get_digest("2026-10-19")
        self.assertEqual(loaded, _digest("2026-10-19"))
        self.assertIsNone(self.store.get_digest("2026-10-18"))

    def test_same_date_is_overwritten(self):
        self.store.save_digest(_digest("2026-10-19", "first"))
        self.store.save_digest(_digest("2026-10-19", "second"))
        self.assertEqual(self.store.get_digest("2026-10-19").summary, "second")
        self.assertEqual(self.store.stored_dates(), ["2026-10-19"])

    def test_digest_expires_after_retention(self):
        self.store.save_digest(_digest("2026-10-19"))
        self.clock.advance(days=29)
        self.assertIsNotNone(self.store.get_digest("2026-10-19"))
        self.clock.advance(days=1)
        self.assertIsNone(self.store.get_digest("2026-10-19"))
        self.assertEqual(self.store.stored_dates(), [])

    def test_get_recent_skips_missing_days(self):
        for day in ("2026-10-19", "2026-10-17", "2026-10-10"):
            self.store.save_digest(_digest(day))

        recent = self.store.get_recent(7)

        self.assertEqual([d.date for d in recent], ["2026-10-19", "2026-10-17"])
        self.assertEqual([d.date for d in self.store.get_recent(3, today=date(2026, 10, 12))], ["2026-10-10"])
        self.assertEqual(self.store.get_recent(0), [])

    def test_purge_expired(self):
        self.store.save_digest(_digest("2026-10-01"))
        self.clock.advance(days=20)
        self.store.save_digest(_digest("2026-10-19"))
        self.clock.advance(days=15)

        self.assertEqual(self.store.purge_expired(), 1)
        self.assertEqual(self.store.stored_dates(), ["2026-10-19"])
        self.assertEqual(self.store.purge_expired(), 0)


if __name__ == "__main__":
    unittest.main()
