import unittest

from pydantic import ValidationError

from crawler.errors import InvalidHandle
from crawler.pipelines.dedupe import dedupe_handles
from crawler.schemas.models import UNDATED_SENTINEL, BatchResult, HandleFailure, PostRecord, normalize_handle


class NormalizeHandleTests(unittest.TestCase):
    def test_strips_at_and_lowercases(self):
        self.assertEqual(normalize_handle("@ElonMusk"), "elonmusk")
        self.assertEqual(normalize_handle("  vitalik_eth "), "vitalik_eth")

    def test_only_one_leading_at_is_removed(self):
        with self.assertRaises(InvalidHandle):
            normalize_handle("@@double")

    def test_rejects_empty_long_and_odd_characters(self):
        for raw in ("", "   ", "@", "a" * 16, "has space", "semi;colon", "dash-ed"):
            with self.assertRaises(InvalidHandle, msg=raw):
                normalize_handle(raw)

    def test_fifteen_characters_allowed(self):
        self.assertEqual(normalize_handle("A" * 15), "a" * 15)


class DedupeHandlesTests(unittest.TestCase):
    def test_keeps_first_seen_order(self):
        self.assertEqual(
            dedupe_handles(["Bob", "alice", "@bob", "ALICE", "carol"]),
            ["Bob", "alice", "carol"],
        )

    def test_invalid_entries_never_merge_with_valid_ones(self):
        self.assertEqual(dedupe_handles(["@@alice", "alice", "@@alice"]), ["@@alice", "alice"])


class PostRecordTests(unittest.TestCase):
    def test_content_is_trimmed_and_timestamp_defaults(self):
        post = PostRecord(content="  gm  ", handle="alice")
        self.assertEqual(post.content, "gm")
        self.assertEqual(post.timestamp, UNDATED_SENTINEL)

    def test_blank_content_rejected(self):
        with self.assertRaises(ValidationError):
            PostRecord(content=" \n ", handle="alice")


class BatchResultTests(unittest.TestCase):
    def test_failed_only_without_posts(self):
        result = BatchResult()
        self.assertFalse(result.failed)
        result.failures["alice"] = HandleFailure("alice", "AllEndpointsExhausted", "all down")
        self.assertTrue(result.failed)
        self.assertEqual(result.failure_reasons(), {"alice": "AllEndpointsExhausted: all down"})
        result.posts.append(PostRecord(content="hi", handle="bob"))
        self.assertFalse(result.failed)


if __name__ == "__main__":
    unittest.main()
