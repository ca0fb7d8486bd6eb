import json
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from crawler.schemas.models import PostRecord
from digest.summarizer import (
    NO_DATA_RESULT,
    DigestGenerationFailed,
    DigestGenerator,
    build_prompt,
    parse_digest,
)


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _client(content=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        client.chat.completions.create.return_value = _completion(content)
    return client


POSTS = [
    PostRecord(content="Protocol X drained for $4m", handle="zachxbt"),
    PostRecord(content="Claim window for the $FOO airdrop is open", handle="foo_labs"),
]

REPLY = {
    "summary": "A busy day.",
    "hacks": ["Protocol X exploit"],
    "airdrops": ["FOO airdrop"],
    "marketSentiment": "neutral",
}


class DigestGeneratorTests(unittest.TestCase):
    def test_empty_input_returns_no_data_without_calling_the_model(self):
        client = _client(json.dumps(REPLY))
        result = DigestGenerator(client).generate([])

        self.assertEqual(result, NO_DATA_RESULT)
        self.assertEqual(result.summary, "No posts found for today.")
        self.assertEqual(result.market_sentiment, "No data available")
        client.chat.completions.create.assert_not_called()

    def test_generates_digest_with_fixed_parameters(self):
        client = _client(json.dumps(REPLY))
        result = DigestGenerator(client).generate(POSTS)

        self.assertEqual(result.summary, "A busy day.")
        self.assertEqual(result.hacks, ["Protocol X exploit"])
        self.assertEqual(result.airdrops, ["FOO airdrop"])
        self.assertEqual(result.market_sentiment, "neutral")

        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-3.5-turbo")
        self.assertEqual(kwargs["temperature"], 0.7)
        self.assertEqual(kwargs["max_tokens"], 1000)
        self.assertIn("[1] @zachxbt: Protocol X drained for $4m", kwargs["messages"][1]["content"])

    def test_provider_error_is_wrapped(self):
        client = _client(error=RuntimeError("quota exceeded for key sk-abcdef1234567890"))
        with self.assertRaises(DigestGenerationFailed) as ctx:
            DigestGenerator(client).generate(POSTS)
        self.assertIn("quota exceeded", str(ctx.exception))
        self.assertNotIn("sk-abcdef1234567890", str(ctx.exception))

    def test_unparseable_reply_fails(self):
        with self.assertRaises(DigestGenerationFailed):
            DigestGenerator(_client("Sorry, I can't help with that.")).generate(POSTS)

    def test_empty_reply_fails(self):
        with self.assertRaises(DigestGenerationFailed):
            DigestGenerator(_client("")).generate(POSTS)


class ParseDigestTests(unittest.TestCase):
    def test_strips_markdown_fence(self):
        result = parse_digest("```json\n" + json.dumps(REPLY) + "\n```")
        self.assertEqual(result.summary, "A busy day.")

    def test_missing_or_malformed_fields_get_defaults(self):
        result = parse_digest(json.dumps({"hacks": "not a list", "airdrops": ["  ", "BAR"]}))
        self.assertEqual(result.summary, "No summary generated")
        self.assertEqual(result.hacks, [])
        self.assertEqual(result.airdrops, ["BAR"])
        self.assertEqual(result.market_sentiment, "Unknown")

    def test_non_object_rejected(self):
        with self.assertRaises(ValueError):
            parse_digest("[1, 2, 3]")


class BuildPromptTests(unittest.TestCase):
    def test_posts_are_numbered_and_separated(self):
        prompt = build_prompt(POSTS)
        self.assertIn("[1] @zachxbt: Protocol X drained for $4m\n\n[2] @foo_labs:", prompt)
        self.assertIn('"marketSentiment"', prompt)


if __name__ == "__main__":
    unittest.main()
