from __future__ import annotations

import json
import tempfile
import unittest
from unittest import mock

from services.errors import StorageError, TwitterError, VisionError
from services.pipeline import MentionPipeline
from services.poller import MentionPoller
from services.storage import DedupStore
from services.types import Mention, PipelineResult, Profile
from tests.fakes import FakeFetcher, FakeImageGen, FakeLLM, FakeTwitter, FakeVision, make_settings


class _ScriptedPipeline:
    """Pipeline double that returns or raises per mention id."""

    def __init__(self, outcomes: dict[str, PipelineResult | Exception] | None = None) -> None:
        self.outcomes = dict(outcomes or {})
        self.runs: list[str] = []

    async def run(self, mention: Mention) -> PipelineResult:
        self.runs.append(mention.id)
        outcome = self.outcomes.get(mention.id, PipelineResult.REPLIED)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class MentionPollerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.settings = make_settings(self._tmp.name, max_mentions=20)
        self.store = DedupStore.load(self.settings.storage_file)

    def _on_disk(self) -> set[str]:
        with open(self.settings.storage_file, encoding="utf-8") as f:
            return set(json.load(f)["items"])

    async def test_queries_bot_handle_with_limit(self) -> None:
        twitter = FakeTwitter()
        poller = MentionPoller(self.settings, twitter, _ScriptedPipeline(), self.store)

        summary = await poller.run_cycle()

        self.assertEqual(twitter.searches, [("@remixbot", 20)])
        self.assertEqual(summary["found"], 0)
        self.assertTrue(summary["success"])

    async def test_success_is_committed_and_persisted(self) -> None:
        twitter = FakeTwitter([Mention(id="100", username="alice")])
        poller = MentionPoller(self.settings, twitter, _ScriptedPipeline(), self.store)

        summary = await poller.run_cycle()

        self.assertEqual(summary["replied"], 1)
        self.assertTrue(self.store.contains("100"))
        self.assertEqual(self._on_disk(), {"100"})
        self.assertIs(poller.last_cycle, summary)

    async def test_each_success_is_persisted_before_the_next_mention(self) -> None:
        twitter = FakeTwitter([Mention(id="1", username="a"), Mention(id="2", username="b")])
        seen_on_disk: list[set[str]] = []

        class _Recording(_ScriptedPipeline):
            async def run(inner, mention: Mention) -> PipelineResult:
                if mention.id == "2":
                    seen_on_disk.append(self._on_disk())
                return await super().run(mention)

        poller = MentionPoller(self.settings, twitter, _Recording(), self.store)
        await poller.run_cycle()

        self.assertEqual(seen_on_disk, [{"1"}])
        self.assertEqual(self._on_disk(), {"1", "2"})

    async def test_already_processed_mentions_are_not_rerun(self) -> None:
        self.store.insert("100")
        pipeline = _ScriptedPipeline()
        twitter = FakeTwitter([Mention(id="100", username="alice")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        summary = await poller.run_cycle()

        self.assertEqual(pipeline.runs, [])
        self.assertEqual(summary["already_processed"], 1)

    async def test_mentions_without_id_are_dropped(self) -> None:
        pipeline = _ScriptedPipeline()
        twitter = FakeTwitter([Mention(id=None, username="alice"), Mention(id="", username="bob")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        summary = await poller.run_cycle()

        self.assertEqual(pipeline.runs, [])
        self.assertEqual(summary["skipped_missing_id"], 2)

    async def test_failure_is_isolated_to_its_mention(self) -> None:
        pipeline = _ScriptedPipeline({"A": VisionError("boom")})
        twitter = FakeTwitter([Mention(id="A", username="a"), Mention(id="B", username="b")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        summary = await poller.run_cycle()

        self.assertEqual(pipeline.runs, ["A", "B"])
        self.assertFalse(self.store.contains("A"))
        self.assertTrue(self.store.contains("B"))
        self.assertEqual(summary["failed"], 1)
        self.assertEqual(summary["replied"], 1)

    async def test_failed_mention_is_retried_next_cycle(self) -> None:
        pipeline = _ScriptedPipeline({"A": VisionError("boom")})
        twitter = FakeTwitter([Mention(id="A", username="a")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        await poller.run_cycle()
        pipeline.outcomes.clear()
        await poller.run_cycle()

        self.assertEqual(pipeline.runs, ["A", "A"])
        self.assertTrue(self.store.contains("A"))

    async def test_skipped_results_are_not_committed(self) -> None:
        pipeline = _ScriptedPipeline({
            "s": PipelineResult.SKIPPED_SELF,
            "n": PipelineResult.SKIPPED_NO_AVATAR,
            "u": PipelineResult.SKIPPED_NO_AUTHOR,
        })
        twitter = FakeTwitter([Mention(id="s"), Mention(id="n"), Mention(id="u")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        summary = await poller.run_cycle()

        self.assertEqual(len(self.store), 0)
        self.assertEqual(summary["skipped"], 3)

    async def test_search_failure_propagates(self) -> None:
        pipeline = _ScriptedPipeline()
        twitter = FakeTwitter(search_error=TwitterError("401 Unauthorized"))
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        with self.assertRaises(TwitterError):
            await poller.run_cycle()
        self.assertEqual(pipeline.runs, [])

    async def test_persist_failure_fails_the_cycle(self) -> None:
        pipeline = _ScriptedPipeline()
        twitter = FakeTwitter([Mention(id="1", username="a"), Mention(id="2", username="b")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        with mock.patch.object(self.store, "persist", side_effect=StorageError("read-only fs")):
            with self.assertRaises(StorageError):
                await poller.run_cycle()

        self.assertEqual(pipeline.runs, ["1"])
        self.assertFalse(self.store.contains("1"))

    async def test_unpersisted_mention_is_retried_next_cycle(self) -> None:
        pipeline = _ScriptedPipeline()
        twitter = FakeTwitter([Mention(id="1", username="a")])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        with mock.patch.object(self.store, "persist", side_effect=StorageError("disk full")):
            with self.assertRaises(StorageError):
                await poller.run_cycle()
        await poller.run_cycle()

        self.assertEqual(pipeline.runs, ["1", "1"])
        self.assertEqual(self._on_disk(), {"1"})

    async def test_forget_keeps_mention_when_persist_fails(self) -> None:
        self.store.insert("100")
        self.store.persist()
        poller = MentionPoller(self.settings, FakeTwitter(), _ScriptedPipeline(), self.store)

        with mock.patch.object(self.store, "persist", side_effect=StorageError("read-only fs")):
            with self.assertRaises(StorageError):
                await poller.forget("100")

        self.assertTrue(self.store.contains("100"))
        self.assertEqual(self._on_disk(), {"100"})

    async def test_check_mentions_does_not_run_pipeline(self) -> None:
        self.store.insert("1")
        pipeline = _ScriptedPipeline()
        twitter = FakeTwitter([
            Mention(id="1", username="a", text="old"),
            Mention(id="2", username="b", text="new"),
        ])
        poller = MentionPoller(self.settings, twitter, pipeline, self.store)

        result = await poller.check_mentions()

        self.assertEqual(pipeline.runs, [])
        self.assertEqual(result["found"], 2)
        self.assertEqual(result["pending"], 1)
        self.assertEqual([m["pending"] for m in result["mentions"]], [False, True])

    async def test_forget_removes_and_persists(self) -> None:
        self.store.insert("100")
        self.store.persist()
        poller = MentionPoller(self.settings, FakeTwitter(), _ScriptedPipeline(), self.store)

        self.assertTrue(await poller.forget("100"))
        self.assertFalse(await poller.forget("100"))
        self.assertEqual(self._on_disk(), set())


class EndToEndScenarioTests(unittest.IsolatedAsyncioTestCase):
    """Real pipeline wired to fakes for every provider."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.settings = make_settings(self._tmp.name)
        self.twitter = FakeTwitter(profiles={
            "alice": Profile(username="alice", avatar_url="https://img.example/alice.jpg"),
            "bob": Profile(username="bob", avatar_url=None),
        })
        self.vision = FakeVision(["cat", "hat"])
        self.llm = FakeLLM("a cat wearing a hat")
        self.image_gen = FakeImageGen(b"IMG2")
        self.fetcher = FakeFetcher()
        pipeline = MentionPipeline(
            self.settings,
            twitter=self.twitter,
            vision=self.vision,
            llm=self.llm,
            image_gen=self.image_gen,
            image_fetcher=self.fetcher,
        )
        self.store = DedupStore.load(self.settings.storage_file)
        self.poller = MentionPoller(self.settings, self.twitter, pipeline, self.store)

    async def test_replied_mention_triggers_no_calls_on_second_cycle(self) -> None:
        self.twitter.mentions = [Mention(id="100", username="alice")]

        await self.poller.run_cycle()

        self.assertTrue(self.store.contains("100"))
        self.assertEqual(len(self.twitter.replies), 1)
        self.assertEqual(self.twitter.replies[0]["media"], b"IMG2")

        await self.poller.run_cycle()

        self.assertEqual(self.twitter.profile_lookups, ["alice"])
        self.assertEqual(len(self.vision.calls), 1)
        self.assertEqual(len(self.llm.prompts), 1)
        self.assertEqual(len(self.image_gen.calls), 1)
        self.assertEqual(len(self.twitter.replies), 1)

    async def test_restart_reloads_committed_mentions(self) -> None:
        self.twitter.mentions = [Mention(id="100", username="alice")]
        await self.poller.run_cycle()

        reloaded = DedupStore.load(self.settings.storage_file)
        pipeline = _ScriptedPipeline()
        poller = MentionPoller(self.settings, self.twitter, pipeline, reloaded)
        await poller.run_cycle()

        self.assertEqual(pipeline.runs, [])

    async def test_mention_without_avatar_is_reevaluated_each_cycle(self) -> None:
        self.twitter.mentions = [Mention(id="101", username="bob")]

        first = await self.poller.run_cycle()
        second = await self.poller.run_cycle()

        self.assertFalse(self.store.contains("101"))
        self.assertEqual(self.twitter.profile_lookups, ["bob", "bob"])
        self.assertEqual(self.vision.calls, [])
        self.assertEqual(first["skipped"], 1)
        self.assertEqual(second["skipped"], 1)


if __name__ == "__main__":
    unittest.main()
