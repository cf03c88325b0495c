"""
Tests for script generation: prompt building, dialogue parsing, hand-off.
"""
import json

import pytest

from civic_briefs.pipeline.errors import ScriptParseError
from civic_briefs.pipeline.queues import QueueMessage
from civic_briefs.pipeline.script_generator import (
    ScriptGenerator,
    build_digest,
    build_script_prompt,
    parse_dialogue,
)
from civic_briefs.pipeline.store import job_key

from tests.fixtures.pipeline_fakes import RecordingQueue

JOB_ID = "brief-1700000000000-abc12345"

BILLS = [
    {"id": "b1", "bill_number": "H.R. 1", "title": "Lower Drug Costs Act", "summary": "s" * 400},
    {"id": "b2", "bill_number": None, "title": "School Meals Act", "summary": None,
     "plain_english_summary": "Feeds kids."},
]
NEWS = [{"title": f"Story {i}", "url": f"https://n/{i}", "description": "d"} for i in range(5)]

LLM_REPLY = """Here is your script:
[
  {"host": "sarah", "text": "Welcome to your daily brief."},
  {"host": "James", "text": "Today we look at two bills."},
  {"host": "sarah", "text": "Thanks for listening."}
]
Enjoy!"""


@pytest.fixture
def seeded_store(store):
    store.put(job_key(JOB_ID, "bills"), json.dumps(BILLS))
    store.put(job_key(JOB_ID, "news"), json.dumps(NEWS))
    return store


class TestPrompt:
    def test_includes_bills_with_truncated_summaries(self):
        prompt = build_script_prompt(BILLS, NEWS)
        assert "1. Lower Drug Costs Act - " + "s" * 300 + "\n" in prompt
        assert "s" * 301 not in prompt
        assert "2. School Meals Act - Feeds kids." in prompt

    def test_includes_only_top_three_news_titles(self):
        prompt = build_script_prompt(BILLS, NEWS)
        assert "3. Story 2" in prompt
        assert "Story 3" not in prompt

    def test_json_example_survives_formatting(self):
        assert '{"host": "sarah", "text": "..."}' in build_script_prompt([], [])


class TestParseDialogue:
    def test_extracts_array_from_surrounding_text(self):
        lines = parse_dialogue(LLM_REPLY)
        assert [l.host for l in lines] == ["sarah", "james", "sarah"]
        assert lines[1].text == "Today we look at two bills."

    @pytest.mark.parametrize("reply", ["", "no json here", "[not json]", "[]", '[{"host": "sarah"}]'])
    def test_rejects_unusable_replies(self, reply):
        with pytest.raises(ScriptParseError):
            parse_dialogue(reply)


class TestDigest:
    def test_lists_bills_and_news(self):
        digest = build_digest(BILLS, NEWS[:1])
        assert "H.R. 1: Lower Drug Costs Act" in digest.written_digest
        assert "Story 0 (https://n/0)" in digest.written_digest
        assert digest.bills_covered[0] == {"id": "b1", "billNumber": "H.R. 1", "title": "Lower Drug Costs Act"}

    def test_empty_inputs(self):
        assert build_digest([], []).written_digest.startswith("No new legislative activity")


class TestScriptGenerator:
    def test_writes_script_cleans_inputs_and_forwards(self, seeded_store, queue):
        prompts = []

        def complete(prompt):
            prompts.append(prompt)
            return LLM_REPLY

        message = QueueMessage({"jobId": JOB_ID, "userId": "u1"})
        ScriptGenerator(seeded_store, queue, complete=complete, retry_delay=120).process(message)

        assert message.acked
        assert len(prompts) == 1
        script = json.loads(seeded_store.get(job_key(JOB_ID, "script")))
        assert script[0] == {"host": "sarah", "text": "Welcome to your daily brief."}
        assert seeded_store.get(job_key(JOB_ID, "digest")) is not None
        assert seeded_store.get(job_key(JOB_ID, "bills")) is None
        assert seeded_store.get(job_key(JOB_ID, "news")) is None
        assert queue.sent == [{"jobId": JOB_ID}]

    def test_missing_inputs_trigger_retry(self, store, queue):
        message = QueueMessage({"jobId": JOB_ID, "userId": "u1"})
        ScriptGenerator(store, queue, complete=lambda p: LLM_REPLY, retry_delay=120).process(message)

        assert message.retry_delay == 120
        assert queue.sent == []

    def test_redelivery_after_script_written_skips_llm(self, seeded_store):
        calls = []

        def complete(prompt):
            calls.append(prompt)
            return LLM_REPLY

        queue = RecordingQueue(fail_times=1)
        generator = ScriptGenerator(seeded_store, queue, complete=complete, retry_delay=120)

        first = QueueMessage({"jobId": JOB_ID, "userId": "u1"})
        generator.process(first)
        assert first.retry_delay == 120

        second = QueueMessage(first.body, attempt=1)
        generator.process(second)

        assert second.acked
        assert len(calls) == 1
        assert queue.sent == [{"jobId": JOB_ID}]
