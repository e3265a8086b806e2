"""End-to-end runs through the orchestrator with faked network and provider."""

import asyncio
import re

from conftest import ARXIV_ID, arxiv_session, read_log
from paper_extractor.llm.create_provider import ProviderEnabled
from paper_extractor.note import SUMMARY_START_MARKER, build_summary_block
from paper_extractor.orchestrator import Orchestrator, RunOutcome

TITLED_NOTE = "papers/Attention Is_ All You Need_.md"


class FakeChatProvider:
    name = "openai"
    model = "gpt-4o-mini"
    uses_document = False

    def __init__(self, text="## Summary\n\nSolid results.", delay=0.0):
        self.text = text
        self.delay = delay
        self.calls = 0

    async def summarize(self, params):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.text


def make_orchestrator(vault, settings, notices, session, provider):
    def factory(env_path, session=None):
        return ProviderEnabled(provider, "openai", provider.model)

    return Orchestrator(vault, settings, session=session, notify=notices, provider_factory=factory)


def block_ends(lines):
    return [line for line in lines if "block=END" in line]


def test_full_run_adds_one_summary_block(vault, settings, notices, note_path):
    provider = FakeChatProvider()
    orchestrator = make_orchestrator(vault, settings, notices, arxiv_session(), provider)

    outcome = asyncio.run(orchestrator.run(note_path))

    assert outcome is RunOutcome.SUCCESS
    text = vault.read_text(TITLED_NOTE)
    assert text.count(SUMMARY_START_MARKER) == 1
    assert text.endswith(build_summary_block(provider.text))
    assert vault.is_file(f"papers/Attention Is_ All You Need_/{ARXIV_ID}.html")
    assert vault.is_file(f"papers/Attention Is_ All You Need_/{ARXIV_ID}.pdf")

    lines = read_log(vault)
    ends = block_ends(lines)
    assert len(ends) == 3
    assert all("result=OK" in line for line in ends)
    components = [re.search(r"component=(\w+)", line).group(1) for line in lines if "block=START" in line]
    assert components == ["title_extractor", "paper_fetcher", "summary_generator"]
    assert "Fetching arXiv..." in notices.texts()


def test_both_formats_404_stops_before_provider(vault, settings, notices, note_path):
    provider = FakeChatProvider()
    orchestrator = make_orchestrator(vault, settings, notices, arxiv_session(404, 404), provider)

    outcome = asyncio.run(orchestrator.run(note_path))

    assert outcome is RunOutcome.FAILED
    assert provider.calls == 0
    assert SUMMARY_START_MARKER not in vault.read_text(TITLED_NOTE)
    ends = block_ends(read_log(vault))
    assert len(ends) == 2
    assert "result=OK" in ends[0]
    assert "result=NG reason=FETCH_BOTH_FAILED" in ends[1]
    assert ("error", "Failed to fetch arXiv content.") in notices.messages


def test_second_run_while_busy_is_rejected(vault, settings, notices, note_path):
    session = arxiv_session()
    provider = FakeChatProvider(delay=0.2)
    orchestrator = make_orchestrator(vault, settings, notices, session, provider)

    async def scenario():
        first = asyncio.create_task(orchestrator.run(note_path))
        # Wait until the first run is parked inside the provider call.
        while provider.calls == 0:
            await asyncio.sleep(0.001)
        assert orchestrator.is_busy
        calls_before = len(session.calls)
        lines_before = len(read_log(vault))
        second = await orchestrator.run(note_path)
        assert len(session.calls) == calls_before
        assert len(read_log(vault)) == lines_before
        return await first, second

    first, second = asyncio.run(scenario())

    assert first is RunOutcome.SUCCESS
    assert second is RunOutcome.BUSY
    assert ("warn", "Already running") in notices.messages
    assert provider.calls == 1


def test_independent_instances_do_not_share_busy_flag(vault, settings, notices):
    a = Orchestrator(vault, settings, notify=notices)
    b = Orchestrator(vault, settings, notify=notices)
    assert a._lock is not b._lock


def test_summary_disabled_is_a_skip(vault, settings, notices, note_path):
    settings.summary_enabled = False
    provider = FakeChatProvider()
    orchestrator = make_orchestrator(vault, settings, notices, arxiv_session(), provider)

    outcome = asyncio.run(orchestrator.run(note_path))

    assert outcome is RunOutcome.SKIPPED
    assert provider.calls == 0
    ends = block_ends(read_log(vault))
    assert len(ends) == 3
    assert "result=OK reason=SUMMARY_DISABLED_SKIP" in ends[2]


def test_missing_log_dir_does_nothing(vault, settings, notices, note_path):
    settings.log_dir = "  "
    session = arxiv_session()
    orchestrator = make_orchestrator(vault, settings, notices, session, FakeChatProvider())

    assert asyncio.run(orchestrator.run(note_path)) is RunOutcome.FAILED
    assert session.calls == []
    assert notices.messages == [("error", "logDir is required (settings: log_dir)")]


def test_note_without_url_fails_with_diagnostic_line(vault, settings, notices):
    vault.write_text("empty.md", "# nothing\n")
    session = arxiv_session()
    orchestrator = make_orchestrator(vault, settings, notices, session, FakeChatProvider())

    assert asyncio.run(orchestrator.run("empty.md")) is RunOutcome.FAILED
    assert session.calls == []
    lines = read_log(vault)
    assert len(lines) == 1
    assert "component=orchestrator result=NG" in lines[0]
    assert "errorCode=URL_01_NOT_FOUND" in lines[0]


def test_explicit_url_overrides_note(vault, settings, notices):
    vault.write_text("2301.00001.md", "# from template\n")
    orchestrator = make_orchestrator(vault, settings, notices, arxiv_session(), FakeChatProvider())

    outcome = asyncio.run(orchestrator.run("2301.00001.md", url=f"https://arxiv.org/abs/{ARXIV_ID}"))

    assert outcome is RunOutcome.SUCCESS
    assert vault.is_file("Attention Is_ All You Need_.md")
