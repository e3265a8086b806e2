"""Tests for the summary step."""

import asyncio

import pytest

from conftest import ARXIV_ID, PAPER_HTML, read_log
from paper_extractor.errors import ConfigError, ProviderError, SummaryError
from paper_extractor.llm.create_provider import ProviderDisabled, ProviderEnabled
from paper_extractor.note import SUMMARY_START_MARKER, build_summary_block
from paper_extractor.settings import Settings
from paper_extractor.summary_generator import (
    USER_CONTENT_PREFIX,
    extract_paper_text,
    generate_summary,
    waiting_notices,
)


class FakeProvider:
    def __init__(self, text="## Summary\n\nGreat paper.", uses_document=False, error=None, delay=0.0):
        self.name = "fake"
        self.model = "fake-model"
        self.uses_document = uses_document
        self.text = text
        self.error = error
        self.delay = delay
        self.params = []

    async def summarize(self, params):
        self.params.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


def factory_for(provider):
    def factory(env_path, session=None):
        return ProviderEnabled(provider, "fake", provider.model)
    return factory


@pytest.fixture
def fetched_note(vault):
    vault.write_text("papers/Paper.md", "# Paper\n")
    vault.write_text(f"papers/Paper/{ARXIV_ID}.html", PAPER_HTML)
    return "papers/Paper.md"


def run_step(vault, note, settings, notices, factory, **kwargs):
    return asyncio.run(generate_summary(
        vault, "logs", note, ARXIV_ID, settings, notify=notices, provider_factory=factory, **kwargs,
    ))


class TestGenerateSummary:
    def test_chat_provider_gets_paper_text_and_note_gains_block(self, vault, settings, notices, fetched_note):
        provider = FakeProvider()

        outcome = run_step(vault, fetched_note, settings, notices, factory_for(provider))

        assert outcome.generated
        params = provider.params[0]
        assert params.system_prompt == "You are a careful reviewer of ML papers."
        assert params.user_content.startswith(USER_CONTENT_PREFIX)
        assert "attention" in params.user_content
        assert params.pdf_url is None
        assert vault.read_text(fetched_note) == "# Paper\n\n" + build_summary_block(provider.text)
        end = read_log(vault)[1]
        assert "result=OK provider=fake model=fake-model" in end
        assert f"htmlPath=papers/Paper/{ARXIV_ID}.html promptPath=prompts/summary.md summaryChars={len(provider.text)}" in end
        assert notices.texts()[:4] == [
            "(1/4) loading prompt",
            "(2/4) preparing paper content",
            "(3/4) requesting AI",
            "AI response waiting... (Do not delete/move the note until completion)",
        ]
        assert "(4/4) writing note" in notices.texts()

    def test_document_provider_gets_pdf_url(self, vault, settings, notices):
        vault.write_text("Paper.md", "# Paper\n")
        provider = FakeProvider(uses_document=True)

        run_step(vault, "Paper.md", settings, notices, factory_for(provider))

        assert provider.params[0].pdf_url == f"https://arxiv.org/pdf/{ARXIV_ID}"
        assert provider.params[0].user_content == ""

    def test_rerun_replaces_block(self, vault, settings, notices, fetched_note):
        run_step(vault, fetched_note, settings, notices, factory_for(FakeProvider(text="first")))
        run_step(vault, fetched_note, settings, notices, factory_for(FakeProvider(text="second")))

        text = vault.read_text(fetched_note)
        assert text.count(SUMMARY_START_MARKER) == 1
        assert "first" not in text and "second" in text

    def test_disabled_flag_skips_without_provider(self, vault, settings, notices, fetched_note):
        settings.summary_enabled = False

        def factory(env_path, session=None):
            raise AssertionError("provider must not be resolved")

        outcome = run_step(vault, fetched_note, settings, notices, factory)

        assert outcome.skip_reason == "SUMMARY_DISABLED_SKIP"
        assert "result=OK reason=SUMMARY_DISABLED_SKIP" in read_log(vault)[1]

    def test_disabled_provider_is_soft_skip(self, vault, settings, notices, fetched_note):
        outcome = run_step(vault, fetched_note, settings, notices, lambda env_path, session=None: ProviderDisabled("ENV_PATH_MISSING"))

        assert not outcome.generated
        assert outcome.skip_reason == "ENV_PATH_MISSING"
        assert "result=OK reason=ENV_PATH_MISSING" in read_log(vault)[1]
        assert vault.read_text(fetched_note) == "# Paper\n"

    def test_real_resolver_with_blank_env_path(self, vault, settings, notices, fetched_note):
        outcome = asyncio.run(generate_summary(vault, "logs", fetched_note, ARXIV_ID, settings, notify=notices))
        assert outcome.skip_reason == "ENV_PATH_MISSING"

    def test_default_settings_skip_on_missing_env_path(self, vault, notices, fetched_note):
        outcome = asyncio.run(generate_summary(vault, "logs", fetched_note, ARXIV_ID, Settings(log_dir="logs"), notify=notices))

        assert outcome.skip_reason == "ENV_PATH_MISSING"
        assert "result=OK reason=ENV_PATH_MISSING" in read_log(vault)[1]
        assert vault.read_text(fetched_note) == "# Paper\n"

    def test_document_provider_without_prompt_path_gets_blank_prompt(self, vault, notices):
        vault.write_text("Paper.md", "# Paper\n")
        provider = FakeProvider(uses_document=True)

        outcome = run_step(vault, "Paper.md", Settings(log_dir="logs"), notices, factory_for(provider))

        assert outcome.generated
        assert provider.params[0].system_prompt == ""

    def test_config_error_is_ng(self, vault, settings, notices, fetched_note, env_file):
        settings.env_path = env_file(LLM_PROVIDER="openai", OPENAI_MODEL="gpt-4o-mini")

        with pytest.raises(ConfigError):
            asyncio.run(generate_summary(vault, "logs", fetched_note, ARXIV_ID, settings, notify=notices))

        assert "result=NG reason=OPENAI_API_KEY_MISSING" in read_log(vault)[1]

    @pytest.mark.parametrize("prompt_path,code", [
        ("", "PROMPT_PATH_MISSING"),
        ("/etc/passwd", "PROMPT_PATH_INVALID"),
        ("~/prompt.md", "PROMPT_PATH_INVALID"),
        ("prompts/missing.md", "PROMPT_READ_FAILED"),
    ])
    def test_prompt_errors(self, vault, settings, notices, fetched_note, prompt_path, code):
        settings.system_prompt_path = prompt_path
        with pytest.raises(SummaryError) as exc:
            run_step(vault, fetched_note, settings, notices, factory_for(FakeProvider()))
        assert exc.value.code == code

    def test_html_missing(self, vault, settings, notices):
        vault.write_text("Other.md", "# Other\n")
        with pytest.raises(SummaryError) as exc:
            run_step(vault, "Other.md", settings, notices, factory_for(FakeProvider()))
        assert exc.value.code == "HTML_MISSING"

    def test_provider_failure_leaves_note_untouched(self, vault, settings, notices, fetched_note):
        provider = FakeProvider(error=ProviderError("fake", "request", "status=500"))

        with pytest.raises(ProviderError):
            run_step(vault, fetched_note, settings, notices, factory_for(provider))

        assert vault.read_text(fetched_note) == "# Paper\n"
        assert "result=NG reason=FAKE_REQUEST_FAILED" in read_log(vault)[1]

    def test_note_deleted_while_waiting(self, vault, settings, notices, fetched_note):
        class DeletingProvider(FakeProvider):
            async def summarize(self, params):
                vault.full_path(fetched_note).unlink()
                return "text"

        with pytest.raises(SummaryError) as exc:
            run_step(vault, fetched_note, settings, notices, factory_for(DeletingProvider()))
        assert exc.value.code == "NOTE_MOVED_OR_DELETED"
        assert not vault.exists(fetched_note)


class TestWaitingNotices:
    def test_ticks_while_waiting_and_stops_after(self, notices):
        async def scenario():
            async with waiting_notices(notices, interval=0.01):
                await asyncio.sleep(0.055)
            count = len(notices.messages)
            await asyncio.sleep(0.03)
            return count

        count = asyncio.run(scenario())
        assert count >= 2
        assert len(notices.messages) == count

    def test_notifier_failure_does_not_reach_caller(self):
        def broken(message, level="info"):
            raise RuntimeError("display gone")

        async def scenario():
            async with waiting_notices(broken, interval=0.01):
                await asyncio.sleep(0.03)
            return "finished"

        assert asyncio.run(scenario()) == "finished"

    def test_cancelled_on_exception(self, notices):
        async def scenario():
            with pytest.raises(ValueError):
                async with waiting_notices(notices, interval=0.01):
                    raise ValueError("provider blew up")
            remaining = [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]
            return remaining

        assert asyncio.run(scenario()) == []


    def test_caller_cancelled_during_cleanup_stays_cancelled(self, notices):
        async def scenario():
            leaving = asyncio.Event()

            async def caller():
                async with waiting_notices(notices, interval=10):
                    leaving.set()
                return "finished"

            task = asyncio.create_task(caller())
            await leaving.wait()
            # The caller is now parked in the block's cleanup.
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            return task.cancelled()

        assert asyncio.run(scenario()) is True


def test_extract_paper_text_falls_back_to_raw_html():
    assert extract_paper_text("<p></p>") == "<p></p>"
