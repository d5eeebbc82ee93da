from unittest.mock import AsyncMock, MagicMock

import pytest

from lecture_rag.errors import NotesGenerationError
from lecture_rag.llms.base import LLMResponse, Role, Usage
from lecture_rag.notes import LectureSummarizer, NotesConfig
from lecture_rag.observability import names
from lecture_rag.themes.extractor import TRUNCATION_MARKER

NOTES = "### Limits\n\n- $\\lim_{x \\to 0} \\frac{\\sin x}{x} = 1$"


def _response(content: str | None) -> LLMResponse:
    return LLMResponse(
        content=content,
        finish_reason="stop",
        usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        latency_ms=12.0,
    )


@pytest.fixture
def llm() -> MagicMock:
    client = MagicMock()
    client.complete = AsyncMock(return_value=_response(f"  {NOTES}\n"))
    return client


class TestLectureSummarizer:
    @pytest.mark.asyncio
    async def test_generate_notes(self, llm: MagicMock) -> None:
        summarizer = LectureSummarizer(llm)

        notes = await summarizer.generate_notes("sin x over x tends to one", title="Limits")

        assert notes == NOTES
        kwargs = llm.complete.call_args.kwargs
        (message,) = kwargs["messages"]
        assert message.role == Role.USER
        assert 'lecture "Limits"' in message.content
        assert "sin x over x tends to one" in message.content
        assert "$$ ... $$ for block equations" in message.content
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 8192

    @pytest.mark.asyncio
    async def test_untitled_lecture(self, llm: MagicMock) -> None:
        await LectureSummarizer(llm).generate_notes("text")

        assert 'lecture "Untitled lecture"' in llm.complete.call_args.kwargs["messages"][0].content

    @pytest.mark.asyncio
    async def test_long_transcript_is_truncated(self, llm: MagicMock) -> None:
        summarizer = LectureSummarizer(llm, config=NotesConfig(max_transcript_chars=1000))

        await summarizer.generate_notes("h" * 3000 + "t" * 3000)

        prompt = llm.complete.call_args.kwargs["messages"][0].content
        assert TRUNCATION_MARKER in prompt
        assert "h" * 3000 not in prompt

    @pytest.mark.asyncio
    async def test_blank_transcript_is_rejected(self, llm: MagicMock) -> None:
        with pytest.raises(NotesGenerationError, match="no transcript"):
            await LectureSummarizer(llm).generate_notes("  \n ")

        llm.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "   "])
    async def test_empty_reply_raises(self, llm: MagicMock, content: str | None) -> None:
        llm.complete.return_value = _response(content)

        with pytest.raises(NotesGenerationError, match="empty notes"):
            await LectureSummarizer(llm).generate_notes("text")

    @pytest.mark.asyncio
    async def test_llm_errors_propagate_and_are_timed(self, llm: MagicMock) -> None:
        llm.complete.side_effect = RuntimeError("timeout")
        hook = MagicMock()

        with pytest.raises(RuntimeError, match="timeout"):
            await LectureSummarizer(llm, metrics_hook=hook).generate_notes("text")

        assert hook.record_latency.call_args.args[0] == names.NOTES_DURATION
