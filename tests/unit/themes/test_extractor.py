from unittest.mock import AsyncMock, MagicMock

import pytest

from lecture_rag.errors import ThemeParseError
from lecture_rag.llms.base import LLMResponse, Role, Usage
from lecture_rag.observability import names
from lecture_rag.themes import (
    ExtractionConfig,
    ThemeExtractor,
    build_topics_context,
    truncate_transcript,
)
from lecture_rag.themes.extractor import TRUNCATION_MARKER


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
    client.complete = AsyncMock(
        return_value=_response(
            '[{"name": "Vectors", "confidence": 0.9, "keywords": ["dot"]},'
            ' {"name": "Angles", "confidence": 0.6}]'
        )
    )
    return client


@pytest.fixture
def topics() -> MagicMock:
    source = MagicMock()
    source.find_all_topics = AsyncMock(return_value=["Geometry -> Vectors", "Linear Algebra"])
    return source


class TestTruncateTranscript:
    def test_short_text_is_unchanged(self) -> None:
        assert truncate_transcript("short", 1000) == "short"

    def test_keeps_head_and_tail(self) -> None:
        text = "a" * 1500 + "b" * 500

        result = truncate_transcript(text, 1000)

        assert result == "a" * 650 + TRUNCATION_MARKER + "b" * 350

    def test_limit_below_minimum_is_raised(self) -> None:
        """max_chars under 500 behaves as 500."""
        text = "x" * 450

        assert truncate_transcript(text, 100) == text


class TestBuildTopicsContext:
    def test_fallback_when_no_topics(self) -> None:
        result = build_topics_context([], 10, ("Algebra", "Geometry"))

        assert result == "Common math topics: Algebra, Geometry"

    def test_lists_topics_and_notes_omissions(self) -> None:
        result = build_topics_context(["A", "B", "C"], 2, ())

        lines = result.splitlines()
        assert lines[0] == "Available math topics in our database (showing 2 of 3):"
        assert lines[1:3] == ["- A", "- B"]
        assert lines[3].startswith("(1 more topics omitted")

    def test_no_omission_note_when_all_fit(self) -> None:
        result = build_topics_context(["A"], 5, ())

        assert "omitted" not in result


class TestThemeExtractor:
    @pytest.mark.asyncio
    async def test_extract_themes(self, llm: MagicMock, topics: MagicMock) -> None:
        extractor = ThemeExtractor(llm, topics)

        themes = await extractor.extract_themes("We measure the angle between two vectors.")

        assert [t.name for t in themes] == ["Vectors", "Angles"]
        messages = llm.complete.call_args.kwargs["messages"]
        assert len(messages) == 1
        assert messages[0].role == Role.USER
        assert "- Geometry -> Vectors" in messages[0].content
        assert "angle between two vectors" in messages[0].content
        assert "Return at most 8 themes" in messages[0].content
        assert llm.complete.call_args.kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_max_themes_limits_result(self, llm: MagicMock, topics: MagicMock) -> None:
        extractor = ThemeExtractor(llm, topics)

        themes = await extractor.extract_themes("text", max_themes=1)

        assert [t.name for t in themes] == ["Vectors"]

    @pytest.mark.asyncio
    async def test_explicit_zero_max_themes_is_kept(self, llm: MagicMock, topics: MagicMock) -> None:
        extractor = ThemeExtractor(llm, topics)

        full = await extractor.extract_themes("text", max_themes=0)
        full_prompt = llm.complete.call_args.kwargs["messages"][0].content
        chunk = await extractor.extract_themes_from_chunk("chunk body", 0)
        chunk_prompt = llm.complete.call_args.kwargs["messages"][0].content

        assert full == []
        assert chunk == []
        assert "Return at most 0 themes" in full_prompt
        assert "Return at most 0 themes" in chunk_prompt

    @pytest.mark.asyncio
    async def test_chunk_prompt_includes_index(self, llm: MagicMock, topics: MagicMock) -> None:
        extractor = ThemeExtractor(llm, topics)

        await extractor.extract_themes_from_chunk("chunk body", 3, chunk_index=4)

        prompt = llm.complete.call_args.kwargs["messages"][0].content
        assert "segment #4" in prompt
        assert "Return at most 3 themes" in prompt
        assert "chunk body" in prompt

    @pytest.mark.asyncio
    async def test_topics_are_loaded_once_until_cleared(
        self, llm: MagicMock, topics: MagicMock
    ) -> None:
        extractor = ThemeExtractor(llm, topics)

        await extractor.extract_themes_from_chunk("one")
        await extractor.extract_themes_from_chunk("two")
        assert topics.find_all_topics.await_count == 1

        extractor.clear_topics_cache()
        await extractor.extract_themes("three")
        assert topics.find_all_topics.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_catalog_uses_fallback_topics(self, llm: MagicMock) -> None:
        source = MagicMock()
        source.find_all_topics = AsyncMock(return_value=[])
        extractor = ThemeExtractor(llm, source)

        await extractor.extract_themes("text")

        prompt = llm.complete.call_args.kwargs["messages"][0].content
        assert "Common math topics: Algebra, Geometry" in prompt

    @pytest.mark.asyncio
    async def test_strict_policy_raises_on_bad_output(
        self, llm: MagicMock, topics: MagicMock
    ) -> None:
        llm.complete.return_value = _response("I could not find any themes.")
        hook = MagicMock()
        extractor = ThemeExtractor(llm, topics, metrics_hook=hook)

        with pytest.raises(ThemeParseError, match="not valid JSON"):
            await extractor.extract_themes("text")

        hook.increment.assert_called_once_with(names.EXTRACTION_PARSE_FAILURES_TOTAL)

    @pytest.mark.asyncio
    async def test_best_effort_policy_returns_no_themes(
        self, llm: MagicMock, topics: MagicMock
    ) -> None:
        llm.complete.return_value = _response(None)
        extractor = ThemeExtractor(
            llm, topics, config=ExtractionConfig(failure_policy="best_effort")
        )

        assert await extractor.extract_themes_from_chunk("text") == []

    @pytest.mark.asyncio
    async def test_long_transcript_is_truncated(self, llm: MagicMock, topics: MagicMock) -> None:
        extractor = ThemeExtractor(llm, topics, config=ExtractionConfig(max_transcript_chars=600))

        await extractor.extract_themes("x" * 5000)

        prompt = llm.complete.call_args.kwargs["messages"][0].content
        assert TRUNCATION_MARKER.strip() in prompt
        assert "x" * 1000 not in prompt

    @pytest.mark.asyncio
    async def test_llm_errors_propagate(self, llm: MagicMock, topics: MagicMock) -> None:
        llm.complete.side_effect = RuntimeError("provider down")
        extractor = ThemeExtractor(llm, topics)

        with pytest.raises(RuntimeError, match="provider down"):
            await extractor.extract_themes("text")
