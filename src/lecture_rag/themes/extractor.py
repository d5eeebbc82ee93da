# src/lecture_rag/themes/extractor.py

import logging
from collections.abc import Sequence
from time import monotonic

from lecture_rag.errors import ThemeParseError
from lecture_rag.llms.base import LLMClient, Message, Role
from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook
from lecture_rag.prompts import PromptsLibrary
from lecture_rag.storage.base import TopicSource

from .config import ExtractionConfig
from .models import ExtractedTheme
from .parsing import parse_themes

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[... transcript truncated for performance ...]\n\n"

FULL_PROMPT = ("theme_extraction", "1.0")
CHUNK_PROMPT = ("chunk_theme_extraction", "1.0")


def truncate_transcript(
    transcript: str,
    max_chars: int,
    *,
    min_chars: int = 500,
    head_ratio: float = 0.65,
    min_head_tail_chars: int = 200,
) -> str:
    """Keep the head and the tail of an over-long transcript.

    The middle is replaced by a marker so the model sees both how the
    lecture opens and how it ends.
    """
    effective_max = max(max_chars, min_chars)
    if len(transcript) <= effective_max:
        return transcript

    head_size = max(int(effective_max * head_ratio), min_head_tail_chars)
    tail_size = max(effective_max - head_size, min_head_tail_chars)
    head = transcript[:head_size]
    tail = transcript[-tail_size:]
    return head.rstrip() + TRUNCATION_MARKER + tail.lstrip()


def build_topics_context(
    topics: Sequence[str], max_topics: int, fallback_topics: Sequence[str]
) -> str:
    if not topics:
        return "Common math topics: " + ", ".join(fallback_topics)

    subset = list(topics[: max(max_topics, 0)])
    lines = [f"Available math topics in our database (showing {len(subset)} of {len(topics)}):"]
    lines.extend(f"- {topic}" for topic in subset)
    omitted = len(topics) - len(subset)
    if omitted > 0:
        lines.append(
            f"({omitted} more topics omitted from the prompt. "
            "If none of the listed topics match well, set mappedTopic to null.)"
        )
    return "\n".join(lines)


class ThemeExtractor:
    """Asks the LLM for the themes of a transcript or of one chunk.

    The known-topics fragment of the prompt is computed once and reused
    until :meth:`clear_topics_cache` is called, which the pipeline does at
    the end of every lecture run.

    What happens to unusable model output depends on
    ``config.failure_policy``: ``"strict"`` raises :class:`ThemeParseError`,
    ``"best_effort"`` logs and returns no themes.
    """

    def __init__(
        self,
        llm: LLMClient,
        topics: TopicSource,
        *,
        prompts: PromptsLibrary | None = None,
        config: ExtractionConfig = ExtractionConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._llm = llm
        self._topics = topics
        self._prompts = prompts or PromptsLibrary()
        self._config = config
        self.metrics_hook = metrics_hook
        self._topics_context: str | None = None

    def clear_topics_cache(self) -> None:
        self._topics_context = None

    async def extract_themes(
        self, transcript: str, max_themes: int | None = None
    ) -> list[ExtractedTheme]:
        """One LLM call over the whole (possibly truncated) transcript."""
        if max_themes is None:
            max_themes = self._config.max_themes
        logger.info("Extracting themes from transcript of %d chars", len(transcript))
        prompt = self._prompts.get(*FULL_PROMPT).render(
            topics_context=await self._get_topics_context(),
            max_themes=max_themes,
            transcript=self._truncate(transcript),
        )
        return await self._run(prompt, max_themes, scope="transcript")

    async def extract_themes_from_chunk(
        self,
        chunk_text: str,
        max_themes_per_chunk: int | None = None,
        *,
        chunk_index: int = 0,
    ) -> list[ExtractedTheme]:
        max_themes = (
            self._config.max_themes_per_chunk
            if max_themes_per_chunk is None
            else max_themes_per_chunk
        )
        prompt = self._prompts.get(*CHUNK_PROMPT).render(
            topics_context=await self._get_topics_context(),
            max_themes=max_themes,
            chunk_index=chunk_index,
            transcript=self._truncate(chunk_text),
        )
        return await self._run(prompt, max_themes, scope=f"chunk {chunk_index}")

    async def _get_topics_context(self) -> str:
        if self._topics_context is None:
            topics = await self._topics.find_all_topics()
            self._topics_context = build_topics_context(
                topics, self._config.max_topics_in_prompt, self._config.fallback_topics
            )
            logger.debug("Built topics prompt fragment from %d topics", len(topics))
        return self._topics_context

    def _truncate(self, text: str) -> str:
        return truncate_transcript(
            text,
            self._config.max_transcript_chars,
            min_chars=self._config.min_transcript_chars,
            head_ratio=self._config.head_ratio,
            min_head_tail_chars=self._config.min_head_tail_chars,
        )

    async def _run(self, prompt: str, max_themes: int, *, scope: str) -> list[ExtractedTheme]:
        start = monotonic()
        response = await self._llm.complete(
            messages=[Message(role=Role.USER, content=prompt)],
            temperature=self._config.temperature,
        )
        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.EXTRACTION_DURATION, elapsed_ms)

        try:
            themes = parse_themes(response.content, max_themes=max_themes)
        except ThemeParseError as exc:
            self.metrics_hook.increment(names.EXTRACTION_PARSE_FAILURES_TOTAL)
            logger.debug("Raw response for %s: %r", scope, exc.raw)
            if self._config.failure_policy == "best_effort":
                logger.warning("Theme extraction for %s yielded no themes: %s", scope, exc)
                return []
            raise

        self.metrics_hook.increment(names.EXTRACTION_THEMES_TOTAL, len(themes))
        logger.debug("Extracted %d themes from %s in %.0f ms", len(themes), scope, elapsed_ms)
        return themes
