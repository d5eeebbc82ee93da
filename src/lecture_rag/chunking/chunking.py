# src/lecture_rag/chunking/chunking.py

import logging
import re
from dataclasses import dataclass
from time import monotonic

from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook

logger = logging.getLogger(__name__)

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass(frozen=True)
class TextChunk:
    """A slice of a transcript.

    ``token_start`` and ``token_end`` are inclusive word positions in the
    whole transcript, kept for traceability only.
    """

    text: str
    index: int
    token_start: int
    token_end: int

    @property
    def word_count(self) -> int:
        return len(self.text.split())


def chunk_text(
    text: str,
    *,
    chunk_size: int = 2000,
    overlap: int = 50,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[TextChunk]:
    """Fixed word windows of ``chunk_size`` with ``overlap`` words shared
    between neighbours."""
    started = monotonic()
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    if overlap < 0:
        raise ValueError("overlap must be >= 0")
    if overlap >= chunk_size:
        raise ValueError("overlap must be < chunk_size")

    words = text.split()
    chunks: list[TextChunk] = []
    step = chunk_size - overlap
    position = 0

    while position < len(words):
        end = min(position + chunk_size, len(words))
        chunks.append(
            TextChunk(
                text=" ".join(words[position:end]),
                index=len(chunks),
                token_start=position,
                token_end=end - 1,
            )
        )
        if end >= len(words):
            break
        position += step

    _record(metrics_hook, started, len(chunks))
    return chunks


def chunk_semantically(
    text: str,
    *,
    target_chunk_size: int = 2000,
    metrics_hook: MetricsHook = NoOpMetricsHook(),
) -> list[TextChunk]:
    """Pack paragraphs (one per line) into chunks of at most
    ``target_chunk_size`` words.

    A paragraph longer than the target is cut at sentence boundaries
    instead. A single sentence longer than the target still becomes one
    oversized chunk; words are never split.
    """
    started = monotonic()
    if target_chunk_size <= 0:
        raise ValueError("target_chunk_size must be > 0")
    if not text.strip():
        return []

    paragraphs = [line.strip() for line in text.split("\n") if line.strip()]
    chunks: list[TextChunk] = []
    buffer: list[str] = []
    buffer_words = 0
    buffer_start = 0
    words_seen = 0

    def flush() -> None:
        nonlocal buffer, buffer_words
        if buffer:
            chunks.append(
                TextChunk(
                    text="\n\n".join(buffer),
                    index=len(chunks),
                    token_start=buffer_start,
                    token_end=buffer_start + buffer_words - 1,
                )
            )
        buffer = []
        buffer_words = 0

    for paragraph in paragraphs:
        paragraph_words = len(paragraph.split())

        if paragraph_words > target_chunk_size:
            flush()
            for sub in chunk_by_sentences(paragraph, target_chunk_size=target_chunk_size):
                chunks.append(
                    TextChunk(
                        text=sub.text,
                        index=len(chunks),
                        token_start=words_seen + sub.token_start,
                        token_end=words_seen + sub.token_end,
                    )
                )
        else:
            if buffer and buffer_words + paragraph_words > target_chunk_size:
                flush()
            if not buffer:
                buffer_start = words_seen
            buffer.append(paragraph)
            buffer_words += paragraph_words

        words_seen += paragraph_words

    flush()

    logger.debug(
        "Semantic chunking: %d words -> %d chunks (target %d words)",
        words_seen,
        len(chunks),
        target_chunk_size,
    )
    _record(metrics_hook, started, len(chunks))
    return chunks


def chunk_by_sentences(text: str, *, target_chunk_size: int) -> list[TextChunk]:
    """Greedily pack sentences into chunks of at most ``target_chunk_size``
    words. Offsets are relative to ``text``."""
    sentences = [s.strip() for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]
    chunks: list[TextChunk] = []
    current: list[str] = []
    current_words = 0
    position = 0

    for sentence in sentences:
        sentence_words = len(sentence.split())
        if current and current_words + sentence_words > target_chunk_size:
            chunks.append(
                TextChunk(
                    text=" ".join(current),
                    index=len(chunks),
                    token_start=position,
                    token_end=position + current_words - 1,
                )
            )
            position += current_words
            current = []
            current_words = 0
        current.append(sentence)
        current_words += sentence_words

    if current:
        chunks.append(
            TextChunk(
                text=" ".join(current),
                index=len(chunks),
                token_start=position,
                token_end=position + current_words - 1,
            )
        )
    return chunks


def _record(metrics_hook: MetricsHook, started: float, count: int) -> None:
    elapsed_ms = 1000 * (monotonic() - started)
    metrics_hook.record_latency(names.CHUNKING_DURATION, elapsed_ms)
    metrics_hook.increment(names.CHUNKING_CHUNKS_CREATED, count)
