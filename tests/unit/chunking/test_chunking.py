from unittest.mock import MagicMock

import pytest

from lecture_rag.chunking import TextChunk, chunk_by_sentences, chunk_semantically, chunk_text
from lecture_rag.observability import names


def _words(n: int, prefix: str = "w") -> str:
    return " ".join(f"{prefix}{i}" for i in range(n))


class TestChunkText:
    def test_single_chunk_when_text_fits(self) -> None:
        """Text smaller than chunk_size produces one chunk."""
        result = chunk_text("one two three", chunk_size=10, overlap=0)

        assert len(result) == 1
        assert result[0].text == "one two three"
        assert result[0].token_start == 0
        assert result[0].token_end == 2

    def test_multiple_chunks_with_no_overlap(self) -> None:
        """Words are split into consecutive windows."""
        result = chunk_text(_words(10), chunk_size=4, overlap=0)

        assert [c.text for c in result] == [
            "w0 w1 w2 w3",
            "w4 w5 w6 w7",
            "w8 w9",
        ]
        assert [(c.token_start, c.token_end) for c in result] == [(0, 3), (4, 7), (8, 9)]
        assert [c.index for c in result] == [0, 1, 2]

    def test_overlap_creates_overlapping_chunks(self) -> None:
        """Neighbouring windows share ``overlap`` words."""
        result = chunk_text(_words(8), chunk_size=4, overlap=2)

        assert [c.text for c in result] == ["w0 w1 w2 w3", "w2 w3 w4 w5", "w4 w5 w6 w7"]

    def test_empty_text_yields_no_chunks(self) -> None:
        assert chunk_text("   ", chunk_size=4, overlap=0) == []

    def test_records_metrics(self) -> None:
        hook = MagicMock()

        chunk_text(_words(10), chunk_size=4, overlap=0, metrics_hook=hook)

        hook.record_latency.assert_called_once()
        assert hook.record_latency.call_args[0][0] == names.CHUNKING_DURATION
        hook.increment.assert_called_once_with(names.CHUNKING_CHUNKS_CREATED, 3)


class TestChunkTextValidation:
    def test_raises_on_zero_chunk_size(self) -> None:
        with pytest.raises(ValueError, match="chunk_size must be > 0"):
            chunk_text("text", chunk_size=0, overlap=0)

    def test_raises_on_negative_overlap(self) -> None:
        with pytest.raises(ValueError, match="overlap must be >= 0"):
            chunk_text("text", chunk_size=5, overlap=-1)

    def test_raises_when_overlap_equals_chunk_size(self) -> None:
        with pytest.raises(ValueError, match="overlap must be < chunk_size"):
            chunk_text("text", chunk_size=5, overlap=5)


class TestChunkSemantically:
    def test_blank_text_yields_no_chunks(self) -> None:
        assert chunk_semantically(" \n\n  ", target_chunk_size=10) == []

    def test_raises_on_non_positive_target(self) -> None:
        with pytest.raises(ValueError, match="target_chunk_size must be > 0"):
            chunk_semantically("text", target_chunk_size=0)

    def test_packs_paragraphs_up_to_target(self) -> None:
        """Paragraphs are grouped while they fit and never split."""
        text = "\n".join([_words(3, "a"), _words(3, "b"), _words(3, "c")])

        result = chunk_semantically(text, target_chunk_size=6)

        assert [c.text for c in result] == [
            "a0 a1 a2\n\nb0 b1 b2",
            "c0 c1 c2",
        ]
        assert [(c.token_start, c.token_end) for c in result] == [(0, 5), (6, 8)]

    def test_blank_lines_are_ignored(self) -> None:
        result = chunk_semantically("one two\n\n\nthree four\n", target_chunk_size=10)

        assert len(result) == 1
        assert result[0].text == "one two\n\nthree four"

    def test_oversized_paragraph_splits_on_sentences(self) -> None:
        """A paragraph over the target is cut at sentence boundaries."""
        paragraph = "One two three. Four five six! Seven eight nine?"
        text = "intro words\n" + paragraph

        result = chunk_semantically(text, target_chunk_size=4)

        assert [c.text for c in result] == [
            "intro words",
            "One two three.",
            "Four five six!",
            "Seven eight nine?",
        ]
        assert [c.index for c in result] == [0, 1, 2, 3]
        assert [(c.token_start, c.token_end) for c in result] == [
            (0, 1),
            (2, 4),
            (5, 7),
            (8, 10),
        ]

    def test_long_sentence_becomes_one_oversized_chunk(self) -> None:
        """Words are never split even when a sentence exceeds the target."""
        result = chunk_semantically(_words(12) + ".", target_chunk_size=5)

        assert len(result) == 1
        assert result[0].word_count == 12
        assert (result[0].token_start, result[0].token_end) == (0, 11)

    def test_concatenation_preserves_every_word(self) -> None:
        """Joining the chunks gives back the same words in order."""
        paragraphs = [
            _words(40, "p"),
            "Short paragraph here.",
            "First sentence of a long one. " * 20,
            _words(7, "q"),
        ]
        text = "\n\n".join(paragraphs)

        result = chunk_semantically(text, target_chunk_size=25)

        rebuilt = " ".join(c.text for c in result).split()
        assert rebuilt == text.split()


class TestChunkBySentences:
    def test_offsets_are_relative_to_input(self) -> None:
        result = chunk_by_sentences("A b. C d. E f.", target_chunk_size=4)

        assert [c.text for c in result] == ["A b. C d.", "E f."]
        assert [(c.token_start, c.token_end) for c in result] == [(0, 3), (4, 5)]


class TestTextChunk:
    def test_chunk_is_frozen(self) -> None:
        """TextChunk instances are immutable."""
        chunk = TextChunk(text="text", index=0, token_start=0, token_end=0)

        with pytest.raises(AttributeError):
            chunk.text = "modified"  # type: ignore

    def test_word_count(self) -> None:
        chunk = TextChunk(text="a  b\nc", index=0, token_start=0, token_end=2)

        assert chunk.word_count == 3
