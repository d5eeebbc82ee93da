import pytest

from lecture_rag.tuning import TuningConfig, TuningRequest, round_half_up, tune


def _transcript(words: int) -> str:
    return " ".join(["word"] * words)


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(0.5, 1), (1.5, 2), (2.5, 3), (2.49, 2), (0.28, 0)],
    )
    def test_halves_round_up(self, value: float, expected: int) -> None:
        assert round_half_up(value) == expected


class TestShortTranscripts:
    def test_short_transcript_disables_chunk_level(self) -> None:
        """1000 words is below the 1200-word threshold."""
        settings = tune(_transcript(1000))

        assert settings.chunk_level_enabled is False
        assert settings.chunk_size_words == 2000
        assert settings.max_themes_per_chunk == 3
        assert settings.min_chunk_occurrences == 2
        assert settings.min_occurrence_ratio == pytest.approx(0.20)

    def test_short_transcript_caps_final_themes(self) -> None:
        """The long-lecture theme cap is still bounded by six."""
        settings = tune(
            _transcript(500), TuningRequest(granularity_level=10, lecture_minutes=400)
        )

        assert settings.max_final_themes == 6

    def test_empty_transcript(self) -> None:
        settings = tune("")

        assert settings.chunk_level_enabled is False
        assert settings.max_final_themes == 2


class TestGranularity:
    def test_coarse_uses_larger_chunks_than_fine(self) -> None:
        """Same 6000-word lecture, granularity 1 vs 10."""
        coarse = tune(_transcript(6000), TuningRequest(granularity_level=1))
        fine = tune(_transcript(6000), TuningRequest(granularity_level=10))

        assert coarse.chunk_level_enabled and fine.chunk_level_enabled
        assert coarse.chunk_size_words == 2000
        assert fine.chunk_size_words == 600
        assert coarse.chunk_size_words > fine.chunk_size_words

    def test_endpoint_values_for_6000_words(self) -> None:
        coarse = tune(_transcript(6000), TuningRequest(granularity_level=1))
        fine = tune(_transcript(6000), TuningRequest(granularity_level=10))

        assert (coarse.max_themes_per_chunk, fine.max_themes_per_chunk) == (2, 4)
        assert (coarse.min_chunk_occurrences, fine.min_chunk_occurrences) == (4, 2)
        assert coarse.min_occurrence_ratio == pytest.approx(0.26)
        assert fine.min_occurrence_ratio == pytest.approx(0.14)
        assert (coarse.max_final_themes, fine.max_final_themes) == (2, 4)

    def test_chunk_size_never_increases_with_granularity(self) -> None:
        transcript = _transcript(9000)
        sizes = [
            tune(transcript, TuningRequest(granularity_level=level)).chunk_size_words
            for level in range(1, 11)
        ]

        assert sizes == sorted(sizes, reverse=True)

    @pytest.mark.parametrize("words", [3000, 6000, 20000])
    def test_themes_per_chunk_never_decreases_with_granularity(self, words: int) -> None:
        transcript = _transcript(words)
        settings = [
            tune(transcript, TuningRequest(granularity_level=level)) for level in range(1, 11)
        ]
        per_chunk = [s.max_themes_per_chunk for s in settings]
        occurrences = [s.min_chunk_occurrences for s in settings]

        assert per_chunk == sorted(per_chunk)
        assert per_chunk[0] < per_chunk[-1]
        assert occurrences == sorted(occurrences, reverse=True)

    @pytest.mark.parametrize("level", [-5, 0, 11, 99])
    def test_out_of_range_levels_are_clamped(self, level: int) -> None:
        clamped = 1 if level < 1 else 10
        transcript = _transcript(6000)

        assert tune(transcript, TuningRequest(granularity_level=level)) == tune(
            transcript, TuningRequest(granularity_level=clamped)
        )

    def test_missing_level_uses_default(self) -> None:
        transcript = _transcript(6000)

        assert tune(transcript) == tune(transcript, TuningRequest(granularity_level=5))


class TestBounds:
    @pytest.mark.parametrize("words", [1200, 3000, 20000, 200000])
    @pytest.mark.parametrize("level", [1, 4, 7, 10])
    def test_settings_stay_within_bounds(self, words: int, level: int) -> None:
        settings = tune(_transcript(words), TuningRequest(granularity_level=level))

        assert 600 <= settings.chunk_size_words <= 2500
        assert 2 <= settings.max_themes_per_chunk <= 6
        assert 2 <= settings.max_final_themes <= 12
        assert 2 <= settings.min_chunk_occurrences <= 6
        assert 0.10 <= settings.min_occurrence_ratio <= 0.35

    def test_lecture_minutes_override_word_estimate(self) -> None:
        """Longer declared duration raises the final theme cap."""
        transcript = _transcript(3000)

        estimated = tune(transcript)
        declared = tune(transcript, TuningRequest(lecture_minutes=300))

        assert estimated.max_final_themes == 2
        assert declared.max_final_themes == 12

    def test_non_positive_minutes_fall_back_to_estimate(self) -> None:
        transcript = _transcript(3000)

        assert tune(transcript, TuningRequest(lecture_minutes=0)) == tune(transcript)

    def test_custom_config(self) -> None:
        config = TuningConfig(short_transcript_words=100)

        settings = tune(_transcript(500), config=config)

        assert settings.chunk_level_enabled is True
