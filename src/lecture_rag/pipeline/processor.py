# src/lecture_rag/pipeline/processor.py

import logging
from dataclasses import dataclass, field
from time import monotonic

from lecture_rag.chunking import TextChunk, chunk_semantically
from lecture_rag.config import PipelineConfig
from lecture_rag.errors import LectureNotFoundError, LectureRagError, LectureStateError
from lecture_rag.jobs.runner import JobContext, JobRunner, StartResult
from lecture_rag.mapping.mapper import TopicMapper
from lecture_rag.notes.summarizer import LectureSummarizer
from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook
from lecture_rag.retrieval.engine import ProblemRetrievalEngine
from lecture_rag.retrieval.models import Page, PageRequest, ProblemSearchResult
from lecture_rag.storage.base import LectureRepository
from lecture_rag.storage.models import Lecture, LectureStatus, ThemeRecord
from lecture_rag.themes.aggregation import ThemeAggregator
from lecture_rag.themes.extractor import ThemeExtractor
from lecture_rag.themes.models import ExtractedTheme
from lecture_rag.tuning import TuningConfig, TuningRequest, tune

logger = logging.getLogger(__name__)

# Used for stored themes saved without a confidence.
DEFAULT_STORED_CONFIDENCE = 0.5


@dataclass(frozen=True)
class ProcessingResult:
    lecture: Lecture
    themes: list[ExtractedTheme] = field(default_factory=list)
    chunk_count: int = 0

    @property
    def status(self) -> LectureStatus:
        return self.lecture.status


def to_extracted(record: ThemeRecord) -> ExtractedTheme:
    return ExtractedTheme(
        name=record.name,
        confidence=(
            record.confidence if record.confidence is not None else DEFAULT_STORED_CONFIDENCE
        ),
        summary=record.summary or "",
        keywords=record.keywords,
        mapped_topic=record.mapped_topic,
    )


class LectureProcessor:
    """Runs a lecture transcript through tuning, chunking, extraction,
    aggregation and topic mapping, and serves problem recommendations for
    the result. With ``config.structured_notes_enabled`` and a
    ``summarizer``, Markdown study notes are generated last and saved as the
    lecture's ``structured_content``.

    A lecture moves PENDING -> PROCESSING -> COMPLETED, or FAILED with a
    message naming the stage that broke. A failed run keeps the transcript
    and any chunks already saved.
    """

    def __init__(
        self,
        lectures: LectureRepository,
        extractor: ThemeExtractor,
        aggregator: ThemeAggregator,
        mapper: TopicMapper,
        retrieval: ProblemRetrievalEngine,
        *,
        summarizer: LectureSummarizer | None = None,
        tuning_config: TuningConfig = TuningConfig(),
        config: PipelineConfig = PipelineConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._lectures = lectures
        self._extractor = extractor
        self._aggregator = aggregator
        self._mapper = mapper
        self._retrieval = retrieval
        self._summarizer = summarizer
        self._tuning_config = tuning_config
        self._config = config
        self.metrics_hook = metrics_hook

    async def create_lecture(
        self, title: str, transcript: str, uploaded_by: str | None = None
    ) -> Lecture:
        lecture = await self._lectures.create(
            title=title, transcript=transcript, uploaded_by=uploaded_by
        )
        logger.info("Created lecture %s (%d chars)", lecture.id, len(transcript))
        return lecture

    async def get_lecture(self, lecture_id: str) -> Lecture | None:
        return await self._lectures.find_by_id(lecture_id)

    async def list_lectures(self, page: PageRequest = PageRequest()) -> Page[Lecture]:
        return await self._lectures.list_lectures(page)

    async def get_themes(self, lecture_id: str) -> list[ThemeRecord]:
        return await self._lectures.find_themes(lecture_id)

    async def delete_lecture(self, lecture_id: str) -> bool:
        return await self._lectures.delete(lecture_id)

    async def process_transcript(
        self, lecture_id: str, tuning: TuningRequest | None = None
    ) -> ProcessingResult:
        """Process one lecture end to end.

        Stage failures do not raise: the lecture is marked FAILED and
        returned.

        Raises:
            LectureNotFoundError: If the lecture does not exist.
            LectureStateError: If it has no transcript.
        """
        lecture = await self._lectures.find_by_id(lecture_id)
        if lecture is None:
            raise LectureNotFoundError(lecture_id)
        transcript = lecture.transcript or ""
        if not transcript.strip():
            raise LectureStateError(f"Lecture {lecture_id} has no transcript to process")

        start = monotonic()
        stage = "Processing"
        chunks: list[TextChunk] = []
        try:
            await self._lectures.update_status(lecture_id, LectureStatus.PROCESSING)

            stage = "Tuning"
            settings = tune(transcript, tuning, self._tuning_config)

            stage = "Chunking"
            chunks = self._chunk(transcript, settings.chunk_level_enabled, settings.chunk_size_words)
            await self._lectures.save_chunks(lecture_id, chunks)

            stage = "Theme extraction"
            if self._config.chunk_level_enabled and settings.chunk_level_enabled and len(chunks) > 1:
                per_chunk = [
                    await self._extractor.extract_themes_from_chunk(
                        chunk.text, settings.max_themes_per_chunk, chunk_index=chunk.index
                    )
                    for chunk in chunks
                ]
                stage = "Theme aggregation"
                themes = self._aggregator.aggregate_themes(
                    per_chunk,
                    min_chunk_occurrences=settings.min_chunk_occurrences,
                    min_occurrence_ratio=settings.min_occurrence_ratio,
                    max_final_themes=settings.max_final_themes,
                )
            else:
                themes = await self._extractor.extract_themes(
                    transcript, settings.max_final_themes
                )

            stage = "Topic mapping"
            themes = await self._mapper.map_themes(themes)

            stage = "Saving themes"
            await self._lectures.save_themes(lecture_id, themes)

            if self._config.structured_notes_enabled and self._summarizer is not None:
                stage = "Structured notes"
                notes = await self._summarizer.generate_notes(transcript, title=lecture.title)
                await self._lectures.save_structured_content(lecture_id, notes)

            lecture = await self._lectures.update_status(lecture_id, LectureStatus.COMPLETED)
        except Exception as exc:
            message = f"{stage} failed: {exc}"
            logger.error("Lecture %s: %s", lecture_id, message, exc_info=True)
            self.metrics_hook.increment(names.PIPELINE_FAILURES_TOTAL, labels={"stage": stage})
            lecture = await self._lectures.update_status(
                lecture_id, LectureStatus.FAILED, message
            )
            return ProcessingResult(lecture=lecture, chunk_count=len(chunks))
        finally:
            self._extractor.clear_topics_cache()

        elapsed_ms = 1000 * (monotonic() - start)
        self.metrics_hook.record_latency(names.PIPELINE_DURATION, elapsed_ms)
        logger.info(
            "Lecture %s processed: %d chunks, %d themes in %.0f ms",
            lecture_id,
            len(chunks),
            len(themes),
            elapsed_ms,
        )
        return ProcessingResult(lecture=lecture, themes=themes, chunk_count=len(chunks))

    def start_processing(
        self, jobs: JobRunner, lecture_id: str, tuning: TuningRequest | None = None
    ) -> StartResult:
        """Process in the background as job ``lecture-processing:<id>``."""

        async def run(context: JobContext) -> None:
            context.update(lecture_id=lecture_id)
            result = await self.process_transcript(lecture_id, tuning)
            context.update(status=result.status.value, themes=len(result.themes))
            if result.status is LectureStatus.FAILED:
                raise LectureRagError(result.lecture.error_message or "processing failed")

        return jobs.start(f"lecture-processing:{lecture_id}", run)

    async def get_recommended_problems(
        self,
        lecture_id: str,
        top_k: int = 20,
        page: PageRequest = PageRequest(),
    ) -> Page[ProblemSearchResult]:
        """Hybrid search over the lecture's stored themes.

        Raises:
            LectureNotFoundError: If the lecture does not exist.
            RetrievalError: If the vector store or corpus fails.
        """
        if await self._lectures.find_by_id(lecture_id) is None:
            raise LectureNotFoundError(lecture_id)
        themes = [to_extracted(record) for record in await self._lectures.find_themes(lecture_id)]
        return await self._retrieval.hybrid_search(themes, top_k=top_k, page=page)

    def _chunk(self, transcript: str, chunk_level: bool, chunk_size_words: int) -> list[TextChunk]:
        if chunk_level:
            return chunk_semantically(
                transcript, target_chunk_size=chunk_size_words, metrics_hook=self.metrics_hook
            )
        words = len(transcript.split())
        return [TextChunk(text=transcript.strip(), index=0, token_start=0, token_end=words - 1)]
