# src/lecture_rag/notes/summarizer.py

import logging

from lecture_rag.errors import NotesGenerationError
from lecture_rag.llms.base import LLMClient, Message, Role
from lecture_rag.observability import names
from lecture_rag.observability.base import MetricsHook, NoOpMetricsHook, timed
from lecture_rag.prompts import PromptsLibrary
from lecture_rag.themes.extractor import truncate_transcript

from .config import NotesConfig

logger = logging.getLogger(__name__)

NOTES_PROMPT = ("lecture_notes", "1.0")


class LectureSummarizer:
    """Turns a transcript into Markdown study notes with LaTeX math.

    Over-long transcripts keep their head and tail, like theme extraction.
    """

    def __init__(
        self,
        llm: LLMClient,
        *,
        prompts: PromptsLibrary | None = None,
        config: NotesConfig = NotesConfig(),
        metrics_hook: MetricsHook = NoOpMetricsHook(),
    ) -> None:
        self._llm = llm
        self._prompts = prompts or PromptsLibrary()
        self._config = config
        self.metrics_hook = metrics_hook

    async def generate_notes(self, transcript: str, *, title: str = "") -> str:
        """Markdown notes for one transcript.

        Raises:
            NotesGenerationError: If the transcript is blank or the model
                returns nothing.
        """
        if not transcript.strip():
            raise NotesGenerationError("no transcript to generate notes from")

        logger.info("Generating notes for transcript of %d chars", len(transcript))
        prompt = self._prompts.get(*NOTES_PROMPT).render(
            title=title or "Untitled lecture",
            transcript=truncate_transcript(transcript, self._config.max_transcript_chars),
        )
        with timed(self.metrics_hook, names.NOTES_DURATION):
            response = await self._llm.complete(
                messages=[Message(role=Role.USER, content=prompt)],
                temperature=self._config.temperature,
                max_tokens=self._config.max_tokens,
            )

        notes = response.text.strip()
        if not notes:
            raise NotesGenerationError("the LLM returned empty notes")
        logger.debug("Generated %d chars of notes", len(notes))
        return notes
