"""Exception hierarchy for lecture-rag.

Expected absence (an unknown problem id, a theme with no matching topic) is
expressed with ``None``, never with these exceptions.
"""


class LectureRagError(Exception):
    """Base class for all lecture-rag errors."""


class ThemeExtractionError(LectureRagError):
    """The LLM step of theme extraction failed."""


class ThemeParseError(ThemeExtractionError):
    """The LLM answered, but not with a usable JSON array of themes."""

    def __init__(self, reason: str, raw: str = "") -> None:
        super().__init__(f"Could not parse theme extraction response: {reason}")
        self.reason = reason
        self.raw = raw


class RetrievalError(LectureRagError):
    """The vector store or problem corpus failed during search or indexing."""


class LectureNotFoundError(LectureRagError):
    def __init__(self, lecture_id: str) -> None:
        super().__init__(f"Lecture not found: {lecture_id}")
        self.lecture_id = lecture_id


class LectureStateError(LectureRagError):
    """The lecture cannot be processed in its current state."""


class IngestionError(LectureRagError):
    """The problem dataset could not be fetched or understood."""


class NotesGenerationError(LectureRagError):
    """Structured study notes could not be generated."""
