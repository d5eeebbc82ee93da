# src/lecture_rag/themes/models.py

from dataclasses import dataclass


@dataclass(frozen=True)
class ExtractedTheme:
    """A candidate topical label for a lecture or one of its chunks.

    ``mapped_topic`` starts as whatever the LLM guessed and is overwritten
    by the topic mapper; ``None`` means no catalog topic matched.
    """

    name: str
    confidence: float
    summary: str = ""
    keywords: tuple[str, ...] = ()
    mapped_topic: str | None = None
