# src/lecture_rag/notes/config.py

from dataclasses import dataclass


@dataclass(frozen=True)
class NotesConfig:
    # Notes must cover the whole lecture, so the budget is far above the
    # theme extraction one.
    max_transcript_chars: int = 60000
    temperature: float = 0.2
    max_tokens: int | None = 8192
