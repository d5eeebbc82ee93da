from .config import NotesConfig
from .summarizer import LectureSummarizer

__all__ = ["LectureSummarizer", "NotesConfig"]
