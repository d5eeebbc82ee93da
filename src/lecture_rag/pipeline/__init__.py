from .processor import LectureProcessor, ProcessingResult, to_extracted

__all__ = ["LectureProcessor", "ProcessingResult", "to_extracted"]
