from .chunking import TextChunk, chunk_by_sentences, chunk_semantically, chunk_text

__all__ = ["TextChunk", "chunk_by_sentences", "chunk_semantically", "chunk_text"]
