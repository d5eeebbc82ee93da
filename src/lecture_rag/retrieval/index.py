# src/lecture_rag/retrieval/index.py

"""Text-in, documents-out view over an embeddings client and a vector store."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from lecture_rag.embeddings.base import EmbeddingsClient, embed_one
from lecture_rag.vectorstores.base import VectorStore
from lecture_rag.vectorstores.types import VectorItem

logger = logging.getLogger(__name__)

CONTENT_KEY = "content"
SCORE_KEY = "score"


@dataclass(frozen=True)
class Document:
    id: str
    content: str
    metadata: Mapping[str, Any] = field(default_factory=dict)


class DocumentIndex(Protocol):
    async def add_documents(self, documents: Sequence[Document]) -> None:
        """Insert or overwrite documents by id."""
        ...

    async def similarity_search(self, query: str, top_k: int) -> list[Document]:
        """Most similar first. Each hit carries ``metadata["score"]``."""
        ...

    async def delete(self, ids: Sequence[str]) -> int: ...

    async def clear(self) -> int:
        """Drop every document in the index."""
        ...

    async def count(self) -> int: ...


class VectorDocumentIndex(DocumentIndex):
    """Stores the document text in the vector metadata under ``content``."""

    def __init__(
        self,
        embeddings: EmbeddingsClient,
        store: VectorStore,
        *,
        namespace: str = "problems",
    ) -> None:
        self._embeddings = embeddings
        self._store = store
        self._namespace = namespace

    async def add_documents(self, documents: Sequence[Document]) -> None:
        if not documents:
            return
        embeddings = await self._embeddings.embed([doc.content for doc in documents])
        await self._store.upsert(
            namespace=self._namespace,
            items=[
                VectorItem(
                    id=doc.id,
                    vector=embedding.vector,
                    metadata={**doc.metadata, CONTENT_KEY: doc.content},
                )
                for doc, embedding in zip(documents, embeddings)
            ],
        )
        logger.debug("Indexed %d documents into '%s'", len(documents), self._namespace)

    async def similarity_search(self, query: str, top_k: int) -> list[Document]:
        vector = await embed_one(self._embeddings, query)
        results = await self._store.query(namespace=self._namespace, vector=vector, top_k=top_k)
        documents = []
        for result in results:
            metadata = dict(result.metadata)
            content = metadata.pop(CONTENT_KEY, "")
            metadata[SCORE_KEY] = result.score
            documents.append(Document(id=result.id, content=content, metadata=metadata))
        return documents

    async def delete(self, ids: Sequence[str]) -> int:
        if not ids:
            return 0
        return await self._store.delete(namespace=self._namespace, ids=ids)

    async def clear(self) -> int:
        deleted = await self._store.clear(namespace=self._namespace)
        logger.info("Cleared %d documents from '%s'", deleted, self._namespace)
        return deleted

    async def count(self) -> int:
        return await self._store.count(namespace=self._namespace)
