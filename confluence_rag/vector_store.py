"""In-memory FAISS vector index over normalized documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import faiss
import numpy as np

from .config import config
from .errors import EmbeddingError, EmptyCorpusError, NotReadyError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import Document

logger = config.get_logger(__name__)


class Embedder(Protocol):
    """Embedding provider consumed by the vector store."""

    def embed(self, text: str) -> np.ndarray: ...

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]: ...


class FaissVectorStore:
    """Cosine-similarity index built once from a fixed set of documents.

    Vectors are L2-normalized before they are added and before every search,
    so the inner product computed by ``IndexFlatIP`` is the cosine similarity.
    The index is read-only once ``build`` has returned.
    """

    backend = "faiss"

    def __init__(
        self,
        embedding_service: Embedder,
        batch_size: int | None = None,
    ) -> None:
        """Configure the store with the embedding provider used for both sides.

        Args:
            embedding_service: Provider used to embed documents and queries.
            batch_size: Number of documents embedded per request. If None,
                uses config.EMBEDDING_BATCH_SIZE.
        """
        self.embedding_service = embedding_service
        batch_size = config.EMBEDDING_BATCH_SIZE if batch_size is None else batch_size
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.batch_size = batch_size
        self.index: faiss.IndexFlatIP | None = None
        self.documents: list[Document] = []

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def is_built(self) -> bool:
        return self.index is not None

    @property
    def dimension(self) -> int | None:
        return self.index.d if self.index is not None else None

    @staticmethod
    def _normalize_embedding(embedding: np.ndarray) -> np.ndarray:
        """Normalize embedding for cosine similarity using inner product search.

        Returns:
            Normalized float32 embedding vector.
        """
        vector = np.array(embedding, dtype="float32").reshape(-1)
        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector
        faiss.normalize_L2(vector.reshape(1, -1))
        return vector

    def _embed_documents(
        self, documents: Sequence[Document]
    ) -> list[tuple[Document, np.ndarray]]:
        """Embed documents batch by batch, isolating per-document failures.

        A failed batch is retried one document at a time so that a single bad
        document does not take the rest of its batch down with it.

        Returns:
            Pairs of document and raw embedding for every document that
            embedded successfully.
        """
        embedded: list[tuple[Document, np.ndarray]] = []

        for start in range(0, len(documents), self.batch_size):
            batch = documents[start : start + self.batch_size]
            try:
                vectors = self.embedding_service.embed_batch(
                    [document.text for document in batch]
                )
            except EmbeddingError:
                logger.warning(
                    "Batch embedding failed for %d documents; retrying individually",
                    len(batch),
                )
            else:
                embedded.extend(zip(batch, vectors, strict=True))
                continue

            for document in batch:
                try:
                    vector = self.embedding_service.embed(document.text)
                except EmbeddingError:
                    logger.warning(
                        "Skipping document %s (%s): embedding failed",
                        document.id,
                        document.title,
                    )
                    continue
                embedded.append((document, vector))

        return embedded

    def build(self, documents: Sequence[Document]) -> None:
        """Embed and index the documents.

        Raises:
            RuntimeError: If the index has already been built.
            EmptyCorpusError: If there is no document with text to index.
            EmbeddingError: If no document could be embedded.
            ValueError: If embeddings disagree on dimensionality.
        """
        if self.index is not None:
            msg = "Vector index has already been built"
            raise RuntimeError(msg)

        candidates = [document for document in documents if document.text]
        skipped = len(documents) - len(candidates)
        if skipped:
            logger.warning("Skipping %d documents with empty text", skipped)
        if not candidates:
            msg = "No documents with text content to index"
            raise EmptyCorpusError(msg)

        embedded = self._embed_documents(candidates)
        if not embedded:
            msg = f"Failed to embed all {len(candidates)} documents"
            raise EmbeddingError(msg)
        if len(embedded) < len(candidates):
            logger.warning(
                "Indexed %d of %d documents; %d failed to embed",
                len(embedded),
                len(candidates),
                len(candidates) - len(embedded),
            )

        vectors = [self._normalize_embedding(vector) for _, vector in embedded]
        dimension = vectors[0].shape[0]
        for vector in vectors:
            if vector.shape[0] != dimension:
                msg = (
                    f"Embedding dimension {vector.shape[0]} does not match "
                    f"index dimension {dimension}"
                )
                raise ValueError(msg)

        index = faiss.IndexFlatIP(dimension)
        index.add(np.vstack(vectors).astype("float32"))  # pyright: ignore[reportCallIssue]
        self.documents = [document for document, _ in embedded]
        self.index = index
        logger.info(
            "Built FAISS index with %d vectors of dimension %d",
            index.ntotal,
            dimension,
        )

    def search(
        self,
        query_embedding: np.ndarray,
        top_k: int = 4,
    ) -> list[tuple[Document, float]]:
        """Search documents most similar to a precomputed embedding.

        Returns:
            Ranked list of (Document, cosine similarity) tuples, best first.

        Raises:
            NotReadyError: If the index has not been built.
            ValueError: If the query dimension does not match the index.
        """
        index = self.index
        if index is None:
            msg = "Vector index has not been built"
            raise NotReadyError(msg)

        if top_k <= 0 or index.ntotal == 0:
            return []

        normalized_query = self._normalize_embedding(query_embedding)
        if normalized_query.shape[0] != index.d:
            msg = (
                f"Query embedding dimension {normalized_query.shape[0]} does not "
                f"match index dimension {index.d}"
            )
            raise ValueError(msg)

        scores, positions = index.search(
            normalized_query.reshape(1, -1),
            min(top_k, index.ntotal),
        )  # pyright: ignore[reportCallIssue]

        results: list[tuple[Document, float]] = []
        for score, position in zip(scores[0], positions[0], strict=True):
            if int(position) == -1:  # faiss returns -1 for empty results
                continue
            results.append((self.documents[int(position)], float(score)))
        return results

    def search_text(self, text: str, k: int = 4) -> list[tuple[Document, float]]:
        """Embed ``text`` and search for its nearest documents.

        Returns:
            Ranked list of (Document, cosine similarity) tuples, best first.
        """
        if self.index is None:
            msg = "Vector index has not been built"
            raise NotReadyError(msg)
        return self.search(self.embedding_service.embed(text), top_k=k)

    def query(self, text: str, k: int = 4) -> list[Document]:
        """Return up to ``k`` documents ordered by similarity to ``text``.

        Returns:
            Documents, most similar first.
        """
        return [document for document, _ in self.search_text(text, k)]
