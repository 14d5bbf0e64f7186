"""OpenAI embeddings service."""

import numpy as np
from openai import OpenAI, OpenAIError

from .config import config
from .errors import EmbeddingError

logger = config.get_logger(__name__)


class EmbeddingService:
    """Turns text into embedding vectors with the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
        """
        api_key = api_key or config.get_openai_api_key()
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key,
            base_url=config.OPENAI_BASE_URL,
            timeout=config.OPENAI_TIMEOUT,
            default_headers=default_headers or None,
        )
        self.model = model or config.EMBEDDING_MODEL

    def embed(self, text: str) -> np.ndarray:
        """Get embedding for a single text.

        Args:
            text: The input text to generate an embedding for.

        Returns:
            np.ndarray: The embedding vector for the input text.

        Raises:
            EmbeddingError: If the API call fails.
        """
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
            )
        except OpenAIError as e:
            logger.exception("Error generating embedding")
            msg = f"Embedding request failed: {e}"
            raise EmbeddingError(msg) from e
        return np.asarray(response.data[0].embedding, dtype=np.float32)

    def embed_batch(
        self,
        texts: list[str],
        batch_size: int | None = None,
    ) -> list[np.ndarray]:
        """Get embeddings for multiple texts in batches.

        Args:
            texts: List of input texts to generate embeddings for.
            batch_size: Number of texts sent per request. If None, uses
                config.EMBEDDING_BATCH_SIZE.

        Returns:
            list[np.ndarray]: One embedding per input text, in input order.

        Raises:
            EmbeddingError: If any batch request fails.
        """
        batch_size = batch_size or config.EMBEDDING_BATCH_SIZE
        embeddings: list[np.ndarray] = []

        for i in range(0, len(texts), batch_size):
            batch_texts = texts[i : i + batch_size]
            try:
                response = self.client.embeddings.create(
                    model=self.model,
                    input=batch_texts,
                )
            except OpenAIError as e:
                logger.exception("Error generating batch embeddings")
                msg = f"Batch embedding request failed: {e}"
                raise EmbeddingError(msg) from e

            ordered = sorted(response.data, key=lambda item: item.index)
            embeddings.extend(
                np.asarray(item.embedding, dtype=np.float32) for item in ordered
            )
            logger.info("Generated embeddings for batch %d", i // batch_size + 1)

        return embeddings
