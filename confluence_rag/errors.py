"""Exception types raised by the RAG service."""


class RAGServiceError(Exception):
    """Base class for service errors."""


class ConfigurationError(RAGServiceError, ValueError):
    """Required credentials or parameters are missing."""


class EmptyCorpusError(RAGServiceError):
    """The corpus produced no document that could be indexed."""


class NotReadyError(RAGServiceError):
    """A query arrived before initialization completed."""


class InvalidRequestError(RAGServiceError, ValueError):
    """A chat request is malformed."""


class EmbeddingError(RAGServiceError):
    """The embedding provider failed to embed one or more texts."""


class GenerationFailedError(RAGServiceError):
    """The generation provider failed to produce an answer."""
