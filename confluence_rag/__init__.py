"""Confluence RAG - question answering over a Confluence space."""

from .confluence import ConfluenceClient
from .conversation import (
    ConversationManager,
    ConversationState,
    format_chat_history,
    make_excerpt,
)
from .document_processing import DocumentNormalizer, strip_html
from .embeddings import EmbeddingService
from .errors import (
    ConfigurationError,
    EmbeddingError,
    EmptyCorpusError,
    GenerationFailedError,
    InvalidRequestError,
    NotReadyError,
    RAGServiceError,
)
from .generation import AnswerGenerator
from .models import ConversationTurn, Document, RawPage, RetrievalResult, Role, Source
from .pipeline import RAGService, ServiceStatus
from .vector_store import FaissVectorStore

__all__ = [
    "AnswerGenerator",
    "ConfigurationError",
    "ConfluenceClient",
    "ConversationManager",
    "ConversationState",
    "ConversationTurn",
    "Document",
    "DocumentNormalizer",
    "EmbeddingError",
    "EmbeddingService",
    "EmptyCorpusError",
    "FaissVectorStore",
    "GenerationFailedError",
    "InvalidRequestError",
    "NotReadyError",
    "RAGService",
    "RAGServiceError",
    "RawPage",
    "RetrievalResult",
    "Role",
    "ServiceStatus",
    "Source",
    "format_chat_history",
    "make_excerpt",
    "strip_html",
]
