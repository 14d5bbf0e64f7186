"""Service lifecycle: one-time corpus load and index build, then answering."""

from __future__ import annotations

import threading
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from .config import config
from .confluence import ConfluenceClient
from .conversation import ConversationManager, ConversationState
from .document_processing import DocumentNormalizer
from .embeddings import EmbeddingService
from .errors import (
    ConfigurationError,
    EmptyCorpusError,
    InvalidRequestError,
    NotReadyError,
)
from .generation import AnswerGenerator
from .vector_store import FaissVectorStore

if TYPE_CHECKING:
    from .conversation import Generator
    from .models import RawPage, RetrievalResult
    from .vector_store import Embedder

logger = config.get_logger(__name__)


class DocumentSource(Protocol):
    """Connector that yields the raw pages of the corpus."""

    def fetch_documents(self) -> list[RawPage]: ...


class ServiceStatus(StrEnum):
    """Readiness of the service."""

    NOT_READY = "not_ready"
    READY = "ready"
    FAILED = "failed"


class RAGService:
    """Owns the vector index and conversation for the lifetime of the process.

    ``initialize`` runs once. It either reaches READY or records why it
    reached FAILED; neither state is left without a restart. Collaborators
    that are not injected are created from config at initialization time,
    so missing credentials surface as a FAILED status rather than a crash.
    """

    def __init__(  # noqa: PLR0913
        self,
        source: DocumentSource | None = None,
        embedding_service: Embedder | None = None,
        generator: Generator | None = None,
        *,
        top_k: int | None = None,
        max_turns: int | None = None,
        excerpt_length: int | None = None,
        rewrite_queries: bool | None = None,
    ) -> None:
        self.source = source
        self.embedding_service = embedding_service
        self.generator = generator
        self.top_k = top_k
        self.excerpt_length = excerpt_length
        self.rewrite_queries = rewrite_queries

        self.conversation_state = ConversationState(max_turns)
        self.vector_store: FaissVectorStore | None = None
        self.conversation_manager: ConversationManager | None = None

        self._status = ServiceStatus.NOT_READY
        self._error: str | None = None
        self._init_lock = threading.Lock()
        self._started = False

    @property
    def status(self) -> ServiceStatus:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._status is ServiceStatus.READY

    def _ensure_collaborators(self) -> None:
        """Create default collaborators for anything not injected."""
        if self.source is None:
            self.source = ConfluenceClient()
        needs_openai = self.embedding_service is None or self.generator is None
        if needs_openai and not config.get_openai_api_key():
            msg = (
                "OPENAI_API_KEY is required. "
                "Please set it in .env file or environment."
            )
            raise ConfigurationError(msg)
        if self.embedding_service is None:
            self.embedding_service = EmbeddingService()
        if self.generator is None:
            self.generator = AnswerGenerator()

    def _load(self) -> None:
        self._ensure_collaborators()

        pages = self.source.fetch_documents()
        documents = DocumentNormalizer.normalize_pages(pages)
        if not documents:
            msg = "No documents found in Confluence space"
            raise EmptyCorpusError(msg)

        logger.info("Creating vector store...")
        vector_store = FaissVectorStore(self.embedding_service)
        vector_store.build(documents)

        self.vector_store = vector_store
        self.conversation_manager = ConversationManager(
            vector_store,
            self.generator,
            self.conversation_state,
            top_k=self.top_k,
            excerpt_length=self.excerpt_length,
            rewrite_queries=self.rewrite_queries,
        )

    def initialize(self) -> None:
        """Fetch the corpus and build the index, recording the outcome.

        Errors are not raised; they move the service to FAILED and are
        reported through ``error``.
        """
        with self._init_lock:
            if self._started:
                logger.warning("Initialization already ran; ignoring repeat call")
                return
            self._started = True

        logger.info("Initializing Confluence RAG system...")
        try:
            self._load()
        except Exception as e:
            self._error = str(e) or type(e).__name__
            self._status = ServiceStatus.FAILED
            logger.exception("Failed to initialize RAG service")
            return

        self._status = ServiceStatus.READY
        logger.info(
            "RAG system initialized successfully with %d documents",
            len(self.vector_store),
        )

    def answer(self, question: object) -> RetrievalResult:
        """Answer a chat question.

        Returns:
            The answer with its sources.

        Raises:
            NotReadyError: If initialization has not completed successfully.
            InvalidRequestError: If ``question`` is missing, empty or not a string.
        """
        manager = self.conversation_manager
        if not self.is_ready or manager is None:
            msg = "Service is still initializing. Please wait..."
            raise NotReadyError(msg)
        if not isinstance(question, str) or not question:
            msg = "Message is required"
            raise InvalidRequestError(msg)
        return manager.answer_question(question)

    def clear_history(self) -> None:
        """Forget the conversation so far."""
        if self.conversation_manager is not None:
            self.conversation_manager.clear_history()
        else:
            self.conversation_state.reset()
