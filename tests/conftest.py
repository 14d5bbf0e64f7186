"""Test configuration and fixtures for the Confluence RAG tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Fake embedding services, generators and page sources
- Mock OpenAI API responses
- Document and raw page factories
- Vector store, conversation and service fixtures
- HTTP client fixtures
"""

import hashlib
import re
from contextlib import contextmanager
from unittest.mock import Mock, patch

import numpy as np
import pytest
from fastapi.testclient import TestClient

from confluence_rag import (
    AnswerGenerator,
    ConversationManager,
    ConversationState,
    Document,
    EmbeddingService,
    FaissVectorStore,
    GenerationFailedError,
    RAGService,
    RawPage,
)
from confluence_rag.server import create_app


class TestConstants:
    """Centralized test constants to avoid repetition across test files."""

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_EMBEDDING_MODEL = "text-embedding-3-small"
    DEFAULT_EMBEDDING_DIMENSION = 384

    # Confluence Configuration
    TEST_CONFLUENCE_URL = "https://wiki.example.com"
    TEST_SPACE_KEY = "DOCS"

    # Retrieval Configuration
    TOP_K = 4
    MAX_TURNS = 10
    EXCERPT_LENGTH = 200


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    so identical texts always map to identical vectors.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        self.dimension = dimension
        self.calls: list[str] = []

    def embed(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        self.calls.append(text)
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate batch of mock embeddings."""
        return [self.embed(text) for text in texts]


class KeywordEmbeddingService:
    """Bag-of-keywords embeddings, so related texts really are similar.

    Each dimension counts words starting with one vocabulary stem; a small
    constant component keeps every vector non-zero.
    """

    VOCABULARY = (
        "install",
        "setup",
        "configur",
        "question",
        "answer",
        "release",
        "version",
        "fix",
    )
    BIAS = 0.1

    def embed(self, text: str) -> np.ndarray:
        words = re.findall(r"[a-z]+", text.lower())
        counts = [
            sum(1 for word in words if word.startswith(stem))
            for stem in self.VOCABULARY
        ]
        return np.array([*counts, self.BIAS], dtype=np.float32)

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        return [self.embed(text) for text in texts]


class FakeGenerator:
    """Generation provider that records its calls and echoes the question."""

    def __init__(self, answer: str | None = None, error: Exception | None = None):
        self.answer = answer
        self.error = error
        self.calls: list[dict] = []

    def generate(self, question, history, documents) -> str:
        self.calls.append({
            "question": question,
            "history": list(history),
            "documents": list(documents),
        })
        if self.error is not None:
            raise self.error
        return self.answer if self.answer is not None else f"Answer to: {question}"


class FakeSource:
    """Page source returning a fixed list of pages or raising an error."""

    def __init__(self, pages=None, error: Exception | None = None) -> None:
        self.pages = list(pages or [])
        self.error = error
        self.call_count = 0

    def fetch_documents(self) -> list[RawPage]:
        self.call_count += 1
        if self.error is not None:
            raise self.error
        return list(self.pages)


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [
        Mock(embedding=emb, index=i) for i, emb in enumerate(embeddings)
    ]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


def make_raw_page(
    page_id: str,
    title: str,
    body: str,
    version: int | None = 1,
) -> RawPage:
    return RawPage(
        id=page_id,
        title=title,
        url=f"{TestConstants.TEST_CONFLUENCE_URL}/spaces/"
        f"{TestConstants.TEST_SPACE_KEY}/pages/{page_id}",
        body=body,
        version=version,
        space="Documentation",
    )


def make_document(doc_id: str, title: str, text: str) -> Document:
    return Document(
        id=doc_id,
        title=title,
        url=f"{TestConstants.TEST_CONFLUENCE_URL}/pages/{doc_id}",
        text=text,
    )


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch the OpenAI embeddings.create method."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with a test API key."""

    def _create_service(api_key=None, model=None):  # noqa: ANN202
        api_key = api_key or TestConstants.TEST_API_KEY
        if model is not None:
            return EmbeddingService(api_key=api_key, model=model)
        return EmbeddingService(api_key=api_key)

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def answer_generator():
    return AnswerGenerator(api_key=TestConstants.TEST_API_KEY)


@pytest.fixture
def generator_chat_mock_factory():
    """Factory mock for AnswerGenerator's client.chat.completions.create."""

    @contextmanager
    def _mock_chat(  # noqa: ANN202
        generator, content: str | None = "Test response", side_effect=None
    ):
        with patch.object(generator.client.chat.completions, "create") as mock_create:
            if side_effect is not None:
                mock_create.side_effect = side_effect
                mock_create.return_value = None
            else:
                mock_create.side_effect = None
                mock_create.return_value = create_mock_chat_response(content)
            yield mock_create

    return _mock_chat


@pytest.fixture(scope="session")
def mock_embedding_service():
    """Pre-configured MockEmbeddingService for consistent test embeddings."""
    return MockEmbeddingService()


@pytest.fixture
def keyword_embedding_service():
    return KeywordEmbeddingService()


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    return FakeGenerator(error=GenerationFailedError("model unavailable"))


@pytest.fixture
def sample_documents():
    """A small corpus with clearly separated topics."""
    return [
        make_document(
            "1",
            "Setup Guide",
            "Install the package with pip, then run the setup command. "
            "The install step needs Python 3.11 or newer.",
        ),
        make_document(
            "2",
            "FAQ",
            "Answers to frequently asked questions about accounts and billing.",
        ),
        make_document(
            "3",
            "Release Notes",
            "Version 2.0 release notes: new dashboard and several bug fixes.",
        ),
    ]


@pytest.fixture
def sample_raw_pages():
    """Raw Confluence pages matching ``sample_documents`` plus an empty one."""
    return [
        make_raw_page(
            "1",
            "Setup Guide",
            "<h1>Setup Guide</h1><p>Install the package with <code>pip</code>, "
            "then run the setup command.</p><p>The install step needs "
            "Python&nbsp;3.11 or newer.</p>",
        ),
        make_raw_page(
            "2",
            "FAQ",
            "<p>Answers to frequently asked questions about accounts &amp; "
            "billing.</p>",
        ),
        make_raw_page(
            "3",
            "Release Notes",
            "<ul><li>Version 2.0 release notes</li><li>New dashboard</li>"
            "<li>Several bug fixes</li></ul>",
        ),
        make_raw_page("4", "Empty Page", "<p> </p>"),
    ]


@pytest.fixture
def keyword_vector_store(keyword_embedding_service, sample_documents):
    """Vector store built over ``sample_documents`` with keyword embeddings."""
    store = FaissVectorStore(keyword_embedding_service)
    store.build(sample_documents)
    return store


@pytest.fixture
def conversation_state():
    return ConversationState(max_turns=TestConstants.MAX_TURNS)


@pytest.fixture
def conversation_manager(keyword_vector_store, fake_generator, conversation_state):
    """ConversationManager over the keyword store with a recording generator."""
    return ConversationManager(
        keyword_vector_store,
        fake_generator,
        conversation_state,
        top_k=TestConstants.TOP_K,
        excerpt_length=TestConstants.EXCERPT_LENGTH,
        rewrite_queries=False,
    )


@pytest.fixture
def rag_service_factory(keyword_embedding_service, sample_raw_pages):
    """Factory for RAGService instances wired to fake collaborators."""

    def _create_service(  # noqa: ANN202
        pages=None,
        source=None,
        generator=None,
        embedding_service=None,
        **kwargs,
    ):
        return RAGService(
            source=source or FakeSource(sample_raw_pages if pages is None else pages),
            embedding_service=embedding_service or keyword_embedding_service,
            generator=generator or FakeGenerator(),
            top_k=kwargs.pop("top_k", TestConstants.TOP_K),
            max_turns=kwargs.pop("max_turns", TestConstants.MAX_TURNS),
            rewrite_queries=kwargs.pop("rewrite_queries", False),
            **kwargs,
        )

    return _create_service


@pytest.fixture
def ready_service(rag_service_factory):
    service = rag_service_factory()
    service.initialize()
    return service


@pytest.fixture
def client_factory():
    """Factory for TestClients that do not run startup initialization."""

    def _create_client(service: RAGService) -> TestClient:
        app = create_app(service, initialize_on_startup=False)
        return TestClient(app)

    return _create_client
