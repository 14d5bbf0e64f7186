"""Bounded conversation memory and the retrieval-augmented answer flow."""

from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING, Protocol

from .config import config
from .errors import GenerationFailedError
from .models import ConversationTurn, RetrievalResult, Role, Source

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .models import Document

logger = config.get_logger(__name__)

EXCERPT_MARKER = "..."


class Retriever(Protocol):
    """Vector index interface used when answering."""

    def query(self, text: str, k: int = ...) -> list[Document]: ...


class Generator(Protocol):
    """Generation provider interface used when answering."""

    def generate(
        self,
        question: str,
        history: Sequence[tuple[str, str]],
        documents: Sequence[Document],
    ) -> str: ...


class ConversationState:
    """Fixed-capacity, thread-safe log of conversation turns.

    Appending past ``max_turns`` evicts from the oldest end, so the bound
    holds after every mutation.
    """

    def __init__(self, max_turns: int | None = None) -> None:
        max_turns = config.MAX_HISTORY_TURNS if max_turns is None else max_turns
        if max_turns < 1:
            msg = f"max_turns must be positive, got {max_turns}"
            raise ValueError(msg)
        self.max_turns = max_turns
        self._turns: deque[ConversationTurn] = deque(maxlen=max_turns)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)

    def append(self, turn: ConversationTurn) -> None:
        with self._lock:
            self._turns.append(turn)

    def append_exchange(self, question: str, answer: str) -> None:
        """Append a user turn and its assistant reply as one unit."""
        with self._lock:
            self._turns.append(ConversationTurn(Role.USER, question))
            self._turns.append(ConversationTurn(Role.ASSISTANT, answer))

    def reset(self) -> None:
        with self._lock:
            self._turns.clear()

    def snapshot(self) -> tuple[ConversationTurn, ...]:
        with self._lock:
            return tuple(self._turns)


def format_chat_history(turns: Iterable[ConversationTurn]) -> list[tuple[str, str]]:
    """Pair each user turn with the assistant turn that directly follows it.

    User turns without a reply and assistant turns without a preceding
    question are left out.

    Returns:
        (question, answer) pairs in chronological order.
    """
    pairs: list[tuple[str, str]] = []
    pending_question: str | None = None
    for turn in turns:
        if turn.role == Role.USER:
            pending_question = turn.content
        elif pending_question is not None:
            pairs.append((pending_question, turn.content))
            pending_question = None
    return pairs


def make_excerpt(text: str, length: int | None = None) -> str:
    """Cut ``text`` to ``length`` characters, marking the cut.

    Returns:
        The text itself when short enough, else its prefix plus "...".
    """
    length = config.EXCERPT_LENGTH if length is None else length
    if len(text) <= length:
        return text
    return text[:length] + EXCERPT_MARKER


class ConversationManager:
    """Answers questions from retrieved documents while keeping short memory."""

    def __init__(  # noqa: PLR0913
        self,
        retriever: Retriever,
        generator: Generator,
        state: ConversationState | None = None,
        *,
        top_k: int | None = None,
        excerpt_length: int | None = None,
        rewrite_queries: bool | None = None,
    ) -> None:
        """Initialize ConversationManager.

        Args:
            retriever: Built vector index to search.
            generator: Provider that writes the answer.
            state: Conversation log. A new empty one is created if None.
            top_k: Documents retrieved per question. If None, uses
                config.RETRIEVAL_TOP_K.
            excerpt_length: Characters kept per source excerpt. If None,
                uses config.EXCERPT_LENGTH.
            rewrite_queries: Condense follow-up questions before retrieval.
                If None, uses config.QUERY_REWRITE_ENABLED.
        """
        self.retriever = retriever
        self.generator = generator
        self.state = state if state is not None else ConversationState()
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k
        self.excerpt_length = (
            config.EXCERPT_LENGTH if excerpt_length is None else excerpt_length
        )
        self.rewrite_queries = (
            config.QUERY_REWRITE_ENABLED if rewrite_queries is None else rewrite_queries
        )

    def _retrieval_query(self, question: str, history: list[tuple[str, str]]) -> str:
        condense = getattr(self.generator, "condense_question", None)
        if not (self.rewrite_queries and history and condense):
            return question
        try:
            return condense(question, history)
        except GenerationFailedError:
            raise
        except Exception as e:
            logger.exception("Question rewriting failed")
            raise GenerationFailedError(str(e)) from e

    def build_sources(self, documents: Sequence[Document]) -> list[Source]:
        """Describe retrieved documents as citations, best match first.

        Returns:
            One Source per document.
        """
        return [
            Source(
                title=document.title,
                url=document.url,
                excerpt=make_excerpt(document.text, self.excerpt_length),
            )
            for document in documents
        ]

    def answer_question(self, question: str) -> RetrievalResult:
        """Answer a question using retrieved documents and recent history.

        Returns:
            RetrievalResult with the answer and one source per retrieved
            document.

        Raises:
            GenerationFailedError: If the generator fails. The conversation
                is left untouched in that case.
        """
        logger.info("Processing question: %s", question)

        history = format_chat_history(self.state.snapshot())
        search_query = self._retrieval_query(question, history)
        documents = self.retriever.query(search_query, k=self.top_k)

        for i, document in enumerate(documents):
            logger.debug("  Context %d: %s (%s)", i + 1, document.title, document.url)

        try:
            answer = self.generator.generate(question, history, documents)
        except GenerationFailedError:
            logger.exception("Answer generation failed")
            raise
        except Exception as e:
            logger.exception("Answer generation failed")
            raise GenerationFailedError(str(e)) from e

        sources = self.build_sources(documents)
        self.state.append_exchange(question, answer)
        return RetrievalResult(answer=answer, sources=sources)

    def clear_history(self) -> None:
        """Clear the conversation history."""
        self.state.reset()
        logger.info("Conversation history cleared.")
