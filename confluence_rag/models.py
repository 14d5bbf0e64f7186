"""Data models for the RAG service."""

from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True)
class RawPage:
    """A page as fetched from the document source, before normalization."""

    id: str
    title: str
    url: str
    body: str = ""
    version: int | None = None
    space: str | None = None


@dataclass(frozen=True)
class Document:
    """A normalized plain-text document ready for indexing."""

    id: str
    title: str
    url: str
    text: str
    version: int | None = None
    space: str | None = None


class Role(StrEnum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """Represents a single message in the conversation."""

    role: Role
    content: str


@dataclass(frozen=True)
class Source:
    """A cited document returned alongside an answer."""

    title: str
    url: str
    excerpt: str


@dataclass
class RetrievalResult:
    """Generated answer with the sources used to ground it."""

    answer: str
    sources: list[Source] = field(default_factory=list)
