"""Conversion of raw source pages into plain-text documents."""

import re
from collections.abc import Iterable

from .config import config
from .models import Document, RawPage

logger = config.get_logger(__name__)

TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Decoded in order, so "&amp;lt;" ends up as "<".
HTML_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
)


def strip_html(markup: str | None) -> str:
    """Reduce markup to whitespace-collapsed plain text.

    Tags are replaced with a single space so that words on either side of a
    tag boundary stay separated. Only a fixed set of named entities is
    decoded; anything else passes through untouched.

    Returns:
        The plain text, or an empty string for empty or missing markup.
    """
    if not markup:
        return ""

    text = TAG_PATTERN.sub(" ", markup)
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


class DocumentNormalizer:
    """Turns fetched pages into documents, dropping pages without text."""

    @staticmethod
    def normalize(page: RawPage) -> Document | None:
        """Normalize a single page.

        Returns:
            The normalized Document, or None when the page has no text.
        """
        text = strip_html(page.body)
        if not text:
            logger.debug("Dropping page %s (%s): empty body", page.id, page.title)
            return None

        return Document(
            id=str(page.id),
            title=page.title or "",
            url=page.url,
            text=text,
            version=page.version,
            space=page.space,
        )

    @classmethod
    def normalize_pages(cls, pages: Iterable[RawPage]) -> list[Document]:
        """Normalize a batch of pages, keeping only those with text.

        Returns:
            Documents in the same order as the input pages.
        """
        documents = []
        dropped = 0
        for page in pages:
            document = cls.normalize(page)
            if document is None:
                dropped += 1
                continue
            documents.append(document)

        if dropped:
            logger.info("Dropped %d pages with no text content", dropped)
        logger.info("Normalized %d documents", len(documents))
        return documents
