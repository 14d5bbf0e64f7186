"""Answer generation with OpenAI chat completions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from openai import OpenAI, OpenAIError

from .config import config
from .errors import GenerationFailedError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import Document

logger = config.get_logger(__name__)

FALLBACK_ANSWER = "I apologize, but I couldn't generate a response."

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions about the team's "
    "Confluence documentation.\n\n"
    "Use the following guidelines:\n"
    "1. Use the pieces of context below to answer the question\n"
    "2. If you don't know the answer, just say that you don't know, "
    "don't try to make up an answer\n"
    "3. Consider the conversation history to maintain context continuity\n"
    "4. Mention the titles of the pages you relied on when relevant\n\n"
    "=== Context ===\n"
    "{context}"
)

CONDENSE_PROMPT = (
    "Given the following conversation history and a follow-up question, "
    "rewrite the follow-up question as a standalone question that can be "
    "understood without the conversation context.\n\n"
    "Conversation History:\n{history}\n\n"
    "Follow-up Question: {question}\n\n"
    "Standalone Question:"
)


def format_context(documents: Sequence[Document]) -> str:
    """Render retrieved documents as the grounding context block.

    Returns:
        One titled section per document, or a note that nothing was found.
    """
    if not documents:
        return "No relevant documentation was found."
    return "\n\n".join(
        f"[{i + 1}] {document.title} ({document.url})\n{document.text}"
        for i, document in enumerate(documents)
    )


class AnswerGenerator:
    """Builds prompts and calls the chat model."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        """Initialize the generator with the OpenAI client and model settings.

        Args:
            api_key: OpenAI API key. If None, reads from config.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            temperature: Sampling temperature. If None, uses
                config.CHAT_TEMPERATURE.
            max_tokens: Completion token limit. If None, uses
                config.CHAT_MAX_TOKENS.
        """
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            timeout=config.OPENAI_TIMEOUT,
            default_headers=default_headers or None,
        )
        self.model = model or config.CHAT_MODEL
        self.temperature = (
            config.CHAT_TEMPERATURE if temperature is None else temperature
        )
        self.max_tokens = max_tokens or config.CHAT_MAX_TOKENS

    @staticmethod
    def build_messages(
        question: str,
        history: Sequence[tuple[str, str]],
        documents: Sequence[Document],
    ) -> list[dict[str, str]]:
        """Assemble the chat message array: system + history + question.

        Returns:
            Messages in the format expected by the chat completions API.
        """
        messages = [
            {
                "role": "system",
                "content": SYSTEM_PROMPT.format(context=format_context(documents)),
            }
        ]
        for prior_question, prior_answer in history:
            messages.append({"role": "user", "content": prior_question})
            messages.append({"role": "assistant", "content": prior_answer})
        messages.append({"role": "user", "content": question})
        return messages

    def _complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float,
        max_tokens: int,
    ) -> str | None:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.exception("Chat completion failed")
            raise GenerationFailedError(str(e)) from e

        content = response.choices[0].message.content
        return content.strip() if content else None

    def generate(
        self,
        question: str,
        history: Sequence[tuple[str, str]],
        documents: Sequence[Document],
    ) -> str:
        """Generate an answer grounded in the retrieved documents.

        Returns:
            The model's answer, or a fallback apology when it returned nothing.

        Raises:
            GenerationFailedError: If the chat completion request fails.
        """
        messages = self.build_messages(question, history, documents)
        answer = self._complete(
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return answer or FALLBACK_ANSWER

    def condense_question(
        self,
        question: str,
        history: Sequence[tuple[str, str]],
    ) -> str:
        """Rewrite a follow-up question so it can be searched on its own.

        Returns:
            The standalone question, or ``question`` unchanged when there is
            no history or the model returned nothing.
        """
        if not history:
            return question

        rendered = "".join(
            f"Human: {prior_question}\nAssistant: {prior_answer}\n"
            for prior_question, prior_answer in history
        )
        prompt = CONDENSE_PROMPT.format(history=rendered, question=question)
        standalone = self._complete(
            [{"role": "user", "content": prompt}],
            temperature=config.QUERY_REWRITE_TEMPERATURE,
            max_tokens=config.QUERY_REWRITE_MAX_TOKENS,
        )
        standalone = standalone or question
        logger.info("Generated standalone query: %s", standalone)
        return standalone
