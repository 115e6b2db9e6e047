"""Email categorizer - labels a message with a single topical category."""

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from loguru import logger

from mailsorter.domain.entities.classified_record import UNCATEGORIZED
from mailsorter.domain.errors import ClassificationError
from mailsorter.infrastructure.llm import create_llm
from mailsorter.infrastructure.settings import Settings, get_settings

TAXONOMY = ("Work", "Personal", "Finance", "Shopping", "Travel")

CATEGORIZE_SYSTEM_PROMPT = (
    "You are an email categorization assistant. "
    f"Categorize emails into: {', '.join(TAXONOMY)}, or suggest a new category if none fit. "
    "Respond only with the category name."
)


class EmailCategorizer:
    """Wraps the chat model behind `classify(text) -> label`.

    Never raises: any backend failure or blank reply becomes "Uncategorized".
    Labels are trimmed but not checked against TAXONOMY, so novel
    categories pass through as-is.
    """

    def __init__(self, settings: Settings | None = None, llm: BaseChatModel | None = None):
        self._settings = settings
        self._llm = llm

    @property
    def llm(self) -> BaseChatModel:
        """Lazily initialize the LLM."""
        if self._llm is None:
            self._llm = create_llm(self._settings or get_settings())
        return self._llm

    def _complete(self, content: str) -> str:
        messages = [
            SystemMessage(content=CATEGORIZE_SYSTEM_PROMPT),
            HumanMessage(content=f"Categorize this email:\n{content}"),
        ]
        try:
            response = self.llm.invoke(messages)
        except Exception as e:
            raise ClassificationError(f"Classification call failed: {e}") from e

        reply = response.content
        if not isinstance(reply, str):
            raise ClassificationError(f"Unexpected reply type: {type(reply).__name__}")
        return reply

    def classify(self, content: str) -> str:
        try:
            label = self._complete(content).strip()
        except ClassificationError as e:
            logger.warning(f"{e}; using {UNCATEGORIZED}")
            return UNCATEGORIZED

        if not label:
            logger.warning(f"Empty classification reply; using {UNCATEGORIZED}")
            return UNCATEGORIZED

        logger.debug(f"Categorized '{content[:50]}...' → {label}")
        return label
