"""Agent implementations for mailsorter."""

from mailsorter.application.agents.categorizer import (
    CATEGORIZE_SYSTEM_PROMPT,
    TAXONOMY,
    EmailCategorizer,
)

__all__ = [
    "CATEGORIZE_SYSTEM_PROMPT",
    "TAXONOMY",
    "EmailCategorizer",
]
