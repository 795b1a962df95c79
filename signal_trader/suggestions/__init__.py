"""Suggestions: grade classification, storage and periodic regeneration."""

from signal_trader.suggestions.classifier import SuggestionGenerator, classify_grades
from signal_trader.suggestions.service import SuggestionService
from signal_trader.suggestions.storage import (
    FileSuggestionStorage,
    MemorySuggestionStorage,
    SuggestionStorage,
    create_suggestion_storage,
)

__all__ = [
    "SuggestionGenerator",
    "classify_grades",
    "SuggestionService",
    "FileSuggestionStorage",
    "MemorySuggestionStorage",
    "SuggestionStorage",
    "create_suggestion_storage",
]
