"""Local persistence: user settings and book folders."""

from chapter_relay.storage.books import (
    BOOKS_DIRECTORY_KEY,
    BookLibrary,
    parse_glossary_entry,
    parse_glossary_text,
    safe_chapter_filename,
)
from chapter_relay.storage.settings_store import SettingsStore

__all__ = [
    "BOOKS_DIRECTORY_KEY",
    "BookLibrary",
    "SettingsStore",
    "parse_glossary_entry",
    "parse_glossary_text",
    "safe_chapter_filename",
]
