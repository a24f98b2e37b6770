"""Book folders on disk.

Layout of one book under the books directory::

    <book>/description.txt
          /settings.json
          /world-building.json
          /glossary.json              array of glossary entries
          /glossary.txt               legacy, converted to glossary.json on import
          /chapters_raw/_raw_data.json
          /chapters_translated/<safe title>.json
          /chapters_translated/<title>.txt   legacy, no source URL

In memory a book is a plain dict with the keys ``description``,
``settings``, ``worldBuilding``, ``glossary`` (keyed by term),
``rawChapterData`` and ``chapters``.
"""

import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any

from chapter_relay.errors import (
    BookAlreadyExistsError,
    BooksDirectoryNotSetError,
    InvalidBookNameError,
    StorageError,
)
from chapter_relay.storage.settings_store import SettingsStore

logger = logging.getLogger(__name__)

BOOKS_DIRECTORY_KEY = "booksDirectoryPath"

RAW_CHAPTERS_DIR = "chapters_raw"
RAW_CHAPTERS_FILE = "_raw_data.json"
TRANSLATED_CHAPTERS_DIR = "chapters_translated"

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')
_MAX_CHAPTER_FILENAME = 100

# Normalized "Key:" prefixes in glossary.txt -> entry field.
_GLOSSARY_FIELDS = {
    "term": "term",
    "pinyin": "pinyin",
    "category": "category",
    "chosenrendition": "chosenRendition",
    "decisionrationale": "decisionRationale",
    "excludedrendition": "excludedRendition",
    "excludedrationale": "excludedRationale",
    "notes": "notes",
}


def empty_book() -> dict[str, Any]:
    return {
        "glossary": {},
        "chapters": [],
        "rawChapterData": [],
        "description": "",
        "settings": {},
        "worldBuilding": {},
    }


def safe_chapter_filename(title: str) -> str:
    """File stem for a translated chapter."""
    return _UNSAFE_FILENAME_CHARS.sub("_", title)[:_MAX_CHAPTER_FILENAME]


def parse_glossary_entry(text: str) -> dict[str, str]:
    """Parse one ``Key: value`` block of a legacy glossary.txt."""
    entry = dict.fromkeys(_GLOSSARY_FIELDS.values(), "")
    for line in text.split("\n"):
        key, sep, value = line.partition(": ")
        value = value.strip()
        if not key or not sep or not value:
            continue
        field = _GLOSSARY_FIELDS.get(key.strip().lower().replace("_", ""))
        if field is not None:
            entry[field] = value
    return entry


def parse_glossary_text(text: str) -> dict[str, dict[str, str]]:
    """Parse a whole legacy glossary.txt into entries keyed by term."""
    glossary: dict[str, dict[str, str]] = {}
    for block in text.split("\n---\n"):
        if not block.strip():
            continue
        entry = parse_glossary_entry(block.strip())
        if entry["term"]:
            glossary[entry["term"]] = entry
    return glossary


def _dump_json(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _read_optional_json(path: Path, default: Any) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


class BookLibrary:
    """Reads and writes book folders under the configured books directory."""

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    @property
    def books_dir(self) -> Path | None:
        value = self._store.read_setting(BOOKS_DIRECTORY_KEY)
        if not value:
            return None
        return Path(value).expanduser()

    def set_books_dir(self, path: str | Path) -> None:
        self._store.write_setting(BOOKS_DIRECTORY_KEY, str(path))
        logger.info(f"Books directory set to {path}")

    def _require_books_dir(self) -> Path:
        books_dir = self.books_dir
        if books_dir is None:
            raise BooksDirectoryNotSetError()
        return books_dir

    def book_path(self, book_name: str, books_dir: Path | None = None) -> Path:
        """Resolve a book folder, rejecting names that escape the books directory."""
        root = (books_dir or self._require_books_dir()).resolve()
        if not book_name or not book_name.strip():
            raise InvalidBookNameError(book_name)
        target = (root / book_name).resolve()
        if target.parent != root:
            raise InvalidBookNameError(book_name)
        return target

    # -- Writes -----------------------------------------------------------

    def create_book(self, book_name: str) -> Path:
        """Create an empty book folder with its chapter subdirectories."""
        book_path = self.book_path(book_name)
        if book_path.exists():
            raise BookAlreadyExistsError(book_name)
        try:
            (book_path / RAW_CHAPTERS_DIR).mkdir(parents=True)
            (book_path / TRANSLATED_CHAPTERS_DIR).mkdir()
            _dump_json(book_path / "settings.json", {})
        except OSError as e:
            raise StorageError(f"Failed to create book folder: {e}") from e
        logger.info(f"Created new book folder: {book_path}")
        return book_path

    def save_book_folder(self, book_name: str, book: dict[str, Any]) -> Path:
        """Write the parts of ``book`` that are present. Missing parts stay untouched."""
        book_path = self.book_path(book_name)
        try:
            book_path.mkdir(parents=True, exist_ok=True)

            if book.get("description") is not None:
                (book_path / "description.txt").write_text(
                    book["description"], encoding="utf-8"
                )
            if book.get("settings") is not None:
                _dump_json(book_path / "settings.json", book["settings"])
            if book.get("worldBuilding") is not None:
                _dump_json(book_path / "world-building.json", book["worldBuilding"])
            if book.get("glossary") is not None:
                glossary = book["glossary"]
                entries = list(glossary.values()) if isinstance(glossary, dict) else glossary
                _dump_json(book_path / "glossary.json", entries)

            if book.get("rawChapterData") is not None:
                raw_dir = book_path / RAW_CHAPTERS_DIR
                raw_dir.mkdir(exist_ok=True)
                _dump_json(raw_dir / RAW_CHAPTERS_FILE, book["rawChapterData"])

            if book.get("chapters") is not None:
                translated_dir = book_path / TRANSLATED_CHAPTERS_DIR
                translated_dir.mkdir(exist_ok=True)
                for chapter in book["chapters"]:
                    title = str(chapter.get("title") or "")
                    _dump_json(
                        translated_dir / f"{safe_chapter_filename(title)}.json",
                        {
                            "title": title,
                            "sourceUrl": chapter.get("sourceUrl"),
                            "content": chapter.get("content"),
                        },
                    )
        except OSError as e:
            raise StorageError(f'Failed to write book data to disk for "{book_name}": {e}') from e

        logger.info(f'Book "{book_name}" saved')
        return book_path

    def delete_book(self, book_name: str) -> bool:
        """Remove a book folder. Returns False if it did not exist."""
        book_path = self.book_path(book_name)
        if not book_path.exists():
            return False
        try:
            shutil.rmtree(book_path)
        except OSError as e:
            raise StorageError(f"Failed to delete folder: {e}") from e
        logger.info(f"Deleted book folder: {book_path}")
        return True

    def delete_raw_chapters(self, book_name: str) -> bool:
        """Remove the raw chapter dump. Returns False if there was none."""
        raw_file = self.book_path(book_name) / RAW_CHAPTERS_DIR / RAW_CHAPTERS_FILE
        if not raw_file.exists():
            return False
        try:
            raw_file.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete raw chapters file: {e}") from e
        logger.info(f"Deleted raw chapters file: {raw_file}")
        return True

    # -- Reads ------------------------------------------------------------

    def load_book_folder(self, book_path: Path) -> dict[str, Any]:
        """Read one book folder. Unreadable optional files are skipped."""
        book = empty_book()

        try:
            book["description"] = (book_path / "description.txt").read_text(encoding="utf-8")
        except OSError:
            pass
        book["settings"] = _read_optional_json(book_path / "settings.json", {})
        book["worldBuilding"] = _read_optional_json(book_path / "world-building.json", {})

        raw_file = book_path / RAW_CHAPTERS_DIR / RAW_CHAPTERS_FILE
        if raw_file.exists():
            try:
                book["rawChapterData"] = json.loads(raw_file.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load raw chapters for {book_path.name}: {e}")

        book["glossary"] = self._load_glossary(book_path)
        book["chapters"] = self._load_chapters(book_path / TRANSLATED_CHAPTERS_DIR)
        return book

    def _load_glossary(self, book_path: Path) -> dict[str, Any]:
        json_path = book_path / "glossary.json"
        txt_path = book_path / "glossary.txt"

        if json_path.exists():
            entries = _read_optional_json(json_path, [])
            if not isinstance(entries, list):
                return {}
            return {
                entry["term"]: entry
                for entry in entries
                if isinstance(entry, dict) and entry.get("term")
            }

        if not txt_path.exists():
            return {}
        try:
            glossary = parse_glossary_text(txt_path.read_text(encoding="utf-8"))
        except OSError:
            return {}
        try:
            _dump_json(json_path, list(glossary.values()))
            logger.info(f"Converted glossary.txt to glossary.json for book: {book_path.name}")
        except OSError as e:
            logger.error(f"Could not write glossary.json for book {book_path.name}: {e}")
        return glossary

    def _load_chapters(self, chapters_dir: Path) -> list[dict[str, Any]]:
        if not chapters_dir.is_dir():
            return []
        by_title: dict[str, dict[str, Any]] = {}
        for chapter_file in sorted(chapters_dir.iterdir()):
            if chapter_file.suffix == ".json":
                chapter = _read_optional_json(chapter_file, None)
                if not isinstance(chapter, dict):
                    logger.warning(f"Skipping unreadable chapter file {chapter_file}")
                    continue
                by_title[str(chapter.get("title"))] = chapter
            elif chapter_file.suffix == ".txt":
                try:
                    content = chapter_file.read_text(encoding="utf-8")
                except OSError:
                    continue
                title = chapter_file.stem
                by_title[title] = {"title": title, "content": content, "sourceUrl": None}
        return list(by_title.values())

    def import_books(self, books_dir: str | Path) -> dict[str, dict[str, Any]]:
        """Load every book folder under ``books_dir`` and remember the directory."""
        root = Path(books_dir).expanduser()
        self.set_books_dir(root)
        try:
            folders = sorted(p for p in root.iterdir() if p.is_dir())
        except OSError as e:
            raise StorageError(f"Could not read the book directory. {e}") from e
        books = {folder.name: self.load_book_folder(folder) for folder in folders}
        logger.info(f"Imported {len(books)} book(s) from {root}")
        return books
