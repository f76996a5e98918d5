"""Module for word list management in the word solver."""

import json
import logging
from os import PathLike
from pathlib import Path

from wordsolver.errors import DictionaryUnavailable

logger = logging.getLogger(__name__)


def word_list_path(data_dir: str | PathLike, lang: str, category: str) -> Path:
    """Return the path of the word list for a language and category.

    Word lists live at `<data_dir>/<Category>/<lang>/clue/<lang>-clue-<category>-words.json`,
    where `<Category>` is the category with its first letter upper-cased.
    """
    category_dir = category[:1].upper() + category[1:]
    return Path(data_dir) / category_dir / lang / "clue" / f"{lang}-clue-{category}-words.json"


def load_word_list(data_dir: str | PathLike, lang: str, category: str) -> list[str]:
    """Load the word list for a language and category.

    The file holds either a JSON array of strings or an object with a `words` array.

    Args:
        data_dir: Root directory of the word-list data files.
        lang: Language code, e.g. "en".
        category: Word-list category, e.g. "animals".

    Returns:
        The words in file order, stripped of surrounding whitespace.  Blank entries are dropped.

    Raises:
        DictionaryUnavailable: If the file is missing, unreadable or malformed.
    """
    if not lang or not category or any(sep in lang + category for sep in ("/", "\\", "..")):
        raise DictionaryUnavailable(f"No word list for {lang!r}/{category!r}")

    path = word_list_path(data_dir, lang, category)
    if not path.is_file():
        raise DictionaryUnavailable(f"Word list file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            document = json.load(f)
    except (OSError, ValueError) as e:
        raise DictionaryUnavailable(f"Could not read word list {path}: {e}") from e

    if isinstance(document, dict):
        document = document.get("words", [])
    if not isinstance(document, list):
        raise DictionaryUnavailable(f"Word list {path} is neither an array nor has a 'words' array")

    words = [stripped for w in document if isinstance(w, str) and (stripped := w.strip())]
    logger.info("Loaded %d words from %s", len(words), path)
    return words
