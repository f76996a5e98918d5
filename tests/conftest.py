import json
from collections.abc import Callable
from pathlib import Path

import pytest

from wordsolver.solver.config import SolverConfig
from wordsolver.wordlist import word_list_path

WriteWordList = Callable[..., Path]


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def write_word_list(data_dir: Path) -> WriteWordList:
    """Write a word list file for a language and category, in either JSON layout."""

    def write(lang: str, category: str, words: list, *, wrapped: bool = False) -> Path:
        path = word_list_path(data_dir, lang, category)
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {"words": words} if wrapped else words
        path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
        return path

    return write


@pytest.fixture
def word_lists(write_word_list: WriteWordList) -> None:
    write_word_list("en", "general", ["let", "tree", "let", "rel"])
    write_word_list("en", "letters", ["aa", "ab", "abb"], wrapped=True)
    write_word_list("ar", "animals", ["أسد", "قطة", "دب", "ذئب"])


@pytest.fixture
def config(data_dir: Path) -> SolverConfig:
    return SolverConfig(data_dir=str(data_dir), poll_interval=0.05, log_level="DEBUG")
