"""Dictionary store: an indexed word list for one language and category."""

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from os import PathLike
from types import MappingProxyType
from typing import NamedTuple

import numpy as np

from wordsolver.normalize import normalize
from wordsolver.wordlist import load_word_list

logger = logging.getLogger(__name__)


class DictionaryKey(NamedTuple):
    """Identifies one loadable word list."""

    language: str
    category: str


@dataclass(frozen=True)
class WordRecord:
    """A dictionary word and its letter-frequency signature."""

    word: str
    """The word as spelled in the source word list."""

    normalized: str
    """The word after language normalization; this is what gets matched."""

    signature: Mapping[str, int]
    """Read-only mapping of each letter to the number of times it occurs in `normalized`."""

    @classmethod
    def from_word(cls, word: str, lang: str) -> "WordRecord":
        """Build a record, normalizing the word and computing its signature."""
        normalized = normalize(word, lang)
        return cls(
            word=word,
            normalized=normalized,
            signature=MappingProxyType(dict(Counter(normalized))),
        )

    def __len__(self) -> int:
        return len(self.normalized)


@dataclass(frozen=True)
class LengthBucket:
    """All words of one length, with their signatures stacked into a count matrix."""

    indices: np.ndarray
    """Positions of the bucket's words in `DictionaryStore.records`, ascending."""

    counts: np.ndarray
    """Matrix of shape (words, alphabet); `counts[i, j]` is how often letter j occurs in word i."""


class DictionaryStore:
    """Holds the word list for one (language, category) pair, indexed for multiset matching.

    Words are kept in load order.  Repeated spellings and blank entries are dropped, keeping the
    first occurrence; distinct spellings that normalize to the same form are all kept.  Words are
    bucketed by length, and each bucket stores the signatures of its words as a numpy count
    matrix over the store's alphabet, so that checking whether a word fits in a letter bag is a
    vectorized comparison against one bag vector.
    """

    def __init__(self, key: DictionaryKey, words: Iterable[str]) -> None:
        self.key = key

        records: list[WordRecord] = []
        seen: set[str] = set()
        for word in words:
            word = word.strip()
            if not word or word in seen:
                continue
            record = WordRecord.from_word(word, key.language)
            if not record.normalized:
                continue
            seen.add(word)
            records.append(record)
        self.records: tuple[WordRecord, ...] = tuple(records)
        """Word records in load order."""

        # Every letter occurring in some word gets a column in the count matrices
        self.alphabet: tuple[str, ...] = tuple(sorted({ch for r in records for ch in r.signature}))
        self.columns: dict[str, int] = {ch: col for col, ch in enumerate(self.alphabet)}

        by_length: dict[int, list[int]] = {}
        for idx, record in enumerate(records):
            by_length.setdefault(len(record), []).append(idx)

        self.buckets: dict[int, LengthBucket] = {}
        for length, idxs in by_length.items():
            counts = np.zeros((len(idxs), len(self.alphabet)), dtype=np.int32)
            for row, idx in enumerate(idxs):
                for ch, n in records[idx].signature.items():
                    counts[row, self.columns[ch]] = n
            self.buckets[length] = LengthBucket(
                indices=np.array(idxs, dtype=np.intp),
                counts=counts,
            )

        self.max_length = max(self.buckets, default=0)

    @classmethod
    def load(cls, language: str, category: str, *, data_dir: str | PathLike) -> "DictionaryStore":
        """Load and index the word list for a language and category.

        Raises:
            DictionaryUnavailable: If there is no readable word list for the key.
        """
        key = DictionaryKey(language, category)
        store = cls(key, load_word_list(data_dir, language, category))
        logger.info(
            "Indexed %s/%s: %d words, %d letters, lengths %s",
            language,
            category,
            len(store),
            len(store.alphabet),
            sorted(store.buckets),
        )
        return store

    def __len__(self) -> int:
        return len(self.records)

    def __repr__(self) -> str:
        return f"DictionaryStore({self.key.language!r}, {self.key.category!r}, words={len(self)})"

    @property
    def words(self) -> list[str]:
        """The words of the store, in load order."""
        return [r.word for r in self.records]

    def bag_vector(self, bag: Mapping[str, int]) -> np.ndarray:
        """Convert a letter bag to a count vector over this store's alphabet.

        Letters outside the alphabet are dropped: no word in the store uses them.
        """
        vector = np.zeros(len(self.alphabet), dtype=np.int32)
        for ch, n in bag.items():
            col = self.columns.get(ch)
            if col is not None and n > 0:
                vector[col] = n
        return vector
