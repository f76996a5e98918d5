"""Multiset matching of dictionary words against a bag of letters.

`find_words` scans a whole DictionaryStore at once using its count matrices.  `matches` is the
same test for a single WordRecord, written directly from the definition: it is the reference
that the vectorized scan must agree with, and is handy for checking one word by hand.
"""

from collections import Counter
from collections.abc import Iterable, Mapping

import numpy as np

from wordsolver.dictionary import DictionaryStore, WordRecord
from wordsolver.normalize import normalize


def make_letter_bag(letters: Iterable[str], lang: str) -> Counter[str]:
    """Build a letter bag from a sequence of letters.

    Each entry is normalized with the same rule used for dictionary words, and every alphabetic
    character it contains is counted.  Empty and non-alphabetic entries are dropped; there are no
    wildcards.

    Args:
        letters: The available letters, usually one character per entry.
        lang: Language code used for normalization.

    Returns:
        A Counter mapping each normalized letter to its available count.
    """
    bag: Counter[str] = Counter()
    for entry in letters:
        bag.update(ch for ch in normalize(entry, lang) if ch.isalpha())
    return bag


def is_playable(to_play: Mapping[str, int], tiles: Mapping[str, int]) -> bool:
    """Returns whether the letters to play can be formed from the available letters.

    Args:
        to_play (Mapping[str, int]): Letter counts needed, e.g. a word signature.
        tiles (Mapping[str, int]): Letter counts available.
    """
    return all(n <= tiles.get(ch, 0) for ch, n in to_play.items())


def matches(bag: Mapping[str, int], record: WordRecord, min_len: int) -> bool:
    """Return whether a single word can be formed from the bag and is long enough."""
    return len(record) >= min_len and is_playable(record.signature, bag)


def find_words(store: DictionaryStore, bag: Counter[str], min_len: int) -> list[str]:
    """Find every word in the store that can be formed from the letter bag.

    Leftover letters are allowed: a word only has to use a sub-multiset of the bag.  Only the
    length buckets between `min_len` and the bag size are scanned, and within each bucket the
    signatures are compared against the bag all at once.

    Args:
        store (DictionaryStore): The dictionary to search.
        bag (Counter[str]): Normalized letter bag, see `make_letter_bag`.
        min_len (int): Minimum word length.

    Returns:
        The matching words, spelled as in the source word list, in dictionary load order.
    """
    total = bag.total()
    max_len = min(total, store.max_length)
    if max_len < max(min_len, 1):
        return []

    vector = store.bag_vector(bag)
    hits: list[np.ndarray] = []
    for length in range(max(min_len, 1), max_len + 1):
        bucket = store.buckets.get(length)
        if bucket is None:
            continue
        fits = np.all(bucket.counts <= vector, axis=1)
        if fits.any():
            hits.append(bucket.indices[fits])

    if not hits:
        return []
    # Buckets are disjoint, so sorting the record indices restores load order
    order = np.sort(np.concatenate(hits))
    return [store.records[idx].word for idx in order]
