"""Command-line driver: runs one query through a request broker and prints the result."""

import sys
from time import time

from wordsolver.errors import DictionaryUnavailable, SolverError
from wordsolver.solver.broker import RequestBroker
from wordsolver.solver.config import SolverConfig


def run(
    letters: str,
    *,
    lang: str,
    category: str,
    min_len: int,
    config: SolverConfig,
) -> int:
    """Find and print the words that can be formed from `letters`.

    Words are printed to stdout, one per line; the summary and errors go to stderr.

    Args:
        letters (str): The available letters, as one string.
        lang (str): Language code.
        category (str): Word-list category.
        min_len (int): Minimum word length.
        config (SolverConfig): Solver configuration.

    Returns:
        The process exit code: 0 on success (even if no word matched), 1 on a solver error.
    """
    start_time = time()
    try:
        with RequestBroker(config) as broker:
            words = broker.find_words(list(letters), lang, category, min_len).result()
    except DictionaryUnavailable as e:
        print(f"No word list for {lang}/{category}: {e}", file=sys.stderr)
        return 1
    except SolverError as e:
        print(f"Solver failed ({e.kind}): {e}", file=sys.stderr)
        return 1

    for word in words:
        print(word)
    print(
        f"{len(words)} words found for {lang}/{category} in {time() - start_time:.3f}s",
        file=sys.stderr,
    )
    return 0
