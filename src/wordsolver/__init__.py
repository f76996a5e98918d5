"""Letter-bag word solver.

Finds every dictionary word that can be formed from a bag of letters.  Searches run in a
background worker process; callers submit them through a `RequestBroker`, which hands back one
awaitable handle per query and matches each response to its query by correlation id.
"""

import argparse
import logging
import sys

from .solver import solver
from .solver.broker import PendingCall, RequestBroker
from .solver.config import SolverConfig
from .solver.config import config as default_config

__all__ = ["PendingCall", "RequestBroker", "SolverConfig", "main"]


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the word solver."""
    parser = argparse.ArgumentParser(
        prog="wordsolver",
        description="List the dictionary words that can be formed from a bag of letters.",
    )
    parser.add_argument("letters", help="available letters, e.g. 'letr'")
    parser.add_argument("--lang", default="en", help="language code (default: en)")
    parser.add_argument(
        "--category",
        default=default_config.default_category,
        help=f"word-list category (default: {default_config.default_category})",
    )
    parser.add_argument(
        "--min-len",
        type=int,
        default=default_config.default_min_len,
        help=f"minimum word length (default: {default_config.default_min_len})",
    )
    parser.add_argument("--data-dir", help="root directory of the word lists")
    args = parser.parse_args(argv)

    config = default_config
    if args.data_dir is not None:
        config = default_config.model_copy(update={"data_dir": args.data_dir})

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(
        solver.run(
            args.letters,
            lang=args.lang,
            category=args.category,
            min_len=args.min_len,
            config=config,
        )
    )
