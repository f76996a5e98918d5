"""Word solver configuration."""

from typing import Literal

from dotenv import find_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Determine the environment file path, or None if not found
ENV_FILE = find_dotenv(usecwd=True) or None


class SolverConfig(BaseSettings):
    """Configuration settings for the word solver."""

    data_dir: str = "data"
    """Root directory of the word-list data files. Default: "data"."""

    default_min_len: int = 2
    """Minimum word length used when a caller does not give one. Default: 2."""

    default_category: str = "general"
    """Word-list category used when a caller does not give one. Default: "general"."""

    start_method: Literal["spawn", "fork", "forkserver"] | None = None
    """Multiprocessing start method for the worker process.

    If None (default), uses the platform default.
    """

    poll_interval: float = 0.1
    """Seconds the listener thread waits on the response queue before checking worker health."""

    start_timeout: float = 10.0
    """Seconds to wait for the worker process to report that it is ready. Default: 10."""

    shutdown_timeout: float = 2.0
    """Seconds to wait for the worker to exit on close before terminating it. Default: 2."""

    log_level: str = "INFO"
    """Logging level for the command line and the worker process. Default: "INFO"."""

    model_config = SettingsConfigDict(
        env_prefix="WORDSOLVER_",
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )


config = SolverConfig()
