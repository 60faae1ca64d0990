"""Environment configuration, validated once at process start."""

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .errors import ConfigError

DEFAULT_RECIPIENT_ID = "255712345678"
DEFAULT_FETCH_LIMIT = 100

_TRUE = {"1", "true", "yes", "on"}


def _env(name: str) -> str | None:
    # Empty strings count as unset.
    value = os.environ.get(name, "").strip()
    return value or None


def _flag(name: str) -> bool:
    return (_env(name) or "").lower() in _TRUE


def get_database_url() -> str | None:
    """Return the message store URL, e.g. ``sqlite:///var/lib/bot/messages.db``."""
    return _env("CHAT_MIRROR_DATABASE_URL")


def get_callback_url() -> str | None:
    """Return the chatbot webhook that receives outbound messages."""
    return _env("CHAT_MIRROR_CALLBACK_URL")


def database_path(url: str) -> Path:
    """Extract the filesystem path from a SQLite URL.

    Follows the SQLAlchemy convention: ``sqlite:///rel.db`` is relative,
    ``sqlite:////abs/path.db`` is absolute. A bare path is accepted as-is.
    """
    if "://" not in url:
        return Path(url)
    parsed = urlparse(url)
    if parsed.scheme not in ("sqlite", "sqlite3"):
        raise ConfigError([f"CHAT_MIRROR_DATABASE_URL: unsupported scheme {parsed.scheme!r}"])
    path = parsed.netloc + parsed.path
    if path.startswith("/"):
        path = path[1:]
    return Path(path)


@dataclass
class Settings:
    database_url: str
    callback_url: str
    recipient_id: str = DEFAULT_RECIPIENT_ID
    fetch_limit: int = DEFAULT_FETCH_LIMIT
    show_tool_messages: bool = False

    @property
    def database_path(self) -> Path:
        return database_path(self.database_url)


def load_settings() -> Settings:
    """Read and validate settings from the environment.

    Raises ConfigError listing every problem, unless
    ``CHAT_MIRROR_SKIP_ENV_VALIDATION`` is set.
    """
    problems = []
    skip = _flag("CHAT_MIRROR_SKIP_ENV_VALIDATION")

    database_url = get_database_url()
    if not database_url:
        problems.append("CHAT_MIRROR_DATABASE_URL is required")
    else:
        try:
            path = database_path(database_url)
            if not str(path) or str(path) == ".":
                problems.append("CHAT_MIRROR_DATABASE_URL has no database path")
        except ConfigError as e:
            problems.extend(e.problems)

    callback_url = get_callback_url()
    if not callback_url:
        problems.append("CHAT_MIRROR_CALLBACK_URL is required")
    else:
        parsed = urlparse(callback_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            problems.append(f"CHAT_MIRROR_CALLBACK_URL is not an http(s) URL: {callback_url!r}")

    fetch_limit = DEFAULT_FETCH_LIMIT
    raw_limit = _env("CHAT_MIRROR_FETCH_LIMIT")
    if raw_limit:
        try:
            fetch_limit = int(raw_limit)
            if fetch_limit < 1:
                raise ValueError
        except ValueError:
            problems.append(f"CHAT_MIRROR_FETCH_LIMIT must be a positive integer: {raw_limit!r}")
            fetch_limit = DEFAULT_FETCH_LIMIT

    if problems and not skip:
        raise ConfigError(problems)

    return Settings(
        database_url=database_url or "",
        callback_url=callback_url or "",
        recipient_id=_env("CHAT_MIRROR_RECIPIENT_ID") or DEFAULT_RECIPIENT_ID,
        fetch_limit=fetch_limit,
        show_tool_messages=_flag("CHAT_MIRROR_SHOW_TOOLS"),
    )
