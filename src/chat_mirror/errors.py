"""Exception hierarchy for chat-mirror.

Collaborators raise these internally and turn them into result values
(``FetchResult.error`` / ``RelayResult``) before anything reaches the store.
"""


class ChatMirrorError(Exception):
    """Base class for all chat-mirror errors."""


class ConfigError(ChatMirrorError):
    """Environment configuration is missing or invalid."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid configuration: " + "; ".join(problems))


class FetchError(ChatMirrorError):
    """Reading messages from the store failed."""


class ConnectivityError(FetchError):
    """The message store is unreachable."""


class GenericError(FetchError):
    """The store answered but the query failed or returned malformed data."""


class RelayError(ChatMirrorError):
    """The outbound webhook rejected the message or could not be reached."""
