"""Exceptions raised by the bot."""


class GilfondBotError(Exception):
    """Base class for all bot errors."""


class ConfigError(GilfondBotError):
    pass


class AuthenticationError(GilfondBotError):
    """Cached session is invalid and the credential login did not help."""


class ScopeUnavailableError(GilfondBotError):
    """A program or house selector is not rendered; the scope is empty."""


class PortalError(GilfondBotError):
    """An expected portal element is missing on a step that must not be skipped."""


class PriorityNotConvergedError(GilfondBotError):
    def __init__(self, rounds, remaining):
        super().__init__(
            f"priorities still unset after {rounds} rounds ({remaining} entries left)"
        )
        self.rounds = rounds
        self.remaining = remaining


class RowUnavailableError(GilfondBotError):
    """A listing row or its "добавить" link disappeared before the click."""
