"""Error taxonomy for the spread bot.

Only exchange transport calls and caller input checks raise these; the
orchestrator converts every one of them into a structured outcome.
"""

from typing import Optional


class SpreadBotError(Exception):
    """Base error carrying a machine-readable kind."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DataUnavailable(SpreadBotError):
    """A price could not be read from an otherwise valid response."""

    kind = "data_unavailable"


class UpstreamError(SpreadBotError):
    """Transport failure, non-2xx status or malformed envelope from an exchange."""

    kind = "upstream"

    def __init__(self, message: str, status: Optional[int] = None, payload=None):
        super().__init__(message)
        self.status = status
        self.payload = payload


class ConfigurationError(SpreadBotError):
    """Signing credentials or other required settings are missing."""

    kind = "configuration"


class ValidationError(SpreadBotError):
    """Missing or malformed caller input."""

    kind = "validation"
