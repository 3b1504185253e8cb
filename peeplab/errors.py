"""Error taxonomy shared by the API client, the dispatcher and the CLI.

Only ``ConfigurationError`` is fatal; everything else is turned into a
``FetchFailed`` action by the effect dispatcher and shown as a transient
status line.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Classification carried by error actions.

    The values double as the label shown in the status bar.
    """

    CONFIGURATION = "ConfigurationError"
    AUTHENTICATION = "AuthenticationError"
    NOT_FOUND = "NotFoundError"
    NETWORK = "NetworkError"
    PARSE = "ParseError"


class PeeplabError(RuntimeError):
    """Base class for every error raised by peeplab itself."""

    kind: ErrorKind = ErrorKind.PARSE


class ConfigurationError(PeeplabError):
    """Raised when settings are missing or invalid."""

    kind = ErrorKind.CONFIGURATION


class AuthenticationError(PeeplabError):
    """Raised when the provider rejects the access token."""

    kind = ErrorKind.AUTHENTICATION


class NotFoundError(PeeplabError):
    """Raised when a project, merge request or job is absent or hidden."""

    kind = ErrorKind.NOT_FOUND


class NetworkError(PeeplabError):
    """Raised on timeouts, connection failures and unexpected HTTP statuses."""

    kind = ErrorKind.NETWORK


class ParseError(PeeplabError):
    """Raised when a response body cannot be decoded or validated."""

    kind = ErrorKind.PARSE
