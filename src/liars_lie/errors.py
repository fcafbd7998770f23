"""
Error types for the liar detection game.

Per-connection errors (connect, read, protocol) are always contained where the
connection is handled. Registry, bind and config errors are fatal to the caller.
"""


class LiarsLieError(Exception):
    """Base class for all game errors."""


class ConnectFailure(LiarsLieError):
    """An agent endpoint could not be reached."""


class ReadFailure(LiarsLieError):
    """A stream broke or timed out mid-transfer."""


class ProtocolViolation(LiarsLieError):
    """A request or response did not follow the wire protocol."""


class RegistryError(LiarsLieError):
    """The registry file is missing or cannot be parsed."""


class BindFailure(LiarsLieError):
    """An agent could not acquire a listening endpoint."""


class NoCandidateError(LiarsLieError):
    """Every value reported this round has already been proposed."""


class ConfigError(LiarsLieError):
    """Startup parameters are out of range."""
