"""
Error Types
===========

Faults that can occur while handling one turn. None of them is ever shown
to the user directly: the agent converts anything that reaches the turn
boundary into a single apology reply.

    PersistenceFault      history file could not be read or written
    ReasoningServiceFault reasoning request timed out, failed, or was malformed
    ArgumentParseFault    selected action's arguments were not valid JSON
    UnknownActionFault    selected action is not part of the schema
    WalletServiceError    wallet backend rejected or failed a request
"""


class KiraError(Exception):
    """Base exception for the wallet assistant."""


class PersistenceFault(KiraError):
    """The conversation store could not be loaded or flushed."""


class ReasoningServiceFault(KiraError):
    """The reasoning request timed out, failed in transport, or returned garbage."""


class ArgumentParseFault(KiraError):
    """The arguments of a selected action could not be parsed."""

    def __init__(self, action: str, raw_arguments: str | None):
        self.action = action
        self.raw_arguments = raw_arguments
        super().__init__(f"Could not parse arguments for '{action}': {raw_arguments!r}")


class UnknownActionFault(KiraError):
    """The reasoning service selected an action outside the closed schema."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Unknown action selected: '{action}'")


class WalletServiceError(KiraError):
    """
    The wallet backend returned an error status or could not be reached.

    Attributes:
        status_code: HTTP status, or None for transport failures
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
