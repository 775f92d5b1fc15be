"""Process exit codes used by every relpub command."""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit status of a relpub invocation.

    Release pipelines branch on these, so the numbers are stable:
    1 for bad invocation, 2 for an agent that is not set up to publish
    (config or unregistered badge), 3 when an upload or promotion fails,
    4 when a webhook cannot be reached and 5 for local file problems.
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    PUBLISH_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
