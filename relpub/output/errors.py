"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from relpub.core.errors import ErrorCode
from relpub.output.console import Style
from relpub.services.publish.errors import PublishError

if TYPE_CHECKING:
    from relpub.output.console import ConsoleProtocol

__all__ = ["print_publish_error", "publish_error_exit_code"]


def print_publish_error(error: PublishError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def publish_error_exit_code(error: PublishError) -> int:
    match error.kind:
        case "config_error":
            return int(ErrorCode.ENV_ERROR)
        case "publish_disabled":
            return int(ErrorCode.USER_ERROR)
        case "network_failure":
            return int(ErrorCode.NETWORK_ERROR)
        case "lease_timeout" | "coordination_failure" | "upload_failed" | "package_publish_failed":
            return int(ErrorCode.PUBLISH_ERROR)
    # Fallback for exhaustiveness
    return int(ErrorCode.PUBLISH_ERROR)
