"""Platform abstraction layer."""

from .detection import (
    Arch,
    LinuxDistro,
    Platform,
    PlatformInfo,
    detect,
)
from .process import (
    ProcessError,
    run,
)

__all__ = [
    # detection
    "Arch",
    "LinuxDistro",
    "Platform",
    "PlatformInfo",
    "detect",
    # process
    "ProcessError",
    "run",
]
