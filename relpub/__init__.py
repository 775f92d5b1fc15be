"""relpub - coordinated release publication for multi-platform builds."""

__version__ = "0.3.0"
