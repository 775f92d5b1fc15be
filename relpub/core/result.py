"""Result type for explicit error handling.

Service functions that can fail for expected reasons (bad configuration, an
unreachable webhook, a failed upload) return a Result instead of raising.
Callers branch on the outcome and decide how to report it.

Usage:
    match publish_artifacts(store, ctx, artifacts, base_url=url, console=console):
        case Ok(uploaded):
            console.success(f"published {len(uploaded)} artifact(s)")
        case Err(error):
            print_publish_error(error, console)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
