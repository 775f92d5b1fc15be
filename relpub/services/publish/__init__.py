"""Release publishing.

- artifacts: per-agent uploads into the version folder
- badges: completion detection from platform badges
- lease: semaphore lease with bounded wait
- promotion: exactly-once promotion of a version to Latest
- debrepo / dockerhub: downstream publishing hooks
- service: Result-returning entry points used by the CLI
"""

from __future__ import annotations
