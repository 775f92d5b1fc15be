"""Semaphore lease handling.

The publish semaphore is an empty blob that exists only to be leased. Agents
wait for it with exponential backoff and give up after ``wait_timeout``; the
lease is time-bound, so a crashed holder blocks others for at most one lease
duration.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from time import monotonic, sleep

from relpub.core.config import LeaseConfig
from relpub.output.console import ConsoleProtocol, Style
from relpub.services.publish.errors import LeaseTimeoutError
from relpub.storage.base import BlobStore, BlobStoreError, LeaseConflictError


@dataclass(frozen=True, slots=True)
class LeasePolicy:
    duration: float
    wait_timeout: float
    initial_backoff: float
    max_backoff: float

    @classmethod
    def from_config(cls, config: LeaseConfig) -> LeasePolicy:
        return cls(
            duration=config.duration,
            wait_timeout=config.wait_timeout,
            initial_backoff=config.initial_backoff,
            max_backoff=config.max_backoff,
        )


DEFAULT_LEASE_POLICY = LeasePolicy.from_config(LeaseConfig())


@dataclass(frozen=True, slots=True)
class HeldLease:
    store: BlobStore
    path: str
    lease_id: str

    def renew(self) -> None:
        self.store.renew_lease(self.path, self.lease_id)


def acquire_lease(
    store: BlobStore,
    path: str,
    *,
    policy: LeasePolicy,
    console: ConsoleProtocol,
) -> str:
    """Take the lease on ``path``, waiting while another agent holds it.

    Raises:
        LeaseTimeoutError: If the lease is still taken after ``wait_timeout``.
    """
    deadline = monotonic() + policy.wait_timeout
    delay = policy.initial_backoff
    attempts = 0
    while True:
        attempts += 1
        try:
            return store.acquire_lease(path, policy.duration)
        except LeaseConflictError:
            remaining = deadline - monotonic()
            if remaining <= 0:
                raise LeaseTimeoutError(path, policy.wait_timeout, attempts) from None
            wait = min(delay, remaining)
            console.print(f"{path} is leased by another agent, retrying in {wait:.1f}s", Style.DIM)
            sleep(wait)
            delay = min(delay * 2, policy.max_backoff)


@contextmanager
def hold_lease(
    store: BlobStore,
    path: str,
    *,
    policy: LeasePolicy,
    console: ConsoleProtocol,
) -> Iterator[HeldLease]:
    """Create the semaphore blob if needed, lease it, and always release it.

    An exception raised in the body propagates after the release. If the
    release itself fails in that case, it is reported and the original
    exception wins.
    """
    if store.create_if_not_exists(path):
        console.print(f"created semaphore {path}", Style.DIM)

    lease_id = acquire_lease(store, path, policy=policy, console=console)
    held = HeldLease(store=store, path=path, lease_id=lease_id)
    try:
        yield held
    except BaseException:
        try:
            store.release_lease(path, lease_id)
        except BlobStoreError as e:
            console.warning(f"could not release lease on {path}: {e}")
        raise
    else:
        store.release_lease(path, lease_id)
