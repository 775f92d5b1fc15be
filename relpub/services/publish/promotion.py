"""Promotion of a completed version to the Latest alias.

Every agent runs ``finalize_build`` after uploading its own artifacts. The
last agent to finish sees all badges and promotes; when several finish at
once they all see all badges, so the marker blob is re-checked under the
semaphore lease and only the first lease holder does the work.

Promotion order inside the lease:
1. delete everything under ``Latest/`` (including the previous marker);
2. write the marker for this version;
3. copy the version folder into ``Latest/`` with versions renamed to "latest";
4. write the dnvm version descriptors.

The marker is written before the copy. A failure during steps 3-4 leaves a
marker that claims a promotion which is incomplete; nothing retries or repairs
that state automatically.
"""

from __future__ import annotations

from relpub.output.console import ConsoleProtocol, Style
from relpub.services.publish.badges import BadgeRegistry, check_all_published
from relpub.services.publish.config import DNVM_MONIKERS, LATEST_TOKEN
from relpub.services.publish.errors import PromotionError
from relpub.services.publish.lease import HeldLease, LeasePolicy, hold_lease
from relpub.services.publish.model import (
    CompletionReport,
    PromotionOutcome,
    PromotionReport,
    PublishContext,
)
from relpub.storage.base import BlobNotFoundError, BlobStore, BlobStoreError, file_name


def latest_name(name: str, ctx: PublishContext) -> str:
    """Rename a versioned file name for the Latest folder."""
    for version in (ctx.cli_version, ctx.sharedfx_version):
        if version:
            name = name.replace(version, LATEST_TOKEN)
    return name


def plan_copies(blobs: tuple[str, ...], ctx: PublishContext) -> tuple[tuple[str, str], ...]:
    paths = ctx.paths
    return tuple((blob, paths.latest(latest_name(file_name(blob), ctx))) for blob in blobs)


def version_descriptor(commit_hash: str, version: str) -> str:
    if commit_hash:
        return f"{commit_hash}\n{version}\n"
    return f"{version}\n"


def plan_descriptors(ctx: PublishContext) -> tuple[tuple[str, str], ...]:
    paths = ctx.paths
    cli = version_descriptor(ctx.commit_hash, ctx.cli_version)
    sfx = version_descriptor(ctx.commit_hash, ctx.sharedfx_version)
    out: list[tuple[str, str]] = []
    for moniker in DNVM_MONIKERS:
        out.append((paths.dnvm_cli(moniker), cli))
        out.append((paths.dnvm_sharedfx(moniker), sfx))
    return tuple(out)


def is_marked_promoted(store: BlobStore, ctx: PublishContext) -> bool:
    """True if the marker says ``ctx.cli_version`` is already in Latest.

    An empty marker counts too: the path itself names the version.
    """
    try:
        content = store.read_text(ctx.paths.marker(ctx.cli_version)).strip()
    except BlobNotFoundError:
        return False
    return content in ("", ctx.cli_version)


def _promote(
    store: BlobStore,
    ctx: PublishContext,
    completion: CompletionReport,
    lease: HeldLease,
    console: ConsoleProtocol,
) -> PromotionReport:
    paths = ctx.paths
    version = ctx.cli_version

    stage = "clear"
    try:
        stale = tuple(store.list_blobs(paths.latest_prefix))
        for blob in stale:
            store.delete_blob(blob)
        console.print(f"removed {len(stale)} blob(s) from {paths.latest_prefix}", Style.DIM)

        stage = "marker"
        store.write_text(paths.marker(version), version)

        stage = "copy"
        copies = plan_copies(completion.blobs, ctx)
        for src, dst in copies:
            store.copy_blob(src, dst)
            console.print(f"{src} -> {dst}", Style.DIM)
            lease.renew()

        stage = "descriptors"
        descriptors = plan_descriptors(ctx)
        for path, content in descriptors:
            store.write_text(path, content)
    except BlobStoreError as e:
        raise PromotionError(version, stage, e) from e

    return PromotionReport(
        outcome=PromotionOutcome.PROMOTED,
        version=version,
        completion=completion,
        deleted=stale,
        copied=copies,
        descriptors=tuple(p for p, _ in descriptors),
    )


def finalize_build(
    store: BlobStore,
    ctx: PublishContext,
    *,
    policy: LeasePolicy,
    console: ConsoleProtocol,
    registry: BadgeRegistry | None = None,
    dry_run: bool = False,
) -> PromotionReport:
    """Promote ``ctx.cli_version`` to Latest if every platform has published.

    Raises:
        ConfigurationError: If the current agent's badge is not registered.
        LeaseTimeoutError: If the semaphore stays leased past the wait timeout.
        PromotionError: If a blob operation fails after promotion started.
        BlobStoreError: If listing or leasing fails before promotion started.
    """
    completion = check_all_published(store, ctx, registry)
    if not completion.complete:
        console.info(f"{ctx.cli_version}: waiting on {', '.join(completion.missing)}")
        return PromotionReport(PromotionOutcome.INCOMPLETE, ctx.cli_version, completion)

    console.info(f"{ctx.cli_version}: all {len(completion.present)} platforms published")

    if dry_run:
        if is_marked_promoted(store, ctx):
            return PromotionReport(PromotionOutcome.ALREADY_PROMOTED, ctx.cli_version, completion)
        return PromotionReport(
            outcome=PromotionOutcome.PLANNED,
            version=ctx.cli_version,
            completion=completion,
            deleted=tuple(store.list_blobs(ctx.paths.latest_prefix)),
            copied=plan_copies(completion.blobs, ctx),
            descriptors=tuple(p for p, _ in plan_descriptors(ctx)),
        )

    with hold_lease(store, ctx.paths.semaphore, policy=policy, console=console) as lease:
        if is_marked_promoted(store, ctx):
            console.info(f"{ctx.cli_version} was already promoted by another agent")
            return PromotionReport(PromotionOutcome.ALREADY_PROMOTED, ctx.cli_version, completion)

        report = _promote(store, ctx, completion, lease, console)

    console.success(f"promoted {ctx.cli_version} to {ctx.paths.latest_prefix}")
    return report
