from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from relpub.core.result import Err, Ok, Result
from relpub.net.http import HttpClient
from relpub.output.console import ConsoleProtocol
from relpub.services.publish.artifacts import Artifact, ArtifactKind, ArtifactPublisher
from relpub.services.publish.badges import BadgeRegistry
from relpub.services.publish.config import (
    DEB_PUBLISHING_BADGE,
    ENV_DOCKER_HUB_REPO,
    ENV_DOCKER_HUB_TRIGGER_TOKEN,
    ENV_PUBLISH_GATE,
)
from relpub.services.publish.debrepo import PackageRepository
from relpub.services.publish.dockerhub import trigger_docker_hub_builds
from relpub.services.publish.errors import (
    ConfigurationError,
    LeaseTimeoutError,
    PromotionError,
    PublishError,
)
from relpub.services.publish.lease import LeasePolicy
from relpub.services.publish.model import PromotionReport, PublishContext
from relpub.services.publish.promotion import finalize_build
from relpub.storage.base import BlobStore, BlobStoreError


@dataclass(frozen=True, slots=True)
class DebPackage:
    """A ``.deb`` and the version it is uploaded and registered under."""

    name: str
    path: Path
    version: str


def publish_enabled(env: Mapping[str, str]) -> bool:
    return env.get(ENV_PUBLISH_GATE, "").strip().lower() in ("1", "true")


def finalize(
    store: BlobStore,
    ctx: PublishContext,
    *,
    policy: LeasePolicy,
    console: ConsoleProtocol,
    registry: BadgeRegistry | None = None,
    dry_run: bool = False,
) -> Result[PromotionReport, PublishError]:
    try:
        return Ok(
            finalize_build(
                store,
                ctx,
                policy=policy,
                console=console,
                registry=registry,
                dry_run=dry_run,
            )
        )
    except ConfigurationError as e:
        return Err(
            PublishError(
                kind="config_error",
                message=str(e),
                hint="add the platform to [badges].platforms in relpub.toml",
            )
        )
    except LeaseTimeoutError as e:
        return Err(
            PublishError(
                kind="lease_timeout",
                message=str(e),
                hint="another agent may have crashed while holding the lease; rerun once it expires",
            )
        )
    except PromotionError as e:
        hint = None
        if e.marker_written:
            hint = (
                f"the marker already names {e.version} but Latest/ may be incomplete; "
                f"delete {ctx.paths.marker(e.version)} and rerun finalize"
            )
        return Err(PublishError(kind="coordination_failure", message=str(e), hint=hint))
    except BlobStoreError as e:
        return Err(PublishError(kind="coordination_failure", message=f"finalize failed: {e}"))


def publish_artifacts(
    store: BlobStore,
    ctx: PublishContext,
    artifacts: Sequence[Artifact],
    *,
    base_url: str,
    console: ConsoleProtocol,
    deb_packages: Sequence[DebPackage] = (),
    packages: PackageRepository | None = None,
) -> Result[list[str], PublishError]:
    """Upload this agent's artifacts; the badge goes last.

    Debian packages are uploaded as installers and then registered with the
    package repository, on the Ubuntu agent only.
    """
    publisher = ArtifactPublisher(store, ctx, base_url=base_url, console=console)
    badges = [a for a in artifacts if a.kind is ArtifactKind.BADGE]
    others = [a for a in artifacts if a.kind is not ArtifactKind.BADGE]

    uploaded: list[str] = []
    try:
        uploaded.extend(publisher.publish_all(others))

        if deb_packages and ctx.badge != DEB_PUBLISHING_BADGE:
            console.warning(f"skipping Debian packages: only {DEB_PUBLISHING_BADGE} publishes them")
        elif deb_packages:
            if packages is None:
                return Err(
                    PublishError(
                        kind="package_publish_failed",
                        message="Debian packages given but no package repository configured",
                    )
                )
            for deb in deb_packages:
                installer = Artifact(deb.path, ArtifactKind.INSTALLER, deb.version)
                uploaded.append(publisher.publish(installer))
                url = publisher.installer_upload_url(deb.path, deb.version)
                published = packages.publish_package(deb.name, deb.version, url)
                if isinstance(published, Err):
                    return published

        uploaded.extend(publisher.publish_all(badges))
    except BlobStoreError as e:
        return Err(PublishError(kind="upload_failed", message=str(e)))

    return Ok(uploaded)


def trigger_docker(
    env: Mapping[str, str],
    *,
    http: HttpClient,
    console: ConsoleProtocol,
    required: bool,
) -> Result[None, PublishError]:
    """Trigger Docker Hub builds.

    When ``required`` is False and neither variable is set, the step is
    skipped; partial or malformed settings are always an error.
    """
    repo = env.get(ENV_DOCKER_HUB_REPO)
    token = env.get(ENV_DOCKER_HUB_TRIGGER_TOKEN)
    if not required and repo is None and token is None:
        console.info(f"{ENV_DOCKER_HUB_REPO} not set, skipping Docker Hub trigger")
        return Ok(None)
    return trigger_docker_hub_builds(repo=repo, token=token, http=http, console=console)
