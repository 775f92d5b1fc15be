from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from relpub.cli.commands._helpers import exit_on_error
from relpub.cli.commands.finalize_cmd import run_finalize
from relpub.cli.context import CLIContext, build_context
from relpub.core.errors import ErrorCode
from relpub.core.result import Err
from relpub.net.http import RealHttpClient
from relpub.services.publish.artifacts import Artifact, ArtifactKind
from relpub.services.publish.config import ENV_PUBLISH_GATE
from relpub.services.publish.debrepo import DebRepoPublisher
from relpub.services.publish.errors import PublishError
from relpub.services.publish.service import (
    DebPackage,
    publish_artifacts,
    publish_enabled,
    trigger_docker,
)


publish_app = typer.Typer(add_completion=False, no_args_is_help=True)

_ARCHIVE = typer.Option(None, "--archive", help="Archive versioned with the CLI version.")
_SFX_ARCHIVE = typer.Option(None, "--sharedfx-archive", help="Archive versioned with sharedfx.")
_INSTALLER = typer.Option(None, "--installer", help="Installer versioned with the CLI version.")
_SFX_INSTALLER = typer.Option(None, "--sharedfx-installer", help="Installer versioned with sharedfx.")
_PACKAGE = typer.Option(None, "--package", help="Package (e.g. .nupkg) for the version folder.")
_BADGE = typer.Option(None, "--badge", help="Version badge, uploaded last.")
_DEB = typer.Option(None, "--deb", help="Debian package as NAME=PATH (Ubuntu agent only).")
_SFX_DEB = typer.Option(
    None, "--sharedfx-deb", help="Shared runtime Debian package as NAME=PATH (Ubuntu agent only)."
)


def _exit(err: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {err}", err=True)
    raise typer.Exit(code=int(code))


def parse_deb(items: list[str], version: str, *, flag: str = "--deb") -> list[DebPackage]:
    out: list[DebPackage] = []
    for item in items:
        name, sep, path = item.partition("=")
        if not sep or not name.strip() or not path.strip():
            _exit(f"invalid {flag} (expected NAME=PATH): {item}", code=ErrorCode.USER_ERROR)
        out.append(DebPackage(name=name.strip(), path=Path(path.strip()), version=version))
    return out


def collect_artifacts(
    ctx: CLIContext,
    *,
    archives: list[Path],
    sharedfx_archives: list[Path],
    installers: list[Path],
    sharedfx_installers: list[Path],
    packages: list[Path],
    badge: Path | None,
) -> list[Artifact]:
    cli = ctx.publish.cli_version
    sfx = ctx.publish.sharedfx_version
    artifacts = [
        *(Artifact(p, ArtifactKind.ARCHIVE, cli) for p in archives),
        *(Artifact(p, ArtifactKind.ARCHIVE, sfx) for p in sharedfx_archives),
        *(Artifact(p, ArtifactKind.INSTALLER, cli) for p in installers),
        *(Artifact(p, ArtifactKind.INSTALLER, sfx) for p in sharedfx_installers),
        *(Artifact(p, ArtifactKind.PACKAGE, cli) for p in packages),
    ]
    if badge is not None:
        artifacts.append(Artifact(badge, ArtifactKind.BADGE, cli))

    missing = [str(a.path) for a in artifacts if not a.path.is_file()]
    if missing:
        _exit(f"file(s) not found: {', '.join(missing)}", code=ErrorCode.IO_ERROR)
    return artifacts


def _run_artifacts(
    ctx: CLIContext,
    *,
    archive: list[Path] | None,
    sharedfx_archive: list[Path] | None,
    installer: list[Path] | None,
    sharedfx_installer: list[Path] | None,
    package: list[Path] | None,
    badge: Path | None,
    deb: list[str] | None,
    sharedfx_deb: list[str] | None,
) -> None:
    artifacts = collect_artifacts(
        ctx,
        archives=archive or [],
        sharedfx_archives=sharedfx_archive or [],
        installers=installer or [],
        sharedfx_installers=sharedfx_installer or [],
        packages=package or [],
        badge=badge,
    )
    debs = [
        *parse_deb(deb or [], ctx.publish.cli_version),
        *parse_deb(sharedfx_deb or [], ctx.publish.sharedfx_version, flag="--sharedfx-deb"),
    ]
    repo = DebRepoPublisher(
        client=ctx.config.debrepo.client,
        work_dir=Path.cwd(),
        env=ctx.env,
        console=ctx.console,
    )
    uploaded = exit_on_error(
        publish_artifacts(
            ctx.store,
            ctx.publish,
            artifacts,
            base_url=ctx.config.publish.base_url,
            console=ctx.console,
            deb_packages=debs,
            packages=repo,
        ),
        ctx,
    )
    ctx.console.success(f"published {len(uploaded)} artifact(s) for {ctx.publish.badge}")


@publish_app.command("artifacts")
def artifacts_cmd(
    archive: list[Path] | None = _ARCHIVE,
    sharedfx_archive: list[Path] | None = _SFX_ARCHIVE,
    installer: list[Path] | None = _INSTALLER,
    sharedfx_installer: list[Path] | None = _SFX_INSTALLER,
    package: list[Path] | None = _PACKAGE,
    badge: Path | None = _BADGE,
    deb: list[str] | None = _DEB,
    sharedfx_deb: list[str] | None = _SFX_DEB,
) -> None:
    """Upload this agent's artifacts to the version folder."""
    _run_artifacts(
        build_context(),
        archive=archive,
        sharedfx_archive=sharedfx_archive,
        installer=installer,
        sharedfx_installer=sharedfx_installer,
        package=package,
        badge=badge,
        deb=deb,
        sharedfx_deb=sharedfx_deb,
    )


@publish_app.command("docker")
def docker_cmd() -> None:
    """Trigger automated Docker Hub builds."""
    ctx = build_context()
    exit_on_error(trigger_docker(ctx.env, http=RealHttpClient(), console=ctx.console, required=True), ctx)
    ctx.console.success("Docker Hub builds triggered")


@publish_app.command("run")
def run_cmd(
    archive: list[Path] | None = _ARCHIVE,
    sharedfx_archive: list[Path] | None = _SFX_ARCHIVE,
    installer: list[Path] | None = _INSTALLER,
    sharedfx_installer: list[Path] | None = _SFX_INSTALLER,
    package: list[Path] | None = _PACKAGE,
    badge: Path | None = _BADGE,
    deb: list[str] | None = _DEB,
    sharedfx_deb: list[str] | None = _SFX_DEB,
) -> None:
    """Full publish: artifacts, Docker Hub trigger, then finalize."""
    ctx = build_context()
    if not publish_enabled(ctx.env):
        exit_on_error(
            Err(
                PublishError(
                    kind="publish_disabled",
                    message=f"publishing is disabled ({ENV_PUBLISH_GATE} is not 1/true)",
                    hint=f"CI sets {ENV_PUBLISH_GATE}=1 on publishing builds",
                )
            ),
            ctx,
        )

    _run_artifacts(
        ctx,
        archive=archive,
        sharedfx_archive=sharedfx_archive,
        installer=installer,
        sharedfx_installer=sharedfx_installer,
        package=package,
        badge=badge,
        deb=deb,
        sharedfx_deb=sharedfx_deb,
    )
    exit_on_error(trigger_docker(ctx.env, http=RealHttpClient(), console=ctx.console, required=False), ctx)
    run_finalize(ctx, dry_run=False)
