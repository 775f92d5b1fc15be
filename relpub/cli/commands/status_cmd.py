from __future__ import annotations

import typer

from relpub.cli.context import build_context
from relpub.core.errors import ErrorCode
from relpub.output.console import Style
from relpub.services.publish.badges import check_all_published
from relpub.services.publish.errors import ConfigurationError
from relpub.storage.base import BlobStoreError


def status() -> None:
    """Show which platforms have published the current version."""
    ctx = build_context()
    console = ctx.console
    try:
        report = check_all_published(ctx.store, ctx.publish, ctx.registry)
    except ConfigurationError as e:
        console.error(str(e))
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    except BlobStoreError as e:
        console.error(str(e))
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))

    console.header(f"{ctx.publish.channel} {report.version} ({ctx.publish.badge})")
    for platform in ctx.registry.platforms:
        if platform in report.present:
            console.success(platform)
        else:
            console.print(f"-- {platform}", Style.DIM)

    if report.complete:
        console.success("all platforms published")
    else:
        console.info(f"{len(report.missing)} platform(s) missing")
