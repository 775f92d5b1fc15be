from __future__ import annotations

import typer

from relpub.cli.commands._helpers import exit_on_error
from relpub.cli.context import CLIContext, build_context
from relpub.output.console import Style
from relpub.services.publish.model import PromotionOutcome, PromotionReport
from relpub.services.publish.service import finalize as finalize_service


def print_promotion_report(report: PromotionReport, ctx: CLIContext) -> None:
    console = ctx.console
    match report.outcome:
        case PromotionOutcome.INCOMPLETE:
            console.info(f"{report.version} is not complete yet, nothing to promote")
        case PromotionOutcome.ALREADY_PROMOTED:
            console.info(f"{report.version} is already the latest version")
        case PromotionOutcome.PLANNED:
            console.header(f"dry run: promote {report.version}")
            for path in report.deleted:
                console.print(f"delete {path}", Style.DIM)
            for src, dst in report.copied:
                console.print(f"copy {src} -> {dst}", Style.DIM)
            for path in report.descriptors:
                console.print(f"write {path}", Style.DIM)
        case PromotionOutcome.PROMOTED:
            console.print(
                f"copied {len(report.copied)} blob(s), wrote {len(report.descriptors)} descriptor(s)",
                Style.DIM,
            )


def run_finalize(ctx: CLIContext, *, dry_run: bool) -> PromotionReport:
    result = finalize_service(
        ctx.store,
        ctx.publish,
        policy=ctx.policy,
        console=ctx.console,
        registry=ctx.registry,
        dry_run=dry_run,
    )
    report = exit_on_error(result, ctx)
    print_promotion_report(report, ctx)
    return report


def finalize(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be promoted."),
) -> None:
    """Promote the version to Latest once every platform has published."""
    run_finalize(build_context(), dry_run=dry_run)
