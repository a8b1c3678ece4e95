"""Operator CLI for the tip verification engine using Typer and Rich."""

import asyncio
import sys
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tip_triage.auth import Caller, Role
from tip_triage.config.logging import get_logger
from tip_triage.config.settings import settings
from tip_triage.data_management.case_repository import InMemoryCaseRepository
from tip_triage.data_management.schemas import QueueStatus, QueueType
from tip_triage.errors import TipTriageError
from tip_triage.service import MAX_PAGE_SIZE, TipVerificationService
from tip_triage.vision import build_photo_analyzer

app = typer.Typer(
    help="Tip Verification & Triage Engine - score, deduplicate and route missing-person tips",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")

# Local operator; the CLI acts with full rights on the fixture it loads.
OPERATOR = Caller(id="cli-operator", role=Role.ADMIN, is_verified=True, display_name="CLI operator")

BUCKET_STYLES = {
    "critical": "bold red",
    "high": "red",
    "standard": "yellow",
    "low": "dim",
}


def _load_service(fixture: str, data_dir: Optional[str]) -> TipVerificationService:
    repository = InMemoryCaseRepository.from_fixture(fixture)
    return TipVerificationService.from_repository(
        repository,
        data_dir=data_dir,
        photo_analyzer=build_photo_analyzer(),
    )


async def _verify_all(
    service: TipVerificationService,
    tip_ids: List[str],
    force: bool,
    skip_verified: bool = False,
):
    outcomes = []
    try:
        for tip_id in tip_ids:
            if skip_verified and await service.records.get_by_tip(tip_id) is not None:
                continue
            outcomes.append(await service.verify(OPERATOR, tip_id, force=force))
    finally:
        analyzer = service.pipeline.scoring_engine.photo_analyzer
        if analyzer is not None and hasattr(analyzer, "close"):
            await analyzer.close()
    return outcomes


@app.command()
def status() -> None:
    """
    Display engine configuration.

    Shows persistence, vision provider and logging settings.
    """
    logger.info("Displaying engine status")

    table = Table(title="Tip Triage Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=15)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", python_version)

    if settings.data_dir:
        table.add_row("Persistence", "✓ JSON files", settings.data_dir)
    else:
        table.add_row("Persistence", "⚠ Memory only", "Set DATA_DIR to persist records and queue")

    vision_status = "✓ Configured" if settings.vision_api_url else "✗ Disabled"
    vision_details = (
        f"{settings.vision_api_url} (timeout {settings.vision_timeout_seconds}s, "
        f"concurrency {settings.vision_max_concurrency})"
        if settings.vision_api_url
        else "Photo scoring uses attachment metadata only"
    )
    table.add_row("Vision", vision_status, vision_details)

    table.add_row("Logging", "✓ Active", f"Level: {settings.log_level}, Format: {settings.log_format}")

    console.print(table)


@app.command()
def verify(
    fixture: str = typer.Argument(..., help="JSON fixture of storage rows"),
    tip_id: Optional[List[str]] = typer.Option(None, "--tip-id", "-t", help="Tip to verify (repeatable; default all)"),
    force: bool = typer.Option(False, "--force", help="Re-verify tips that already have a record"),
    data_dir: Optional[str] = typer.Option(settings.data_dir, "--data-dir", help="Persist records and queue here"),
) -> None:
    """
    Verify tips from a fixture and print their triage results.
    """
    try:
        service = _load_service(fixture, data_dir)
        tip_ids = tip_id or service.pipeline.loader.tips.tip_ids()
        logger.info(f"Verifying {len(tip_ids)} tip(s) from {fixture}")
        outcomes = asyncio.run(_verify_all(service, tip_ids, force))
    except TipTriageError as e:
        console.print(f"\n[red]✗[/red] {e}")
        logger.error(f"Verification failed: {e}")
        raise typer.Exit(1)

    table = Table(title="Verification Results", show_header=True, header_style="bold magenta")
    table.add_column("Tip", style="cyan")
    table.add_column("Credibility", justify="right")
    table.add_column("Spam", justify="right")
    table.add_column("Bucket")
    table.add_column("Review")
    table.add_column("Auto actions", style="dim")

    for outcome in outcomes:
        record = outcome.record
        bucket = record.priority_bucket.value
        table.add_row(
            record.tip_id,
            str(record.credibility_score),
            str(record.spam_score),
            f"[{BUCKET_STYLES[bucket]}]{bucket}[/{BUCKET_STYLES[bucket]}]",
            f"P{record.review_priority}" if record.requires_human_review else "-",
            ", ".join(record.auto_actions),
        )
    console.print(table)

    for outcome in outcomes:
        record = outcome.record
        if record.warnings:
            lines = [f"[{w.severity.value}] {w.type}: {w.message}" for w in record.warnings]
            console.print(Panel("\n".join(lines), title=f"Warnings for {record.tip_id}", border_style="yellow"))


@app.command()
def queue(
    fixture: str = typer.Argument(..., help="JSON fixture of storage rows"),
    data_dir: Optional[str] = typer.Option(settings.data_dir, "--data-dir", help="Directory holding the persisted queue"),
    queue_type: Optional[QueueType] = typer.Option(None, "--type", help="Only this queue"),
    status: QueueStatus = typer.Option(QueueStatus.PENDING, "--status", help="Item status"),
) -> None:
    """
    Show the review queue in service order with SLA state.

    Tips in the fixture without a verification record are verified first.
    """

    async def run():
        tip_ids = service.pipeline.loader.tips.tip_ids()
        await _verify_all(service, tip_ids, force=False, skip_verified=True)
        return await service.list_queue(
            OPERATOR, queue_type=queue_type, status=status, limit=MAX_PAGE_SIZE
        )

    try:
        service = _load_service(fixture, data_dir)
        listing = asyncio.run(run())
    except TipTriageError as e:
        console.print(f"\n[red]✗[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"Review Queue ({listing.page.total} {status.value})", header_style="bold magenta")
    table.add_column("Priority", justify="right")
    table.add_column("Queue", style="cyan")
    table.add_column("Tip")
    table.add_column("SLA deadline")
    table.add_column("Assigned to")

    for entry in listing.page.items:
        item = entry.item
        deadline = item.sla_deadline.isoformat()
        table.add_row(
            str(item.priority),
            item.queue_type.value,
            item.tip_id,
            f"[red]{deadline} (breached)[/red]" if entry.sla_breached else deadline,
            item.assigned_to or "-",
        )
    console.print(table)

    stats = listing.stats
    console.print(
        f"[dim]Pending: {stats.total_pending} (critical {stats.critical_pending}, "
        f"high {stats.high_priority_pending}, standard {stats.standard_pending}, "
        f"low {stats.low_priority_pending}), SLA breached: {stats.sla_breached}[/dim]"
    )


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]Tip Verification & Triage Engine[/bold]")
    console.print("Version: 0.1.0")


if __name__ == "__main__":
    app()
