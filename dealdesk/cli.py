"""CLI interface for DealDesk."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from dealdesk.config import load_config
from dealdesk.errors import DealDeskError
from dealdesk.models import AnalysisSnapshot, Deal, DealStatus

app = typer.Typer(
    name="dealdesk",
    help="Real estate deal analysis and acquisition pipeline tracking.",
    no_args_is_help=True,
)
console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _desk(config_path: Path | None, data_file: Path | None = None):
    from dealdesk.desk import DealDesk
    from dealdesk.sources.static import StaticPropertySource

    cfg = load_config(config_path)
    source = StaticPropertySource.from_json_file(data_file) if data_file else None
    return DealDesk(cfg, source=source)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(code=1)


def _money(value: float | None) -> str:
    return "N/A" if value is None else f"${value:,.0f}"


def _display_snapshot(snapshot: AnalysisSnapshot) -> None:
    v = snapshot.valuation
    facts = snapshot.facts

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    table.add_row("Address", facts.full_address)
    table.add_row("Sqft", f"{facts.sqft:,}" if facts.sqft else "N/A")
    table.add_row("Condition", facts.condition.value if facts.condition else "unknown")
    table.add_row("ARV", f"{_money(v.arv)} ({v.arv_source}, {v.confidence} confidence)")
    table.add_row("As-Is Value", _money(v.as_is_value))
    table.add_row("Rehab", _money(snapshot.rehab_budget.total))
    mao_style = "red" if v.mao <= 0 else "green"
    table.add_row("MAO", f"[{mao_style}]{_money(v.mao)}[/{mao_style}]")
    if snapshot.offer_amount is not None:
        table.add_row("Offer", _money(snapshot.offer_amount))
    console.print(Panel(table, title="Valuation", border_style="cyan"))

    strategies = Table(title="Strategies", show_lines=True)
    strategies.add_column("Strategy", style="cyan")
    strategies.add_column("Buy Price", style="green")
    strategies.add_column("Profit", style="yellow")
    strategies.add_column("ROI")
    strategies.add_column("Verdict")
    for result in snapshot.strategies:
        if not result.available:
            verdict = f"[dim]unavailable: {result.unavailable_reason.value}[/dim]"
        elif result.viable:
            verdict = "[bold green]pursue[/bold green]"
        else:
            verdict = "[red]pass[/red]"
        strategies.add_row(
            result.strategy.value.upper(),
            _money(result.buy_price),
            _money(result.profit),
            "N/A" if result.roi is None else f"{result.roi:.1f}%",
            verdict,
        )
    console.print(strategies)

    funding = snapshot.funding
    ftable = Table(title="Funding", show_lines=False)
    ftable.add_column("Channel", style="cyan")
    ftable.add_column("Eligible")
    ftable.add_column("Max LTV")
    ftable.add_column("Rate")
    ftable.add_column("Max Amount", style="green")
    for name, channel in (
        ("Hard Money", funding.hard_money),
        ("Conventional", funding.conventional),
        ("Portfolio", funding.portfolio),
    ):
        ftable.add_row(
            name,
            "yes" if channel.eligible else "[red]no[/red]",
            f"{channel.max_ltv:.0f}%",
            f"{channel.estimated_rate:.1f}%",
            _money(channel.max_amount),
        )
    console.print(ftable)
    if funding.cash.recommended:
        console.print(f"[bold]Cash recommended:[/bold] {', '.join(funding.cash.advantages)}")


def _display_deal(deal: Deal) -> None:
    console.print(
        Panel(
            f"[bold]{deal.address}[/bold]\n"
            f"Status: [cyan]{deal.status.value}[/cyan] | Offer: {_money(deal.offer_amount)}\n"
            f"Created by {deal.created_by} | Assignees: {', '.join(deal.assignees) or '-'}",
            title=deal.deal_id,
        )
    )
    if deal.snapshot:
        _display_snapshot(deal.snapshot)

    log = Table(title="Activity", show_lines=False)
    log.add_column("When", style="dim")
    log.add_column("Action", style="cyan")
    log.add_column("By")
    log.add_column("Description")
    for entry in deal.activity_log:
        log.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M"),
            entry.action.value,
            entry.actor_id,
            entry.description,
        )
    console.print(log)


@app.command()
def analyze(
    data_file: Path = typer.Argument(..., help="JSON file with facts, comparables, market, rehab"),
    offer: float = typer.Option(None, "--offer", "-o", help="Offer amount to evaluate"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to config TOML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Analyze a property from a data file without opening a deal."""
    setup_logging(verbose)
    desk = _desk(config_path, data_file)

    for address in desk.source.addresses:
        record = desk.source.record(address)
        try:
            snapshot = desk.run_analysis(
                record.facts, record.comparables, record.market, record.rehab, offer_amount=offer
            )
        except DealDeskError as e:
            _fail(e)
        _display_snapshot(snapshot)


@app.command("deal-open")
def deal_open(
    address: str = typer.Argument(..., help="Property address, as in the data file"),
    data_file: Path = typer.Option(..., "--data", "-d", help="JSON property data file"),
    offer: float = typer.Option(None, "--offer", "-o"),
    assignee: list[str] = typer.Option([], "--assign", "-a"),
    actor: str = typer.Option("cli", "--actor"),
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Analyze a property and open a deal for it."""
    setup_logging(verbose)
    desk = _desk(config_path, data_file)
    try:
        deal = desk.open_deal(address, actor, offer_amount=offer, assignees=assignee)
    except DealDeskError as e:
        _fail(e)
    _display_deal(deal)


@app.command("deal-list")
def deal_list(
    status: DealStatus = typer.Option(None, "--status", "-s"),
    assignee: str = typer.Option(None, "--assignee"),
    limit: int = typer.Option(20, "--limit", "-l"),
    page: int = typer.Option(1, "--page", "-p"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """List deals, newest first."""
    desk = _desk(config_path)
    deals = desk.list_deals(
        status=status, assignee=assignee, limit=limit, offset=(max(page, 1) - 1) * limit
    )
    if not deals:
        console.print("[yellow]No deals found.[/yellow]")
        return

    table = Table(title="Deals", show_lines=True)
    table.add_column("Deal ID", style="dim")
    table.add_column("Address", style="white")
    table.add_column("Status", style="cyan")
    table.add_column("Offer", style="green")
    table.add_column("ARV")
    table.add_column("MAO")
    for deal in deals:
        v = deal.snapshot.valuation if deal.snapshot else None
        table.add_row(
            deal.deal_id,
            deal.address[:40],
            deal.status.value,
            _money(deal.offer_amount),
            _money(v.arv) if v else "N/A",
            _money(v.mao) if v else "N/A",
        )
    console.print(table)


@app.command("deal-show")
def deal_show(
    deal_id: str = typer.Argument(...),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Show a deal with its analysis and activity log."""
    desk = _desk(config_path)
    try:
        deal = desk.get_deal(deal_id)
    except DealDeskError as e:
        _fail(e)
    _display_deal(deal)


@app.command("deal-status")
def deal_status(
    deal_id: str = typer.Argument(...),
    status: str = typer.Argument(..., help="Target pipeline status"),
    note: str = typer.Option(None, "--note", "-n"),
    actor: str = typer.Option("cli", "--actor"),
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Move a deal to another pipeline status."""
    setup_logging(verbose)
    desk = _desk(config_path)
    try:
        deal = desk.transition_deal(deal_id, status, actor, note=note)
    except DealDeskError as e:
        _fail(e)
    console.print(f"[green]{deal.deal_id}[/green] is now [bold]{deal.status.value}[/bold]")


@app.command("deal-offer")
def deal_offer(
    deal_id: str = typer.Argument(...),
    amount: float = typer.Argument(..., help="Offer amount"),
    actor: str = typer.Option("cli", "--actor"),
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Record an offer and mark the deal as offer sent."""
    setup_logging(verbose)
    desk = _desk(config_path)
    try:
        deal = desk.submit_offer(deal_id, amount, actor)
    except (DealDeskError, ValueError) as e:
        _fail(e)
    console.print(
        f"[green]{deal.deal_id}[/green]: offer {_money(deal.offer_amount)} sent "
        f"([bold]{deal.status.value}[/bold])"
    )


@app.command("deal-reanalyze")
def deal_reanalyze(
    deal_id: str = typer.Argument(...),
    data_file: Path = typer.Option(..., "--data", "-d", help="JSON property data file"),
    offer: float = typer.Option(None, "--offer", "-o", help="Updated offer amount"),
    actor: str = typer.Option("cli", "--actor"),
    config_path: Path = typer.Option(None, "--config", "-c"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Re-run analysis for a deal with fresh property data."""
    setup_logging(verbose)
    desk = _desk(config_path, data_file)
    try:
        deal = desk.reanalyze_deal(deal_id, updated_offer_amount=offer, actor_id=actor)
    except (DealDeskError, ValueError) as e:
        _fail(e)
    _display_snapshot(deal.snapshot)


@app.command("deal-assign")
def deal_assign(
    deal_id: str = typer.Argument(...),
    user: str = typer.Argument(..., help="Assignee id"),
    actor: str = typer.Option("cli", "--actor"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Add an assignee to a deal."""
    desk = _desk(config_path)
    try:
        deal = desk.assign_deal(deal_id, user, actor)
    except DealDeskError as e:
        _fail(e)
    console.print(f"[green]{deal.deal_id}[/green] assignees: {', '.join(deal.assignees)}")


@app.command("deal-delete")
def deal_delete(
    deal_id: str = typer.Argument(...),
    actor: str = typer.Option("cli", "--actor"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Permanently delete a deal and its activity log."""
    if not yes:
        typer.confirm(f"Delete {deal_id} permanently?", abort=True)
    desk = _desk(config_path)
    try:
        desk.delete_deal(deal_id, actor)
    except DealDeskError as e:
        _fail(e)
    console.print(f"[red]Deleted {deal_id}[/red]")


@app.command()
def summary(
    assignee: str = typer.Option(None, "--assignee", help="Only deals assigned to this user"),
    after: datetime = typer.Option(None, "--after", help="Created on or after (UTC)"),
    before: datetime = typer.Option(None, "--before", help="Created before (UTC)"),
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Show pipeline totals by status."""
    desk = _desk(config_path)
    result = desk.pipeline_summary(assignee=assignee, created_after=after, created_before=before)

    table = Table(title=f"Pipeline ({result.total_deals} deals)")
    table.add_column("Status", style="cyan")
    table.add_column("Deals", justify="right")
    for status in DealStatus:
        count = result.status_counts.get(status.value, 0)
        if count:
            table.add_row(status.value, str(count))
    console.print(table)
    console.print(
        f"Wholesale profit: total {_money(result.total_wholesale_profit)}, "
        f"average {_money(result.average_wholesale_profit)}"
    )


@app.command()
def config_show(
    config_path: Path = typer.Option(None, "--config", "-c"),
):
    """Display current configuration."""
    cfg = load_config(config_path)
    console.print_json(json.dumps(cfg.model_dump(), indent=2, default=str))


if __name__ == "__main__":
    app()
