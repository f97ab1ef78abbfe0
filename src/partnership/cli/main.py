#!/usr/bin/env python3
"""
Partnership CLI.

Commands:
    partnership schedule DEPLOYMENT_FILE   vesting preview per partner
    partnership simulate DEPLOYMENT_FILE   full run against in-memory tokens
"""

from __future__ import annotations

import json
import logging
import sys

import click
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.config import SECONDS_PER_DAY, VALID_LOG_LEVELS
from ..core.exceptions import PartnershipError
from ..core.logging_config import setup_logging
from ..schemas import load_deployment
from ..simulation import Simulation

logger = logging.getLogger(__name__)
console = Console()


def format_units(amount: int, decimals: int, places: int = 4) -> str:
    """Render raw base units as a decimal string without floats."""
    whole, fraction = divmod(amount, 10**decimals)
    if decimals == 0 or places == 0:
        return f"{whole:,}"
    digits = str(fraction).rjust(decimals, "0")[:places]
    return f"{whole:,}.{digits}"


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(VALID_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Console log level (default WARNING)",
)
@click.option("--json-output", is_flag=True, help="Emit JSON instead of tables")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, json_output: bool):
    """Allocation-based funding and vesting partnerships."""
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    setup_logging(name="partnership", level=log_level or "WARNING", json_console=False)


@cli.command("schedule")
@click.argument("deployment_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--at",
    "days",
    multiple=True,
    type=int,
    help="Days after the funding window closes to sample (repeatable)",
)
@click.pass_context
def schedule(ctx: click.Context, deployment_file: str, days: tuple[int, ...]):
    """
    Preview what each partner can claim over time, assuming everyone funds
    and nobody claims before the sampled day.

    Example:
        partnership schedule deployment.yaml --at 183 --at 274 --at 366
    """
    try:
        spec = load_deployment(deployment_file)
        sim = Simulation(spec)
        partnership = sim.partnership
        sim.fund_depositor()
        partnership.deposit(spec.depositor).unwrap()
        for address in partnership.registry.partners:
            sim.fund_partner(address)
            partnership.enter_partnership(address).unwrap()
    except (PartnershipError, ValidationError, ValueError, OSError) as exc:
        _handle_cli_error(exc)
        return

    started_at = partnership.partnership_started_at
    samples = sorted(set(days)) or [
        spec.cliff // SECONDS_PER_DAY,
        (spec.cliff + spec.vesting // 2) // SECONDS_PER_DAY,
        (spec.cliff + spec.vesting) // SECONDS_PER_DAY,
    ]
    rows = {
        address: [
            partnership.claimable_of(address, at=started_at + day * SECONDS_PER_DAY)
            for day in samples
        ]
        for address in partnership.registry.partners
    }
    decimals = partnership.reward_decimals

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(
            {
                "total_allocation": partnership.total_allocation,
                "days": samples,
                "claimable": rows,
            },
            indent=2,
        ))
        return

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("[bold cyan]Total Allocation",
                    f"{format_units(partnership.total_allocation, decimals)} {spec.reward_asset.symbol}")
    summary.add_row("[bold cyan]Partners", str(len(partnership.registry)))
    summary.add_row("[bold cyan]Cliff / Vesting",
                    f"{spec.cliff // SECONDS_PER_DAY}d / {spec.vesting // SECONDS_PER_DAY}d")
    console.print(Panel(summary, title="[bold green]Partnership", border_style="green"))

    table = Table(box=box.ROUNDED, title=f"Claimable {spec.reward_asset.symbol} by day")
    table.add_column("Partner", style="cyan")
    for day in samples:
        table.add_column(f"Day {day}", justify="right")
    for address, amounts in rows.items():
        table.add_row(address[:12], *(format_units(amount, decimals) for amount in amounts))
    console.print(table)


@cli.command("simulate")
@click.argument("deployment_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--skip", multiple=True, help="Partner address that never funds (repeatable)")
@click.option(
    "--claim-day",
    "claim_days",
    multiple=True,
    type=int,
    help="Days after the funding window closes on which every partner claims",
)
@click.pass_context
def simulate(
    ctx: click.Context,
    deployment_file: str,
    skip: tuple[str, ...],
    claim_days: tuple[int, ...],
):
    """
    Run a full partnership: deposit, funding, sweep and claims.

    Example:
        partnership simulate deployment.yaml --skip 0xabc... --claim-day 183 --claim-day 366
    """
    try:
        spec = load_deployment(deployment_file)
        sim = Simulation(spec)
        report = sim.run(skip=skip, claim_days=claim_days)
    except (PartnershipError, ValidationError, ValueError, OSError) as exc:
        _handle_cli_error(exc)
        return

    reward_decimals = spec.reward_asset.decimals
    exchange_decimals = spec.exchange_asset.decimals
    sweep = report.sweep

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(
            {
                "total_allocation": report.total_allocation,
                "funded": report.funded,
                "skipped": report.skipped,
                "exchange_swept": sweep.exchange_amount if sweep else 0,
                "reward_returned": sweep.reward_amount_returned if sweep else 0,
                "payouts": report.payouts,
            },
            indent=2,
        ))
        return

    summary = Table(show_header=False, box=box.ROUNDED)
    summary.add_row("[bold cyan]Funded Partners", str(len(report.funded)))
    summary.add_row("[bold yellow]Skipped Partners", str(len(report.skipped)))
    if sweep:
        summary.add_row(
            "[bold green]Exchange Swept",
            f"{format_units(sweep.exchange_amount, exchange_decimals)} {spec.exchange_asset.symbol}",
        )
        summary.add_row(
            "[bold green]Reward Returned",
            f"{format_units(sweep.reward_amount_returned, reward_decimals)} {spec.reward_asset.symbol}",
        )
    summary.add_row(
        "[bold magenta]Total Claimed",
        f"{format_units(report.total_claimed, reward_decimals)} {spec.reward_asset.symbol}",
    )
    console.print(Panel(summary, title="[bold green]Simulation", border_style="green"))

    if report.claims:
        table = Table(box=box.ROUNDED, title="Claims")
        table.add_column("Day", justify="right")
        table.add_column("Partner", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Result")
        for claim in report.claims:
            table.add_row(
                str(claim.day),
                claim.partner[:12],
                format_units(claim.amount, reward_decimals),
                claim.code or "[green]ok",
            )
        console.print(table)


def main() -> int:
    cli(obj={})
    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
