"""Ledger reporting commands."""

import click
from pharmapos.cli.formatting import format_money, format_timestamp
from pharmapos.domain.entities import LedgerCategory
from pharmapos.domain.ledger import LedgerService
from pharmapos.utils.date_parser import get_date_range, parse_date


@click.group()
def ledger_group():
    """Inspect the sales and refunds ledger."""
    pass


@ledger_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'this month')")
@click.option("--end-date", help="End date (inclusive)")
@click.option(
    "--period",
    type=click.Choice(["today", "this-week", "this-month", "last-month", "this-year"], case_sensitive=False),
    help="Named period (overrides --start-date/--end-date)",
)
@click.option(
    "--category",
    type=click.Choice([c.value for c in LedgerCategory], case_sensitive=False),
    help="Only entries in this category",
)
@click.option("--reference", help="Only entries with this exact reference")
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    category: str | None,
    reference: str | None,
) -> None:
    """List ledger entries with a running total.

    Examples:
        pharmapos ledger list --period today
        pharmapos ledger list --start-date 2026-01-01 --category refunds
    """
    db = ctx.obj["db"]
    service = LedgerService(db)

    try:
        if period:
            start, end = get_date_range(period)
        else:
            start = parse_date(start_date) if start_date else None
            end = parse_date(end_date) if end_date else None
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    entries = service.list_entries(
        start_date=start,
        end_date=end,
        category=category.lower() if category else None,
        reference=reference,
    )
    if not entries:
        click.echo("No ledger entries found.")
        return

    click.echo(f"\n{'Date':<17} {'Reference':<22} {'Category':<9} {'Method':<14} {'Amount':>18}  Description")
    click.echo("-" * 110)
    for entry in entries:
        click.echo(
            f"{format_timestamp(entry.date):<17} {entry.reference[:22]:<22} {entry.category:<9} "
            f"{(entry.payment_method or '-')[:14]:<14} {format_money(entry.amount):>18}  {entry.description}"
        )
    click.echo("-" * 110)
    click.echo(f"{'Net':<65} {format_money(service.total(entries)):>18}")


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
