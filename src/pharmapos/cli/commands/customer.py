"""Customer management commands."""

import click
from pharmapos.cli.error_handling import handle_domain_error
from pharmapos.cli.formatting import format_money, format_timestamp
from pharmapos.domain.customer import CustomerService
from pharmapos.domain.errors import DomainError
from pharmapos.domain.segmentation import VALID_SEGMENTS


@click.group()
def customer_group():
    """Manage customers and their segments."""
    pass


@customer_group.command("add")
@click.argument("name")
@click.option("--phone", help="Phone number")
@click.option("--email", help="Email address")
@click.option("--address", help="Postal or street address")
@click.pass_context
def add_customer(ctx, name: str, phone: str | None, email: str | None, address: str | None) -> None:
    """Register a customer."""
    db = ctx.obj["db"]
    service = CustomerService(db)

    try:
        customer_id = service.create_customer(name=name, phone=phone, email=email, address=address)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created customer '{name}' (ID: {customer_id})")


@customer_group.command("list")
@click.option(
    "--segment",
    type=click.Choice(VALID_SEGMENTS, case_sensitive=False),
    help="Only customers in this segment",
)
@click.pass_context
def list_customers(ctx, segment: str | None) -> None:
    """List customers."""
    db = ctx.obj["db"]
    service = CustomerService(db)

    customers = service.list_customers(segment=segment)
    if not customers:
        click.echo("No customers found.")
        return

    click.echo(f"\n{'ID':<6} {'Name':<28} {'Segment':<9} {'Orders':>6} {'Spent':>18} {'Points':>7}")
    click.echo("-" * 80)
    for c in customers:
        click.echo(
            f"{c.id:<6} {c.name[:28]:<28} {c.segment.value:<9} {c.total_orders:>6} "
            f"{format_money(c.total_spent):>18} {c.loyalty_points:>7}"
        )


@customer_group.command("show")
@click.argument("customer_id", type=int)
@click.pass_context
def show_customer(ctx, customer_id: int) -> None:
    """Show customer details and aggregates."""
    db = ctx.obj["db"]
    service = CustomerService(db)

    try:
        c = service.require_customer(customer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Customer #{c.id}: {c.name}")
    if c.phone:
        click.echo(f"  Phone:          {c.phone}")
    if c.email:
        click.echo(f"  Email:          {c.email}")
    click.echo(f"  Segment:        {c.segment.value}")
    click.echo(f"  Orders:         {c.total_orders}")
    click.echo(f"  Total spent:    {format_money(c.total_spent)}")
    click.echo(f"  Average order:  {format_money(c.average_order_value)}")
    click.echo(f"  Loyalty points: {c.loyalty_points}")
    click.echo(f"  Last order:     {format_timestamp(c.last_order_date)}")


@customer_group.command("set-segment")
@click.argument("customer_id", type=int)
@click.argument("segment", type=click.Choice(VALID_SEGMENTS, case_sensitive=False))
@click.pass_context
def set_segment(ctx, customer_id: int, segment: str) -> None:
    """Manually override a customer's segment.

    The next sale for the customer recomputes it from their history.
    """
    db = ctx.obj["db"]
    service = CustomerService(db)

    try:
        customer = service.set_segment(customer_id, segment)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Customer '{customer.name}' is now {customer.segment.value}")


@customer_group.command("recalculate")
@click.argument("customer_id", type=int, required=False)
@click.option("--all", "recalc_all", is_flag=True, help="Recalculate every customer")
@click.pass_context
def recalculate(ctx, customer_id: int | None, recalc_all: bool) -> None:
    """Recompute segments from purchase history.

    Examples:
        pharmapos customer recalculate 12
        pharmapos customer recalculate --all
    """
    db = ctx.obj["db"]
    service = CustomerService(db)

    if recalc_all == (customer_id is not None):
        click.echo("Error: Give either a CUSTOMER_ID or --all", err=True)
        ctx.exit(1)

    if recalc_all:
        updated, total = service.recalculate_all_segments()
        click.echo(f"Updated {updated} of {total} customers")
        return

    try:
        old, new = service.recalculate_segment(customer_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    if old == new:
        click.echo(f"Customer {customer_id} stays {new.value}")
    else:
        click.echo(f"Customer {customer_id} moved from {old.value} to {new.value}")


@customer_group.command("points")
@click.argument("customer_id", type=int)
@click.argument("points", type=int)
@click.option("--subtract", is_flag=True, help="Redeem points instead of adding them")
@click.pass_context
def points(ctx, customer_id: int, points: int, subtract: bool) -> None:
    """Add or redeem loyalty points."""
    db = ctx.obj["db"]
    service = CustomerService(db)

    try:
        customer = service.adjust_loyalty_points(customer_id, points, subtract=subtract)
    except DomainError as e:
        handle_domain_error(ctx, e)
    action = "Redeemed" if subtract else "Added"
    click.echo(f"{action} {points} points; balance is {customer.loyalty_points}")


def register_commands(cli):
    """Register customer commands with main CLI."""
    cli.add_command(customer_group, name="customer")
