"""Product catalog commands."""

import click
from pharmapos.cli.error_handling import handle_domain_error
from pharmapos.cli.formatting import format_money
from pharmapos.domain.errors import DomainError
from pharmapos.domain.product import ProductService
from pharmapos.utils.amount_parser import parse_amount


@click.group()
def product_group():
    """Manage the product catalog."""
    pass


@product_group.command("add")
@click.argument("name")
@click.option("--price", required=True, help="Unit selling price (e.g., 5000 or 'UGX 5,000')")
@click.option("--quantity", type=int, default=0, help="Opening stock (default: 0)")
@click.option("--category", help="Category name (default: Uncategorized)")
@click.option("--cost-price", help="Unit cost price")
@click.option("--reorder-level", type=int, default=0, help="Low-stock threshold (default: 0)")
@click.option("--barcode", help="Barcode")
@click.pass_context
def add_product(
    ctx,
    name: str,
    price: str,
    quantity: int,
    category: str | None,
    cost_price: str | None,
    reorder_level: int,
    barcode: str | None,
) -> None:
    """Add a product to the catalog.

    Examples:
        pharmapos product add "Paracetamol 500mg" --price 5000 --quantity 20
        pharmapos product add "Amoxicillin" --price "UGX 12,000" --category Antibiotics
    """
    db = ctx.obj["db"]
    service = ProductService(db)

    try:
        unit_price = parse_amount(price)
        unit_cost = parse_amount(cost_price) if cost_price else None
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)

    try:
        product_id = service.create_product(
            name=name,
            price=unit_price,
            quantity=quantity,
            category=category,
            cost_price=unit_cost,
            reorder_level=reorder_level,
            barcode=barcode,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created product '{name}' (ID: {product_id})")


@product_group.command("list")
@click.option("--category", help="Only products in this category")
@click.option("--low-stock", is_flag=True, help="Only products at or below their reorder level")
@click.pass_context
def list_products(ctx, category: str | None, low_stock: bool) -> None:
    """List products."""
    db = ctx.obj["db"]
    service = ProductService(db)

    if low_stock:
        products = service.list_low_stock()
        if category:
            products = [p for p in products if p.category == category]
    else:
        products = service.list_products(category=category)

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"\n{'ID':<6} {'Name':<30} {'Category':<18} {'Price':>16} {'Qty':>6} {'Sold':>6}")
    click.echo("-" * 88)
    for p in products:
        marker = " !" if p.is_low_stock else ""
        click.echo(
            f"{p.id:<6} {p.name[:30]:<30} {p.category[:18]:<18} "
            f"{format_money(p.price):>16} {p.quantity:>6} {p.sales_count:>6}{marker}"
        )


@product_group.command("show")
@click.argument("product_id", type=int)
@click.pass_context
def show_product(ctx, product_id: int) -> None:
    """Show product details."""
    db = ctx.obj["db"]
    service = ProductService(db)

    try:
        p = service.require_product(product_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Product #{p.id}: {p.name}")
    click.echo(f"  Category:      {p.category}")
    click.echo(f"  Price:         {format_money(p.price)}")
    click.echo(f"  Cost price:    {format_money(p.cost_price)}")
    click.echo(f"  In stock:      {p.quantity}{' (low)' if p.is_low_stock else ''}")
    click.echo(f"  Reorder level: {p.reorder_level}")
    click.echo(f"  Units sold:    {p.sales_count}")
    if p.barcode:
        click.echo(f"  Barcode:       {p.barcode}")


def register_commands(cli):
    """Register product commands with main CLI."""
    cli.add_command(product_group, name="product")
