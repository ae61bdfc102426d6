"""Sale, hold order and refund commands."""

import click
from decimal import Decimal
from pharmapos.cli.error_handling import handle_domain_error
from pharmapos.cli.formatting import format_money, format_timestamp
from pharmapos.domain.entities import RefundItem, SaleItemInput, TransactionStatus
from pharmapos.domain.errors import DomainError, NotFoundError, product_not_found
from pharmapos.domain.inventory import InventoryAdjuster
from pharmapos.domain.product import ProductService
from pharmapos.domain.refund import RefundService
from pharmapos.domain.sale import SaleService, build_sale_input
from pharmapos.utils.amount_parser import parse_amount, parse_quantity


def parse_cart_line(line: str) -> tuple[int, int, Decimal | None]:
    """Parse 'PRODUCT_ID:QTY[:PRICE]' into its parts.

    Raises:
        ValueError: If the line is malformed
    """
    parts = line.split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Item '{line}' must look like PRODUCT_ID:QTY or PRODUCT_ID:QTY:PRICE")
    try:
        product_id = int(parts[0])
    except ValueError:
        raise ValueError(f"Invalid product ID in item '{line}'") from None
    quantity = parse_quantity(parts[1])
    price = parse_amount(parts[2]) if len(parts) == 3 else None
    return product_id, quantity, price


def build_items(product_service: ProductService, lines: tuple[str, ...]) -> list[SaleItemInput]:
    """Turn cart lines into sale items, pricing from the catalog where no price is given.

    Raises:
        ValueError: If a line is malformed
        NotFoundError: If a product does not exist
    """
    items = []
    for line in lines:
        product_id, quantity, price = parse_cart_line(line)
        product = product_service.get_product(product_id)
        if product is None:
            raise NotFoundError(product_not_found(product_id))
        items.append(
            SaleItemInput(
                product_id=product_id,
                unit_price=price if price is not None else product.price,
                quantity=quantity,
                product_name=product.name,
                category=product.category,
            )
        )
    return items


def _services(ctx) -> tuple[SaleService, RefundService]:
    db = ctx.obj["db"]
    inventory = InventoryAdjuster(db, allow_negative_stock=ctx.obj.get("allow_negative_stock", True))
    return SaleService(db, inventory=inventory), RefundService(db, inventory=inventory)


def _parse_optional_amount(ctx, value: str | None, default: str | None = "0") -> Decimal | None:
    if value is None:
        return Decimal(default) if default is not None else None
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid amount format: {e}", err=True)
        ctx.exit(1)


@click.group()
def sale_group():
    """Record sales, hold orders and refunds."""
    pass


def _cart_options(func):
    options = [
        click.option(
            "--item",
            "items",
            multiple=True,
            required=True,
            help="Cart line as PRODUCT_ID:QTY[:PRICE]; repeat for each product",
        ),
        click.option("--customer", help="Customer ID (omit for a walk-in sale)"),
        click.option("--customer-name", help="Name to print on the receipt"),
        click.option("--discount", help="Discount amount"),
        click.option("--tax", help="Tax amount"),
        click.option("--cashier-id", required=True, envvar="PHARMAPOS_CASHIER_ID", help="Cashier ID"),
        click.option("--cashier-name", required=True, envvar="PHARMAPOS_CASHIER_NAME", help="Cashier name"),
        click.option("--reference", help="Reference number (generated if omitted)"),
        click.option("--till", type=int, default=1, help="Till number (default: 1)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@sale_group.command("create")
@_cart_options
@click.option("--paid", required=True, help="Amount tendered by the customer")
@click.option("--payment-type", default="Cash", help="Payment type (default: Cash)")
@click.option("--payment-info", help="Payment details (e.g., mobile money transaction ID)")
@click.pass_context
def create_sale(
    ctx,
    items: tuple[str, ...],
    customer: str | None,
    customer_name: str | None,
    discount: str | None,
    tax: str | None,
    cashier_id: str,
    cashier_name: str,
    reference: str | None,
    till: int,
    paid: str,
    payment_type: str,
    payment_info: str | None,
) -> None:
    """Commit a completed sale.

    Examples:
        pharmapos sale create --item 1:2 --item 4:1:2500 --paid 20000 --cashier-id 7 --cashier-name Amina
        pharmapos sale create --item 3:1 --customer 12 --paid 5000 --payment-type "Mobile Money" ...
    """
    db = ctx.obj["db"]
    sale_service, _ = _services(ctx)

    amount_paid = _parse_optional_amount(ctx, paid)
    discount_amount = _parse_optional_amount(ctx, discount)
    tax_amount = _parse_optional_amount(ctx, tax)

    try:
        cart = build_items(ProductService(db), items)
        sale = build_sale_input(
            cart,
            amount_paid=amount_paid,
            cashier_id=cashier_id,
            cashier_name=cashier_name,
            discount=discount_amount,
            tax=tax_amount,
            customer_id=customer,
            customer_name=customer_name,
            payment_type=payment_type,
            payment_info=payment_info,
            till=till,
            reference_number=reference,
        )
        receipt = sale_service.commit_sale(sale)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Sale recorded: Order #{receipt.order_number} ({receipt.reference_number})")
    click.echo(f"  Total:  {format_money(sale.total)}")
    click.echo(f"  Paid:   {format_money(sale.amount_paid)}")
    click.echo(f"  Change: {format_money(sale.change_amount)}")


@sale_group.command("hold")
@_cart_options
@click.option("--deposit", help="Amount paid up front")
@click.pass_context
def hold_sale(
    ctx,
    items: tuple[str, ...],
    customer: str | None,
    customer_name: str | None,
    discount: str | None,
    tax: str | None,
    cashier_id: str,
    cashier_name: str,
    reference: str | None,
    till: int,
    deposit: str | None,
) -> None:
    """Park a cart for a registered customer to pay later.

    Stock, customer history and the ledger change only when the order is
    completed with 'sale complete'.
    """
    db = ctx.obj["db"]
    sale_service, _ = _services(ctx)

    deposit_amount = _parse_optional_amount(ctx, deposit, default=None)
    discount_amount = _parse_optional_amount(ctx, discount)
    tax_amount = _parse_optional_amount(ctx, tax)

    try:
        cart = build_items(ProductService(db), items)
        sale = build_sale_input(
            cart,
            amount_paid=deposit_amount,
            cashier_id=cashier_id,
            cashier_name=cashier_name,
            discount=discount_amount,
            tax=tax_amount,
            customer_id=customer,
            customer_name=customer_name,
            till=till,
            reference_number=reference,
        )
        receipt = sale_service.hold_sale(sale)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Order held: #{receipt.order_number} ({receipt.reference_number})")
    click.echo(f"  Total due: {format_money(sale.total)}")


@sale_group.command("complete")
@click.argument("transaction_id", type=int)
@click.option("--paid", required=True, help="Amount tendered by the customer")
@click.option("--payment-type", default="Cash", help="Payment type (default: Cash)")
@click.option("--payment-info", help="Payment details")
@click.pass_context
def complete_sale(
    ctx, transaction_id: int, paid: str, payment_type: str, payment_info: str | None
) -> None:
    """Take payment for a held order."""
    sale_service, _ = _services(ctx)
    amount_paid = _parse_optional_amount(ctx, paid)

    try:
        held = sale_service.require_transaction(transaction_id)
        change = max(amount_paid - held.total, Decimal("0"))
        receipt = sale_service.complete_held_sale(
            transaction_id,
            amount_paid=amount_paid,
            change_amount=change,
            payment_type=payment_type,
            payment_info=payment_info,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Held order #{receipt.order_number} completed")
    click.echo(f"  Change: {format_money(change)}")


@sale_group.command("refund")
@click.argument("transaction_id", type=int)
@click.option("--reason", help="Reason for the refund")
@click.option(
    "--item",
    "items",
    multiple=True,
    help="Restock only PRODUCT_ID:QTY instead of every sold item; repeat for each product",
)
@click.pass_context
def refund_sale(ctx, transaction_id: int, reason: str | None, items: tuple[str, ...]) -> None:
    """Void a completed sale and put its stock back."""
    _, refund_service = _services(ctx)

    try:
        overrides = []
        for line in items:
            product_id, quantity, _price = parse_cart_line(line)
            overrides.append(RefundItem(product_id=product_id, quantity=quantity))
        refund_service.reverse_sale(transaction_id, reason=reason, item_overrides=overrides or None)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Transaction {transaction_id} refunded")


@sale_group.command("show")
@click.argument("transaction_id", type=int)
@click.pass_context
def show_sale(ctx, transaction_id: int) -> None:
    """Show a transaction and its items."""
    sale_service, _ = _services(ctx)

    try:
        txn = sale_service.require_transaction(transaction_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Order #{txn.order_number} ({txn.reference_number}) - {txn.status.value}")
    click.echo(f"  Date:     {format_timestamp(txn.created_at)}")
    click.echo(f"  Customer: {txn.customer_name}")
    click.echo(f"  Cashier:  {txn.cashier_name} (till {txn.till})")
    click.echo("")
    for item in sale_service.get_items(transaction_id):
        click.echo(
            f"  {item.quantity:>4} x {item.product_name[:30]:<30} "
            f"{format_money(item.price):>16} {format_money(item.line_total):>18}"
        )
    click.echo("")
    click.echo(f"  Subtotal: {format_money(txn.subtotal)}")
    if txn.discount:
        click.echo(f"  Discount: {format_money(txn.discount)}")
    if txn.tax:
        click.echo(f"  Tax:      {format_money(txn.tax)}")
    click.echo(f"  Total:    {format_money(txn.total)}")
    click.echo(f"  Paid:     {format_money(txn.amount_paid)} ({txn.payment_type or '-'})")
    click.echo(f"  Change:   {format_money(txn.change_amount)}")


@sale_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in TransactionStatus], case_sensitive=False),
    help="Only transactions with this status",
)
@click.option("--customer", "customer_id", type=int, help="Only transactions for this customer ID")
@click.pass_context
def list_sales(ctx, status: str | None, customer_id: int | None) -> None:
    """List transactions, newest first."""
    sale_service, _ = _services(ctx)

    transactions = sale_service.list_transactions(
        status=TransactionStatus(status.lower()) if status else None,
        customer_id=customer_id,
    )
    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\n{'ID':<12} {'Date':<17} {'Customer':<24} {'Status':<10} {'Total':>18}")
    click.echo("-" * 85)
    for txn in transactions:
        click.echo(
            f"{txn.id:<12} {format_timestamp(txn.created_at):<17} {txn.customer_name[:24]:<24} "
            f"{txn.status.value:<10} {format_money(txn.total):>18}"
        )


def register_commands(cli):
    """Register sale commands with main CLI."""
    cli.add_command(sale_group, name="sale")
