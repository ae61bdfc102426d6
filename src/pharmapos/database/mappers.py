"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the pipelines only ever see
typed entities, never raw rows.
"""

from decimal import Decimal

from pharmapos.domain import entities as domain
from pharmapos.database.models import (
    Product as ORMProduct,
    Customer as ORMCustomer,
    Transaction as ORMTransaction,
    TransactionItem as ORMTransactionItem,
    LedgerEntry as ORMLedgerEntry,
)


def _decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def product_to_domain(orm_product: ORMProduct) -> domain.Product:
    """Convert SQLAlchemy Product model to domain Product entity."""
    return domain.Product(
        id=orm_product.id,
        name=orm_product.name,
        category=orm_product.category or domain.UNCATEGORIZED,
        price=_decimal(orm_product.price),
        cost_price=None if orm_product.cost_price is None else _decimal(orm_product.cost_price),
        quantity=orm_product.quantity or 0,
        reorder_level=orm_product.reorder_level or 0,
        sales_count=orm_product.sales_count or 0,
        barcode=orm_product.barcode,
        created_at=orm_product.created_at,
        updated_at=orm_product.updated_at,
    )


def customer_to_domain(orm_customer: ORMCustomer) -> domain.Customer:
    """Convert SQLAlchemy Customer model to domain Customer entity."""
    return domain.Customer(
        id=orm_customer.id,
        name=orm_customer.name,
        phone=orm_customer.phone,
        email=orm_customer.email,
        address=orm_customer.address,
        total_spent=_decimal(orm_customer.total_spent),
        total_orders=orm_customer.total_orders or 0,
        loyalty_points=orm_customer.loyalty_points or 0,
        last_order_date=orm_customer.last_order_date,
        average_order_value=_decimal(orm_customer.average_order_value),
        segment=domain.Segment(orm_customer.segment or domain.Segment.NEW.value),
        created_at=orm_customer.created_at,
        updated_at=orm_customer.updated_at,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        order_number=orm_transaction.order_number,
        reference_number=orm_transaction.reference_number,
        customer_id=orm_transaction.customer_id,
        customer_name=orm_transaction.customer_name,
        status=domain.TransactionStatus(orm_transaction.status),
        subtotal=_decimal(orm_transaction.subtotal),
        discount=_decimal(orm_transaction.discount),
        tax=_decimal(orm_transaction.tax),
        total=_decimal(orm_transaction.total),
        amount_paid=_decimal(orm_transaction.amount_paid),
        change_amount=_decimal(orm_transaction.change_amount),
        payment_type=orm_transaction.payment_type,
        payment_info=orm_transaction.payment_info,
        till=orm_transaction.till,
        cashier_id=orm_transaction.cashier_id,
        cashier_name=orm_transaction.cashier_name,
        created_at=orm_transaction.created_at,
        updated_at=orm_transaction.updated_at,
    )


def transaction_item_to_domain(orm_item: ORMTransactionItem) -> domain.TransactionItem:
    """Convert SQLAlchemy TransactionItem model to domain TransactionItem entity."""
    return domain.TransactionItem(
        id=orm_item.id,
        transaction_id=orm_item.transaction_id,
        product_id=orm_item.product_id,
        product_name=orm_item.product_name,
        price=_decimal(orm_item.price),
        quantity=orm_item.quantity,
        category=orm_item.category,
    )


def ledger_entry_to_domain(orm_entry: ORMLedgerEntry) -> domain.LedgerEntry:
    """Convert SQLAlchemy LedgerEntry model to domain LedgerEntry entity."""
    return domain.LedgerEntry(
        id=orm_entry.id,
        date=orm_entry.date,
        description=orm_entry.description,
        amount=_decimal(orm_entry.amount),
        category=orm_entry.category,
        payment_method=orm_entry.payment_method,
        reference=orm_entry.reference,
        transaction_id=orm_entry.transaction_id,
        created_at=orm_entry.created_at,
    )
