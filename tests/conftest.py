"""Shared pytest fixtures for pharmapos tests."""

import tempfile
import os
from datetime import datetime, UTC
from decimal import Decimal
import pytest

from pharmapos.database.factories import create_sqlite_database
from pharmapos.domain.customer import CustomerService
from pharmapos.domain.entities import SaleInput, SaleItemInput
from pharmapos.domain.inventory import InventoryAdjuster
from pharmapos.domain.ledger import LedgerService
from pharmapos.domain.product import ProductService
from pharmapos.domain.refund import RefundService
from pharmapos.domain.sale import SaleService

NOW = datetime(2026, 3, 2, 10, 30, tzinfo=UTC)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """A fixed clock so recency rules and IDs are deterministic."""
    return lambda: NOW


@pytest.fixture
def product_service(temp_db):
    """Create a ProductService with a temporary database."""
    return ProductService(temp_db)


@pytest.fixture
def customer_service(temp_db, clock):
    """Create a CustomerService with a temporary database."""
    return CustomerService(temp_db, clock=clock)


@pytest.fixture
def inventory(temp_db):
    """Create an InventoryAdjuster that allows negative stock."""
    return InventoryAdjuster(temp_db)


@pytest.fixture
def sale_service(temp_db, inventory, clock):
    """Create a SaleService with a temporary database."""
    return SaleService(temp_db, inventory=inventory, clock=clock)


@pytest.fixture
def refund_service(temp_db, inventory, clock):
    """Create a RefundService with a temporary database."""
    return RefundService(temp_db, inventory=inventory, clock=clock)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def sample_product(product_service):
    """Create a product priced 5,000 with 20 units in stock."""
    product_id = product_service.create_product(
        name="Paracetamol 500mg",
        price=Decimal("5000"),
        quantity=20,
        category="Analgesics",
        reorder_level=5,
    )
    return product_service.get_product(product_id)


@pytest.fixture
def second_product(product_service):
    """Create a second product priced 2,500 with 10 units in stock."""
    product_id = product_service.create_product(
        name="Vitamin C 1000mg",
        price=Decimal("2500"),
        quantity=10,
        category="Supplements",
    )
    return product_service.get_product(product_id)


@pytest.fixture
def sample_customer(customer_service):
    """Create a registered customer with no purchase history."""
    customer_id = customer_service.create_customer(name="Jane Nakato", phone="0700123456")
    return customer_service.get_customer(customer_id)


@pytest.fixture
def make_sale():
    """Build a valid SaleInput for the given product lines."""

    def _make(lines, customer_id=None, amount_paid=None, **kwargs):
        items = tuple(
            SaleItemInput(product_id=product.id, unit_price=product.price, quantity=quantity)
            for product, quantity in lines
        )
        total = sum((product.price * quantity for product, quantity in lines), Decimal("0"))
        return SaleInput(
            subtotal=total,
            total=total,
            amount_paid=amount_paid if amount_paid is not None else total,
            cashier_id="7",
            cashier_name="Amina",
            items=items,
            customer_id=customer_id,
            payment_type=kwargs.pop("payment_type", "Cash"),
            **kwargs,
        )

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
