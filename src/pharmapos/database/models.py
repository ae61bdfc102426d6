"""SQLAlchemy models for pharmapos database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Numeric,
    create_engine,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Product(Base):
    """Catalog product model."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    barcode = Column(String, nullable=True)
    category = Column(String, nullable=False, default="Uncategorized")
    price = Column(Numeric(12, 2), nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    reorder_level = Column(Integer, nullable=False, default=0)
    sales_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)


class Customer(Base):
    """Customer model with running purchase aggregates."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    total_spent = Column(Numeric(14, 2), nullable=False, default=0)
    total_orders = Column(Integer, nullable=False, default=0)
    loyalty_points = Column(Integer, nullable=False, default=0)
    last_order_date = Column(DateTime, nullable=True)
    average_order_value = Column(Numeric(14, 2), nullable=False, default=0)
    segment = Column(String, nullable=False, default="new")
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Relationships
    transactions = relationship("Transaction", back_populates="customer")


class Transaction(Base):
    """Sale transaction model.

    The primary key is assigned by the sale pipeline (a time-based integer)
    and mirrored into order_number.
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=False)
    order_number = Column(Integer, nullable=False)
    reference_number = Column(String, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    customer_name = Column(String, nullable=False)
    status = Column(String, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    change_amount = Column(Numeric(12, 2), nullable=False, default=0)
    payment_type = Column(String, nullable=True)
    payment_info = Column(String, nullable=True)
    till = Column(Integer, nullable=False, default=1)
    cashier_id = Column(String, nullable=False)
    cashier_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="transactions")
    items = relationship("TransactionItem", back_populates="transaction")


class TransactionItem(Base):
    """Line item snapshot. product_id is deliberately not a foreign key."""

    __tablename__ = "transaction_items"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    product_id = Column(Integer, nullable=False)
    product_name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    category = Column(String, nullable=False, default="Uncategorized")

    # Relationships
    transaction = relationship("Transaction", back_populates="items")


class LedgerEntry(Base):
    """Append-only accounting ledger model."""

    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True)
    date = Column(DateTime, default=_utcnow, nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    category = Column(String, nullable=False)
    payment_method = Column(String, nullable=True)
    reference = Column(String, nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy own BEGIN so SAVEPOINT works on pysqlite."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
