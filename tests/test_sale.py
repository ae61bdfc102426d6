"""Tests for the sale commit pipeline."""

import logging
from dataclasses import replace
from decimal import Decimal

import pytest

from pharmapos.database.models import Product as ORMProduct
from pharmapos.domain.entities import (
    SaleInput,
    SaleItemInput,
    Segment,
    TransactionStatus,
    WALK_IN_NAME,
)
from pharmapos.domain.errors import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from pharmapos.domain.inventory import InventoryAdjuster
from pharmapos.domain.sale import (
    SaleService,
    build_sale_input,
    loyalty_points_for,
    resolve_customer_id,
    validate_sale,
)


def assert_nothing_written(db, product_id, quantity):
    assert db.list_transactions() == []
    assert db.list_ledger_entries() == []
    product = db.get_product(product_id)
    assert product.quantity == quantity
    assert product.sales_count == 0


class TestCommitSale:
    """Tests for SaleService.commit_sale."""

    def test_walk_in_sale(self, sale_service, temp_db, clock, sample_product, make_sale):
        """A walk-in sale writes the transaction, items, stock and one ledger entry."""
        receipt = sale_service.commit_sale(make_sale([(sample_product, 1)]))

        assert receipt.transaction_id == int(clock().timestamp())
        assert receipt.order_number == receipt.transaction_id
        assert receipt.reference_number == f"REF-{receipt.transaction_id}"

        txn = temp_db.get_transaction(receipt.transaction_id)
        assert txn.status == TransactionStatus.COMPLETED
        assert txn.customer_id is None
        assert txn.customer_name == WALK_IN_NAME
        assert txn.total == Decimal("5000")

        items = temp_db.list_transaction_items(receipt.transaction_id)
        assert len(items) == 1
        assert items[0].product_name == "Paracetamol 500mg"
        assert items[0].category == "Analgesics"
        assert items[0].price == Decimal("5000")

        product = temp_db.get_product(sample_product.id)
        assert product.quantity == 19
        assert product.sales_count == 1

        entries = temp_db.list_ledger_entries()
        assert len(entries) == 1
        assert entries[0].amount == Decimal("5000")
        assert entries[0].category == "sales"
        assert entries[0].payment_method == "Cash"
        assert entries[0].reference == receipt.reference_number
        assert entries[0].transaction_id == receipt.transaction_id
        assert entries[0].description == f"Sale - Order #{receipt.order_number}"

    def test_registered_customer_aggregates(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        """Spend, orders, points and average are updated from the sale."""
        receipt = sale_service.commit_sale(
            make_sale([(sample_product, 2)], customer_id=sample_customer.id)
        )

        customer = temp_db.get_customer(sample_customer.id)
        assert customer.total_spent == Decimal("10000")
        assert customer.total_orders == 1
        assert customer.loyalty_points == 10
        assert customer.average_order_value == Decimal("10000")
        assert customer.last_order_date is not None
        assert customer.segment == Segment.NEW

        txn = temp_db.get_transaction(receipt.transaction_id)
        assert txn.customer_id == sample_customer.id
        assert txn.customer_name == "Jane Nakato"

    def test_average_over_several_orders(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        sale_service.commit_sale(make_sale([(sample_product, 1)], customer_id=sample_customer.id))
        sale_service.commit_sale(make_sale([(sample_product, 2)], customer_id=sample_customer.id))

        customer = temp_db.get_customer(sample_customer.id)
        assert customer.total_spent == Decimal("15000")
        assert customer.total_orders == 2
        assert customer.average_order_value == Decimal("7500")
        assert customer.loyalty_points == 15

    def test_third_recent_order_makes_customer_regular(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        for _ in range(3):
            sale_service.commit_sale(make_sale([(sample_product, 1)], customer_id=sample_customer.id))

        assert temp_db.get_customer(sample_customer.id).segment == Segment.REGULAR

    def test_walk_in_never_touches_customer_store(
        self, sale_service, temp_db, sample_product, make_sale, monkeypatch
    ):
        """Walk-in sales make no customer reads or writes at all."""
        calls = []

        def spy(name):
            def _record(*args, **kwargs):
                calls.append(name)
                raise AssertionError(f"{name} called for a walk-in sale")

            return _record

        for name in (
            "get_customer",
            "apply_customer_sale",
            "write_customer_aggregates",
            "update_customer_segment",
        ):
            monkeypatch.setattr(temp_db, name, spy(name))

        for customer_id in (None, 0, "walk-in", "walkin_customer", "", "0"):
            sale_service.commit_sale(make_sale([(sample_product, 1)], customer_id=customer_id))

        assert calls == []
        assert len(temp_db.list_transactions()) == 6

    def test_submitted_customer_name_is_kept(self, sale_service, temp_db, sample_product, make_sale):
        receipt = sale_service.commit_sale(
            make_sale([(sample_product, 1)], customer_name="Dr. Okello")
        )
        assert temp_db.get_transaction(receipt.transaction_id).customer_name == "Dr. Okello"

    def test_custom_reference_number(self, sale_service, temp_db, sample_product, make_sale):
        receipt = sale_service.commit_sale(
            make_sale([(sample_product, 1)], reference_number="MM-8812")
        )
        assert receipt.reference_number == "MM-8812"
        assert temp_db.list_ledger_entries(reference="MM-8812")[0].amount == Decimal("5000")

    def test_ids_are_unique_under_a_frozen_clock(self, sale_service, sample_product, make_sale):
        first = sale_service.commit_sale(make_sale([(sample_product, 1)]))
        second = sale_service.commit_sale(make_sale([(sample_product, 1)]))
        assert second.transaction_id == first.transaction_id + 1
        assert second.reference_number == f"REF-{second.transaction_id}"

    def test_create_transaction_uses_same_pipeline(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        receipt = sale_service.create_transaction(
            make_sale([(sample_product, 3)], customer_id=sample_customer.id)
        )

        assert temp_db.get_transaction(receipt.transaction_id).status == TransactionStatus.COMPLETED
        assert temp_db.get_product(sample_product.id).quantity == 17
        assert temp_db.get_customer(sample_customer.id).total_orders == 1
        assert len(temp_db.list_ledger_entries()) == 1

    def test_multiple_items(self, sale_service, temp_db, sample_product, second_product, make_sale):
        receipt = sale_service.commit_sale(make_sale([(sample_product, 2), (second_product, 4)]))

        items = temp_db.list_transaction_items(receipt.transaction_id)
        assert [(i.product_id, i.quantity) for i in items] == [
            (sample_product.id, 2),
            (second_product.id, 4),
        ]
        assert temp_db.get_product(second_product.id).quantity == 6
        assert temp_db.list_ledger_entries()[0].amount == Decimal("20000")

    def test_negative_stock_allowed_by_default(self, sale_service, temp_db, sample_product, make_sale):
        sale_service.commit_sale(make_sale([(sample_product, 25)]))
        assert temp_db.get_product(sample_product.id).quantity == -5

    def test_item_snapshot_survives_product_edit_and_delete(
        self, sale_service, temp_db, sample_product, make_sale
    ):
        """Items keep the name, price and category they were sold with."""
        receipt = sale_service.commit_sale(make_sale([(sample_product, 2)]))

        session = temp_db._get_session()
        session.query(ORMProduct).filter(ORMProduct.id == sample_product.id).update(
            {"name": "Panadol Extra", "price": Decimal("7000"), "category": "Pain Relief"}
        )
        session.commit()
        edited = temp_db.list_transaction_items(receipt.transaction_id)

        session.query(ORMProduct).filter(ORMProduct.id == sample_product.id).delete()
        session.commit()
        assert temp_db.get_product(sample_product.id) is None
        deleted = temp_db.list_transaction_items(receipt.transaction_id)

        for items in (edited, deleted):
            assert len(items) == 1
            assert items[0].product_id == sample_product.id
            assert items[0].product_name == "Paracetamol 500mg"
            assert items[0].price == Decimal("5000")
            assert items[0].category == "Analgesics"
            assert items[0].line_total == Decimal("10000")


class TestCommitSaleFailures:
    """Failure paths leave the store untouched."""

    def test_missing_items(self, sale_service, temp_db, sample_product, make_sale):
        sale = make_sale([(sample_product, 1)])
        empty = SaleInput(
            subtotal=sale.subtotal,
            total=sale.total,
            amount_paid=sale.amount_paid,
            cashier_id=sale.cashier_id,
            cashier_name=sale.cashier_name,
        )

        with pytest.raises(ValidationError) as exc_info:
            sale_service.commit_sale(empty)

        assert "items" in exc_info.value.missing_fields
        assert_nothing_written(temp_db, sample_product.id, 20)

    def test_reports_every_missing_field(self, sale_service):
        with pytest.raises(ValidationError) as exc_info:
            sale_service.commit_sale(SaleInput(items=(SaleItemInput(quantity=1),)))

        assert exc_info.value.missing_fields == [
            "subtotal",
            "total",
            "amount_paid",
            "cashier_id",
            "cashier_name",
            "items[0].product_id",
            "items[0].unit_price",
        ]

    def test_unknown_product_rolls_back_everything(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        """A bad second item undoes the first item's writes too."""
        sale = make_sale([(sample_product, 2)], customer_id=sample_customer.id)
        bad = SaleItemInput(product_id=9999, unit_price=Decimal("100"), quantity=1)
        sale = replace(sale, items=sale.items + (bad,))

        with pytest.raises(NotFoundError):
            sale_service.commit_sale(sale)

        assert_nothing_written(temp_db, sample_product.id, 20)
        customer = temp_db.get_customer(sample_customer.id)
        assert customer.total_orders == 0
        assert customer.total_spent == Decimal("0")

    def test_unknown_customer_is_recorded_as_walk_in(
        self, sale_service, temp_db, sample_product, make_sale, caplog
    ):
        """A missing customer is logged and skipped; the sale still commits."""
        caplog.set_level(logging.WARNING, logger="pharmapos")

        receipt = sale_service.commit_sale(make_sale([(sample_product, 1)], customer_id=4242))

        txn = temp_db.get_transaction(receipt.transaction_id)
        assert txn.status == TransactionStatus.COMPLETED
        assert txn.customer_id is None
        assert txn.customer_name == WALK_IN_NAME
        assert [e.amount for e in temp_db.list_ledger_entries()] == [Decimal("5000")]
        assert temp_db.get_product(sample_product.id).quantity == 19
        assert temp_db.list_customers() == []
        assert "Customer 4242 not found" in caplog.text

    def test_hold_for_unknown_customer_is_refused(self, sale_service, temp_db, sample_product, make_sale):
        with pytest.raises(NotFoundError, match="Customer 4242 not found"):
            sale_service.hold_sale(make_sale([(sample_product, 1)], customer_id=4242))

        assert_nothing_written(temp_db, sample_product.id, 20)

    def test_store_failure_becomes_persistence_error(
        self, sale_service, temp_db, sample_product, make_sale, monkeypatch
    ):
        def broken(row):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(temp_db, "insert_ledger_entry", broken)

        with pytest.raises(PersistenceError) as exc_info:
            sale_service.commit_sale(make_sale([(sample_product, 1)]))

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert "disk I/O error" in str(exc_info.value)
        monkeypatch.undo()
        assert_nothing_written(temp_db, sample_product.id, 20)

    def test_insufficient_stock_when_disallowed(self, temp_db, clock, sample_product, make_sale):
        inventory = InventoryAdjuster(temp_db, allow_negative_stock=False)
        service = SaleService(temp_db, inventory=inventory, clock=clock)

        with pytest.raises(InsufficientStockError):
            service.commit_sale(make_sale([(sample_product, 21)]))

        assert_nothing_written(temp_db, sample_product.id, 20)

    def test_segment_failure_does_not_abort_sale(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale, monkeypatch, caplog
    ):
        def broken(customer, now=None):
            raise RuntimeError("classifier exploded")

        monkeypatch.setattr("pharmapos.domain.sale.classify_customer", broken)
        caplog.set_level(logging.WARNING, logger="pharmapos")

        receipt = sale_service.commit_sale(
            make_sale([(sample_product, 1)], customer_id=sample_customer.id)
        )

        assert temp_db.get_transaction(receipt.transaction_id) is not None
        customer = temp_db.get_customer(sample_customer.id)
        assert customer.total_orders == 1
        assert customer.segment == Segment.NEW
        assert len(temp_db.list_ledger_entries()) == 1
        assert "Segment update failed" in caplog.text


class TestHoldOrders:
    """Tests for hold_sale and complete_held_sale."""

    def test_hold_has_no_side_effects(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        receipt = sale_service.hold_sale(
            make_sale([(sample_product, 2)], customer_id=sample_customer.id, amount_paid=Decimal("0"))
        )

        assert receipt.reference_number == f"HOLD-{receipt.transaction_id}"
        txn = temp_db.get_transaction(receipt.transaction_id)
        assert txn.status == TransactionStatus.ON_HOLD
        assert len(temp_db.list_transaction_items(receipt.transaction_id)) == 1
        assert temp_db.get_product(sample_product.id).quantity == 20
        assert temp_db.get_customer(sample_customer.id).total_orders == 0
        assert temp_db.list_ledger_entries() == []

    def test_hold_requires_registered_customer(self, sale_service, sample_product, make_sale):
        with pytest.raises(ValidationError) as exc_info:
            sale_service.hold_sale(make_sale([(sample_product, 1)]))
        assert exc_info.value.missing_fields == ["customer_id"]

    def test_complete_held_order(
        self, sale_service, temp_db, sample_product, sample_customer, make_sale
    ):
        held = sale_service.hold_sale(
            make_sale([(sample_product, 2)], customer_id=sample_customer.id)
        )

        receipt = sale_service.complete_held_sale(
            held.transaction_id,
            amount_paid=Decimal("12000"),
            change_amount=Decimal("2000"),
            payment_type="Mobile Money",
        )

        assert receipt == held
        txn = temp_db.get_transaction(held.transaction_id)
        assert txn.status == TransactionStatus.COMPLETED
        assert txn.amount_paid == Decimal("12000")
        assert txn.change_amount == Decimal("2000")
        assert txn.payment_type == "Mobile Money"
        assert temp_db.get_product(sample_product.id).quantity == 18
        assert temp_db.get_customer(sample_customer.id).loyalty_points == 10

        entries = temp_db.list_ledger_entries()
        assert len(entries) == 1
        assert entries[0].amount == Decimal("10000")
        assert entries[0].payment_method == "Mobile Money"
        assert entries[0].description.endswith("(from hold)")

    def test_complete_twice_conflicts(
        self, sale_service, sample_product, sample_customer, make_sale
    ):
        held = sale_service.hold_sale(make_sale([(sample_product, 1)], customer_id=sample_customer.id))
        sale_service.complete_held_sale(held.transaction_id, amount_paid=Decimal("5000"))

        with pytest.raises(ConflictError):
            sale_service.complete_held_sale(held.transaction_id, amount_paid=Decimal("5000"))

    def test_complete_unknown(self, sale_service):
        with pytest.raises(NotFoundError):
            sale_service.complete_held_sale(1, amount_paid=Decimal("5000"))


class TestHelpers:
    """Tests for module-level sale helpers."""

    @pytest.mark.parametrize(
        "total,points",
        [(Decimal("0"), 0), (Decimal("999"), 0), (Decimal("1000"), 1), (Decimal("2500.50"), 2)],
    )
    def test_loyalty_points_for(self, total, points):
        assert loyalty_points_for(total) == points

    def test_resolve_customer_id(self):
        assert resolve_customer_id(None) is None
        assert resolve_customer_id("Walk-In") is None
        assert resolve_customer_id("12") == 12
        assert resolve_customer_id(12) == 12

    def test_resolve_customer_id_rejects_garbage(self):
        with pytest.raises(ValidationError):
            resolve_customer_id("jane")

    def test_validate_rejects_bad_quantities(self):
        sale = SaleInput(
            subtotal=Decimal("10"),
            total=Decimal("10"),
            amount_paid=Decimal("10"),
            cashier_id="1",
            cashier_name="A",
            items=(SaleItemInput(product_id=1, unit_price=Decimal("10"), quantity=0),),
        )
        with pytest.raises(ValidationError) as exc_info:
            validate_sale(sale)
        assert exc_info.value.invalid_fields == ["items[0].quantity"]

    def test_build_sale_input_derives_totals(self):
        items = [
            SaleItemInput(product_id=1, unit_price=Decimal("5000"), quantity=2),
            SaleItemInput(product_id=2, unit_price=Decimal("2500"), quantity=1),
        ]
        sale = build_sale_input(
            items,
            amount_paid=Decimal("15000"),
            cashier_id="7",
            cashier_name="Amina",
            discount=Decimal("500"),
            tax=Decimal("200"),
        )
        assert sale.subtotal == Decimal("12500")
        assert sale.total == Decimal("12200")
        assert sale.change_amount == Decimal("2800")
