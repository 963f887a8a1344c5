"""Integration tests describing end-to-end Fashion Store workflows.

These scenarios run the business logic and reporting layers against a real
workbook on disk, persisting and reloading between steps the way the
application does across sessions.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from fashion_store import core_logic, reports, setup_workbook
from fashion_store.constants import Bucket, CustomerStatus, PaymentMethod


NOW = datetime(2026, 10, 19, 14, 0, tzinfo=UTC)


def test_sale_lifecycle_flow(runtime_context):
    """Walk through catalog, sale, settlement, and reporting with reloads."""

    context = runtime_context

    product = core_logic.add_product(
        context,
        code="VES-010",
        name="Linen Dress",
        price=Decimal("120.00"),
        stock=5,
        category="vestidos",
    )
    customer = core_logic.add_customer(context, name="Julia Costa", phone="(11) 97777-5555")

    # Writes flush to disk, so a fresh context sees them.
    context = core_logic.refresh_context(context)
    assert core_logic.get_product(context, product.product_id) == product
    assert core_logic.get_customer(context, customer.customer_id) == customer

    credit_sale = core_logic.record_sale(
        context,
        core_logic.SaleCommand(
            product_id=product.product_id,
            customer_id=customer.customer_id,
            quantity=2,
            payment_method=PaymentMethod.ON_CREDIT,
            timestamp=NOW,
        ),
    )
    card_sale = core_logic.record_sale(
        context,
        core_logic.SaleCommand(
            product_id=product.product_id,
            customer_id=customer.customer_id,
            quantity=1,
            payment_method=PaymentMethod.CARD,
            installments=3,
            timestamp=NOW,
        ),
    )

    context = core_logic.refresh_context(context)

    assert core_logic.list_sales(context) == [credit_sale, card_sale]
    assert core_logic.get_product(context, product.product_id).stock == 2
    assert core_logic.get_customer(context, customer.customer_id).status == CustomerStatus.PENDING.value
    assert reports.total_debt(context) == Decimal("240.00")

    report = reports.build_sales_report(context, reports.PeriodFilter.today(), now=NOW)
    assert report.total_revenue == Decimal("360.00")
    assert report.payment_breakdown == (("fiado", Decimal("240.00")), ("cartao", Decimal("120.00")))

    core_logic.settle_debt(context, customer.customer_id)
    context = core_logic.refresh_context(context)

    assert reports.total_debt(context) == Decimal("0")
    assert reports.customer_debt(context, customer.customer_id) == Decimal("240.00")


def test_rejected_sale_is_not_persisted(runtime_context):
    context = runtime_context
    product = core_logic.add_product(context, code="SAP-1", name="Sneaker", price="199.90", stock=1, category="sapatos")
    customer = core_logic.add_customer(context, name="Rafa", phone="11 90000-0000")

    with pytest.raises(core_logic.InsufficientStockError):
        core_logic.record_sale(
            context,
            core_logic.SaleCommand(product.product_id, customer.customer_id, 2, PaymentMethod.PIX, timestamp=NOW),
        )

    reloaded = core_logic.refresh_context(context)
    assert core_logic.list_sales(reloaded) == []
    assert core_logic.get_product(reloaded, product.product_id).stock == 1


def test_session_flag_survives_reload(runtime_context):
    core_logic.set_logged_in(runtime_context)
    assert core_logic.is_logged_in(core_logic.refresh_context(runtime_context)) is True

    core_logic.clear_session(runtime_context)
    assert core_logic.is_logged_in(core_logic.refresh_context(runtime_context)) is False


def test_load_runtime_context_can_create_missing_workbook(config_factory):
    bundle = config_factory(make_relative=True)
    bundle.workbook_path.unlink()

    with pytest.raises(FileNotFoundError):
        core_logic.load_runtime_context(bundle.config_path)

    context = core_logic.load_runtime_context(bundle.config_path, create_missing=True)

    assert bundle.workbook_path.exists()
    assert core_logic.list_products(context) == []


def test_load_runtime_context_discovers_config_from_cwd(config_factory, monkeypatch):
    bundle = config_factory()
    monkeypatch.chdir(bundle.directory)

    context = core_logic.load_runtime_context()

    assert context.settings.data_file.resolve() == bundle.workbook_path.resolve()
    assert context.settings.store_name == bundle.store_name


def test_setup_script_creates_workbook_from_config(config_factory, capsys):
    bundle = config_factory()
    bundle.workbook_path.unlink()

    assert setup_workbook.main(["--config", str(bundle.config_path)]) == 0
    assert bundle.workbook_path.exists()

    # A second run refuses to overwrite without --force.
    assert setup_workbook.main(["--config", str(bundle.config_path)]) == 1
    assert "--force" in capsys.readouterr().out
    assert setup_workbook.main(["--config", str(bundle.config_path), "--force"]) == 0


def test_setup_script_reports_missing_config(tmp_path, capsys):
    assert setup_workbook.main(["--config", str(tmp_path / "absent.ini")]) == 1
    assert "[ERROR]" in capsys.readouterr().out


def test_rejected_product_leaves_workbook_unchanged(runtime_context):
    """A refused add must not leave a blank record for the next save to persist."""

    context = runtime_context

    with pytest.raises(core_logic.ValidationError):
        core_logic.add_product(context, code="X", name="Bad\x07name", price="10", stock=1, category="camisetas")

    assert context.store.get(Bucket.PRODUCTS) == ()

    kept = core_logic.add_product(context, code="OK", name="Plain Tee", price="10", stock=1, category="camisetas")

    reloaded = core_logic.refresh_context(context)
    assert core_logic.list_products(reloaded) == [kept]
