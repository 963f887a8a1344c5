"""Shared pytest fixtures and utilities for Fashion Store tests."""

from __future__ import annotations

import sys
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator

import pytest

# Ensure source packages are importable without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from fashion_store import constants, core_logic, data_manager  # noqa: E402
from fashion_store.setup_workbook import create_master_workbook  # noqa: E402

DEFAULT_SCHEMA_VERSION = constants.EXPECTED_SCHEMA_VERSION
_CONFIG_TEMPLATE = (
    "[System]\n"
    "DataFile = {data_file}\n"
    "StoreName = {store_name}\n"
    "SchemaVersion = {schema_version}\n\n"
    "[Defaults]\n"
    "ProductImage = /placeholder.svg\n"
    "MaxInstallments = {max_installments}\n"
    "TopProductsLimit = 5\n"
)


@dataclass(frozen=True)
class ConfigBundle:
    """Container bundling together config metadata for tests."""

    directory: Path
    config_path: Path
    workbook_path: Path
    schema_version: str
    store_name: str


@pytest.fixture(scope="session", autouse=True)
def _restore_sys_path() -> Iterator[None]:
    """Ensure sys.path modifications are undone after the test session."""

    original = sys.path.copy()
    try:
        yield
    finally:
        sys.path[:] = original


@pytest.fixture
def workbook_factory(tmp_path: Path) -> Callable[..., Path]:
    """Factory that creates an initialized data workbook in a temp folder."""

    def _create_workbook(*, subdir: str | None = None, filename: str = "fashionstore_data.xlsx") -> Path:
        base_dir = tmp_path if subdir is None else tmp_path / subdir
        base_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = base_dir / filename
        create_master_workbook(workbook_path, overwrite=True)
        return workbook_path

    return _create_workbook


@pytest.fixture
def master_workbook_path(workbook_factory: Callable[..., Path]) -> Path:
    """Return a fresh data workbook ready for use in a test."""

    return workbook_factory(subdir=f"workbook_{uuid.uuid4().hex}")


@pytest.fixture
def config_factory(tmp_path: Path, workbook_factory: Callable[..., Path]) -> Callable[..., ConfigBundle]:
    """Provide a callable that creates config/workbook bundles on demand."""

    def _create_config(
        *,
        make_relative: bool = False,
        store_name: str = "Test Store",
        schema_version: str = DEFAULT_SCHEMA_VERSION,
        max_installments: int = 10,
    ) -> ConfigBundle:
        bundle_id = uuid.uuid4().hex
        bundle_dir = tmp_path / f"bundle_{bundle_id}"
        bundle_dir.mkdir(parents=True, exist_ok=True)
        workbook_path = workbook_factory(subdir=f"bundle_{bundle_id}")
        data_file_entry = workbook_path.name if make_relative else str(workbook_path)
        config_path = bundle_dir / "config.ini"
        config_path.write_text(
            _CONFIG_TEMPLATE.format(
                data_file=data_file_entry,
                store_name=store_name,
                schema_version=schema_version,
                max_installments=max_installments,
            )
        )
        return ConfigBundle(
            directory=bundle_dir,
            config_path=config_path,
            workbook_path=workbook_path,
            schema_version=schema_version,
            store_name=store_name,
        )

    return _create_config


@pytest.fixture
def config_file(config_factory: Callable[..., ConfigBundle]) -> Path:
    """Convenience fixture returning only the config path."""

    return config_factory().config_path


@pytest.fixture
def runtime_context(config_file: Path) -> core_logic.RuntimeContext:
    """Load a workbook-backed runtime context through the public API."""

    context = core_logic.load_runtime_context(config_file)
    core_logic.ensure_schema_version(context)
    return context


@pytest.fixture
def settings(tmp_path: Path) -> data_manager.ConfigSettings:
    """Provide default configuration settings for in-memory contexts."""

    return data_manager.ConfigSettings(
        data_file=tmp_path / "fashionstore_data.xlsx",
        store_name="Test Store",
        schema_version=constants.EXPECTED_SCHEMA_VERSION,
    )


@pytest.fixture
def context(settings: data_manager.ConfigSettings) -> core_logic.RuntimeContext:
    """Memory-backed context for business logic and reporting tests."""

    return core_logic.memory_context(settings)


def make_product(
    product_id: str = "p1",
    *,
    price: str = "50.00",
    stock: int = 10,
    name: str | None = None,
    code: str | None = None,
) -> data_manager.ProductRow:
    return data_manager.ProductRow(
        product_id=product_id,
        code=code or f"SKU-{product_id}",
        name=name or f"Product {product_id}",
        description="",
        price=Decimal(price),
        stock=stock,
        image="/placeholder.svg",
        category=constants.ProductCategory.SHIRTS.value,
    )


def make_customer(
    customer_id: str = "c1",
    *,
    status: str = constants.CustomerStatus.PAID.value,
    name: str | None = None,
    phone: str = "(11) 99999-0000",
) -> data_manager.CustomerRow:
    return data_manager.CustomerRow(
        customer_id=customer_id,
        name=name or f"Customer {customer_id}",
        phone=phone,
        email=None,
        address=None,
        status=status,
        created_at="2026-01-01T09:00:00+00:00",
    )


def make_sale(
    sale_id: str,
    *,
    product_id: str = "p1",
    customer_id: str = "c1",
    quantity: int = 1,
    unit_price: str = "10.00",
    payment_method: str = constants.PaymentMethod.PIX.value,
    when: str = "2026-10-19T12:00:00+00:00",
    product_name: str | None = None,
) -> data_manager.SaleRow:
    price = Decimal(unit_price)
    return data_manager.SaleRow(
        sale_id=sale_id,
        product_id=product_id,
        product_name=product_name or f"Product {product_id}",
        customer_id=customer_id,
        customer_name=f"Customer {customer_id}",
        quantity=quantity,
        unit_price=price,
        total=price * quantity,
        payment_method=payment_method,
        installments=None,
        date=when,
        time="12:00:00",
    )


@pytest.fixture
def seeded_context(settings: data_manager.ConfigSettings) -> core_logic.RuntimeContext:
    """Context holding product ``p1`` (50.00, stock 10) and paid customer ``c1``."""

    return core_logic.memory_context(
        settings,
        initial={
            constants.Bucket.PRODUCTS: [make_product("p1")],
            constants.Bucket.CUSTOMERS: [make_customer("c1")],
        },
    )


@pytest.fixture
def set_fixed_datetime(monkeypatch: pytest.MonkeyPatch) -> Callable[[datetime], datetime]:
    """Patch ``core_logic.datetime`` to return a predetermined moment."""

    def _apply(moment: datetime) -> datetime:
        class _FixedDateTime:
            @staticmethod
            def now(tz=None):
                assert tz is UTC
                return moment

        monkeypatch.setattr(core_logic, "datetime", _FixedDateTime)
        return moment

    return _apply
