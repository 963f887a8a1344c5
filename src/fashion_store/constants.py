"""Enumerations shared across the Fashion Store modules.

The store layer, the transaction engine, and the reporting queries all rely on
these values, so the persisted spellings live here and nowhere else.
"""

from __future__ import annotations

from enum import Enum


# Schema version written by the workbook bootstrap and checked on load.
EXPECTED_SCHEMA_VERSION = "1.0.0"


class PaymentMethod(str, Enum):
    """Payment methods accepted at the counter."""

    PIX = "pix"
    CARD = "cartao"
    CASH = "dinheiro"
    ON_CREDIT = "fiado"


class CustomerStatus(str, Enum):
    """Two-state debt flag carried by every customer."""

    PAID = "paid"
    PENDING = "pending"


class ProductCategory(str, Enum):
    """Fixed set of catalog categories."""

    SHIRTS = "camisetas"
    TROUSERS = "calcas"
    DRESSES = "vestidos"
    SHOES = "sapatos"
    ACCESSORIES = "acessorios"


class Bucket(str, Enum):
    """Named buckets of the key-value store."""

    PRODUCTS = "products"
    CUSTOMERS = "customers"
    SALES = "sales"
    LOGGED_IN = "logged_in"


class SheetName(str, Enum):
    """Worksheet names used by the workbook-backed store."""

    PRODUCTS = "Products"
    CUSTOMERS = "Customers"
    SALES = "Sales"
    SESSION = "Session"


class PeriodKind(str, Enum):
    """Date filters understood by the sales reports."""

    TODAY = "today"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    CUSTOM = "custom"
    ALL = "all"


__all__ = [
    "EXPECTED_SCHEMA_VERSION",
    "PaymentMethod",
    "CustomerStatus",
    "ProductCategory",
    "Bucket",
    "SheetName",
    "PeriodKind",
]
