"""Data access layer for the Fashion Store back office.

Everything that touches persisted state lives here. Business rules belong in
:mod:`fashion_store.core_logic` and read-side queries in
:mod:`fashion_store.reports`; both receive a store through the runtime context
and never reach for module-level state.

The module covers three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Record shapes: the frozen dataclasses for products, customers, and sales,
   plus their row (de)serializers.
3. Bucket stores: the ``get``/``put`` abstraction over the named buckets, with
   an ``openpyxl`` workbook backend and an in-memory backend.
"""


from __future__ import annotations

import configparser
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Protocol, Sequence, Tuple

import openpyxl
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import IllegalCharacterError
from openpyxl.workbook import Workbook

from . import DEFAULT_LOG_LEVEL, log, resolve_log_level
from .constants import Bucket, SheetName


CONFIG_FILE_NAME = "config.ini"
DEFAULT_PRODUCT_IMAGE = "/placeholder.svg"
DEFAULT_MAX_INSTALLMENTS = 10
DEFAULT_TOP_PRODUCTS_LIMIT = 5

PRODUCTS_SHEET = SheetName.PRODUCTS.value
CUSTOMERS_SHEET = SheetName.CUSTOMERS.value
SALES_SHEET = SheetName.SALES.value
SESSION_SHEET = SheetName.SESSION.value

SHEET_COLUMNS: Mapping[str, Sequence[str]] = {
    PRODUCTS_SHEET: [
        "ProductID",
        "Code",
        "Name",
        "Description",
        "Price",
        "Stock",
        "Image",
        "Category",
    ],
    CUSTOMERS_SHEET: [
        "CustomerID",
        "Name",
        "Phone",
        "Email",
        "Address",
        "Status",
        "CreatedAt",
    ],
    SALES_SHEET: [
        "SaleID",
        "ProductID",
        "ProductName",
        "CustomerID",
        "CustomerName",
        "Quantity",
        "UnitPrice",
        "Total",
        "PaymentMethod",
        "Installments",
        "Date",
        "Time",
    ],
    SESSION_SHEET: [
        "Key",
        "Value",
    ],
}


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    store_name: str
    schema_version: str
    product_image: str = DEFAULT_PRODUCT_IMAGE
    max_installments: int = DEFAULT_MAX_INSTALLMENTS
    top_products_limit: int = DEFAULT_TOP_PRODUCTS_LIMIT
    log_level: str = DEFAULT_LOG_LEVEL


@dataclass(frozen=True)
class ProductRow:
    """Catalog entry as stored in the ``products`` bucket."""

    product_id: str
    code: str
    name: str
    description: str
    price: Decimal
    stock: int
    image: str
    category: str


@dataclass(frozen=True)
class CustomerRow:
    """Customer entry as stored in the ``customers`` bucket."""

    customer_id: str
    name: str
    phone: str
    email: Optional[str]
    address: Optional[str]
    status: str
    created_at: str


@dataclass(frozen=True)
class SaleRow:
    """Ledger entry as stored in the ``sales`` bucket.

    Product and customer names are copies taken when the sale was recorded,
    so the row stays readable after the referenced records change or vanish.
    """

    sale_id: str
    product_id: str
    product_name: str
    customer_id: str
    customer_name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    payment_method: str
    installments: Optional[int]
    date: str
    time: str


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls how the data layer behaves.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification. Otherwise the function walks up from the current
    working directory toward the filesystem root looking for a file named
    ``CONFIG_FILE_NAME``; the first match wins.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If no ``CONFIG_FILE_NAME`` exists in the working
            directory or any of its parents.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(
        f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Args:
        config_path (Path): Path to the configuration file, relative or
            absolute. ``~`` is expanded.

    Returns:
        configparser.ConfigParser: Parser holding the raw configuration data.
            Section validation happens in :func:`parse_settings`.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
    """

    config_path = config_path.expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    Entries under ``[System]`` are mandatory. Entries under ``[Defaults]`` and
    ``[Logging]`` are optional and fall back to the module defaults. A relative ``DataFile`` is
    anchored to ``base_path`` (or the working directory) and resolved.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Directory used to anchor relative
            ``DataFile`` entries.

    Returns:
        ConfigSettings: Immutable settings container.

    Raises:
        KeyError: If a required ``[System]`` entry is missing.
        ValueError: If a numeric ``[Defaults]`` entry is not an integer, or
            ``[Logging] Level`` does not name a logging level.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        store_name = parser.get("System", "StoreName")
        schema_version = parser.get("System", "SchemaVersion")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    product_image = parser.get("Defaults", "ProductImage", fallback=DEFAULT_PRODUCT_IMAGE)
    max_installments = parser.getint("Defaults", "MaxInstallments", fallback=DEFAULT_MAX_INSTALLMENTS)
    top_products_limit = parser.getint("Defaults", "TopProductsLimit", fallback=DEFAULT_TOP_PRODUCTS_LIMIT)
    log_level = parser.get("Logging", "Level", fallback=DEFAULT_LOG_LEVEL).strip().upper()
    resolve_log_level(log_level)

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_file_path = (base_path / data_file_path).resolve()

    return ConfigSettings(
        data_file=data_file_path,
        store_name=store_name,
        schema_version=schema_version,
        product_image=product_image,
        max_installments=max_installments,
        top_products_limit=top_products_limit,
        log_level=log_level,
    )


def open_workbook(data_file: Path) -> Workbook:
    """Open the data workbook and return a live ``openpyxl`` workbook.

    Raises:
        FileNotFoundError: If ``data_file`` does not exist.
    """

    data_file = Path(data_file).expanduser().resolve()
    if not data_file.exists():
        raise FileNotFoundError(f"Workbook not found: {data_file}")

    return openpyxl.load_workbook(data_file)


def save_workbook(workbook: Workbook, destination: Path) -> None:
    """Persist the workbook at ``destination``, creating parent folders."""

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)


def locate_row(workbook: Workbook, sheet_name: str, key_column: str, key_value: str) -> Optional[int]:
    """Find a row by matching a key value within the specified worksheet.

    Args:
        workbook (Workbook): Workbook providing access to ``sheet_name``.
        sheet_name (str): Name of the worksheet to search.
        key_column (str): Header title of the column holding the lookup key.
        key_value (str): Value to match within the key column.

    Returns:
        int | None: 1-based row index of the first match, otherwise ``None``.

    Raises:
        KeyError: If ``key_column`` is not present in the worksheet header.
    """

    sheet = workbook[sheet_name]
    header_cells = list(sheet[1])
    header_map = {cell.value: idx + 1 for idx, cell in enumerate(header_cells)}
    if key_column not in header_map:
        raise KeyError(f"Unknown column: {key_column}")

    key_col_index = header_map[key_column]

    for row_idx, row in enumerate(sheet.iter_rows(min_row=2, values_only=True), start=2):
        if row[key_col_index - 1] == key_value:
            return row_idx

    return None


def has_illegal_characters(value: object) -> bool:
    """Whether ``value`` is a string holding characters a worksheet cell rejects."""

    return isinstance(value, str) and ILLEGAL_CHARACTERS_RE.search(value) is not None


def check_cell_values(row: Sequence[object]) -> None:
    """Raise ``IllegalCharacterError`` if any value in ``row`` cannot be stored.

    Runs before a sheet is touched so a rejected row leaves no partial writes.
    """

    for value in row:
        if has_illegal_characters(value):
            raise IllegalCharacterError(f"{value!r} cannot be used in worksheets.")


def _decimal(raw: object, default: str = "0.00") -> Decimal:
    # Excel hands numbers back as floats; going through str keeps 19.9 as 19.9.
    return Decimal(str(raw)) if raw is not None else Decimal(default)


def _optional_text(raw: object) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw)
    return text or None


def serialize_product(record: ProductRow) -> list[object]:
    """Arrange a product as ``[ProductID, Code, Name, Description, Price, Stock, Image, Category]``."""

    return [
        record.product_id,
        record.code,
        record.name,
        record.description,
        record.price,
        record.stock,
        record.image,
        record.category,
    ]


def serialize_customer(record: CustomerRow) -> list[object]:
    """Arrange a customer in ``Customers`` column order."""

    return [
        record.customer_id,
        record.name,
        record.phone,
        record.email,
        record.address,
        record.status,
        record.created_at,
    ]


def serialize_sale(record: SaleRow) -> list[object]:
    """Arrange a sale in ``Sales`` column order, keeping ``Decimal`` money values."""

    return [
        record.sale_id,
        record.product_id,
        record.product_name,
        record.customer_id,
        record.customer_name,
        record.quantity,
        record.unit_price,
        record.total,
        record.payment_method,
        record.installments,
        record.date,
        record.time,
    ]


def deserialize_product(raw_row: Sequence[object]) -> ProductRow:
    """Convert a raw worksheet row into a :class:`ProductRow`.

    Identifiers and text columns are coerced to ``str`` so that codes typed as
    numbers in Excel do not come back as integers. Price becomes a
    :class:`~decimal.Decimal` and stock an ``int``.
    """

    product_id, code, name, description, price_raw, stock_raw, image, category = raw_row[:8]
    return ProductRow(
        product_id=str(product_id),
        code=str(code) if code is not None else "",
        name=str(name) if name is not None else "",
        description=str(description) if description is not None else "",
        price=_decimal(price_raw),
        stock=int(stock_raw) if stock_raw is not None else 0,
        image=str(image) if image is not None else "",
        category=str(category) if category is not None else "",
    )


def deserialize_customer(raw_row: Sequence[object]) -> CustomerRow:
    """Convert a raw worksheet row into a :class:`CustomerRow`.

    Blank optional contact fields come back as ``None``.
    """

    customer_id, name, phone, email, address, status, created_at = raw_row[:7]
    return CustomerRow(
        customer_id=str(customer_id),
        name=str(name) if name is not None else "",
        phone=str(phone) if phone is not None else "",
        email=_optional_text(email),
        address=_optional_text(address),
        status=str(status) if status is not None else "",
        created_at=str(created_at) if created_at is not None else "",
    )


def deserialize_sale(raw_row: Sequence[object]) -> SaleRow:
    """Convert a raw worksheet row into a :class:`SaleRow`.

    Money columns are normalized into :class:`~decimal.Decimal` instances and
    ``Installments`` stays ``None`` for payment methods that do not use it.
    """

    (
        sale_id,
        product_id,
        product_name,
        customer_id,
        customer_name,
        quantity_raw,
        unit_price_raw,
        total_raw,
        payment_method,
        installments_raw,
        date_raw,
        time_raw,
    ) = raw_row[:12]

    return SaleRow(
        sale_id=str(sale_id),
        product_id=str(product_id),
        product_name=str(product_name) if product_name is not None else "",
        customer_id=str(customer_id),
        customer_name=str(customer_name) if customer_name is not None else "",
        quantity=int(quantity_raw) if quantity_raw is not None else 0,
        unit_price=_decimal(unit_price_raw),
        total=_decimal(total_raw),
        payment_method=str(payment_method) if payment_method is not None else "",
        installments=int(installments_raw) if installments_raw is not None else None,
        date=str(date_raw) if date_raw is not None else "",
        time=str(time_raw) if time_raw is not None else "",
    )


@dataclass(frozen=True)
class _BucketCodec:
    sheet_name: str
    serialize: Callable[[object], list[object]]
    deserialize: Callable[[Sequence[object]], object]


RECORD_BUCKETS: Mapping[Bucket, _BucketCodec] = {
    Bucket.PRODUCTS: _BucketCodec(PRODUCTS_SHEET, serialize_product, deserialize_product),
    Bucket.CUSTOMERS: _BucketCodec(CUSTOMERS_SHEET, serialize_customer, deserialize_customer),
    Bucket.SALES: _BucketCodec(SALES_SHEET, serialize_sale, deserialize_sale),
}
FLAG_BUCKETS: Tuple[Bucket, ...] = (Bucket.LOGGED_IN,)


def _record_codec(bucket: Bucket) -> _BucketCodec:
    try:
        return RECORD_BUCKETS[bucket]
    except KeyError as exc:
        raise KeyError(f"Bucket '{bucket.value}' does not hold records") from exc


def _require_flag_bucket(bucket: Bucket) -> None:
    if bucket not in FLAG_BUCKETS:
        raise KeyError(f"Bucket '{bucket.value}' does not hold a flag")


class BucketStore(Protocol):
    """Synchronous store addressed by named buckets.

    Record buckets hold an ordered sequence of frozen records; ``get`` always
    returns a fresh tuple so callers never share state with the store. Flag
    buckets hold a single boolean. ``flush`` makes pending writes durable.
    """

    def get(self, bucket: Bucket) -> Tuple[object, ...]: ...

    def put(self, bucket: Bucket, records: Sequence[object]) -> None: ...

    def get_flag(self, bucket: Bucket) -> bool: ...

    def put_flag(self, bucket: Bucket, value: bool) -> None: ...

    def flush(self) -> None: ...


class MemoryStore:
    """Dictionary-backed :class:`BucketStore` for ephemeral sessions and tests."""

    def __init__(self, initial: Optional[Mapping[Bucket, Sequence[object]]] = None) -> None:
        self._records: Dict[Bucket, Tuple[object, ...]] = {bucket: () for bucket in RECORD_BUCKETS}
        self._flags: Dict[Bucket, bool] = {}
        for bucket, records in (initial or {}).items():
            self.put(bucket, records)

    def get(self, bucket: Bucket) -> Tuple[object, ...]:
        _record_codec(bucket)
        return tuple(self._records[bucket])

    def put(self, bucket: Bucket, records: Sequence[object]) -> None:
        _record_codec(bucket)
        self._records[bucket] = tuple(records)

    def get_flag(self, bucket: Bucket) -> bool:
        _require_flag_bucket(bucket)
        return self._flags.get(bucket, False)

    def put_flag(self, bucket: Bucket, value: bool) -> None:
        _require_flag_bucket(bucket)
        self._flags[bucket] = bool(value)

    def flush(self) -> None:
        return None


class WorkbookStore:
    """:class:`BucketStore` backed by an ``openpyxl`` workbook.

    Each record bucket maps to a worksheet whose first row holds the headers
    from :data:`SHEET_COLUMNS`; ``put`` rewrites every data row of that sheet
    in the given order. Flags live as ``Key``/``Value`` rows on the
    ``Session`` sheet. Writes stay in memory until :meth:`flush` saves the
    workbook to ``data_file``.
    """

    def __init__(self, workbook: Workbook, data_file: Optional[Path] = None) -> None:
        self.workbook = workbook
        self.data_file = data_file

    @classmethod
    def open(cls, data_file: Path) -> "WorkbookStore":
        """Open ``data_file`` and bind the store to it for later flushes."""

        resolved = Path(data_file).expanduser().resolve()
        return cls(open_workbook(resolved), data_file=resolved)

    def get(self, bucket: Bucket) -> Tuple[object, ...]:
        codec = _record_codec(bucket)
        sheet = self.workbook[codec.sheet_name]
        return tuple(
            codec.deserialize(raw)
            for raw in sheet.iter_rows(min_row=2, values_only=True)
            # skip fully empty rows
            if any(cell is not None for cell in raw)
        )

    def put(self, bucket: Bucket, records: Sequence[object]) -> None:
        codec = _record_codec(bucket)
        rows = [codec.serialize(record) for record in records]
        for row in rows:
            check_cell_values(row)

        sheet = self.workbook[codec.sheet_name]
        # Cells are addressed explicitly; Worksheet.append keeps its own row
        # cursor, which delete_rows does not rewind.
        last_row = 1
        for row_idx, row in enumerate(rows, start=2):
            for col_idx, value in enumerate(row, start=1):
                sheet.cell(row=row_idx, column=col_idx).value = value
            last_row = row_idx
        if sheet.max_row > last_row:
            sheet.delete_rows(last_row + 1, sheet.max_row - last_row)

    def get_flag(self, bucket: Bucket) -> bool:
        _require_flag_bucket(bucket)
        row_index = locate_row(self.workbook, SESSION_SHEET, "Key", bucket.value)
        if row_index is None:
            return False
        return bool(self.workbook[SESSION_SHEET].cell(row=row_index, column=2).value)

    def put_flag(self, bucket: Bucket, value: bool) -> None:
        _require_flag_bucket(bucket)
        sheet = self.workbook[SESSION_SHEET]
        row_index = locate_row(self.workbook, SESSION_SHEET, "Key", bucket.value)
        if row_index is None:
            sheet.append([bucket.value, bool(value)])
        else:
            sheet.cell(row=row_index, column=2, value=bool(value))

    def flush(self) -> None:
        if self.data_file is None:
            log.debug("Workbook store has no data file; flush skipped")
            return
        save_workbook(self.workbook, self.data_file)
        log.debug("Flushed workbook store to '%s'", self.data_file)
