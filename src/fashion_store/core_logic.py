"""Business logic layer for the Fashion Store back office.

This module owns every state change: catalog and customer maintenance, the
sale workflow that ties the ledger, stock, and customer status together, and
debt settlement. All I/O goes through the :class:`~fashion_store.data_manager.BucketStore`
carried by :class:`RuntimeContext`; nothing here keeps state between calls.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from . import data_manager, log, set_log_level
from .constants import (
    EXPECTED_SCHEMA_VERSION,
    Bucket,
    CustomerStatus,
    PaymentMethod,
    ProductCategory,
)


class BusinessRuleViolation(Exception):
    """Raised when a requested operation violates a domain constraint."""


class MissingReferenceError(BusinessRuleViolation):
    """Raised when a referenced product or customer is unknown."""


class InsufficientStockError(BusinessRuleViolation):
    """Raised when a sale asks for more units than the product has in stock."""


class ValidationError(BusinessRuleViolation, ValueError):
    """Raised when a field is missing, malformed, or out of range."""


@dataclass(frozen=True)
class RuntimeContext:
    """Configuration, store, and write lock shared by every operation."""

    settings: data_manager.ConfigSettings
    store: data_manager.BucketStore
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


@dataclass(frozen=True)
class SaleCommand:
    """User intent for selling ``quantity`` units of a product to a customer."""

    product_id: str
    customer_id: str
    quantity: int
    payment_method: PaymentMethod
    installments: Optional[int] = None
    timestamp: Optional[datetime] = None


PRODUCT_FIELDS = ("code", "name", "description", "price", "stock", "image", "category")
CUSTOMER_FIELDS = ("name", "phone", "email", "address")


def _resolve_timestamp(candidate: Optional[datetime]) -> datetime:
    """Return ``candidate`` as an aware datetime, or the current UTC time.

    Naive datetimes are taken to be UTC.
    """

    if candidate is None:
        return datetime.now(UTC)
    if candidate.tzinfo is None:
        return candidate.replace(tzinfo=UTC)
    return candidate


def load_runtime_context(config_path: Optional[Path] = None, *, create_missing: bool = False) -> RuntimeContext:
    """Load configuration settings and open the workbook-backed store.

    Args:
        config_path (Path | None): Optional override path for the
            configuration file. When omitted the data layer searches upward
            from the current working directory.
        create_missing (bool): Create an empty data workbook when the
            configured ``DataFile`` does not exist yet.

    Returns:
        RuntimeContext: Context bound to a :class:`~fashion_store.data_manager.WorkbookStore`.

    Raises:
        FileNotFoundError: If the configuration file or workbook cannot be
            located.
        KeyError: When mandatory configuration options are missing.
    """
    located_config = data_manager.find_config_file(config_path)
    resolved_config = Path(located_config).expanduser().resolve()
    parser = data_manager.read_config(resolved_config)
    settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
    set_log_level(settings.log_level)
    if create_missing and not settings.data_file.exists():
        from .setup_workbook import create_master_workbook

        create_master_workbook(settings.data_file)
    store = data_manager.WorkbookStore.open(settings.data_file)
    log.info("Loaded runtime context for workbook '%s'", settings.data_file)
    return RuntimeContext(settings=settings, store=store)


def memory_context(
    settings: Optional[data_manager.ConfigSettings] = None,
    *,
    initial: Optional[Mapping[Bucket, Sequence[object]]] = None,
) -> RuntimeContext:
    """Build a context over a :class:`~fashion_store.data_manager.MemoryStore`."""

    if settings is None:
        settings = data_manager.ConfigSettings(
            data_file=Path("fashionstore_data.xlsx"),
            store_name="Fashion Store",
            schema_version=EXPECTED_SCHEMA_VERSION,
        )
    return RuntimeContext(settings=settings, store=data_manager.MemoryStore(initial))


def ensure_schema_version(context: RuntimeContext) -> None:
    """Refuse to work against a workbook declared with another schema version.

    Raises:
        RuntimeError: If the configured schema version differs from
            ``EXPECTED_SCHEMA_VERSION``.
    """
    if context.settings.schema_version != EXPECTED_SCHEMA_VERSION:
        log.error(
            "Workbook schema mismatch: expected %s, found %s",
            EXPECTED_SCHEMA_VERSION,
            context.settings.schema_version,
        )
        raise RuntimeError(
            "Workbook schema mismatch: expected %s, found %s"
            % (EXPECTED_SCHEMA_VERSION, context.settings.schema_version)
        )

    log.debug("Schema version '%s' validated", context.settings.schema_version)


def refresh_context(context: RuntimeContext) -> RuntimeContext:
    """Reopen the workbook from disk, dropping unsaved in-memory edits.

    Returns:
        RuntimeContext: New context with the same settings and a fresh store.

    Raises:
        FileNotFoundError: If the backing workbook cannot be reloaded.
    """
    store = data_manager.WorkbookStore.open(context.settings.data_file)
    log.info("Reloaded workbook '%s'", context.settings.data_file)
    return RuntimeContext(settings=context.settings, store=store)


# ---------------------------------------------------------------------------
# Identifiers and validation
# ---------------------------------------------------------------------------


def generate_record_id(*, prefix: str, when: Optional[datetime] = None) -> str:
    """Generate a sortable identifier formed as ``{prefix}{YYYYMMDDHHMMSSffffff}``.

    Caller supplied timestamps allow deterministic identifiers during testing
    or data migrations.
    """
    when = when or _resolve_timestamp(None)
    return f"{prefix}{when.strftime('%Y%m%d%H%M%S%f')}"


def allocate_record_id(existing_ids: Iterable[str], *, prefix: str, when: Optional[datetime] = None) -> str:
    """Return :func:`generate_record_id`, suffixed with ``-N`` if already taken."""
    base = generate_record_id(prefix=prefix, when=when)
    taken = set(existing_ids)
    candidate = base
    suffix = 1
    while candidate in taken:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def require_positive_quantity(quantity: Any) -> int:
    """Validate that a sale quantity is a whole number greater than zero.

    Raises:
        ValidationError: If ``quantity`` is not an ``int`` or is below one.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        log.error("Quantity validation failed: %r is not a whole number", quantity)
        raise ValidationError("Quantity must be a whole number")
    if quantity <= 0:
        log.error("Quantity validation failed: %s", quantity)
        raise ValidationError("Quantity must be greater than zero")
    return quantity


def require_nonnegative_money(amount: Any, *, field_name: str = "price") -> Decimal:
    """Parse ``amount`` into a :class:`~decimal.Decimal` that is zero or positive.

    Floats go through ``str`` so ``19.9`` stays ``Decimal("19.9")``.

    Raises:
        ValidationError: If ``amount`` is not numeric or is negative.
    """
    if isinstance(amount, bool):
        raise ValidationError(f"Invalid {field_name}: {amount!r}")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as exc:
        log.error("Monetary value validation failed for %s: %r", field_name, amount)
        raise ValidationError(f"Invalid {field_name}: {amount!r}") from exc
    if not value.is_finite() or value < Decimal("0"):
        log.error("Monetary value validation failed for %s: %s", field_name, value)
        raise ValidationError(f"{field_name.capitalize()} must be zero or positive")
    return value


def require_nonnegative_count(count: Any, *, field_name: str = "stock") -> int:
    """Parse ``count`` into a non-negative ``int``; digit strings are accepted.

    Raises:
        ValidationError: If ``count`` is not a whole number or is negative.
    """
    if isinstance(count, bool):
        raise ValidationError(f"Invalid {field_name}: {count!r}")
    if isinstance(count, str):
        try:
            count = int(count.strip())
        except ValueError as exc:
            log.error("Count validation failed for %s: %r", field_name, count)
            raise ValidationError(f"Invalid {field_name}: {count!r}") from exc
    if not isinstance(count, int):
        log.error("Count validation failed for %s: %r", field_name, count)
        raise ValidationError(f"Invalid {field_name}: {count!r}")
    if count < 0:
        log.error("Count validation failed for %s: %s", field_name, count)
        raise ValidationError(f"{field_name.capitalize()} must be zero or positive")
    return count


def clean_text(value: Any, *, field_name: str) -> str:
    """Return ``value`` stripped, or an empty string for ``None``.

    Raises:
        ValidationError: If the text holds control characters that cannot be
            stored in a worksheet cell.
    """
    text = "" if value is None else str(value).strip()
    if data_manager.has_illegal_characters(text):
        log.error("Field '%s' contains control characters: %r", field_name, text)
        raise ValidationError(f"{field_name.capitalize()} contains invalid characters")
    return text


def require_text(value: Any, *, field_name: str) -> str:
    """Return ``value`` cleaned by :func:`clean_text`, rejecting blanks."""
    text = clean_text(value, field_name=field_name)
    if not text:
        log.error("Required field '%s' is missing", field_name)
        raise ValidationError(f"{field_name.capitalize()} is required")
    return text


def _optional_text(value: Any, *, field_name: str) -> Optional[str]:
    return clean_text(value, field_name=field_name) or None


def coerce_category(value: Any) -> ProductCategory:
    try:
        return ProductCategory(value)
    except ValueError as exc:
        log.error("Unsupported product category: %r", value)
        raise ValidationError(f"Unsupported category: {value!r}") from exc


def coerce_payment_method(value: Any) -> PaymentMethod:
    try:
        return PaymentMethod(value)
    except ValueError as exc:
        log.error("Unsupported payment method: %r", value)
        raise ValidationError(f"Unsupported payment method: {value!r}") from exc


def resolve_installments(payment_method: PaymentMethod, installments: Optional[int], *, maximum: int) -> Optional[int]:
    """Return the installment count to store for a sale.

    Card sales default to a single installment and accept whole numbers from
    1 to ``maximum``. Every other payment method stores ``None``.

    Raises:
        ValidationError: If a card sale carries an invalid installment count.
    """
    if payment_method is not PaymentMethod.CARD:
        return None
    if installments is None:
        return 1
    if isinstance(installments, bool) or not isinstance(installments, int) or installments < 1:
        log.error("Installment validation failed: %r", installments)
        raise ValidationError("Installments must be a whole number greater than zero")
    if installments > maximum:
        log.error("Installment validation failed: %s exceeds %s", installments, maximum)
        raise ValidationError(f"Installments cannot exceed {maximum}")
    return installments


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def _products(context: RuntimeContext) -> List[data_manager.ProductRow]:
    return list(context.store.get(Bucket.PRODUCTS))  # type: ignore[arg-type]


def _customers(context: RuntimeContext) -> List[data_manager.CustomerRow]:
    return list(context.store.get(Bucket.CUSTOMERS))  # type: ignore[arg-type]


def _find_product(products: Iterable[data_manager.ProductRow], product_id: str) -> data_manager.ProductRow:
    for product in products:
        if product.product_id == product_id:
            return product
    log.warning("Product lookup failed for id '%s'", product_id)
    raise MissingReferenceError(f"Unknown product id: {product_id}")


def _find_customer(customers: Iterable[data_manager.CustomerRow], customer_id: str) -> data_manager.CustomerRow:
    for customer in customers:
        if customer.customer_id == customer_id:
            return customer
    log.warning("Customer lookup failed for id '%s'", customer_id)
    raise MissingReferenceError(f"Unknown customer id: {customer_id}")


def list_products(context: RuntimeContext, *, search: Optional[str] = None) -> List[data_manager.ProductRow]:
    """Return the catalog in insertion order.

    ``search`` keeps products whose name or code contains the term, ignoring
    case.
    """
    products = _products(context)
    if not search:
        return products
    term = search.lower()
    return [p for p in products if term in p.name.lower() or term in p.code.lower()]


def get_product(context: RuntimeContext, product_id: str) -> data_manager.ProductRow:
    """Resolve a product by id, raising :class:`MissingReferenceError` if absent."""
    return _find_product(_products(context), product_id)


def _build_product(
    context: RuntimeContext,
    *,
    product_id: str,
    code: Any,
    name: Any,
    description: Any,
    price: Any,
    stock: Any,
    image: Any,
    category: Any,
) -> data_manager.ProductRow:
    return data_manager.ProductRow(
        product_id=product_id,
        code=require_text(code, field_name="code"),
        name=require_text(name, field_name="name"),
        description=clean_text(description, field_name="description"),
        price=require_nonnegative_money(price, field_name="price"),
        stock=require_nonnegative_count(stock, field_name="stock"),
        image=_optional_text(image, field_name="image") or context.settings.product_image,
        category=coerce_category(category).value,
    )


def add_product(
    context: RuntimeContext,
    *,
    code: str,
    name: str,
    price: Any,
    stock: Any,
    category: Any,
    description: str = "",
    image: Optional[str] = None,
) -> data_manager.ProductRow:
    """Validate and append a new catalog entry.

    A blank ``image`` falls back to the configured placeholder. Codes are not
    required to be unique.

    Raises:
        ValidationError: If a required field is blank, ``price`` or ``stock``
            is malformed or negative, or ``category`` is unknown.
    """
    with context.lock:
        products = _products(context)
        product = _build_product(
            context,
            product_id=allocate_record_id((p.product_id for p in products), prefix="P"),
            code=code,
            name=name,
            description=description,
            price=price,
            stock=stock,
            image=image,
            category=category,
        )
        context.store.put(Bucket.PRODUCTS, [*products, product])
        context.store.flush()
    log.info("Added product '%s' (%s, stock=%s)", product.product_id, product.name, product.stock)
    return product


def update_product(context: RuntimeContext, product_id: str, *, field_values: Mapping[str, Any]) -> data_manager.ProductRow:
    """Replace selected fields of an existing product.

    Only names from ``PRODUCT_FIELDS`` are accepted; the merged record goes
    through the same validation as :func:`add_product`.

    Raises:
        MissingReferenceError: If ``product_id`` is unknown.
        ValidationError: If a field is unknown or its new value is invalid.
    """
    unknown = set(field_values) - set(PRODUCT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown product field(s): {', '.join(sorted(unknown))}")

    with context.lock:
        products = _products(context)
        current = _find_product(products, product_id)
        merged = {name: getattr(current, name) for name in PRODUCT_FIELDS}
        merged.update(field_values)
        updated = _build_product(context, product_id=current.product_id, **merged)
        context.store.put(
            Bucket.PRODUCTS,
            [updated if p.product_id == product_id else p for p in products],
        )
        context.store.flush()
    log.info("Updated product '%s' fields: %s", product_id, ", ".join(sorted(field_values)))
    return updated


def delete_product(context: RuntimeContext, product_id: str) -> None:
    """Remove a product. Past sales keep their copied product name."""
    with context.lock:
        products = _products(context)
        _find_product(products, product_id)
        context.store.put(Bucket.PRODUCTS, [p for p in products if p.product_id != product_id])
        context.store.flush()
    log.info("Deleted product '%s'", product_id)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def list_customers(context: RuntimeContext, *, search: Optional[str] = None) -> List[data_manager.CustomerRow]:
    """Return the roster; ``search`` matches the name (any case) or the phone."""
    customers = _customers(context)
    if not search:
        return customers
    term = search.lower()
    return [c for c in customers if term in c.name.lower() or search in c.phone]


def get_customer(context: RuntimeContext, customer_id: str) -> data_manager.CustomerRow:
    """Resolve a customer by id, raising :class:`MissingReferenceError` if absent."""
    return _find_customer(_customers(context), customer_id)


def add_customer(
    context: RuntimeContext,
    *,
    name: str,
    phone: str,
    email: Optional[str] = None,
    address: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> data_manager.CustomerRow:
    """Register a customer. New customers start with status ``paid``.

    Raises:
        ValidationError: If ``name`` or ``phone`` is blank.
    """
    created = _resolve_timestamp(timestamp)
    with context.lock:
        customers = _customers(context)
        customer = data_manager.CustomerRow(
            customer_id=allocate_record_id((c.customer_id for c in customers), prefix="C", when=created),
            name=require_text(name, field_name="name"),
            phone=require_text(phone, field_name="phone"),
            email=_optional_text(email, field_name="email"),
            address=_optional_text(address, field_name="address"),
            status=CustomerStatus.PAID.value,
            created_at=created.isoformat(),
        )
        context.store.put(Bucket.CUSTOMERS, [*customers, customer])
        context.store.flush()
    log.info("Added customer '%s' (%s)", customer.customer_id, customer.name)
    return customer


def update_customer(context: RuntimeContext, customer_id: str, *, field_values: Mapping[str, Any]) -> data_manager.CustomerRow:
    """Edit contact details; status and creation date are left as they were.

    Raises:
        MissingReferenceError: If ``customer_id`` is unknown.
        ValidationError: If a field is unknown or a required one is blanked.
    """
    unknown = set(field_values) - set(CUSTOMER_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown customer field(s): {', '.join(sorted(unknown))}")

    with context.lock:
        customers = _customers(context)
        current = _find_customer(customers, customer_id)
        merged = {name: getattr(current, name) for name in CUSTOMER_FIELDS}
        merged.update(field_values)
        updated = replace(
            current,
            name=require_text(merged["name"], field_name="name"),
            phone=require_text(merged["phone"], field_name="phone"),
            email=_optional_text(merged["email"], field_name="email"),
            address=_optional_text(merged["address"], field_name="address"),
        )
        context.store.put(
            Bucket.CUSTOMERS,
            [updated if c.customer_id == customer_id else c for c in customers],
        )
        context.store.flush()
    log.info("Updated customer '%s' fields: %s", customer_id, ", ".join(sorted(field_values)))
    return updated


def delete_customer(context: RuntimeContext, customer_id: str) -> None:
    """Remove a customer. Past sales keep their copied customer name."""
    with context.lock:
        customers = _customers(context)
        _find_customer(customers, customer_id)
        context.store.put(Bucket.CUSTOMERS, [c for c in customers if c.customer_id != customer_id])
        context.store.flush()
    log.info("Deleted customer '%s'", customer_id)


def _set_customer_status(context: RuntimeContext, customer_id: str, status: CustomerStatus) -> data_manager.CustomerRow:
    with context.lock:
        customers = _customers(context)
        current = _find_customer(customers, customer_id)
        updated = replace(current, status=status.value)
        context.store.put(
            Bucket.CUSTOMERS,
            [updated if c.customer_id == customer_id else c for c in customers],
        )
        context.store.flush()
    return updated


def settle_debt(context: RuntimeContext, customer_id: str) -> data_manager.CustomerRow:
    """Mark a customer's debt as settled by setting their status to ``paid``.

    Only the flag changes. Credit sales in the ledger are not annotated, so
    :func:`fashion_store.reports.customer_debt` reports the same amount before
    and after settlement.

    Args:
        context (RuntimeContext): Runtime context providing the store.
        customer_id (str): Customer whose status should be cleared.

    Returns:
        data_manager.CustomerRow: The updated customer record.

    Raises:
        MissingReferenceError: If ``customer_id`` is unknown.
    """
    updated = _set_customer_status(context, customer_id, CustomerStatus.PAID)
    log.info("Settled debt for customer '%s'", customer_id)
    return updated


def toggle_customer_status(context: RuntimeContext, customer_id: str) -> data_manager.CustomerRow:
    """Flip a customer between ``paid`` and ``pending`` by hand."""
    with context.lock:
        current = get_customer(context, customer_id)
        target = CustomerStatus.PAID if current.status == CustomerStatus.PENDING.value else CustomerStatus.PENDING
        updated = _set_customer_status(context, customer_id, target)
    log.info("Customer '%s' status set to '%s'", customer_id, target.value)
    return updated


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def list_sales(context: RuntimeContext) -> List[data_manager.SaleRow]:
    """Return the sales ledger in the order sales were recorded."""
    return list(context.store.get(Bucket.SALES))  # type: ignore[arg-type]


def require_available_stock(product: data_manager.ProductRow, quantity: int) -> None:
    """Reject a sale whose quantity exceeds the product's stock.

    Raises:
        InsufficientStockError: If ``quantity`` is greater than ``product.stock``.
    """
    if quantity > product.stock:
        log.warning(
            "Rejected sale of %s unit(s) of '%s': only %s in stock",
            quantity,
            product.product_id,
            product.stock,
        )
        raise InsufficientStockError(
            f"Requested {quantity} unit(s) of '{product.name}' but only {product.stock} in stock"
        )


def build_sale(
    product: data_manager.ProductRow,
    customer: data_manager.CustomerRow,
    *,
    quantity: int,
    payment_method: PaymentMethod,
    installments: Optional[int],
    sale_id: str,
    timestamp: datetime,
) -> data_manager.SaleRow:
    """Materialize a sale row from resolved records.

    Names and the unit price are copied from ``product`` and ``customer`` so
    the row never depends on later edits. ``time`` is the wall-clock time on
    the local machine.
    """
    unit_price = product.price
    return data_manager.SaleRow(
        sale_id=sale_id,
        product_id=product.product_id,
        product_name=product.name,
        customer_id=customer.customer_id,
        customer_name=customer.name,
        quantity=quantity,
        unit_price=unit_price,
        total=unit_price * quantity,
        payment_method=payment_method.value,
        installments=installments,
        date=timestamp.isoformat(),
        time=timestamp.astimezone().strftime("%H:%M:%S"),
    )


def record_sale(context: RuntimeContext, command: SaleCommand) -> data_manager.SaleRow:
    """Validate and commit a sale.

    Every check runs before the first write: quantity, payment method,
    installments, product and customer lookup, and stock availability. The
    commit then appends the sale to the ledger, decrements the product's
    stock, and, for ``fiado`` sales only, marks the customer ``pending``.
    Other payment methods leave the customer's status exactly as it was. The
    whole sequence runs under ``context.lock`` and ends with a single store
    flush, so no other call observes a half-applied sale.

    Args:
        context (RuntimeContext): Runtime context providing the store.
        command (SaleCommand): Structured intent describing the sale.

    Returns:
        data_manager.SaleRow: The recorded sale, for receipt generation by the
            caller.

    Raises:
        ValidationError: If quantity, payment method, or installments are
            invalid.
        MissingReferenceError: If the product or customer is unknown.
        InsufficientStockError: If ``quantity`` exceeds the available stock.
    """
    quantity = require_positive_quantity(command.quantity)
    payment_method = coerce_payment_method(command.payment_method)
    installments = resolve_installments(
        payment_method,
        command.installments,
        maximum=context.settings.max_installments,
    )

    with context.lock:
        products = _products(context)
        customers = _customers(context)
        sales = list_sales(context)
        product = _find_product(products, command.product_id)
        customer = _find_customer(customers, command.customer_id)
        require_available_stock(product, quantity)

        timestamp = _resolve_timestamp(command.timestamp)
        sale = build_sale(
            product,
            customer,
            quantity=quantity,
            payment_method=payment_method,
            installments=installments,
            sale_id=allocate_record_id((s.sale_id for s in sales), prefix="S", when=timestamp),
            timestamp=timestamp,
        )
        updated_product = replace(product, stock=product.stock - quantity)

        context.store.put(Bucket.SALES, [*sales, sale])
        context.store.put(
            Bucket.PRODUCTS,
            [updated_product if p.product_id == product.product_id else p for p in products],
        )
        if payment_method is PaymentMethod.ON_CREDIT:
            pending = replace(customer, status=CustomerStatus.PENDING.value)
            context.store.put(
                Bucket.CUSTOMERS,
                [pending if c.customer_id == customer.customer_id else c for c in customers],
            )
        context.store.flush()

    log.info(
        "Recorded sale '%s': %s x '%s' to '%s' via %s (total=%s, stock left=%s)",
        sale.sale_id,
        quantity,
        product.product_id,
        customer.customer_id,
        payment_method.value,
        sale.total,
        updated_product.stock,
    )
    return sale


# ---------------------------------------------------------------------------
# Session flag
# ---------------------------------------------------------------------------


def is_logged_in(context: RuntimeContext) -> bool:
    return context.store.get_flag(Bucket.LOGGED_IN)


def set_logged_in(context: RuntimeContext) -> None:
    """Record that the operator has passed the login check."""
    with context.lock:
        context.store.put_flag(Bucket.LOGGED_IN, True)
        context.store.flush()
    log.info("Session opened")


def clear_session(context: RuntimeContext) -> None:
    with context.lock:
        context.store.put_flag(Bucket.LOGGED_IN, False)
        context.store.flush()
    log.info("Session closed")
