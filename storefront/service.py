"""
Store service: owner-published catalog plus reversible purchases.

All mutations of the catalog and the per-product ledgers go through
``StoreService``. Each operation either applies completely or raises a
``StoreError`` and leaves the store untouched; in particular a failed
refund transfer unwinds the stock, buyer-index and transaction changes
staged before it. Events are published only after a mutation commits,
while the product's lock is still held, so each product's event stream
follows its commit order.
"""

import structlog
from pydantic import BaseModel

from storefront.collaborators import Authorizer, Clock, EventSink, TransferGateway
from storefront.errors import (
    AlreadyPurchased,
    GracePeriodExpired,
    InsufficientPayment,
    InvalidInput,
    NoPurchaseFound,
    OutOfStock,
    ProductAlreadyExists,
    ProductNotFound,
    QuantityOverflow,
)
from storefront.ids import ProductId, derive_product_id
from storefront.ledger import ProductLedger
from storefront.models import (
    MAX_QUANTITY,
    Product,
    ProductAdded,
    ProductBought,
    ProductRestocked,
    ProductReturned,
    PurchaseView,
    Transaction,
)
from storefront.pagination import paginate
from storefront.store import DataStore

logger = structlog.get_logger(__name__)

RETURN_WINDOW = 100  # logical-clock ticks


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_amount(field: str, value) -> None:
    if not _is_int(value) or value < 0:
        raise InvalidInput(f"{field} must be a non-negative integer, got {value!r}")


def _check_quantity(field: str, value) -> None:
    if not _is_int(value) or not 0 <= value <= MAX_QUANTITY:
        raise InvalidInput(f"{field} must be between 0 and {MAX_QUANTITY}, got {value!r}")


def _check_account(account) -> None:
    if not isinstance(account, str) or not account.strip():
        raise InvalidInput("Account must be a non-empty string")


def _check_offset(offset) -> None:
    if not _is_int(offset) or offset < 0:
        raise InvalidInput(f"offset must be a non-negative integer, got {offset!r}")


class StoreService:
    def __init__(
        self,
        store: DataStore,
        *,
        authorizer: Authorizer,
        transfer: TransferGateway,
        events: EventSink,
        clock: Clock,
        return_window: int = RETURN_WINDOW,
    ) -> None:
        if return_window < 1:
            raise ValueError(f"return_window must be positive, got {return_window}")
        self._store = store
        self._authorizer = authorizer
        self._transfer = transfer
        self._events = events
        self._clock = clock
        self.return_window = return_window

    # ── owner operations ──────────────────────────────────────────────────────

    def add_product(self, caller: str, name: str, price: int, quantity: int) -> ProductId:
        self._authorizer.require_owner(caller)
        if not isinstance(name, str) or not name:
            raise InvalidInput("Product name must not be empty")
        try:
            name.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidInput("Product name must be valid UTF-8 text") from None
        _check_amount("price", price)
        _check_quantity("quantity", quantity)

        product_id = derive_product_id(name)
        log = logger.bind(product_id=product_id)
        ledger = ProductLedger(product_id, Product(name=name, price=price, quantity=quantity))
        # locked before it becomes visible, so ProductAdded precedes any later event
        with ledger.lock:
            if not self._store.add_ledger(ledger):
                log.warning("product.duplicate", name=name)
                raise ProductAlreadyExists(f"Product '{name}' already exists")

            log.info("product.added", name=name, price=price, quantity=quantity)
            self._emit(ProductAdded(name=name, product_id=product_id, price=price, quantity=quantity))
        return product_id

    def restock(self, caller: str, product_id: ProductId, quantity: int) -> int:
        """Add ``quantity`` units. Returns the new stock level."""
        self._authorizer.require_owner(caller)
        _check_quantity("quantity", quantity)
        ledger = self._ledger(product_id)
        log = logger.bind(product_id=product_id)

        with ledger.lock:
            new_quantity = ledger.product.quantity + quantity
            if new_quantity > MAX_QUANTITY:
                log.warning("product.restock_overflow", quantity=ledger.product.quantity, delta=quantity)
                raise QuantityOverflow(
                    f"Restocking {quantity} would exceed the maximum quantity of {MAX_QUANTITY}"
                )
            ledger.product.quantity = new_quantity

            log.info("product.restocked", delta=quantity, quantity=new_quantity)
            self._emit(ProductRestocked(product_id=product_id, quantity=new_quantity))
        return new_quantity

    # ── buyer operations ──────────────────────────────────────────────────────

    def buy_product(self, product_id: ProductId, buyer: str, value: int) -> Transaction:
        """Buy one unit, paying ``value``; anything above the price is refunded.

        Returns a snapshot of the opened transaction.
        """
        _check_account(buyer)
        _check_amount("value", value)
        ledger = self._ledger(product_id)
        log = logger.bind(product_id=product_id, buyer=buyer)

        with ledger.lock:
            product = ledger.product
            if ledger.open_transaction_for(buyer) is not None:
                log.warning("purchase.rejected", reason="already_purchased")
                raise AlreadyPurchased(f"'{buyer}' already holds a purchase of {product.name}")
            if product.quantity == 0:
                log.warning("purchase.rejected", reason="out_of_stock")
                raise OutOfStock(f"{product.name} is out of stock")
            if value < product.price:
                log.warning("purchase.rejected", reason="insufficient_payment", value=value, price=product.price)
                raise InsufficientPayment(f"{product.name} costs {product.price}, got {value}")

            txn = ledger.open_transaction(buyer, self._clock.now())
            product.quantity -= 1

            change = value - product.price
            if change > 0:
                try:
                    self._transfer.transfer(buyer, change)
                except Exception:
                    ledger.close_transaction(buyer)
                    product.quantity += 1
                    log.error("purchase.rolled_back", refund=change)
                    raise

            log.info("product.bought", opened_at=txn.opened_at, refund=change, quantity=product.quantity)
            self._emit(ProductBought(product_id=product_id, buyer=buyer))
            return txn.model_copy()

    def return_product(self, product_id: ProductId, buyer: str) -> None:
        """Reverse an open purchase within the grace window; refunds the price."""
        _check_account(buyer)
        ledger = self._ledger(product_id)
        log = logger.bind(product_id=product_id, buyer=buyer)

        with ledger.lock:
            product = ledger.product
            txn = ledger.open_transaction_for(buyer)
            if txn is None:
                log.warning("return.rejected", reason="no_purchase_found")
                raise NoPurchaseFound(f"'{buyer}' has no open purchase of {product.name}")
            now = self._clock.now()
            if now - txn.opened_at >= self.return_window:
                log.warning("return.rejected", reason="grace_period_expired", opened_at=txn.opened_at, now=now)
                raise GracePeriodExpired(
                    f"Purchase opened at tick {txn.opened_at} can no longer be returned at tick {now}"
                )
            if product.quantity == MAX_QUANTITY:
                log.warning("return.rejected", reason="overflow")
                raise QuantityOverflow(f"{product.name} is already at the maximum quantity")

            closed = ledger.close_transaction(buyer)
            product.quantity += 1
            try:
                self._transfer.transfer(buyer, product.price)
            except Exception:
                ledger.reopen_transaction(closed)
                product.quantity -= 1
                log.error("return.rolled_back", refund=product.price)
                raise

            log.info("product.returned", refund=product.price, quantity=product.quantity)
            self._emit(ProductReturned(product_id=product_id, buyer=buyer))

    # ── queries ───────────────────────────────────────────────────────────────

    def get_product(self, product_id: ProductId) -> Product:
        ledger = self._ledger(product_id)
        with ledger.lock:
            return ledger.product.model_copy()

    def list_products(self, offset: int = 0) -> tuple[list[tuple[ProductId, Product]], int]:
        """One page of the catalog, in insertion order, plus the catalog size."""
        _check_offset(offset)
        ledgers, total = paginate(self._store.list_ledgers(), offset)
        page = []
        for ledger in ledgers:
            with ledger.lock:
                page.append((ledger.product_id, ledger.product.model_copy()))
        return page, total

    def list_buyers(self, product_id: ProductId, offset: int = 0) -> tuple[list[str], int]:
        """One page of the product's current buyers. Order is not stable across returns."""
        _check_offset(offset)
        ledger = self._ledger(product_id)
        with ledger.lock:
            return paginate(ledger.buyers.snapshot(), offset)

    def get_purchase(self, product_id: ProductId, buyer: str) -> PurchaseView:
        ledger = self._ledger(product_id)
        with ledger.lock:
            txn = ledger.open_transaction_for(buyer)
            if txn is None:
                raise NoPurchaseFound(f"'{buyer}' has no open purchase of {ledger.product.name}")
            return self.purchase_view(txn)

    def purchase_view(self, txn: Transaction) -> PurchaseView:
        deadline = txn.opened_at + self.return_window
        return PurchaseView(
            product_id=txn.product_id,
            buyer=txn.buyer,
            opened_at=txn.opened_at,
            return_deadline=deadline,
            returnable=self._clock.now() < deadline,
        )

    # ── helpers ───────────────────────────────────────────────────────────────

    def _ledger(self, product_id: ProductId) -> ProductLedger:
        ledger = self._store.get_ledger(product_id)
        if ledger is None:
            raise ProductNotFound(f"Product '{product_id}' not found")
        return ledger

    def _emit(self, event: BaseModel) -> None:
        try:
            self._events.publish(event)
        except Exception:
            logger.exception("event.publish_failed", kind=getattr(event, "kind", None))
