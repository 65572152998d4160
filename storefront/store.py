import threading
from typing import Optional

from storefront.ids import ProductId
from storefront.ledger import ProductLedger


class DataStore:
    """Product catalog: insertion-ordered ids plus id -> ledger mapping.

    The mapping doubles as the existence set; ids are only ever appended
    to ``_order`` together with a new mapping entry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._order: list[ProductId] = []
        self._ledgers: dict[ProductId, ProductLedger] = {}

    # ── writes ────────────────────────────────────────────────────────────────

    def add_ledger(self, ledger: ProductLedger) -> bool:
        """Insert a new catalog entry. Returns False if the id is taken."""
        with self._lock:
            if ledger.product_id in self._ledgers:
                return False
            self._ledgers[ledger.product_id] = ledger
            self._order.append(ledger.product_id)
            return True

    def clear(self) -> None:
        with self._lock:
            self._order.clear()
            self._ledgers.clear()

    # ── reads ─────────────────────────────────────────────────────────────────

    def get_ledger(self, product_id: ProductId) -> Optional[ProductLedger]:
        with self._lock:
            return self._ledgers.get(product_id)

    def list_ledgers(self) -> list[ProductLedger]:
        with self._lock:
            return [self._ledgers[pid] for pid in self._order]

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)


# module-level singleton used by the app
store = DataStore()
