"""
Per-product purchase ledger.

A product's open transactions and its buyer index are kept in lockstep:
for every open transaction ``t``, ``buyers[t.buyer_list_index] == t.buyer``
and the buyer list is exactly as long as the number of open transactions.
"""

import threading
from typing import Optional

from storefront.models import Product, Transaction


class BuyerIndex:
    """Dense list of buyer accounts supporting O(1) removal.

    Removal moves the last buyer into the hole, so the order of the
    remaining buyers is not stable.
    """

    def __init__(self) -> None:
        self._buyers: list[str] = []

    def __len__(self) -> int:
        return len(self._buyers)

    def __getitem__(self, index: int) -> str:
        return self._buyers[index]

    def snapshot(self) -> list[str]:
        return list(self._buyers)

    def append(self, buyer: str) -> int:
        self._buyers.append(buyer)
        return len(self._buyers) - 1

    def swap_remove(self, index: int) -> Optional[str]:
        """Remove the slot at ``index``.

        Returns the buyer that was moved into ``index``, or None when the
        removed slot was the last one.
        """
        last = self._buyers.pop()
        if index == len(self._buyers):
            return None
        self._buyers[index] = last
        return last

    def unswap_remove(self, index: int, buyer: str) -> Optional[str]:
        """Exact inverse of ``swap_remove(index)`` that removed ``buyer``.

        Returns the buyer moved back to the end of the list, if any.
        """
        if index == len(self._buyers):
            self._buyers.append(buyer)
            return None
        displaced = self._buyers[index]
        self._buyers.append(displaced)
        self._buyers[index] = buyer
        return displaced


class ProductLedger:
    """One catalog entry: the product record, its open transactions and buyers.

    ``lock`` must be held by callers for any compound read or mutation.
    """

    def __init__(self, product_id: str, product: Product) -> None:
        self.product_id = product_id
        self.product = product
        self.buyers = BuyerIndex()
        self.transactions: dict[str, Transaction] = {}
        self.lock = threading.RLock()

    # ── reads ─────────────────────────────────────────────────────────────────

    def open_transaction_for(self, buyer: str) -> Optional[Transaction]:
        txn = self.transactions.get(buyer)
        if txn is None or not txn.is_open:
            return None
        return txn

    # ── writes ────────────────────────────────────────────────────────────────

    def open_transaction(self, buyer: str, opened_at: int) -> Transaction:
        txn = Transaction(
            product_id=self.product_id,
            buyer=buyer,
            opened_at=opened_at,
            buyer_list_index=self.buyers.append(buyer),
        )
        self.transactions[buyer] = txn
        return txn

    def close_transaction(self, buyer: str) -> Transaction:
        """Swap-remove the buyer and erase their transaction.

        Returns the closed transaction (``is_open`` False, other fields as they
        were), which is what ``reopen_transaction`` needs to undo the close.
        """
        txn = self.transactions.pop(buyer)
        moved = self.buyers.swap_remove(txn.buyer_list_index)
        if moved is not None:
            self.transactions[moved].buyer_list_index = txn.buyer_list_index
        txn.is_open = False
        return txn

    def reopen_transaction(self, txn: Transaction) -> None:
        """Put a closed transaction back at its original buyer position."""
        displaced = self.buyers.unswap_remove(txn.buyer_list_index, txn.buyer)
        if displaced is not None:
            self.transactions[displaced].buyer_list_index = len(self.buyers) - 1
        self.transactions[txn.buyer] = txn.model_copy(update={"is_open": True})
