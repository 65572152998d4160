"""
Deterministic demo-data generator.

Produces:
  - 14 products (more than one page of the catalog)
  - ~40 purchase attempts from 25 buyer accounts, some overpaying
  - a handful of returns inside the grace window

Everything goes through the store service, so the seeded state obeys
the same invariants as live traffic.
"""

import random

from storefront.collaborators import LogicalClock
from storefront.errors import GracePeriodExpired, StoreError
from storefront.service import StoreService

SEED = 42

CATALOG = [
    ("Batik Scarf",         450, 12),
    ("Silk Pillowcase",     320, 8),
    ("Teak Serving Bowl",   780, 5),
    ("Rattan Basket",       150, 20),
    ("Ceramic Tea Set",    1200, 3),
    ("Lacquer Tray",        560, 6),
    ("Woven Table Runner",  210, 15),
    ("Coconut Shell Lamp",  390, 4),
    ("Bamboo Cutlery",       95, 30),
    ("Indigo Tote",         260, 10),
    ("Carved Elephant",     640, 2),
    ("Jade Bracelet",      1500, 1),
    ("Palm Leaf Fan",        60, 25),
    ("Brass Incense Holder", 180, 0),   # sold out until restocked
]


def seed(service: StoreService, clock: LogicalClock, owner: str) -> None:
    rng = random.Random(SEED)

    # ── catalog ──────────────────────────────────────────────────────────────
    product_ids = []
    for name, price, quantity in CATALOG:
        clock.advance()
        product_ids.append(service.add_product(owner, name, price, quantity))

    clock.advance()
    service.restock(owner, product_ids[-1], 5)

    # ── purchases ────────────────────────────────────────────────────────────
    buyers = [f"B-{n:04d}" for n in range(1, 26)]
    purchases: list[tuple[str, str]] = []
    for _ in range(40):
        clock.advance()
        product_id = rng.choice(product_ids)
        buyer = rng.choice(buyers)
        price = service.get_product(product_id).price
        value = price + rng.choice([0, 0, 0, 10, 50])  # occasional overpayment
        try:
            service.buy_product(product_id, buyer, value)
        except StoreError:
            # duplicate buyer or sold out; demo data just skips it
            continue
        purchases.append((product_id, buyer))

    # ── returns ──────────────────────────────────────────────────────────────
    for product_id, buyer in rng.sample(purchases, min(5, len(purchases))):
        clock.advance()
        try:
            service.return_product(product_id, buyer)
        except GracePeriodExpired:
            # short configured windows can close before the demo gets here
            continue
