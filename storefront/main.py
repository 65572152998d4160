from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from storefront.collaborators import EventLog, InMemoryTransfer, LogicalClock, OwnerCapability
from storefront.config import Settings
from storefront.errors import StoreError
from storefront.log import configure_logging
from storefront.models import (
    AddProductRequest,
    AdvanceClockRequest,
    BuyerPage,
    BuyRequest,
    ProductEntry,
    ProductPage,
    RestockRequest,
)
from storefront.service import StoreService
from storefront.store import store

settings = Settings.from_env()
configure_logging(settings.log_level, settings.log_json)
logger = structlog.get_logger(__name__)

clock = LogicalClock()
owner_capability = OwnerCapability(settings.owner)
payments = InMemoryTransfer(clock, maxlen=settings.transfer_log_size)
events = EventLog(maxlen=settings.event_log_size)
service = StoreService(
    store,
    authorizer=owner_capability,
    transfer=payments,
    events=events,
    clock=clock,
    return_window=settings.return_window,
)


def reset_state() -> None:
    store.clear()
    payments.clear()
    events.clear()
    clock.reset()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-seed on startup so the service is immediately usable
    if settings.seed_on_startup:
        from scripts.seed_data import seed
        seed(service, clock, settings.owner)
        logger.info("store.seeded", products=len(store))
    yield


app = FastAPI(
    title="Storefront Ledger Service",
    version="1.0.0",
    description="Single-owner inventory and purchase ledger with reversible purchases",
    lifespan=lifespan,
)

_STATUS = {
    "invalid_input": 422,
    "overflow": 422,
    "unauthorized": 403,
    "not_found": 404,
    "already_exists": 409,
    "already_purchased": 409,
    "out_of_stock": 409,
    "no_purchase_found": 409,
    "grace_period_expired": 409,
    "insufficient_payment": 402,
    "transfer_failed": 502,
}


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(
        status_code=_STATUS.get(exc.code, 400),
        content={"error": exc.code, "detail": str(exc)},
    )


# ── Products ─────────────────────────────────────────────────────────────────

@app.post("/api/v1/products", status_code=201, summary="Publish a new product")
def add_product(body: AddProductRequest, x_account: str = Header(...)):
    clock.advance()
    product_id = service.add_product(x_account, body.name, body.price, body.quantity)
    return {"product_id": product_id}


@app.get("/api/v1/products", summary="List products in insertion order")
def list_products(offset: int = Query(0, ge=0)):
    page, total = service.list_products(offset)
    return ProductPage(
        products=[ProductEntry(product_id=pid, product=p) for pid, p in page],
        total=total,
    ).model_dump()


@app.get("/api/v1/products/{product_id}", summary="Get product details")
def get_product(product_id: str):
    return service.get_product(product_id).model_dump()


@app.post("/api/v1/products/{product_id}/restock", summary="Add stock to a product")
def restock(product_id: str, body: RestockRequest, x_account: str = Header(...)):
    clock.advance()
    return {"product_id": product_id, "quantity": service.restock(x_account, product_id, body.quantity)}


# ── Purchases ────────────────────────────────────────────────────────────────

@app.post("/api/v1/products/{product_id}/buy", summary="Buy one unit of a product")
def buy_product(product_id: str, body: BuyRequest, x_account: str = Header(...)):
    clock.advance()
    txn = service.buy_product(product_id, x_account, body.value)
    return service.purchase_view(txn).model_dump()


@app.post("/api/v1/products/{product_id}/return", summary="Return a purchase within the grace window")
def return_product(product_id: str, x_account: str = Header(...)):
    clock.advance()
    service.return_product(product_id, x_account)
    return {"status": "returned", "product_id": product_id, "buyer": x_account}


@app.get("/api/v1/products/{product_id}/buyers", summary="List current buyers of a product")
def list_buyers(product_id: str, offset: int = Query(0, ge=0)):
    buyers, total = service.list_buyers(product_id, offset)
    return BuyerPage(buyers=buyers, total=total).model_dump()


@app.get("/api/v1/products/{product_id}/purchases/{buyer}", summary="Get a buyer's open purchase")
def get_purchase(product_id: str, buyer: str):
    return service.get_purchase(product_id, buyer).model_dump()


# ── Audit ────────────────────────────────────────────────────────────────────

@app.get("/api/v1/transfers", summary="List value transfers made by the store")
def list_transfers():
    return {"transfers": [t.model_dump() for t in payments.list_records()]}


@app.get("/api/v1/events", summary="List recent store events")
def list_events():
    return {"events": [e.model_dump() for e in events.list_events()]}


@app.get("/api/v1/clock", summary="Current logical clock tick")
def get_clock():
    return {"tick": clock.now()}


# ── Admin ─────────────────────────────────────────────────────────────────────

@app.post("/api/v1/admin/clock/advance", summary="Advance the logical clock")
def advance_clock(body: AdvanceClockRequest, x_account: str = Header(...)):
    owner_capability.require_owner(x_account)
    return {"tick": clock.advance(body.ticks)}


@app.post("/api/v1/admin/seed", summary="Reset and re-seed demo data")
def reseed(x_account: str = Header(...)):
    from scripts.seed_data import seed
    owner_capability.require_owner(x_account)
    reset_state()
    seed(service, clock, settings.owner)
    return {
        "status": "seeded",
        "products": len(store),
        "transfers": len(payments.list_records()),
    }
