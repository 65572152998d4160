from pydantic import BaseModel, Field

MAX_QUANTITY = 2**32 - 1  # quantities are uint32 counters


class Product(BaseModel):
    name: str
    price: int        # smallest value unit, never a float
    quantity: int


class Transaction(BaseModel):
    product_id: str
    buyer: str
    opened_at: int          # logical clock tick of the purchase
    buyer_list_index: int   # back-pointer into the product's buyer index
    is_open: bool = True


# ── Events ───────────────────────────────────────────────────────────────────

class ProductAdded(BaseModel):
    kind: str = "ProductAdded"
    name: str
    product_id: str
    price: int
    quantity: int


class ProductRestocked(BaseModel):
    kind: str = "ProductRestocked"
    product_id: str
    quantity: int


class ProductBought(BaseModel):
    kind: str = "ProductBought"
    product_id: str
    buyer: str


class ProductReturned(BaseModel):
    kind: str = "ProductReturned"
    product_id: str
    buyer: str


class TransferRecord(BaseModel):
    to: str
    amount: int
    tick: int


# ── Request models ───────────────────────────────────────────────────────────

class AddProductRequest(BaseModel):
    name: str
    price: int = Field(ge=0)
    quantity: int = Field(ge=0, le=MAX_QUANTITY)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=0, le=MAX_QUANTITY)


class BuyRequest(BaseModel):
    value: int = Field(ge=0)


class AdvanceClockRequest(BaseModel):
    ticks: int = Field(default=1, ge=1)


# ── Response models ──────────────────────────────────────────────────────────

class ProductEntry(BaseModel):
    product_id: str
    product: Product


class ProductPage(BaseModel):
    products: list[ProductEntry]
    total: int


class BuyerPage(BaseModel):
    buyers: list[str]
    total: int


class PurchaseView(BaseModel):
    product_id: str
    buyer: str
    opened_at: int
    # first tick at which a return is refused
    return_deadline: int
    returnable: bool
