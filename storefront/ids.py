import hashlib

ProductId = str


def derive_product_id(name: str) -> ProductId:
    """Content-derived product id: 0x-prefixed SHA3-256 of the UTF-8 name."""
    return "0x" + hashlib.sha3_256(name.encode("utf-8")).hexdigest()
