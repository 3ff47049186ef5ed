"""Pure encode/decode between registry primitives and domain values."""

from .domain import (
    build_content_url,
    canonicalize_address,
    decode_product_state,
    decode_product_type,
    encode_product_type,
    parse_address,
    parse_address_list,
    parse_type_index,
    strip_content_scheme,
)
from .receipts import decode_production_receipt, ensure_receipt_succeeded

__all__ = [
    "build_content_url",
    "canonicalize_address",
    "decode_product_state",
    "decode_product_type",
    "decode_production_receipt",
    "encode_product_type",
    "ensure_receipt_succeeded",
    "parse_address",
    "parse_address_list",
    "parse_type_index",
    "strip_content_scheme",
]
