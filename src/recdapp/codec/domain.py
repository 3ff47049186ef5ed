"""Domain codec: registry primitives <-> domain enums and addresses.

Pure and synchronous.  Unmapped enum indices decode to an explicit
``UNKNOWN`` member rather than raising, because the registry may ship new
values ahead of this client.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import quote

from recdapp.core.enums import ProductState, ProductType
from recdapp.core.errors import AddressDecodeError, ParseFailure

ADDRESS_NIBBLES = 40  # 20 bytes
CONTENT_SCHEME = "ipfs://"
DEFAULT_GATEWAY_HOST = "nftstorage.link"

# ---------------------------------------------------------------------------
# Enum mappings: registry index <-> domain enum
# ---------------------------------------------------------------------------

_PRODUCT_TYPES: dict[int, ProductType] = {
    0: ProductType.PLASTIC,
    1: ProductType.CAN,
    2: ProductType.GLASS,
    3: ProductType.CARDBOARD,
}
_PRODUCT_TYPE_INDEX: dict[ProductType, int] = {v: k for k, v in _PRODUCT_TYPES.items()}

_PRODUCT_STATES: dict[int, ProductState] = {
    0: ProductState.USABLE,
    1: ProductState.PENDING_RECYCLE,
}

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def decode_product_type(index: Any) -> ProductType:
    """Registry type index -> ``ProductType``; unmapped -> ``UNKNOWN``."""
    try:
        return _PRODUCT_TYPES.get(int(index), ProductType.UNKNOWN)
    except (TypeError, ValueError):
        return ProductType.UNKNOWN


def encode_product_type(value: ProductType | int | str) -> int:
    """Domain type -> registry index.

    Accepts a ``ProductType``, an index, or its text form (``"2"`` or
    ``"glass"``).  ``UNKNOWN`` and out-of-range values cannot be sent to
    the registry and raise ``ParseFailure``.
    """
    if isinstance(value, ProductType):
        if value not in _PRODUCT_TYPE_INDEX:
            raise ParseFailure(f"Product type {value.value!r} cannot be encoded")
        return _PRODUCT_TYPE_INDEX[value]
    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        try:
            return encode_product_type(ProductType(value.strip().lower()))
        except ValueError:
            raise ParseFailure(f"Unknown product type {value!r}") from None
    index = parse_type_index(value)
    if index not in _PRODUCT_TYPES:
        raise ParseFailure(f"Product type index {index} out of range 0..3")
    return index


def parse_type_index(value: int | str) -> int:
    """Parse a type index supplied as an integer or form text."""
    if isinstance(value, bool):
        raise ParseFailure(f"Invalid type index {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text, 10)
        except ValueError:
            raise ParseFailure(f"Invalid type index {value!r}") from None
    raise ParseFailure(f"Invalid type index {value!r}")


def decode_product_state(index: Any) -> ProductState:
    """Registry state index -> ``ProductState``; unmapped -> ``UNKNOWN``."""
    try:
        return _PRODUCT_STATES.get(int(index), ProductState.UNKNOWN)
    except (TypeError, ValueError):
        return ProductState.UNKNOWN


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def canonicalize_address(raw: str | bytes | bytearray) -> str:
    """Normalise *raw* into a lowercase, 0x-prefixed, 40-nibble address.

    Strips an optional ``0x`` prefix and leading zero nibbles, then
    left-pads back to the fixed 20-byte width.  Works for registry return
    values and for 32-byte log topics alike.  Idempotent.

    Raises ``AddressDecodeError`` when the value is not hex or carries more
    than 20 significant bytes.
    """
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).hex()
    elif isinstance(raw, str):
        text = raw.strip()
    else:
        raise AddressDecodeError(f"Cannot decode address from {type(raw).__name__}")

    if text[:2] in ("0x", "0X"):
        text = text[2:]
    if not _HEX_RE.match(text):
        raise AddressDecodeError(f"Address {raw!r} is not hexadecimal")

    significant = text.lstrip("0").lower()
    if len(significant) > ADDRESS_NIBBLES:
        raise AddressDecodeError(
            f"Address {raw!r} has {len(significant)} significant nibbles, "
            f"more than {ADDRESS_NIBBLES}"
        )
    return "0x" + significant.rjust(ADDRESS_NIBBLES, "0")


def parse_address(raw: str) -> str:
    """Validate a typed address: exactly 40 hex nibbles after optional ``0x``.

    Unlike ``canonicalize_address`` nothing is padded, so a truncated or
    empty value is refused instead of becoming a different account.
    Returns the lowercase ``0x`` form.
    """
    if not isinstance(raw, str):
        raise ParseFailure(f"Address must be text, got {type(raw).__name__}")
    text = raw.strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    if len(text) != ADDRESS_NIBBLES or not _HEX_RE.match(text):
        raise ParseFailure(
            f"Address {raw!r} is not {ADDRESS_NIBBLES} hexadecimal digits"
        )
    return "0x" + text.lower()


# ---------------------------------------------------------------------------
# Content references
# ---------------------------------------------------------------------------

def strip_content_scheme(content_uri: str) -> str:
    """``ipfs://<cid>`` -> ``<cid>``; other values pass through."""
    if content_uri.startswith(CONTENT_SCHEME):
        return content_uri[len(CONTENT_SCHEME):]
    return content_uri


def build_content_url(
    content_id: str,
    name: str,
    gateway_host: str = DEFAULT_GATEWAY_HOST,
) -> str:
    """Gateway URL of the product image.

    Fixed template ``https://{cid}.ipfs.{gateway}/{name}.jpg``: assumes a
    JPEG named after the product, served by a single gateway.
    """
    return f"https://{content_id}.ipfs.{gateway_host}/{quote(name)}.jpg"


# ---------------------------------------------------------------------------
# Legacy address-list literal
# ---------------------------------------------------------------------------

# One quoted element with optional surrounding whitespace.
_ITEM_RE = re.compile(r"""\s*(?:'([^'\\]*)'|"([^"\\]*)")\s*""")


def parse_address_list(raw: str) -> list[str]:
    """Parse a bracketed list literal such as ``['0xabc','0xdef']``.

    Grammar: ``[`` then zero or more single- or double-quoted strings
    separated by commas, then ``]``.  Whitespace is allowed around
    elements.  Anything else (unbalanced brackets, bare words, nested
    lists, trailing commas) raises ``ParseFailure``.  Element order is
    preserved and elements are returned verbatim.
    """
    if not isinstance(raw, str):
        raise ParseFailure(f"Address list must be text, got {type(raw).__name__}")

    text = raw.strip()
    if len(text) < 2 or text[0] != "[" or text[-1] != "]":
        raise ParseFailure(f"Address list {raw!r} is not a bracketed literal")

    body = text[1:-1]
    if not body.strip():
        return []

    items: list[str] = []
    pos = 0
    while True:
        match = _ITEM_RE.match(body, pos)
        if match is None:
            raise ParseFailure(
                f"Address list {raw!r}: expected a quoted string at offset {pos + 1}"
            )
        single, double = match.group(1), match.group(2)
        items.append(single if single is not None else double)
        pos = match.end()
        if pos == len(body):
            return items
        if body[pos] != ",":
            raise ParseFailure(
                f"Address list {raw!r}: expected ',' at offset {pos + 1}"
            )
        pos += 1
