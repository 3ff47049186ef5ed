"""Receipt decoding: canonical addresses from confirmation logs.

Protocol contract with the registry's creation event: in the FIRST log
entry, ``topics[1]`` is the acting owner and ``topics[2]`` the newly
minted product identifier, each a 32-byte left-padded value.
"""

from __future__ import annotations

from recdapp.core.errors import DecodeError, ProductionFailed, TransactionFailed
from recdapp.core.models import ProducedProduct, TransactionReceipt

from .domain import canonicalize_address

OWNER_TOPIC = 1
PRODUCT_TOPIC = 2


def decode_production_receipt(receipt: TransactionReceipt) -> ProducedProduct:
    """Extract ``(product, owner)`` from a creation receipt.

    A failure status raises ``ProductionFailed`` before any log is read,
    so partial addresses are never returned.
    """
    if not receipt.succeeded:
        raise ProductionFailed(
            f"Produce product failed (tx {receipt.transaction_hash or 'unknown'})"
        )
    if not receipt.logs:
        raise DecodeError("Creation receipt carries no log entries")

    topics = receipt.logs[0].topics
    if len(topics) <= PRODUCT_TOPIC:
        raise DecodeError(
            f"Creation log has {len(topics)} topics, expected at least {PRODUCT_TOPIC + 1}"
        )

    return ProducedProduct(
        product_address=canonicalize_address(topics[PRODUCT_TOPIC]),
        owner_address=canonicalize_address(topics[OWNER_TOPIC]),
    )


def ensure_receipt_succeeded(receipt: TransactionReceipt, operation: str) -> TransactionReceipt:
    """Raise ``TransactionFailed`` if a non-creation write reverted."""
    if not receipt.succeeded:
        raise TransactionFailed(operation, receipt.transaction_hash)
    return receipt
