"""Core domain models for the product registry client.

Products are never held locally: every ``Product`` is a transient decode
of a registry read.  ``Session`` is a value that is replaced wholesale on
every account or network change, never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .enums import Classification, FailureKind, ProductState, ProductType

if TYPE_CHECKING:
    from .interfaces import IRegistryContract, IWalletProvider

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------

class Product(BaseModel):
    """Decoded registry record for a single physical product."""

    model_config = ConfigDict(frozen=True)

    address: str  # Canonical 0x-prefixed 20-byte hex
    owner: str
    product_type: ProductType
    content_id: str  # CID without the ipfs:// scheme
    name: str
    state: ProductState
    times_recycled: int = Field(ge=0)


class ProductView(BaseModel):
    """A product plus presentation-ready derived fields."""

    model_config = ConfigDict(frozen=True)

    product: Product
    image_url: str


class ProducedProduct(BaseModel):
    """Addresses recovered from a creation receipt."""

    model_config = ConfigDict(frozen=True)

    product_address: str
    owner_address: str

    def as_list(self) -> list[str]:
        """``[productAddress, ownerAddress]`` ordering used by callers."""
        return [self.product_address, self.owner_address]


# ---------------------------------------------------------------------------
# Receipts
# ---------------------------------------------------------------------------

class LogEntry(BaseModel):
    """One emitted event log entry; topics are 0x-prefixed hex strings."""

    topics: list[str] = Field(default_factory=list)
    address: str = ""
    data: str = "0x"


class TransactionReceipt(BaseModel):
    """Confirmation record of a settled write."""

    status: int  # 1 = success, 0 = failure
    logs: list[LogEntry] = Field(default_factory=list)
    transaction_hash: str = ""
    block_number: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status != 0


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Session:
    """Live wallet binding.  Replaced on every account or network change.

    ``generation`` increases monotonically across replacements so that an
    in-flight operation can detect that its binding went stale.
    """

    generation: int
    address: str | None = None
    network_id: int | None = None
    provider: IWalletProvider | None = None
    registry: IRegistryContract | None = None

    @property
    def is_connected(self) -> bool:
        return self.address is not None and self.registry is not None


# ---------------------------------------------------------------------------
# Operation outcome
# ---------------------------------------------------------------------------

@dataclass
class Outcome(Generic[T]):
    """Discriminated result of a registry operation.

    Callers branch on ``succeeded`` and ``kind`` instead of inspecting
    logs.  ``error`` keeps the raw cause for diagnostics.
    """

    succeeded: bool
    value: T | None = None
    addresses: list[str] = field(default_factory=list)
    classification: Classification = Classification.NONE
    kind: FailureKind | None = None
    error: BaseException | None = None

    @classmethod
    def ok(cls, value: T | None = None, addresses: list[str] | None = None) -> Outcome[T]:
        return cls(succeeded=True, value=value, addresses=list(addresses or []))

    @classmethod
    def failed(
        cls,
        classification: Classification,
        kind: FailureKind,
        error: BaseException | None = None,
    ) -> Outcome[T]:
        return cls(
            succeeded=False,
            classification=classification,
            kind=kind,
            error=error,
        )

    @property
    def cancelled(self) -> bool:
        return self.classification == Classification.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        value = self.value
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        return {
            "succeeded": self.succeeded,
            "value": value,
            "addresses": list(self.addresses),
            "classification": self.classification.value,
            "kind": self.kind.value if self.kind else None,
            "error": str(self.error) if self.error else None,
        }
