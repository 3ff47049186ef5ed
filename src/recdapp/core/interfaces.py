"""Protocol interfaces for the external collaborators.

The wallet provider, the registry contract and the content store are
black boxes specified only at their call surface.  Implementations can be
swapped (web3 / in-memory fakes) without changing callers.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Sequence, runtime_checkable

from .models import TransactionReceipt

# Handler receives the new active address, or None when none is exposed.
AccountsChangedHandler = Callable[[str | None], Awaitable[None]]


# ---------------------------------------------------------------------------
# Wallet / network provider
# ---------------------------------------------------------------------------

@runtime_checkable
class IWalletProvider(Protocol):
    """EIP-1193 style wallet provider."""

    async def request_accounts(self) -> list[str]: ...

    async def switch_network(self, network_id: int) -> None: ...

    async def network_id(self) -> int: ...

    def on_accounts_changed(self, handler: AccountsChangedHandler) -> None: ...


# ---------------------------------------------------------------------------
# Registry contract
# ---------------------------------------------------------------------------

@runtime_checkable
class IPendingTransaction(Protocol):
    """Handle returned by every registry write."""

    @property
    def tx_hash(self) -> str: ...

    async def wait(self, confirmations: int = 1) -> TransactionReceipt: ...


@runtime_checkable
class IRegistryContract(Protocol):
    """Fixed call surface of the on-chain product registry."""

    async def create(
        self, type_index: int, content_uri: str, name: str
    ) -> IPendingTransaction: ...

    async def get_product(self, address: str) -> Sequence[Any]: ...

    async def transfer(
        self, addresses: Sequence[str], recipient: str
    ) -> IPendingTransaction: ...

    async def burn(self, address: str) -> IPendingTransaction: ...

    async def recycle_burn(self, address: str) -> IPendingTransaction: ...

    async def recycle_produce(self, address: str) -> IPendingTransaction: ...


# Builds the registry binding for a freshly initialised session.
RegistryFactory = Callable[[IWalletProvider, str], IRegistryContract]
