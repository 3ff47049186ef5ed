"""Shared fixtures for the recdapp test suite."""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from recdapp.core.interfaces import AccountsChangedHandler
from recdapp.core.models import LogEntry, TransactionReceipt
from recdapp.registry.client import RegistryClient
from recdapp.session.manager import SessionManager
from recdapp.storage.publisher import MockContentPublisher

OWNER = "0x" + "ab" * 20
PRODUCT = "0x" + "cd" * 20
RECIPIENT = "0x" + "ef" * 20
CHAIN_ID = 31337


def pad_topic(address: str) -> str:
    """Left-pad a 20-byte address to a 32-byte log topic."""
    return "0x" + address[2:].rjust(64, "0")


def creation_receipt(
    owner: str = OWNER, product: str = PRODUCT, status: int = 1
) -> TransactionReceipt:
    return TransactionReceipt(
        status=status,
        transaction_hash="0x" + "11" * 32,
        logs=[LogEntry(topics=["0x" + "ee" * 32, pad_topic(owner), pad_topic(product)])],
    )


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------

class FakePending:
    def __init__(self, receipt: TransactionReceipt | None = None, error: Exception | None = None):
        self.receipt = receipt or TransactionReceipt(status=1, transaction_hash="0x01")
        self.error = error
        self.waited_with: int | None = None

    @property
    def tx_hash(self) -> str:
        return self.receipt.transaction_hash

    async def wait(self, confirmations: int = 1) -> TransactionReceipt:
        self.waited_with = confirmations
        if self.error is not None:
            raise self.error
        return self.receipt


class FakeRegistry:
    """Records every call; writes return ``next_pending``."""

    def __init__(self, account: str = OWNER) -> None:
        self.account = account
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.next_pending = FakePending()
        self.product_tuple: Sequence[Any] = (OWNER, 0, 0, "ipfs://bafy123", "Bottle1", 0)
        self.submit_error: Exception | None = None

    async def _write(self, name: str, *args: Any) -> FakePending:
        self.calls.append((name, args))
        if self.submit_error is not None:
            raise self.submit_error
        return self.next_pending

    async def create(self, type_index: int, content_uri: str, name: str) -> FakePending:
        return await self._write("create", type_index, content_uri, name)

    async def get_product(self, address: str) -> Sequence[Any]:
        self.calls.append(("get_product", (address,)))
        if self.submit_error is not None:
            raise self.submit_error
        return self.product_tuple

    async def transfer(self, addresses: Sequence[str], recipient: str) -> FakePending:
        return await self._write("transfer", list(addresses), recipient)

    async def burn(self, address: str) -> FakePending:
        return await self._write("burn", address)

    async def recycle_burn(self, address: str) -> FakePending:
        return await self._write("recycle_burn", address)

    async def recycle_produce(self, address: str) -> FakePending:
        return await self._write("recycle_produce", address)


class FakeWalletProvider:
    def __init__(self, accounts: list[str] | None = None, network_id: int = CHAIN_ID) -> None:
        self.accounts = [OWNER] if accounts is None else accounts
        self.current_network = network_id
        self.switch_requests: list[int] = []
        self.switch_error: Exception | None = None
        self.switch_takes_effect = True
        self.handlers: list[AccountsChangedHandler] = []

    async def request_accounts(self) -> list[str]:
        return list(self.accounts)

    async def switch_network(self, network_id: int) -> None:
        self.switch_requests.append(network_id)
        if self.switch_error is not None:
            raise self.switch_error
        if self.switch_takes_effect:
            self.current_network = network_id

    async def network_id(self) -> int:
        return self.current_network

    def on_accounts_changed(self, handler: AccountsChangedHandler) -> None:
        self.handlers.append(handler)

    async def emit_accounts_changed(self, address: str | None) -> None:
        for handler in list(self.handlers):
            await handler(address)


class RpcError(Exception):
    """Stand-in for a provider error carrying a JSON-RPC ``code``."""

    def __init__(self, code: int, message: str = "rpc error") -> None:
        super().__init__(message)
        self.code = code


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def provider() -> FakeWalletProvider:
    return FakeWalletProvider()


@pytest.fixture
def registries() -> list[FakeRegistry]:
    """Every registry binding built by the session manager, in order."""
    return []


@pytest.fixture
def sessions(provider: FakeWalletProvider, registries: list[FakeRegistry]) -> SessionManager:
    def factory(_provider: Any, address: str) -> FakeRegistry:
        registry = FakeRegistry(account=address)
        registries.append(registry)
        return registry

    return SessionManager(provider, factory, required_network_id=CHAIN_ID)


@pytest.fixture
def publisher() -> MockContentPublisher:
    return MockContentPublisher()


@pytest.fixture
def client(sessions: SessionManager, publisher: MockContentPublisher) -> RegistryClient:
    return RegistryClient(sessions, publisher=publisher, gateway_host="nftstorage.link")


@pytest.fixture
def make_receipt():
    """Factory for creation receipts with padded owner/product topics."""
    return creation_receipt


@pytest.fixture
def make_pending():
    """Factory for pending write handles."""
    return FakePending


@pytest.fixture
def rpc_error():
    """Factory for errors carrying a JSON-RPC code."""
    return RpcError
