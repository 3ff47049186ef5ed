"""Web3 bindings for the wallet provider and the product registry.

Uses ``web3`` in async mode (``AsyncWeb3``) to implement
``IWalletProvider``, ``IRegistryContract`` and ``IPendingTransaction``.
Addresses are checksummed at this boundary only; everything above it
works with canonical lowercase addresses.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from web3 import AsyncWeb3

from recdapp.core.artifacts import RegistryArtifact
from recdapp.core.errors import ProviderRpcError
from recdapp.core.interfaces import (
    AccountsChangedHandler,
    IRegistryContract,
    IWalletProvider,
    RegistryFactory,
)
from recdapp.core.models import LogEntry, TransactionReceipt

logger = logging.getLogger(__name__)


def _to_hex(value: Any) -> str:
    """HexBytes / bytes / str -> 0x-prefixed hex string."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = str(value)
    return text if text.startswith("0x") else "0x" + text


def normalize_receipt(raw: Any) -> TransactionReceipt:
    """Convert a web3 receipt (``AttributeDict``) into ``TransactionReceipt``."""
    logs = [
        LogEntry(
            topics=[_to_hex(t) for t in entry.get("topics", [])],
            address=str(entry.get("address", "")),
            data=_to_hex(entry.get("data", b"")),
        )
        for entry in raw.get("logs", [])
    ]
    tx_hash = raw.get("transactionHash")
    return TransactionReceipt(
        status=int(raw.get("status", 0)),
        logs=logs,
        transaction_hash=_to_hex(tx_hash) if tx_hash is not None else "",
        block_number=raw.get("blockNumber"),
    )


def _rpc_result(response: dict[str, Any], method: str) -> Any:
    """Lift a JSON-RPC error payload into ``ProviderRpcError``."""
    error = response.get("error")
    if error:
        if isinstance(error, dict):
            raise ProviderRpcError(
                error.get("code"), f"{method}: {error.get('message', '')}", error.get("data")
            )
        raise ProviderRpcError(None, f"{method}: {error}")
    return response.get("result")


# ---------------------------------------------------------------------------
# Wallet provider
# ---------------------------------------------------------------------------

class Web3WalletProvider:
    """EIP-1193 wallet provider over a JSON-RPC transport.

    HTTP transports have no push channel, so account changes are detected
    by polling ``eth_accounts`` (see ``watch_accounts``).
    """

    def __init__(self, w3: AsyncWeb3, poll_interval: float = 2.0) -> None:
        self._w3 = w3
        self._poll_interval = poll_interval
        self._handlers: list[AccountsChangedHandler] = []
        self._last_account: str | None = None

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    async def _request(self, method: str, params: list[Any]) -> Any:
        response = await self._w3.provider.make_request(method, params)
        return _rpc_result(response, method)

    async def request_accounts(self) -> list[str]:
        accounts = await self._request("eth_requestAccounts", []) or []
        self._last_account = accounts[0].lower() if accounts else None
        return list(accounts)

    async def switch_network(self, network_id: int) -> None:
        await self._request(
            "wallet_switchEthereumChain", [{"chainId": hex(network_id)}]
        )
        logger.info("Switched wallet network to %d", network_id)

    async def network_id(self) -> int:
        return int(await self._w3.eth.chain_id)

    def on_accounts_changed(self, handler: AccountsChangedHandler) -> None:
        self._handlers.append(handler)

    async def poll_accounts_once(self) -> bool:
        """Dispatch a notification if the active account changed."""
        accounts = await self._request("eth_accounts", []) or []
        current = accounts[0].lower() if accounts else None
        if current == self._last_account:
            return False
        self._last_account = current
        logger.info("Active wallet account changed to %s", current)
        for handler in list(self._handlers):
            await handler(current)
        return True

    async def watch_accounts(self) -> None:
        """Poll for account changes until cancelled."""
        while True:
            try:
                await self.poll_accounts_once()
            except ProviderRpcError as exc:
                logger.warning("Account poll failed: %s", exc)
            except Exception as exc:
                logger.warning("Account poll failed: %s", exc, exc_info=exc)
            await asyncio.sleep(self._poll_interval)


# ---------------------------------------------------------------------------
# Registry contract
# ---------------------------------------------------------------------------

class Web3PendingTransaction:
    """Pending write: awaits the receipt and the requested confirmations."""

    def __init__(
        self,
        w3: AsyncWeb3,
        tx_hash: Any,
        timeout: float = 120.0,
        poll_latency: float = 0.5,
    ) -> None:
        self._w3 = w3
        self._raw_hash = tx_hash
        self._timeout = timeout
        self._poll_latency = poll_latency

    @property
    def tx_hash(self) -> str:
        return _to_hex(self._raw_hash)

    async def wait(self, confirmations: int = 1) -> TransactionReceipt:
        raw = await self._w3.eth.wait_for_transaction_receipt(
            self._raw_hash, timeout=self._timeout, poll_latency=self._poll_latency
        )
        receipt = normalize_receipt(raw)
        if confirmations > 1 and receipt.block_number is not None:
            target = receipt.block_number + confirmations - 1
            while await self._w3.eth.block_number < target:
                await asyncio.sleep(self._poll_latency)
        return receipt


class Web3Registry:
    """Product registry contract bound to one signing account."""

    def __init__(
        self,
        w3: AsyncWeb3,
        artifact: RegistryArtifact,
        account: str,
        receipt_timeout: float = 120.0,
    ) -> None:
        self._w3 = w3
        self._account = AsyncWeb3.to_checksum_address(account)
        self._contract = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(artifact.address),
            abi=artifact.abi,
        )
        self._receipt_timeout = receipt_timeout

    @property
    def account(self) -> str:
        return self._account

    async def _transact(self, fn: Any) -> Web3PendingTransaction:
        tx_hash = await fn.transact({"from": self._account})
        pending = Web3PendingTransaction(self._w3, tx_hash, timeout=self._receipt_timeout)
        logger.debug("Submitted %s", pending.tx_hash)
        return pending

    @staticmethod
    def _checksum(address: str) -> str:
        return AsyncWeb3.to_checksum_address(address)

    async def create(
        self, type_index: int, content_uri: str, name: str
    ) -> Web3PendingTransaction:
        return await self._transact(
            self._contract.functions.create(type_index, content_uri, name)
        )

    async def get_product(self, address: str) -> Sequence[Any]:
        return await self._contract.functions.getProduct(self._checksum(address)).call()

    async def transfer(
        self, addresses: Sequence[str], recipient: str
    ) -> Web3PendingTransaction:
        return await self._transact(
            self._contract.functions.transfer(
                [self._checksum(a) for a in addresses], self._checksum(recipient)
            )
        )

    async def burn(self, address: str) -> Web3PendingTransaction:
        return await self._transact(self._contract.functions.burn(self._checksum(address)))

    async def recycle_burn(self, address: str) -> Web3PendingTransaction:
        return await self._transact(
            self._contract.functions.recycleBurn(self._checksum(address))
        )

    async def recycle_produce(self, address: str) -> Web3PendingTransaction:
        return await self._transact(
            self._contract.functions.recycleProduce(self._checksum(address))
        )


def make_registry_factory(
    artifact: RegistryArtifact, receipt_timeout: float = 120.0
) -> RegistryFactory:
    """Factory binding the registry to the session's provider and account."""

    def factory(provider: IWalletProvider, address: str) -> IRegistryContract:
        if not isinstance(provider, Web3WalletProvider):
            raise TypeError("Web3Registry requires a Web3WalletProvider")
        return Web3Registry(provider.w3, artifact, address, receipt_timeout=receipt_timeout)

    return factory


def create_web3(rpc_url: str) -> AsyncWeb3:
    """AsyncWeb3 over HTTP JSON-RPC."""
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
