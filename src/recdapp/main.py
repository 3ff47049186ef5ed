"""Application bootstrap.

Wires settings, logging, the web3 collaborators, the content publisher,
the session manager and the registry client together.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any

from .adapters.web3_adapter import Web3WalletProvider, create_web3, make_registry_factory
from .core.artifacts import load_registry_artifact
from .core.config import Settings, load_settings
from .core.models import Session
from .observability.logger import setup_logging
from .registry.client import RegistryClient
from .session.manager import SessionManager
from .storage.publisher import ContentPublisher, NFTStoragePublisher

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything a caller needs to drive registry operations.

    Owns the account watcher once ``connect`` has run; ``close`` stops it.
    """

    settings: Settings
    sessions: SessionManager
    client: RegistryClient
    publisher: ContentPublisher
    provider: Web3WalletProvider | None = None
    _watcher: asyncio.Task[None] | None = field(default=None, init=False, repr=False)

    async def connect(self) -> Session:
        """Connect the wallet and start watching for account changes."""
        session = await self.sessions.connect()
        if self.provider is not None and self._watcher is None:
            self._watcher = asyncio.create_task(
                self.provider.watch_accounts(), name="recdapp-account-watcher"
            )
        return session

    async def close(self) -> None:
        if self._watcher is not None:
            self._watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._watcher
            self._watcher = None
        await self.publisher.close()


def build_runtime(settings: Settings) -> Runtime:
    """Build the runtime from *settings*; does not connect the wallet."""
    settings.validate_required()

    artifact = load_registry_artifact(
        settings.registry.artifacts_dir,
        settings.registry.contract_name,
        address_override=settings.registry.address,
    )
    w3 = create_web3(settings.network.rpc_url)
    provider = Web3WalletProvider(
        w3, poll_interval=settings.network.account_poll_interval_seconds
    )
    sessions = SessionManager(
        provider,
        make_registry_factory(
            artifact, receipt_timeout=settings.network.receipt_timeout_seconds
        ),
        required_network_id=settings.network.required_chain_id,
    )
    publisher = NFTStoragePublisher(
        token=settings.storage.token,
        endpoint=settings.storage.endpoint,
        timeout_seconds=settings.storage.timeout_seconds,
    )
    client = RegistryClient(
        sessions,
        publisher=publisher,
        gateway_host=settings.storage.gateway_host,
        confirmations=settings.network.confirmations,
    )
    logger.info(
        "Runtime ready: registry=%s rpc=%s chain=%d",
        artifact.address,
        settings.network.rpc_url,
        settings.network.required_chain_id,
    )
    return Runtime(
        settings=settings,
        sessions=sessions,
        client=client,
        publisher=publisher,
        provider=provider,
    )


def bootstrap(
    config_path: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> Runtime:
    """Load settings, set up logging and build the runtime."""
    settings = load_settings(config_path=config_path, overrides=overrides)
    setup_logging(
        settings.observability.log_level, settings.observability.log_format.value
    )
    return build_runtime(settings)
