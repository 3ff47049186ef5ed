"""Wallet session ownership.

``SessionManager`` establishes the wallet connection, enforces the
required network and owns the live registry binding.  The ``Session``
value is replaced wholesale on every change and carries a monotonically
increasing generation, so operations that started against an older
binding can detect it on completion.

Lifecycle:

    (empty) --connect--> connected(address, network)
    connected --accounts changed(addr)--> connected(addr, network)
    connected --accounts changed(None)--> (empty)
    connected --disconnect--> (empty)
"""

from __future__ import annotations

import logging

from recdapp.codec.domain import canonicalize_address
from recdapp.core.config import DEFAULT_CHAIN_ID
from recdapp.core.errors import (
    NetworkError,
    NoWalletError,
    NotConnectedError,
    RecDappError,
)
from recdapp.core.interfaces import IWalletProvider, RegistryFactory
from recdapp.core.models import Session

logger = logging.getLogger(__name__)


class SessionManager:
    """Owns the current ``Session`` and the wallet subscription.

    Parameters
    ----------
    provider:
        Wallet/network provider, or ``None`` when no wallet is installed.
    registry_factory:
        Builds the registry binding for ``(provider, address)``.
    required_network_id:
        Network the registry is deployed on.
    """

    def __init__(
        self,
        provider: IWalletProvider | None,
        registry_factory: RegistryFactory,
        required_network_id: int = DEFAULT_CHAIN_ID,
    ) -> None:
        self._provider = provider
        self._registry_factory = registry_factory
        self._required_network_id = required_network_id
        self._session = Session(generation=0)
        self._subscribed = False

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def current(self) -> Session:
        return self._session

    @property
    def generation(self) -> int:
        return self._session.generation

    def require(self) -> Session:
        """Return the current session or raise ``NotConnectedError``."""
        session = self._session
        if not session.is_connected:
            raise NotConnectedError("Wallet is not connected")
        return session

    def is_current(self, session: Session) -> bool:
        return session.generation == self._session.generation

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> Session:
        """Request the active account, enforce the network, bind the registry.

        Raises ``NoWalletError`` when no provider or account is available
        and ``NetworkError`` when the required network cannot be selected.
        """
        provider = self._require_provider()

        accounts = await provider.request_accounts()
        if not accounts:
            raise NoWalletError("Wallet exposed no account")
        address = canonicalize_address(accounts[0])

        if not self._subscribed:
            provider.on_accounts_changed(self._on_accounts_changed)
            self._subscribed = True

        network_id = await self._ensure_network(provider)
        return self._initialize(provider, address, network_id)

    def disconnect(self) -> Session:
        """Tear the session down to the initial empty state."""
        return self._replace(Session(generation=self._next_generation()))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_provider(self) -> IWalletProvider:
        if self._provider is None:
            raise NoWalletError("No wallet provider detected")
        return self._provider

    def _next_generation(self) -> int:
        return self._session.generation + 1

    def _replace(self, session: Session) -> Session:
        previous = self._session
        self._session = session
        logger.info(
            "Session replaced: generation %d -> %d address=%s network=%s",
            previous.generation,
            session.generation,
            session.address,
            session.network_id,
        )
        return session

    def _initialize(
        self, provider: IWalletProvider, address: str, network_id: int
    ) -> Session:
        registry = self._registry_factory(provider, address)
        return self._replace(
            Session(
                generation=self._next_generation(),
                address=address,
                network_id=network_id,
                provider=provider,
                registry=registry,
            )
        )

    async def _ensure_network(self, provider: IWalletProvider) -> int:
        """Switch to the required network once if the wallet is elsewhere."""
        required = self._required_network_id
        actual = await provider.network_id()
        if actual == required:
            return actual

        logger.warning(
            "Wallet on network %s, requesting switch to %s", actual, required
        )
        try:
            await provider.switch_network(required)
        except Exception as exc:
            raise NetworkError(
                required, actual, f"Switch to network {required} was refused: {exc}"
            ) from exc

        actual = await provider.network_id()
        if actual != required:
            raise NetworkError(required, actual)
        return actual

    async def _on_accounts_changed(self, address: str | None) -> None:
        """Provider notification: re-initialise or tear down."""
        if address is None:
            logger.info("Wallet exposes no account, tearing session down")
            self.disconnect()
            return

        provider = self._require_provider()
        try:
            canonical = canonicalize_address(address)
            network_id = await self._ensure_network(provider)
            self._initialize(provider, canonical, network_id)
        except Exception as exc:
            # Never keep signing as the previous account.
            logger.error(
                "Re-initialisation for account %s failed: %s",
                address,
                exc,
                exc_info=not isinstance(exc, RecDappError),
            )
            self.disconnect()
