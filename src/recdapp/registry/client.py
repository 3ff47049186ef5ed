"""Registry client: the five product lifecycle operations.

Per-product state machine, driven entirely by registry calls (no local
transition logic):

    (none)          --produce-->        USABLE (times_recycled = 0)
    USABLE          --burn-->           (removed)
    USABLE          --recycle burn-->   PENDING_RECYCLE
    PENDING_RECYCLE --recycle produce-> USABLE (times_recycled += 1)
    (any)           --transfer-->       same state, owner changed

Every operation resolves to an ``Outcome`` and never raises.  User
rejections are absorbed silently; every other failure is logged once at
the operation boundary.  An operation whose session was replaced while it
was pending discards its result.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Sequence

from recdapp.codec.domain import (
    CONTENT_SCHEME,
    DEFAULT_GATEWAY_HOST,
    build_content_url,
    canonicalize_address,
    decode_product_state,
    decode_product_type,
    encode_product_type,
    parse_address,
    parse_address_list,
    strip_content_scheme,
)
from recdapp.codec.receipts import decode_production_receipt, ensure_receipt_succeeded
from recdapp.core.enums import Classification, ProductType
from recdapp.core.errors import (
    ConfigError,
    DecodeError,
    ParseFailure,
    StaleSessionError,
)
from recdapp.core.interfaces import IPendingTransaction
from recdapp.core.models import (
    Outcome,
    ProducedProduct,
    Product,
    ProductView,
    Session,
    TransactionReceipt,
)
from recdapp.observability.logger import new_operation_id, set_operation_id
from recdapp.session.manager import SessionManager
from recdapp.storage.publisher import Archive, ContentPublisher

from .classifier import classify, failure_kind

logger = logging.getLogger(__name__)

# Body result: (value, addresses)
_Body = Callable[[Session], Awaitable[tuple[Any, list[str]]]]

_TRUE_FLAGS = frozenset({"1", "true", "on", "yes", "y"})
_FALSE_FLAGS = frozenset({"", "0", "false", "off", "no", "n", "none"})


def parse_flag(value: bool | str | None) -> bool:
    """Interpret a checkbox-style flag (``"on"``, ``"true"``, ``None``...)."""
    if value is None or isinstance(value, bool):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_FLAGS:
        return True
    if text in _FALSE_FLAGS:
        return False
    raise ParseFailure(f"Invalid flag value {value!r}")


def _parse_address(raw: str, what: str) -> str:
    # Caller input is never padded: a short value would name another account.
    try:
        return parse_address(raw)
    except ParseFailure as exc:
        raise ParseFailure(f"Invalid {what} address: {exc}") from exc


class RegistryClient:
    """Lifecycle operations against the session's registry binding.

    Parameters
    ----------
    sessions:
        Owner of the current wallet session and registry binding.
    publisher:
        Content publisher used by ``publish_and_produce``.
    gateway_host:
        Host of the content gateway used for image URLs.
    confirmations:
        Confirmations to await on every write.
    """

    def __init__(
        self,
        sessions: SessionManager,
        publisher: ContentPublisher | None = None,
        gateway_host: str = DEFAULT_GATEWAY_HOST,
        confirmations: int = 1,
    ) -> None:
        self._sessions = sessions
        self._publisher = publisher
        self._gateway_host = gateway_host
        self._confirmations = confirmations

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def produce(
        self, type_index: int | str | ProductType, content_uri: str, name: str
    ) -> Outcome[ProducedProduct]:
        """Create a product; addresses are ``[product, owner]``."""

        async def body(session: Session) -> tuple[Any, list[str]]:
            index = encode_product_type(type_index)
            pending = await session.registry.create(index, content_uri, name)
            receipt = await self._await_receipt(pending)
            produced = decode_production_receipt(receipt)
            logger.info(
                "Product %s produced for owner %s",
                produced.product_address,
                produced.owner_address,
            )
            return produced, produced.as_list()

        return await self._run("produce", body)

    async def publish_and_produce(
        self, type_index: int | str | ProductType, name: str, archive: Archive
    ) -> Outcome[ProducedProduct]:
        """Upload *archive*, then create the product referencing its CID."""

        async def body(session: Session) -> tuple[Any, list[str]]:
            if self._publisher is None:
                raise ConfigError("No content publisher configured")
            index = encode_product_type(type_index)
            cid = await self._publisher.publish(archive)
            content_uri = CONTENT_SCHEME + cid
            pending = await session.registry.create(index, content_uri, name)
            receipt = await self._await_receipt(pending)
            produced = decode_production_receipt(receipt)
            logger.info(
                "Product %s produced from archive %s", produced.product_address, cid
            )
            return produced, produced.as_list()

        return await self._run("publish_and_produce", body)

    async def get_product(self, product_address: str) -> Outcome[ProductView]:
        """Read and decode a product; never mutates registry state."""

        async def body(session: Session) -> tuple[Any, list[str]]:
            address = _parse_address(product_address, "product")
            raw = await session.registry.get_product(address)
            view = self._decode_product(address, raw)
            return view, [view.product.address, view.product.owner]

        return await self._run("get_product", body)

    async def transfer_batch(
        self, product_addresses: str | Sequence[str], recipient: str
    ) -> Outcome[list[str]]:
        """Transfer every listed product to *recipient*.

        *product_addresses* is either the legacy bracketed literal or a
        sequence of addresses.  Ownership is enforced by the registry.
        """

        async def body(session: Session) -> tuple[Any, list[str]]:
            if isinstance(product_addresses, str):
                raw_list = parse_address_list(product_addresses)
            else:
                raw_list = list(product_addresses)
            if not raw_list:
                raise ParseFailure("No product addresses to transfer")
            addresses = [_parse_address(a, "product") for a in raw_list]
            to = _parse_address(recipient, "recipient")

            pending = await session.registry.transfer(addresses, to)
            receipt = await self._await_receipt(pending)
            ensure_receipt_succeeded(receipt, "transfer")
            logger.info("Transferred %d product(s) to %s", len(addresses), to)
            return addresses, addresses

        return await self._run("transfer", body)

    async def burn(
        self, product_address: str, recycle: bool | str | None = False
    ) -> Outcome[None]:
        """Burn a product, or send it to recycling when *recycle* is set."""

        async def body(session: Session) -> tuple[Any, list[str]]:
            address = _parse_address(product_address, "product")
            to_recycle = parse_flag(recycle)
            if to_recycle:
                operation = "recycle_burn"
                pending = await session.registry.recycle_burn(address)
            else:
                operation = "burn"
                pending = await session.registry.burn(address)
            receipt = await self._await_receipt(pending)
            ensure_receipt_succeeded(receipt, operation)
            logger.info("Product %s: %s confirmed", address, operation)
            return None, [address]

        return await self._run("burn", body)

    async def recycle_produce(self, product_address: str) -> Outcome[None]:
        """Bring a PENDING_RECYCLE product back to USABLE."""

        async def body(session: Session) -> tuple[Any, list[str]]:
            address = _parse_address(product_address, "product")
            pending = await session.registry.recycle_produce(address)
            receipt = await self._await_receipt(pending)
            ensure_receipt_succeeded(receipt, "recycle_produce")
            logger.info("Product %s recycled", address)
            return None, [address]

        return await self._run("recycle_produce", body)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _await_receipt(self, pending: IPendingTransaction) -> TransactionReceipt:
        logger.debug("Awaiting confirmation of %s", pending.tx_hash)
        return await pending.wait(self._confirmations)

    def _decode_product(self, address: str, raw: Sequence[Any]) -> ProductView:
        """Decode ``(owner, type, timesRecycled, contentUri, name, state)``."""
        try:
            owner, type_index, times_recycled, content_uri, name, state_index = raw
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Unexpected getProduct result shape: {raw!r}") from exc

        content_id = strip_content_scheme(str(content_uri))
        product = Product(
            address=address,
            owner=canonicalize_address(owner),
            product_type=decode_product_type(type_index),
            content_id=content_id,
            name=str(name),
            state=decode_product_state(state_index),
            times_recycled=int(times_recycled),
        )
        return ProductView(
            product=product,
            image_url=build_content_url(content_id, product.name, self._gateway_host),
        )

    async def _run(self, operation: str, body: _Body) -> Outcome[Any]:
        """Run *body* against the current session and resolve its outcome."""
        new_operation_id()
        try:
            session = self._sessions.require()
            value, addresses = await body(session)
            if not self._sessions.is_current(session):
                raise StaleSessionError(session.generation, self._sessions.generation)
        except Exception as exc:
            return self._resolve(operation, exc)
        finally:
            set_operation_id("")
        return Outcome.ok(value, addresses)

    def _resolve(self, operation: str, exc: Exception) -> Outcome[Any]:
        classification = classify(exc)
        kind = failure_kind(exc)
        if classification == Classification.CANCELLED:
            logger.debug("%s cancelled by user", operation)
        elif isinstance(exc, StaleSessionError):
            logger.warning("%s result discarded: %s", operation, exc)
        else:
            logger.error("%s error: %s", operation, exc, exc_info=exc)
        return Outcome.failed(classification, kind, exc)
