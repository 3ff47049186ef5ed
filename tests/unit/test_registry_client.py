"""Tests for RegistryClient lifecycle operations and outcome resolution."""

from __future__ import annotations

import logging

import pytest

from recdapp.core.enums import Classification, FailureKind, ProductState, ProductType
from recdapp.core.errors import ProductionFailed, StaleSessionError
from recdapp.core.models import TransactionReceipt
from recdapp.registry.client import RegistryClient, parse_flag

OWNER = "0x" + "ab" * 20
PRODUCT = "0x" + "cd" * 20
RECIPIENT = "0x" + "ef" * 20
OTHER = "0x" + "12" * 20


def _errors(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.levelno >= logging.ERROR]


async def _connect(sessions, registries):
    await sessions.connect()
    return registries[-1]


class TestProduce:
    @pytest.mark.asyncio
    async def test_produce_returns_product_then_owner(
        self, client, sessions, registries, make_receipt, make_pending
    ):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(make_receipt(owner=OWNER, product=PRODUCT))

        outcome = await client.produce(0, "ipfs://bafy123", "Bottle1")

        assert outcome.succeeded is True
        assert outcome.addresses == [PRODUCT, OWNER]
        assert outcome.value.product_address == PRODUCT
        assert outcome.classification == Classification.NONE
        assert registry.calls == [("create", (0, "ipfs://bafy123", "Bottle1"))]
        assert registry.next_pending.waited_with == 1

    @pytest.mark.asyncio
    async def test_type_index_as_text(self, client, sessions, registries, make_receipt, make_pending):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(make_receipt())
        outcome = await client.produce("3", "ipfs://bafy", "Box")
        assert outcome.succeeded
        assert registry.calls[0][1][0] == 3

    @pytest.mark.asyncio
    async def test_failure_status_is_production_failed(
        self, client, sessions, registries, make_receipt, make_pending, caplog
    ):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(make_receipt(status=0))

        with caplog.at_level(logging.DEBUG):
            outcome = await client.produce(0, "ipfs://bafy123", "Bottle1")

        assert outcome.succeeded is False
        assert outcome.value is None
        assert outcome.addresses == []
        assert outcome.kind == FailureKind.PRODUCTION_FAILED
        assert outcome.classification == Classification.FATAL
        assert isinstance(outcome.error, ProductionFailed)
        assert len(_errors(caplog)) == 1

    @pytest.mark.asyncio
    async def test_invalid_type_index_not_submitted(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.produce("seven", "ipfs://x", "n")
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_not_connected(self, client):
        outcome = await client.produce(0, "ipfs://x", "n")
        assert outcome.succeeded is False
        assert outcome.kind == FailureKind.NOT_CONNECTED


class TestPublishAndProduce:
    @pytest.mark.asyncio
    async def test_uploads_then_creates_with_ipfs_uri(
        self, client, sessions, registries, publisher, make_receipt, make_pending
    ):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(make_receipt())

        outcome = await client.publish_and_produce(2, "Jar", b"car-bytes")

        assert outcome.succeeded
        (cid,) = publisher.archives
        assert registry.calls == [("create", (2, f"ipfs://{cid}", "Jar"))]

    @pytest.mark.asyncio
    async def test_upload_failure(self, client, sessions, registries, tmp_path):
        registry = await _connect(sessions, registries)
        outcome = await client.publish_and_produce(0, "Jar", tmp_path / "missing.car")
        assert outcome.kind == FailureKind.UPLOAD_FAILURE
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_without_publisher(self, sessions, registries):
        await _connect(sessions, registries)
        outcome = await RegistryClient(sessions).publish_and_produce(0, "Jar", b"x")
        assert outcome.classification == Classification.FATAL


class TestGetProduct:
    @pytest.mark.asyncio
    async def test_decodes_six_tuple(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        registry.product_tuple = (
            "0x" + "AB" * 20, 2, 3, "ipfs://bafy123", "Bottle1", 0,
        )

        outcome = await client.get_product(PRODUCT)

        assert outcome.succeeded
        product = outcome.value.product
        assert product.address == PRODUCT
        assert product.owner == OWNER
        assert product.product_type == ProductType.GLASS
        assert product.times_recycled == 3
        assert product.content_id == "bafy123"
        assert product.name == "Bottle1"
        assert product.state == ProductState.USABLE
        assert outcome.value.image_url == "https://bafy123.ipfs.nftstorage.link/Bottle1.jpg"
        assert registry.calls == [("get_product", (PRODUCT,))]

    @pytest.mark.asyncio
    async def test_unmapped_indices_decode_to_unknown(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        registry.product_tuple = (OWNER, 9, 0, "ipfs://c", "n", 7)
        outcome = await client.get_product(PRODUCT)
        assert outcome.succeeded
        assert outcome.value.product.product_type == ProductType.UNKNOWN
        assert outcome.value.product.state == ProductState.UNKNOWN

    @pytest.mark.asyncio
    async def test_malformed_result(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        registry.product_tuple = (OWNER, 0)
        outcome = await client.get_product(PRODUCT)
        assert outcome.kind == FailureKind.PARSE_FAILURE

    @pytest.mark.asyncio
    async def test_invalid_address_input(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.get_product("zzz")
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_short_product_address(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.get_product("0xcd")
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []


class TestTransferBatch:
    @pytest.mark.asyncio
    async def test_legacy_literal(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.transfer_batch(f"['{PRODUCT}','{OTHER}']", RECIPIENT)

        assert outcome.succeeded
        assert outcome.value == [PRODUCT, OTHER]
        assert registry.calls == [("transfer", ([PRODUCT, OTHER], RECIPIENT))]

    @pytest.mark.asyncio
    async def test_structured_list(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.transfer_batch([OTHER], RECIPIENT)
        assert outcome.succeeded
        assert registry.calls == [("transfer", ([OTHER], RECIPIENT))]

    @pytest.mark.asyncio
    async def test_malformed_literal_not_submitted(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.transfer_batch("not-a-list", RECIPIENT)
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_empty_list_refused(self, client, sessions, registries):
        await _connect(sessions, registries)
        outcome = await client.transfer_batch("[]", RECIPIENT)
        assert outcome.kind == FailureKind.PARSE_FAILURE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("recipient", ["0xabc", "0x", "", "ef" * 19])
    async def test_short_recipient_not_padded(self, client, sessions, registries, recipient):
        registry = await _connect(sessions, registries)
        outcome = await client.transfer_batch(f"['{PRODUCT}']", recipient)
        assert outcome.succeeded is False
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_short_product_in_list_not_padded(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.transfer_batch("['0xcd']", RECIPIENT)
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []

    @pytest.mark.asyncio
    async def test_typed_address_case_normalised(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.transfer_batch([PRODUCT.upper().replace("0X", "0x")], RECIPIENT)
        assert outcome.succeeded
        assert registry.calls == [("transfer", ([PRODUCT], RECIPIENT))]

    @pytest.mark.asyncio
    async def test_reverted_transfer(self, client, sessions, registries, make_pending):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(TransactionReceipt(status=0))
        outcome = await client.transfer_batch([PRODUCT], RECIPIENT)
        assert outcome.kind == FailureKind.TRANSACTION_FAILED

    @pytest.mark.asyncio
    async def test_authorization_failure_is_fatal(
        self, client, sessions, registries, rpc_error, caplog
    ):
        registry = await _connect(sessions, registries)
        registry.submit_error = rpc_error(-32603, "caller is not the owner")
        with caplog.at_level(logging.DEBUG):
            outcome = await client.transfer_batch([PRODUCT], RECIPIENT)
        assert outcome.classification == Classification.FATAL
        assert outcome.kind == FailureKind.UNCLASSIFIED
        assert len(_errors(caplog)) == 1


class TestBurnAndRecycle:
    @pytest.mark.asyncio
    async def test_plain_burn(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.burn(PRODUCT, False)
        assert outcome.succeeded
        assert outcome.value is None
        assert registry.calls == [("burn", (PRODUCT,))]

    @pytest.mark.asyncio
    async def test_recycle_flag_dispatches_recycle_burn(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.burn(PRODUCT, "on")
        assert outcome.succeeded
        assert registry.calls == [("recycle_burn", (PRODUCT,))]

    @pytest.mark.asyncio
    async def test_unchecked_form_flag(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        await client.burn(PRODUCT, None)
        assert registry.calls == [("burn", (PRODUCT,))]

    @pytest.mark.asyncio
    async def test_reverted_burn(self, client, sessions, registries, make_pending):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(TransactionReceipt(status=0))
        outcome = await client.burn(PRODUCT, True)
        assert outcome.kind == FailureKind.TRANSACTION_FAILED
        assert outcome.error.operation == "recycle_burn"

    @pytest.mark.asyncio
    async def test_recycle_produce(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.recycle_produce(PRODUCT)
        assert outcome.succeeded
        assert registry.calls == [("recycle_produce", (PRODUCT,))]

    @pytest.mark.asyncio
    async def test_short_address_not_burned(self, client, sessions, registries):
        registry = await _connect(sessions, registries)
        outcome = await client.burn("0xcd", True)
        assert outcome.kind == FailureKind.PARSE_FAILURE
        outcome = await client.recycle_produce("0x")
        assert outcome.kind == FailureKind.PARSE_FAILURE
        assert registry.calls == []


class TestFailureResolution:
    @pytest.mark.asyncio
    async def test_user_rejection_is_silent(self, client, sessions, registries, rpc_error, caplog):
        registry = await _connect(sessions, registries)
        registry.submit_error = rpc_error(4001, "User denied transaction signature")

        with caplog.at_level(logging.DEBUG):
            outcome = await client.burn(PRODUCT)

        assert outcome.succeeded is False
        assert outcome.value is None
        assert outcome.cancelled is True
        assert outcome.kind == FailureKind.USER_CANCELLED
        assert _errors(caplog) == []
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    @pytest.mark.asyncio
    async def test_rejection_while_awaiting_confirmation(
        self, client, sessions, registries, make_pending, rpc_error
    ):
        registry = await _connect(sessions, registries)
        registry.next_pending = make_pending(error=rpc_error(4001))
        outcome = await client.recycle_produce(PRODUCT)
        assert outcome.cancelled

    @pytest.mark.asyncio
    async def test_other_error_logged_exactly_once(
        self, client, sessions, registries, caplog
    ):
        registry = await _connect(sessions, registries)
        registry.submit_error = RuntimeError("node unreachable")

        with caplog.at_level(logging.DEBUG):
            outcome = await client.produce(1, "ipfs://x", "Can1")

        assert outcome.succeeded is False
        assert outcome.value is None
        assert outcome.kind == FailureKind.UNCLASSIFIED
        assert str(outcome.error) == "node unreachable"
        errors = _errors(caplog)
        assert len(errors) == 1
        assert errors[0].exc_info is not None


class TestStaleSession:
    @pytest.mark.asyncio
    async def test_result_discarded_after_account_change(
        self, client, sessions, registries, provider, make_receipt, caplog
    ):
        registry = await _connect(sessions, registries)

        class _SwitchingPending:
            tx_hash = "0xabc"

            async def wait(self, confirmations=1):
                await provider.emit_accounts_changed(OTHER)
                return make_receipt()

        registry.next_pending = _SwitchingPending()

        with caplog.at_level(logging.DEBUG):
            outcome = await client.produce(0, "ipfs://x", "n")

        assert outcome.succeeded is False
        assert outcome.kind == FailureKind.STALE_SESSION
        assert isinstance(outcome.error, StaleSessionError)
        assert outcome.error.started == 1
        assert outcome.error.current == 2
        assert outcome.addresses == []
        assert _errors(caplog) == []

    @pytest.mark.asyncio
    async def test_new_session_used_by_next_operation(self, client, sessions, registries, provider):
        await _connect(sessions, registries)
        await provider.emit_accounts_changed(OTHER)
        await client.burn(PRODUCT)
        assert registries[0].calls == []
        assert registries[1].calls == [("burn", (PRODUCT,))]


class TestParseFlag:
    @pytest.mark.parametrize("value", [True, "on", "true", "1", "YES"])
    def test_true(self, value):
        assert parse_flag(value) is True

    @pytest.mark.parametrize("value", [False, None, "", "off", "0"])
    def test_false(self, value):
        assert parse_flag(value) is False

    def test_invalid(self):
        from recdapp.core.errors import ParseFailure

        with pytest.raises(ParseFailure):
            parse_flag("maybe")
