"""Failure classification for registry operations.

A failure carrying the wallet's user-rejection code is ``CANCELLED`` and is
absorbed silently: a user declining to sign is not an application error.
Everything else is ``FATAL``.
"""

from __future__ import annotations

from typing import Any

from recdapp.core.enums import Classification, FailureKind
from recdapp.core.errors import (
    DecodeError,
    NetworkMismatch,
    NotConnectedError,
    ParseFailure,
    ProductionFailed,
    ProviderRpcError,
    RecDappError,
    StaleSessionError,
    TransactionFailed,
    UploadFailure,
    UserCancelled,
)

# EIP-1193 code for "user rejected the request"
USER_REJECTION_CODE = 4001

_KIND_MAP: list[tuple[type[BaseException], FailureKind]] = [
    (UserCancelled, FailureKind.USER_CANCELLED),
    (ProductionFailed, FailureKind.PRODUCTION_FAILED),
    (TransactionFailed, FailureKind.TRANSACTION_FAILED),
    (NetworkMismatch, FailureKind.NETWORK_ERROR),
    (UploadFailure, FailureKind.UPLOAD_FAILURE),
    (ParseFailure, FailureKind.PARSE_FAILURE),
    (DecodeError, FailureKind.PARSE_FAILURE),
    (StaleSessionError, FailureKind.STALE_SESSION),
    (NotConnectedError, FailureKind.NOT_CONNECTED),
]


def _code_from_payload(payload: Any) -> Any:
    if isinstance(payload, dict):
        if "code" in payload:
            return payload["code"]
        if isinstance(payload.get("error"), dict):
            return payload["error"].get("code")
    return None


def error_code(exc: BaseException) -> int | None:
    """Best-effort extraction of the JSON-RPC code carried by *exc*.

    Looks at ``exc.code``, then an ``rpc_response`` payload, then a dict
    passed as the first exception argument, then the chained cause.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        code = getattr(current, "code", None)
        if code is None:
            code = _code_from_payload(getattr(current, "rpc_response", None))
        if code is None and current.args:
            code = _code_from_payload(current.args[0])
        if code is not None:
            try:
                return int(code)
            except (TypeError, ValueError):
                return None
        current = current.__cause__
    return None


def classify(exc: BaseException) -> Classification:
    """``CANCELLED`` for user rejection, ``FATAL`` for anything else.

    Domain errors other than ``ProviderRpcError`` are always ``FATAL``,
    even when their cause was a rejection: a refused network switch
    surfaces as ``NetworkError``.
    """
    if isinstance(exc, UserCancelled):
        return Classification.CANCELLED
    if isinstance(exc, RecDappError) and not isinstance(exc, ProviderRpcError):
        return Classification.FATAL
    if error_code(exc) == USER_REJECTION_CODE:
        return Classification.CANCELLED
    return Classification.FATAL


def failure_kind(exc: BaseException) -> FailureKind:
    """Map *exc* onto the ``FailureKind`` taxonomy."""
    if classify(exc) == Classification.CANCELLED:
        return FailureKind.USER_CANCELLED
    for exc_type, kind in _KIND_MAP:
        if isinstance(exc, exc_type):
            return kind
    return FailureKind.UNCLASSIFIED
