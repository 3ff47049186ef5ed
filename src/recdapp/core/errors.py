"""Custom exception hierarchy for the product registry client."""

from __future__ import annotations


class RecDappError(Exception):
    """Base exception for all client errors."""


# --- Configuration ---
class ConfigError(RecDappError):
    """Invalid or missing configuration."""


# --- Wallet / network ---
class WalletError(RecDappError):
    """Wallet provider communication error."""


class NoWalletError(WalletError):
    """No wallet provider is available, or it exposes no account."""


class NotConnectedError(WalletError):
    """Operation attempted without an established session."""


class NetworkMismatch(WalletError):
    """Active network differs from the required network."""

    def __init__(self, required: int, actual: int | None, message: str = ""):
        self.required = required
        self.actual = actual
        super().__init__(
            message or f"Wallet is on network {actual}, {required} is required"
        )


class NetworkError(NetworkMismatch):
    """Network switch was refused or did not take effect."""


class ProviderRpcError(WalletError):
    """JSON-RPC error returned by the wallet provider."""

    def __init__(self, code: int | None, message: str = "", data: object = None):
        self.code = code
        self.data = data
        super().__init__(f"[{code}] {message}" if code is not None else message)


# --- Registry ---
class RegistryError(RecDappError):
    """Registry call failure."""


class ProductionFailed(RegistryError):
    """Creation receipt reported failure status."""


class TransactionFailed(RegistryError):
    """A non-creation write receipt reported failure status."""

    def __init__(self, operation: str, tx_hash: str = ""):
        self.operation = operation
        self.tx_hash = tx_hash
        super().__init__(f"{operation} transaction failed {tx_hash}".rstrip())


# --- Storage ---
class UploadFailure(RecDappError):
    """Content storage service rejected or failed the upload."""


# --- Decoding ---
class DecodeError(RecDappError):
    """Registry or user-supplied value could not be decoded."""


class ParseFailure(DecodeError):
    """Malformed text input (address-list literal, type index, ...)."""


class AddressDecodeError(DecodeError):
    """Value is not a canonical 20-byte address."""


# --- Session / cancellation ---
class UserCancelled(RecDappError):
    """User declined the wallet signature prompt."""


class StaleSessionError(RecDappError):
    """Session was replaced while an operation was in flight."""

    def __init__(self, started: int, current: int):
        self.started = started
        self.current = current
        super().__init__(
            f"Session generation changed from {started} to {current}"
        )
