"""Enumerations used across the product registry client."""

from enum import Enum


class ProductType(str, Enum):
    PLASTIC = "plastic"
    CAN = "can"
    GLASS = "glass"
    CARDBOARD = "cardboard"
    UNKNOWN = "unknown"  # Index not (yet) mapped client-side


class ProductState(str, Enum):
    USABLE = "usable"
    PENDING_RECYCLE = "pendingRecycle"
    UNKNOWN = "unknown"


class Classification(str, Enum):
    """How a failed operation propagates to the caller."""

    NONE = "none"  # No failure
    CANCELLED = "cancelled"  # User refused to sign; suppressed
    FATAL = "fatal"  # Logged once at the operation boundary


class FailureKind(str, Enum):
    USER_CANCELLED = "user_cancelled"
    PRODUCTION_FAILED = "production_failed"
    TRANSACTION_FAILED = "transaction_failed"
    NETWORK_ERROR = "network_error"
    UPLOAD_FAILURE = "upload_failure"
    PARSE_FAILURE = "parse_failure"
    STALE_SESSION = "stale_session"
    NOT_CONNECTED = "not_connected"
    UNCLASSIFIED = "unclassified"


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"
