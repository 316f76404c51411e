from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    # Local validation
    INVALID_KEY = "E4001"
    INVALID_ID = "E4002"
    INVALID_IDENTIFIER = "E4003"
    CONFLICT = "E4090"

    # Persistence
    MAPPING_STORE_ERROR = "E5001"
    SUPABASE_NOT_CONFIGURED = "E5030"


class MigrationError(Exception):
    """Base error for the migration tooling."""

    code: ErrorCode = ErrorCode.MAPPING_STORE_ERROR


class InvalidKeyError(MigrationError, ValueError):
    """Entity kind tag is not one of the recognized kinds."""

    code = ErrorCode.INVALID_KEY


class InvalidIdError(MigrationError, ValueError):
    """Legacy id is not a positive integer."""

    code = ErrorCode.INVALID_ID


class InvalidIdentifierError(MigrationError, ValueError):
    """Value is not a canonical derived identifier string."""

    code = ErrorCode.INVALID_IDENTIFIER


class ConflictError(MigrationError):
    """A mapping already exists for the key with a different identifier."""

    code = ErrorCode.CONFLICT

    def __init__(self, kind: str, original_id: int, existing: str, proposed: str):
        self.kind = kind
        self.original_id = original_id
        self.existing = existing
        self.proposed = proposed
        super().__init__(
            f"{kind} {original_id} is already mapped to {existing}, refusing remap to {proposed}"
        )


class MappingStoreError(MigrationError):
    """Supabase read/write of persisted id mappings failed."""

    code = ErrorCode.MAPPING_STORE_ERROR


class SupabaseNotConfiguredError(MappingStoreError):
    code = ErrorCode.SUPABASE_NOT_CONFIGURED


def build_error_payload(
    *,
    code: ErrorCode,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Canonical error shape for CLI output.

    `error` and `message` carry the same string so log scrapers can use either.
    """
    payload: Dict[str, Any] = {"code": code.value, "error": str(message), "message": str(message)}
    if details is not None:
        payload["details"] = details
    return payload


def error_payload_for(exc: BaseException) -> Dict[str, Any]:
    code = getattr(exc, "code", None)
    if not isinstance(code, ErrorCode):
        code = ErrorCode.MAPPING_STORE_ERROR
    details: Optional[Dict[str, Any]] = None
    if isinstance(exc, ConflictError):
        details = {
            "kind": exc.kind,
            "original_id": exc.original_id,
            "existing": exc.existing,
            "proposed": exc.proposed,
        }
    return build_error_payload(code=code, message=str(exc), details=details)
