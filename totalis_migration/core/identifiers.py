"""
Deterministic identifiers for migrated legacy rows.

Legacy production rows are keyed by integer ids; Supabase tables use UUID
primary keys. Every migrated row gets a UUID derived from
(salt, entity kind, legacy id) so that re-running the migration (or
migrating dependent rows in a later run) produces the same foreign keys.

Derivation:
    seed   = f"{salt}-{kind}-{original_id}"
    digest = sha256(seed.encode("utf-8"))[:16]
    uuid   = digest with version nibble 4 and RFC-4122 variant bits

Compatibility hazard: the salt and the "-" delimiter are part of every
identifier already written to Supabase. Changing either silently breaks
referential integrity with previously migrated data.

The result looks like a v4 UUID but is not random; two distinct keys only
collide with truncated SHA-256 probability, which is accepted rather than
checked.
"""

from __future__ import annotations

import hashlib
import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from totalis_migration.utils.errors import InvalidIdError, InvalidIdentifierError, InvalidKeyError

DEFAULT_SALT = "totalis"
SEED_DELIMITER = "-"

IDENTIFIER_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$"
)


class EntityKind(str, Enum):
    COACH = "coach"
    CATEGORY = "category"


KindLike = Union[EntityKind, str]

# (kind, original_id) -> identifier with DEFAULT_SALT.
# Other implementations of this scheme must reproduce these exactly.
REFERENCE_VECTORS: dict[tuple[str, int], str] = {
    ("coach", 1): "0d33d926-1ff8-45a4-8e96-bc45b919a131",
    ("coach", 18): "b08a21b6-78cc-41c5-8e3d-601a55cd9e9f",
    ("category", 7): "1c3c6f87-b3b6-4b8d-b9d9-d97f227cd142",
    ("category", 18): "4a7c9ab4-0019-414e-a1d2-977dd57122bc",
}


def parse_kind(kind: Any) -> EntityKind:
    if isinstance(kind, EntityKind):
        return kind
    if isinstance(kind, str):
        try:
            return EntityKind(kind)
        except ValueError:
            pass
    allowed = ", ".join(k.value for k in EntityKind)
    raise InvalidKeyError(f"unrecognized entity kind {kind!r} (expected one of: {allowed})")


def validate_original_id(original_id: Any) -> int:
    # bool is an int subclass; True would silently become legacy id 1.
    if isinstance(original_id, bool) or not isinstance(original_id, int):
        raise InvalidIdError(f"legacy id must be an integer, got {original_id!r}")
    if original_id <= 0:
        raise InvalidIdError(f"legacy id must be positive, got {original_id}")
    return original_id


@dataclass(frozen=True)
class LegacyKey:
    kind: EntityKind
    original_id: int

    @classmethod
    def of(cls, kind: KindLike, original_id: int) -> "LegacyKey":
        return cls(kind=parse_kind(kind), original_id=validate_original_id(original_id))

    def seed(self, salt: str = DEFAULT_SALT) -> str:
        return SEED_DELIMITER.join((salt, self.kind.value, str(self.original_id)))


def derive_for_key(key: LegacyKey, *, salt: str = DEFAULT_SALT) -> str:
    digest = hashlib.sha256(key.seed(salt).encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest[:16], version=4))


def derive(kind: KindLike, original_id: int, *, salt: str = DEFAULT_SALT) -> str:
    """
    Derived identifier for a legacy (kind, id).

    Raises InvalidKeyError for an unknown kind and InvalidIdError for a
    non-positive or non-integer id.
    """
    return derive_for_key(LegacyKey.of(kind, original_id), salt=salt)


def coach_uuid(original_id: int, *, salt: str = DEFAULT_SALT) -> str:
    return derive(EntityKind.COACH, original_id, salt=salt)


def category_uuid(original_id: int, *, salt: str = DEFAULT_SALT) -> str:
    return derive(EntityKind.CATEGORY, original_id, salt=salt)


def is_derived_identifier(value: Any) -> bool:
    return isinstance(value, str) and IDENTIFIER_RE.match(value) is not None


def normalize_identifier(value: Any) -> str:
    """Lowercase/strip a stored identifier and check it has the derived shape."""
    s = str(value or "").strip().lower()
    if not is_derived_identifier(s):
        raise InvalidIdentifierError(f"not a derived identifier: {value!r}")
    return s
