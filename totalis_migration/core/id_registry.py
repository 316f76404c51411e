"""
Per-run cache of legacy id -> derived identifier, one sub-mapping per entity kind.

A registry is created by the migration driver and passed to exporters and
transformers explicitly. It only grows: there is no delete, because rows
already written with an identifier must keep it for the rest of the run.

Not thread-safe. Parallel workers should each own a registry and the
driver combines them with `merge`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from totalis_migration.core.identifiers import (
    DEFAULT_SALT,
    EntityKind,
    KindLike,
    LegacyKey,
    derive_for_key,
    normalize_identifier,
    parse_kind,
)
from totalis_migration.utils.errors import ConflictError

logger = logging.getLogger(__name__)


class IdentifierMapRegistry:
    def __init__(self, *, salt: str = DEFAULT_SALT):
        self.salt = salt
        self._maps: Dict[EntityKind, Dict[int, str]] = {k: {} for k in EntityKind}

    def _bucket(self, kind: EntityKind) -> Dict[int, str]:
        return self._maps[kind]

    def resolve(self, kind: KindLike, original_id: int) -> str:
        """Cached identifier, deriving and storing it on first use."""
        key = LegacyKey.of(kind, original_id)
        bucket = self._bucket(key.kind)
        cached = bucket.get(key.original_id)
        if cached is not None:
            return cached
        identifier = derive_for_key(key, salt=self.salt)
        bucket[key.original_id] = identifier
        return identifier

    def register(self, kind: KindLike, original_id: int, identifier: str) -> None:
        """
        Seed an entry from a previously persisted mapping.

        Re-registering the same value is a no-op; a different value raises
        ConflictError and leaves the existing entry untouched.
        """
        key = LegacyKey.of(kind, original_id)
        value = normalize_identifier(identifier)
        bucket = self._bucket(key.kind)
        existing = bucket.get(key.original_id)
        if existing is None:
            bucket[key.original_id] = value
            return
        if existing != value:
            raise ConflictError(key.kind.value, key.original_id, existing, value)

    def has(self, kind: KindLike, original_id: int) -> bool:
        key = LegacyKey.of(kind, original_id)
        return key.original_id in self._bucket(key.kind)

    def lookup(self, kind: KindLike, original_id: int) -> Optional[str]:
        """Like `resolve` but never derives; None means not registered."""
        key = LegacyKey.of(kind, original_id)
        return self._bucket(key.kind).get(key.original_id)

    def populate_from_keys(self, kind: KindLike, original_ids: Iterable[int]) -> int:
        """Resolve every id in input order. Returns how many entries were new."""
        k = parse_kind(kind)
        bucket = self._bucket(k)
        before = len(bucket)
        seen = 0
        for original_id in original_ids:
            self.resolve(k, original_id)
            seen += 1
        created = len(bucket) - before
        logger.info(
            "id registry populated kind=%s ids=%s new=%s total=%s",
            k.value,
            seen,
            created,
            len(bucket),
        )
        return created

    def export_all(self, kind: KindLike) -> List[Tuple[int, str]]:
        """(original_id, identifier) pairs ascending by original_id."""
        return sorted(self._bucket(parse_kind(kind)).items())

    def export_rows(self, kind: KindLike) -> List[Dict[str, Any]]:
        """`export_all` shaped as id_mappings table rows."""
        k = parse_kind(kind)
        return [
            {"entity_type": k.value, "original_id": original_id, "uuid_id": identifier}
            for original_id, identifier in self.export_all(k)
        ]

    def count(self, kind: KindLike) -> int:
        return len(self._bucket(parse_kind(kind)))

    def merge(self, other: "IdentifierMapRegistry") -> int:
        """
        Fold another registry's entries into this one via `register`.
        Returns the number of entries added; contradictions raise ConflictError.
        """
        added = 0
        for kind in EntityKind:
            bucket = self._bucket(kind)
            for original_id, identifier in other.export_all(kind):
                if original_id not in bucket:
                    added += 1
                self.register(kind, original_id, identifier)
        logger.debug("id registry merged added=%s", added)
        return added

    def __len__(self) -> int:
        return sum(len(m) for m in self._maps.values())

    def __repr__(self) -> str:
        counts = ", ".join(f"{k.value}={len(m)}" for k, m in self._maps.items())
        return f"IdentifierMapRegistry({counts})"
