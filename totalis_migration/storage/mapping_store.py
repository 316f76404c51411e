"""
Persisted id mappings in the Supabase `id_mappings` table.

Table shape (migrations/0001_id_mappings.up.sql):
    entity_type TEXT, original_id INTEGER, uuid_id UUID, created_at TIMESTAMPTZ
    UNIQUE(entity_type, original_id)

The registry stays the source of truth during a run; this store only
saves it after a run and seeds a new registry from it before the next one.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from totalis_migration.core.id_registry import IdentifierMapRegistry
from totalis_migration.core.identifiers import (
    DEFAULT_SALT,
    EntityKind,
    KindLike,
    derive,
    parse_kind,
)
from totalis_migration.utils.errors import MappingStoreError, MigrationError
from totalis_migration.utils.settings import get_settings

logger = logging.getLogger(__name__)

_COLUMNS = "entity_type,original_id,uuid_id"
_PAGE_SIZE = 1000

# Migrated rows live here with the derived identifier as primary key `id`.
TARGET_TABLES: Dict[EntityKind, str] = {
    EntityKind.COACH: "coaches",
    EntityKind.CATEGORY: "categories",
}


@dataclass
class MappingValidation:
    rows_checked: int = 0
    duplicate_uuids: List[str] = field(default_factory=list)
    drifted: List[Dict[str, Any]] = field(default_factory=list)
    invalid_rows: List[Dict[str, Any]] = field(default_factory=list)
    orphaned: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not (self.duplicate_uuids or self.drifted or self.invalid_rows or self.orphaned)

    @property
    def issues(self) -> List[str]:
        out: List[str] = []
        if self.duplicate_uuids:
            out.append(f"Found {len(self.duplicate_uuids)} duplicate UUIDs in mappings")
        if self.drifted:
            out.append(
                f"Found {len(self.drifted)} mappings that differ from derived identifiers (salt changed?)"
            )
        if self.invalid_rows:
            out.append(f"Found {len(self.invalid_rows)} malformed mapping rows")
        for kind in EntityKind:
            n = sum(1 for r in self.orphaned if r.get("entity_type") == kind.value)
            if n:
                out.append(f"Found {n} orphaned {kind.value} mappings")
        return out


class MappingStore:
    def __init__(self, client: Any, *, table: Optional[str] = None, batch_size: Optional[int] = None):
        settings = get_settings()
        self.client = client
        self.table = table or settings.id_mappings_table
        self.batch_size = max(1, int(batch_size or settings.mapping_batch_size))

    def _table(self):
        return self.client.table(self.table)

    def _paged(
        self,
        table: str,
        columns: str,
        order_by: Sequence[str],
        *,
        filters: Sequence[Tuple[str, Any]] = (),
    ) -> Iterator[Dict[str, Any]]:
        # `order_by` must be unique per row, otherwise .range() pages may overlap or skip.
        start = 0
        while True:
            try:
                q = self.client.table(table).select(columns)
                for key, value in filters:
                    q = q.eq(key, value)
                for key in order_by:
                    q = q.order(key)
                resp = q.range(start, start + _PAGE_SIZE - 1).execute()
            except Exception as e:
                raise MappingStoreError(f"{table}.select failed: {e}") from e
            rows = getattr(resp, "data", None) or []
            for row in rows:
                if isinstance(row, dict):
                    yield row
            if len(rows) < _PAGE_SIZE:
                return
            start += _PAGE_SIZE

    def _iter_rows(self, kind: Optional[EntityKind] = None) -> Iterator[Dict[str, Any]]:
        if kind is None:
            return self._paged(self.table, _COLUMNS, ("entity_type", "original_id"))
        return self._paged(
            self.table, _COLUMNS, ("original_id",), filters=(("entity_type", kind.value),)
        )

    def _target_ids(self, kind: EntityKind) -> Set[str]:
        table = TARGET_TABLES[kind]
        return {str(row.get("id") or "").lower() for row in self._paged(table, "id", ("id",))}

    def store(self, registry: IdentifierMapRegistry, kind: KindLike) -> int:
        """Upsert every registry entry for `kind`. Returns rows written."""
        k = parse_kind(kind)
        rows = registry.export_rows(k)
        written = 0
        for i in range(0, len(rows), self.batch_size):
            batch = rows[i : i + self.batch_size]
            try:
                self._table().upsert(batch, on_conflict="entity_type,original_id").execute()
            except Exception as e:
                raise MappingStoreError(
                    f"{self.table}.upsert failed for {k.value} batch at offset {i}: {e}"
                ) from e
            written += len(batch)
        logger.info("stored id mappings kind=%s rows=%s table=%s", k.value, written, self.table)
        return written

    def load_into(self, registry: IdentifierMapRegistry, kind: KindLike) -> int:
        """
        Seed `registry` from persisted rows of `kind`. Returns entries added.
        ConflictError propagates if a persisted row contradicts the registry.
        """
        k = parse_kind(kind)
        before = registry.count(k)
        for row in self._iter_rows(k):
            registry.register(k, row.get("original_id"), row.get("uuid_id"))
        added = registry.count(k) - before
        logger.info("loaded id mappings kind=%s new=%s", k.value, added)
        return added

    def stats(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for kind in EntityKind:
            try:
                resp = (
                    self._table()
                    .select("original_id", count="exact")
                    .eq("entity_type", kind.value)
                    .limit(1)
                    .execute()
                )
            except Exception as e:
                raise MappingStoreError(f"{self.table} count failed: {e}") from e
            out[kind.value] = int(getattr(resp, "count", None) or 0)
        return out

    def validate(self, *, salt: str = DEFAULT_SALT, check_orphans: bool = True) -> MappingValidation:
        """
        Check persisted rows for duplicate UUIDs, drift from fresh derivation,
        and (with `check_orphans`) mappings whose uuid_id has no row in the
        coaches/categories table.
        """
        result = MappingValidation()
        uuid_counts: Counter[str] = Counter()
        target_ids: Dict[EntityKind, Set[str]] = {}
        for row in self._iter_rows():
            result.rows_checked += 1
            uuid_id = str(row.get("uuid_id") or "").lower()
            uuid_counts[uuid_id] += 1
            try:
                kind = parse_kind(row.get("entity_type"))
                expected = derive(kind, row.get("original_id"), salt=salt)
            except MigrationError as e:
                result.invalid_rows.append({**row, "error": str(e)})
                continue
            if uuid_id != expected:
                result.drifted.append({**row, "expected": expected})
            if check_orphans:
                if kind not in target_ids:
                    target_ids[kind] = self._target_ids(kind)
                if uuid_id not in target_ids[kind]:
                    result.orphaned.append(dict(row))
        result.duplicate_uuids = sorted(u for u, n in uuid_counts.items() if n > 1)
        if not result.valid:
            logger.warning("id mapping validation failed: %s", "; ".join(result.issues))
        return result
