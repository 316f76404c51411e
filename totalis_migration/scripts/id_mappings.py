#!/usr/bin/env python3
"""
Derive, export and persist legacy id -> UUID mappings.

Usage:
    python -m totalis_migration.scripts.id_mappings derive coach 18 19
    python -m totalis_migration.scripts.id_mappings export category 1 2 3 --json
    python -m totalis_migration.scripts.id_mappings push coach 1 2 3
    python -m totalis_migration.scripts.id_mappings verify
    python -m totalis_migration.scripts.id_mappings probe-photo 18 0 42
    python -m totalis_migration.scripts.id_mappings probe-icon 100 101
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Add repository root to path so `import totalis_migration` works when executed as a file.
sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from totalis_migration.core.id_registry import IdentifierMapRegistry
from totalis_migration.core.identifiers import EntityKind
from totalis_migration.storage.mapping_store import MappingStore
from totalis_migration.utils.errors import MigrationError, error_payload_for
from totalis_migration.utils.logging_setup import (
    configure_logging,
    setup_file_logging,
    silence_noisy_loggers,
)
from totalis_migration.utils.settings import get_settings
from totalis_migration.utils.supabase_client import get_supabase_client
from totalis_migration.utils.url_probe import (
    category_icon_candidates,
    coach_photo_candidates,
    first_reachable,
)

logger = logging.getLogger("totalis_migration.scripts.id_mappings")

_KINDS = [k.value for k in EntityKind]


def _registry_for(kind: str, ids: List[int]) -> IdentifierMapRegistry:
    registry = IdentifierMapRegistry(salt=get_settings().id_salt)
    registry.populate_from_keys(kind, ids)
    return registry


def cmd_derive(args: argparse.Namespace) -> int:
    registry = _registry_for(args.kind, args.ids)
    # Input order, not sorted: mirrors what was typed.
    for original_id in args.ids:
        print(f"{args.kind}\t{original_id}\t{registry.lookup(args.kind, original_id)}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    registry = _registry_for(args.kind, args.ids)
    if args.json:
        print(json.dumps(registry.export_rows(args.kind), ensure_ascii=False, indent=2))
        return 0
    for original_id, identifier in registry.export_all(args.kind):
        print(f"{original_id}\t{identifier}")
    return 0


def cmd_push(args: argparse.Namespace) -> int:
    store = MappingStore(get_supabase_client())
    registry = IdentifierMapRegistry(salt=get_settings().id_salt)
    loaded = store.load_into(registry, args.kind)
    created = registry.populate_from_keys(args.kind, args.ids)
    written = store.store(registry, args.kind)
    print(f"[push] {args.kind}: loaded={loaded} new={created} written={written}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:  # noqa: ARG001
    store = MappingStore(get_supabase_client())
    for kind, n in store.stats().items():
        print(f"[verify] {kind}: {n} mappings")
    result = store.validate(salt=get_settings().id_salt)
    if result.valid:
        print(f"[OK ] {result.rows_checked} rows consistent")
        return 0
    for issue in result.issues:
        print(f"[FAIL] {issue}")
    return 1


def _probe(candidates: List[str]) -> int:
    url = first_reachable(candidates, timeout_seconds=get_settings().probe_timeout_seconds)
    if url is None:
        print(f"[probe] no accessible image among {len(candidates)} candidates")
        return 1
    print(url)
    return 0


def cmd_probe_photo(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not settings.supabase_url:
        print("[probe] SUPABASE_URL is not set", file=sys.stderr)
        return 2
    return _probe(
        coach_photo_candidates(
            args.image_ids,
            base_url=settings.supabase_url,
            bucket=settings.coach_images_bucket,
        )
    )


def cmd_probe_icon(args: argparse.Namespace) -> int:
    settings = get_settings()
    if not settings.supabase_url:
        print("[probe] SUPABASE_URL is not set", file=sys.stderr)
        return 2
    return _probe(
        category_icon_candidates(
            args.icon_ids,
            base_url=settings.supabase_url,
            bucket=settings.category_icons_bucket,
        )
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Legacy id -> UUID mapping tools")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p = sub.add_parser("derive", help="print derived UUIDs")
    p.add_argument("kind", choices=_KINDS)
    p.add_argument("ids", nargs="+", type=int)
    p.set_defaults(func=cmd_derive)

    p = sub.add_parser("export", help="print mappings sorted by legacy id")
    p.add_argument("kind", choices=_KINDS)
    p.add_argument("ids", nargs="+", type=int)
    p.add_argument("--json", action="store_true", help="id_mappings rows as JSON")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("push", help="upsert mappings into Supabase")
    p.add_argument("kind", choices=_KINDS)
    p.add_argument("ids", nargs="+", type=int)
    p.set_defaults(func=cmd_push)

    p = sub.add_parser("verify", help="check persisted mappings")
    p.set_defaults(func=cmd_verify)

    p = sub.add_parser("probe-photo", help="first reachable migrated coach photo")
    p.add_argument("image_ids", nargs="+", type=int)
    p.set_defaults(func=cmd_probe_photo)

    p = sub.add_parser("probe-icon", help="first reachable migrated category icon")
    p.add_argument("icon_ids", nargs="+", type=int)
    p.set_defaults(func=cmd_probe_icon)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    level = configure_logging(settings.log_level)
    silence_noisy_loggers()
    if settings.log_to_file:
        setup_file_logging(log_file_path=settings.log_file_path, level=level)

    try:
        return int(args.func(args))
    except MigrationError as e:
        logger.error("%s failed: %s", args.cmd, e)
        print(json.dumps(error_payload_for(e), ensure_ascii=False), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
