#!/usr/bin/env python3
"""
Tenant data maintenance: purge a tenant, purge old history, peek at sequences.

Reads the kernel configuration through asset_config.get_active_config();
--database-url overrides the configured URL for one run.

Usage:
    python3 -m scripts.tenant_data delete-tenant --tenant-id 7
    python3 -m scripts.tenant_data delete-tenant --tenant-id 7 --groups devices locations
    python3 -m scripts.tenant_data purge-history --before 2023-04-01
    python3 -m scripts.tenant_data purge-history --retention --tenant-id 7
    python3 -m scripts.tenant_data next-sequence --tenant-id 7 --kind asset_tag --category MO --year 24
"""

import argparse
import sys
from dataclasses import replace
from datetime import UTC, datetime

from asset_config import get_active_config
from asset_config.loader import log_level
from asset_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_config,
    reset_engine,
    session_scope,
)
from asset_kernel.db.immutability import register_immutability_listeners
from asset_kernel.domain.values import AssetKind, DeletionGroup, IdentifierKind
from asset_kernel.exceptions import AssetKernelError
from asset_kernel.logging_config import configure_logging
from asset_kernel.services.bulk_deletion import BulkDeletionOrchestrator
from asset_kernel.services.history_retention import HistoryRetentionService
from asset_kernel.services.identifier_allocator import IdentifierAllocator
from asset_kernel.services.retry_service import RetryPolicy


def _parse_before(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date or datetime: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tenant data maintenance for the asset kernel")
    parser.add_argument("--config", help="YAML configuration file (default: asset_config/sets/default.yaml)")
    parser.add_argument("--database-url", help="Override the configured database URL")
    parser.add_argument("--actor", default="cli", help="Actor id recorded in logs")
    sub = parser.add_subparsers(dest="command", required=True)

    delete = sub.add_parser("delete-tenant", help="Delete a tenant's inventory data")
    delete.add_argument("--tenant-id", type=int, required=True)
    delete.add_argument(
        "--groups",
        nargs="+",
        choices=[group.value for group in DeletionGroup],
        help="Delete only these groups (no verification sweep)",
    )

    purge = sub.add_parser("purge-history", help="Delete old change history")
    when = purge.add_mutually_exclusive_group(required=True)
    when.add_argument("--before", type=_parse_before, help="Delete entries modified before this date")
    when.add_argument("--retention", action="store_true", help="Use history.retention_days from config")
    purge.add_argument("--tenant-id", type=int)
    purge.add_argument("--kind", choices=[kind.value for kind in AssetKind])

    peek = sub.add_parser("next-sequence", help="Show the next free identifier number")
    peek.add_argument("--tenant-id", type=int, required=True)
    peek.add_argument("--kind", choices=[kind.value for kind in IdentifierKind], required=True)
    peek.add_argument("--category", required=True)
    peek.add_argument("--year")

    return parser


def _delete_tenant(args, config) -> int:
    orchestrator = BulkDeletionOrchestrator(
        get_session_factory(),
        retry_policy=RetryPolicy.from_config(config.retry),
    )
    if args.groups:
        summary = orchestrator.delete_tenant_selective(args.tenant_id, args.groups, actor_id=args.actor)
    else:
        summary = orchestrator.delete_tenant(args.tenant_id, actor_id=args.actor)

    print(f"Tenant {summary.tenant_id}: {summary.mode} deletion, {summary.attempts} attempt(s)")
    for table, rows in summary.deleted.items():
        print(f"  {table:<22} {rows}")
    print(f"Total rows deleted: {summary.total_deleted}")
    return 0


def _purge_history(args, config) -> int:
    kind = AssetKind(args.kind) if args.kind else None
    with session_scope() as session:
        service = HistoryRetentionService(session, retention_days=config.history.retention_days)
        if args.retention:
            if config.history.retention_days is None:
                print("history.retention_days is not set; nothing to purge.")
                return 0
            deleted = service.purge_expired(tenant_id=args.tenant_id)
        else:
            deleted = service.purge(args.before, kind=kind, tenant_id=args.tenant_id)
    print(f"Deleted {deleted} history entr{'y' if deleted == 1 else 'ies'}.")
    return 0


def _next_sequence(args, config) -> int:
    with session_scope() as session:
        number = IdentifierAllocator(session).next_sequence(
            args.tenant_id, args.kind, args.category, args.year
        )
    print(number)
    return 0


_COMMANDS = {
    "delete-tenant": _delete_tenant,
    "purge-history": _purge_history,
    "next-sequence": _next_sequence,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = get_active_config(args.config)
    except (OSError, KeyError, ValueError) as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        return 2
    if args.database_url:
        config = replace(config, database=replace(config.database, url=args.database_url))

    configure_logging(level=log_level(config.logging))
    init_engine_from_config(config.database)
    register_immutability_listeners()
    try:
        create_tables()
        return _COMMANDS[args.command](args, config)
    except AssetKernelError as exc:
        print(f"ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    finally:
        reset_engine()


if __name__ == "__main__":
    sys.exit(main())
