#!/usr/bin/env python3
"""
Run a metrics sync from the command line.

Examples:
    python scripts/run_sync.py --tenant-id 3f2b...       # one tenant
    python scripts/run_sync.py --all                     # every tenant
    python scripts/run_sync.py --all --catch-up          # only PENDING/FAILED sources

Uses GOOGLE_SHEETS_ACCESS_TOKEN unless --token is given.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from perfsync.config import get_settings
from perfsync.connectors.google_sheets import GoogleSheetsClient
from perfsync.models.base import SessionLocal, init_db
from perfsync.models.data_source import SyncStatus
from perfsync.services.audit import AuditSink
from perfsync.services.metrics_store import MetricsStore
from perfsync.services.sync_service import SyncService, summarize


def print_header(text):
    print(f"\n{'='*70}")
    print(f"  {text}")
    print('='*70)


async def run(args) -> int:
    token = args.token or get_settings().google_sheets_access_token
    if not token:
        print("No access token: pass --token or set GOOGLE_SHEETS_ACCESS_TOKEN", file=sys.stderr)
        return 2

    init_db()
    db = SessionLocal()
    try:
        service = SyncService(MetricsStore(db), AuditSink(db), GoogleSheetsClient(access_token=token))

        if args.tenant_id:
            print_header(f"Syncing tenant {args.tenant_id}")
            results = [await service.sync_tenant(args.tenant_id)]
        else:
            statuses = (SyncStatus.PENDING, SyncStatus.FAILED) if args.catch_up else None
            print_header("Syncing all tenants" + (" (catch-up)" if args.catch_up else ""))
            results = await service.sync_all(statuses=statuses)
    finally:
        db.close()

    for result in results:
        mark = "OK  " if result.success else "FAIL"
        print(f"[{mark}] {result.tenant_id}: {result.rows_synced} rows in {result.duration_ms}ms")
        for error in result.errors:
            print(f"       - {error}")

    totals = summarize(results)
    print_header("Summary")
    print(json.dumps(totals, indent=2))
    return 0 if totals["total_errors"] == 0 else 1


def main():
    parser = argparse.ArgumentParser(description="Sync tenant metrics from Google Sheets")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--tenant-id", help="Sync a single tenant")
    target.add_argument("--all", action="store_true", help="Sync every tenant")
    parser.add_argument("--catch-up", action="store_true",
                        help="With --all, only tenants with PENDING or FAILED sources")
    parser.add_argument("--token", help="Google OAuth access token")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
