"""Cron entry point for purging stale staged uploads."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from datetime import datetime, timezone

from src.campaign_media.config import load_media_paths, load_staging_ttl_seconds
from src.campaign_media.media.staging_store import TempStagingStore


@dataclass(slots=True)
class SweepSummary:
    files_removed: int
    dry_run: bool


def perform_sweep(
    *,
    dry_run: bool,
    max_age_seconds: int | None = None,
    reference_time: datetime | None = None,
) -> SweepSummary:
    """Remove staged files left behind by crashed or killed workers."""
    store = TempStagingStore(root=load_media_paths().staging)
    ttl = max_age_seconds if max_age_seconds is not None else load_staging_ttl_seconds()
    now = reference_time or datetime.now(timezone.utc)

    if dry_run:
        return SweepSummary(files_removed=len(store.list_expired(ttl, now)), dry_run=True)
    return SweepSummary(files_removed=store.sweep_expired(ttl, now), dry_run=False)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Purge stale files from the upload staging area.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without deleting files.")
    parser.add_argument("--max-age", type=int, default=None, help="Override STAGING_TTL_SECONDS.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    try:
        summary = perform_sweep(dry_run=args.dry_run, max_age_seconds=args.max_age)
    except Exception as exc:
        print(f"staging sweep failed: {exc}", file=sys.stderr)
        return 2

    label = "staging sweep dry-run, files_expired" if summary.dry_run else "staging sweep done, files_removed"
    print(f"{label}={summary.files_removed}", file=sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
