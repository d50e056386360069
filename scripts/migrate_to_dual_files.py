#!/usr/bin/env python3
"""
migrate_to_dual_files.py

Convert a catalog written by older tooling to the current layout:
  1) an object-shaped collections.json becomes a flat id array (backup kept)
  2) every single-file item {id}.json is split into {id}.json (light) and
     {id}.full.json (full, originalContent added as null when absent)

Idempotent: items whose .full.json already exists are skipped.

Run:
    python scripts/migrate_to_dual_files.py [--root DIR] [--dry-run]
"""

from __future__ import annotations

# ruff: noqa: E402
import argparse
import pathlib
import sys

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from admin.app.services.migration import flatten_index, migrate_to_dual_files
from admin.app.utils.paths import CatalogPaths, get_paths


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Migrate catalog items to the dual-file layout")
    ap.add_argument("--root", help="site root containing docs/ (default: configured paths)")
    ap.add_argument("--dry-run", action="store_true", help="report only, write nothing")
    args = ap.parse_args(argv)

    paths = CatalogPaths.under(args.root) if args.root else get_paths()
    if not paths.index_file.exists():
        print(f"[migrate] no index at {paths.index_file}")
        return 1

    try:
        if flatten_index(paths, dry_run=args.dry_run):
            print(f"[migrate] index flattened{' (dry run)' if args.dry_run else ''}")
        report = migrate_to_dual_files(paths, dry_run=args.dry_run)
    except ValueError as e:
        print(f"[migrate] {e}")
        return 1

    for item_id, err in report.errors.items():
        print(f"  failed {item_id}: {err}")
    print(
        f"[migrate] migrated={len(report.migrated)} "
        f"skipped={len(report.skipped)} failed={len(report.failed)}"
    )
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
