#!/usr/bin/env python3
"""
validate_catalog.py

Read-only consistency check of the catalog:
  - index ids without a {id}.json / {id}.full.json pair
  - record pairs on disk that the index does not list
  - duplicate ids in the index
  - thumbnails/images that point at missing files

Exit code 0 when clean, 1 otherwise. --json prints the report as JSON.
"""

from __future__ import annotations

# ruff: noqa: E402
import argparse
import json
import pathlib
import sys
from typing import Dict, List

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from admin.app.errors import CatalogError
from admin.app.services import item_storage as store
from admin.app.services.catalog import check_index, list_ids
from admin.app.utils.paths import CatalogPaths, get_paths


def missing_assets(paths: CatalogPaths) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for item_id in list_ids(paths):
        try:
            item = store.read_item(item_id, paths=paths)
        except CatalogError:
            continue
        refs = list(item.get("images") or [])
        if item.get("thumbnail"):
            refs.append(item["thumbnail"])
        gone = []
        for ref in refs:
            fp = paths.local_image_file(ref)
            if fp is None or not fp.is_file():
                gone.append(ref)
        if gone:
            out[item_id] = gone
    return out


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Check catalog index/record/image consistency")
    ap.add_argument("--root", help="site root containing docs/ (default: configured paths)")
    ap.add_argument("--json", action="store_true", help="print the report as JSON")
    args = ap.parse_args(argv)

    paths = CatalogPaths.under(args.root) if args.root else get_paths()
    try:
        report = check_index(paths)
        assets = missing_assets(paths)
    except ValueError as e:
        print(f"[validate] {e}")
        return 1

    if args.json:
        print(
            json.dumps(
                {
                    "ok": report.ok and not assets,
                    "missing_records": report.missing_records,
                    "unindexed_records": report.unindexed_records,
                    "duplicates": report.duplicates,
                    "missing_assets": assets,
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    else:
        for item_id in report.missing_records:
            print(f"  index lists {item_id} but its record pair is missing")
        for item_id in report.unindexed_records:
            print(f"  {item_id} has records but is not in the index")
        for item_id in report.duplicates:
            print(f"  {item_id} appears more than once in the index")
        for item_id, refs in assets.items():
            print(f"  {item_id} references missing files: {', '.join(refs)}")
        print("[validate] ok" if report.ok and not assets else "[validate] problems found")

    return 0 if report.ok and not assets else 1


if __name__ == "__main__":
    sys.exit(main())
