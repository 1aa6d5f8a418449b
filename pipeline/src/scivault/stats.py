#!/usr/bin/env python3
"""
Statistics about PDFs published to the network.

Default mode pages through every published PDF, saves the last cursor of
each 1000-object page to ``index/cursor_map.json`` and prints totals.
``--publish`` additionally uploads a statistics record so later runs can
start from it; ``--since-latest`` reads the newest statistics record and
counts objects after its cursor instead of walking the whole index.

Usage:
    python -m scivault.stats
    python -m scivault.stats --publish
    python -m scivault.stats --since-latest
"""

import argparse
import json
import sys
from datetime import datetime, timezone

import requests

from scivault.config import (
    METADATA_CONTENT_TYPE,
    PDF_CONTENT_TYPE,
    PipelineConfig,
    ensure_directories,
    load_config,
)
from scivault.publish import index_from_config, uploader_from_config
from scivault.storage import Receipt, StorageError, StorageIndex, StorageUploader
from scivault.storage.index import build_transactions_query, tag_value
from scivault.utils import save_json

CURSOR_PAGE_SIZE = 1000
MAX_INCREMENTAL_PAGES = 50
STATISTICS_TYPE = "statistics"


def pdf_filter(config: PipelineConfig) -> dict[str, str]:
    return dict(config.base_tags(PDF_CONTENT_TYPE))


def statistics_filter(config: PipelineConfig) -> dict[str, str]:
    tags = dict(config.base_tags(METADATA_CONTENT_TYPE))
    tags["type"] = STATISTICS_TYPE
    return tags


def collect_cursors(index: StorageIndex, config: PipelineConfig) -> tuple[list[str], int]:
    """Walk every published PDF, newest first.

    Returns:
        ``(cursors, pages)``: every edge cursor in index order and the number
        of GraphQL pages read.
    """
    cursors: list[str] = []
    pages = 0
    for edges in index.iter_transactions(pdf_filter(config), page_size=CURSOR_PAGE_SIZE):
        pages += 1
        cursors.extend(edge["cursor"] for edge in edges if edge.get("cursor"))
        print(f"✓ Page {pages}: {len(edges)} cursors")
    return cursors, pages


def build_cursor_map(cursors: list[str], page_size: int = CURSOR_PAGE_SIZE) -> dict[str, str]:
    """Map page number (1-based, as a string) to the last cursor on that page."""
    return {
        str(i // page_size + 1): cursors[min(i + page_size, len(cursors)) - 1]
        for i in range(0, len(cursors), page_size)
    }


def publish_statistics(
    uploader: StorageUploader, cursors: list[str], pages: int, config: PipelineConfig
) -> Receipt:
    """Upload a statistics record pointing at the newest cursor."""
    record = {
        "totalPages": pages,
        "totalCount": len(cursors),
        "latestCursor": cursors[0],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    tags = config.base_tags(METADATA_CONTENT_TYPE) + [
        ("count", str(len(cursors))),
        ("pages", str(pages)),
        ("type", STATISTICS_TYPE),
    ]
    return uploader.upload(json.dumps(record).encode("utf-8"), tags)


def latest_statistics(index: StorageIndex, config: PipelineConfig) -> dict | None:
    """Newest statistics record as ``{latestCursor, totalCount}``, or None."""
    query = build_transactions_query(statistics_filter(config), first=1, order="DESC")
    edges = (index.query(query).get("transactions") or {}).get("edges") or []
    if not edges:
        print("✗ No statistics record found")
        return None

    body = index.fetch_json(edges[0]["node"]["id"])
    # Older records nest the fields under "root"
    root = body.get("root") or body
    latest_cursor = root.get("latestCursor")
    if not latest_cursor:
        print("✗ Statistics record has no latestCursor")
        return None
    return {"latestCursor": latest_cursor, "totalCount": int(root.get("totalCount") or 0)}


def count_from_cursor(
    index: StorageIndex,
    config: PipelineConfig,
    cursor: str,
    max_pages: int = MAX_INCREMENTAL_PAGES,
) -> dict:
    """Count PDFs and unique DOIs paged after *cursor*."""
    dois: set[str] = set()
    files = 0
    for page_number, edges in enumerate(
        index.iter_transactions(
            pdf_filter(config),
            page_size=CURSOR_PAGE_SIZE,
            after=cursor,
            with_tags=True,
            max_pages=max_pages,
        ),
        start=1,
    ):
        files += len(edges)
        for edge in edges:
            doi = tag_value(edge.get("node") or {}, "doi")
            if doi:
                dois.add(doi)
        print(f"📄 Page {page_number}: {len(edges)} files, {len(dois)} unique DOIs so far")
    return {"new_dois": len(dois), "new_files": files}


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Statistics about published PDFs")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--publish", action="store_true", help="Upload a statistics record")
    mode.add_argument(
        "--since-latest",
        action="store_true",
        help="Count PDFs after the newest statistics record instead of walking everything",
    )
    args = parser.parse_args(argv)

    config = load_config()
    ensure_directories(config)
    index = index_from_config(config, requests.Session())

    try:
        if args.since_latest:
            stats = latest_statistics(index, config)
            if stats is None:
                sys.exit(1)
            counts = count_from_cursor(index, config, stats["latestCursor"])
            print("\n" + "=" * 40)
            print(f"Previous total:  {stats['totalCount']}")
            print(f"New files:       {counts['new_files']}")
            print(f"New unique DOIs: {counts['new_dois']}")
            print(f"Running total:   {stats['totalCount'] + counts['new_files']}")
            print("=" * 40)
            return

        cursors, pages = collect_cursors(index, config)
    except (requests.RequestException, StorageError) as exc:
        print(f"✗ Index query failed: {exc}", file=sys.stderr)
        sys.exit(1)

    if not cursors:
        print("No PDF transactions found")
        return

    cursor_map_path = config.index_dir / "cursor_map.json"
    save_json(build_cursor_map(cursors), cursor_map_path)
    print(f"\n✓ {len(cursors)} cursors across {pages} pages, saved to {cursor_map_path}")

    if args.publish:
        uploader = uploader_from_config(config)
        try:
            receipt = publish_statistics(uploader, cursors, pages, config)
        except StorageError as exc:
            print(f"✗ Statistics upload failed: {exc}", file=sys.stderr)
            sys.exit(1)
        print(f"✓ Statistics uploaded: {receipt.id}")


if __name__ == "__main__":
    main()
