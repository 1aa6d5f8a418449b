#!/usr/bin/env python3
"""
Search published paper metadata from the command line.

The first run (or ``--refresh``) downloads every published metadata record
into ``index/papers.json``; searches then run against that local copy.

Usage:
    python -m scivault.search --field title --query "graph neural"
    python -m scivault.search --field doi --query 10.1016 --refresh --limit 500
"""

import argparse
import sys
from pathlib import Path

import requests

from scivault.config import METADATA_CONTENT_TYPE, PipelineConfig, ensure_directories, load_config
from scivault.publish import index_from_config
from scivault.stats import STATISTICS_TYPE
from scivault.storage import StorageError, StorageIndex
from scivault.storage.index import tag_value
from scivault.utils import load_json, save_json

SEARCH_FIELDS = ("doi", "title", "authors")
INDEX_PAGE_SIZE = 100


def local_index_path(config: PipelineConfig) -> Path:
    return config.index_dir / "papers.json"


def build_index(index: StorageIndex, config: PipelineConfig, limit: int | None = None) -> list[dict]:
    """Download published metadata records, newest first.

    Records whose body cannot be fetched are skipped with a warning.
    """
    papers: list[dict] = []
    tags = dict(config.base_tags(METADATA_CONTENT_TYPE))
    for edges in index.iter_transactions(tags, page_size=INDEX_PAGE_SIZE, with_tags=True):
        for edge in edges:
            node = edge.get("node") or {}
            if tag_value(node, "type") == STATISTICS_TYPE:
                continue
            try:
                paper = index.fetch_json(node["id"])
            except (requests.RequestException, ValueError, KeyError) as exc:
                print(f"  ⚠️  Could not fetch {node.get('id')}: {exc}")
                continue
            if isinstance(paper, dict):
                papers.append(paper)
            if limit and len(papers) >= limit:
                return papers
        print(f"  Indexed {len(papers)} records...")
    return papers


def search_papers(papers: list[dict], field: str, query: str) -> list[dict]:
    """Case-insensitive substring match of *query* against *field*."""
    if field not in SEARCH_FIELDS:
        raise ValueError(f"Unknown search field: {field!r}")
    needle = query.lower()
    return [
        paper
        for paper in papers
        if isinstance(paper, dict) and needle in str(paper.get(field) or "").lower()
    ]


def format_paper(paper: dict) -> str:
    abstract = paper.get("abstract") or "No abstract available"
    if len(abstract) > 300:
        abstract = abstract[:300] + "..."
    return "\n".join(
        [
            paper.get("title") or "No title available",
            f"  Authors: {paper.get('authors') or 'No authors available'}",
            f"  DOI: {paper.get('doi') or 'No DOI available'}",
            f"  OpenAlex ID: {paper.get('aid') or 'No OpenAlex ID available'}",
            f"  {abstract}",
        ]
    )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Search published paper metadata")
    parser.add_argument("--field", choices=SEARCH_FIELDS, default="title", help="Field to match")
    parser.add_argument("--query", required=True, help="Text to look for (case-insensitive)")
    parser.add_argument("--refresh", action="store_true", help="Rebuild the local index first")
    parser.add_argument("--limit", type=int, help="Maximum records to index when refreshing")
    args = parser.parse_args(argv)

    config = load_config()
    ensure_directories(config)
    index_path = local_index_path(config)

    if args.refresh or not index_path.exists():
        print("Building local index from the network...")
        index = index_from_config(config, requests.Session())
        try:
            papers = build_index(index, config, args.limit)
        except (requests.RequestException, StorageError) as exc:
            print(f"✗ Could not load paper index: {exc}", file=sys.stderr)
            sys.exit(1)
        save_json(papers, index_path)
        print(f"✓ Indexed {len(papers)} records into {index_path}\n")
    else:
        papers = load_json(index_path)

    results = search_papers(papers, args.field, args.query)
    if not results:
        print("No matching papers found")
        return

    print(f"{len(results)} matching paper(s):\n")
    for paper in results:
        print(format_paper(paper))
        print()


if __name__ == "__main__":
    main()
