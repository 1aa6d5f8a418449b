#!/usr/bin/env python3
"""
Fetch DOI lists from the paginated catalogue API, one JSON file per page.

Pages already on disk are skipped without touching the network. The first
page that fails to fetch stops the whole range: later pages are never
attempted, so the set of pages on disk stays contiguous and a rerun resumes
where this one stopped.

Usage:
    python -m scivault.fetch_dois --start-page=1 --end-page=10
    python -m scivault.fetch_dois --resume --end-page=100
"""

import sys
import time

import requests

from scivault.config import PipelineConfig, ensure_directories, load_config
from scivault.utils import list_page_numbers, page_range_parser, parse_page_range, save_json


class CatalogueError(Exception):
    """Raised when a catalogue page cannot be fetched or is malformed."""


def fetch_doi_page(page: int, config: PipelineConfig, session: requests.Session) -> bool:
    """Fetch one catalogue page unless it is already on disk.

    Returns:
        True if the page was fetched, False if an existing file was kept.

    Raises:
        CatalogueError: On network failure, HTTP error, or a response
            without a ``dois`` array.
    """
    file_path = config.doi_page_path(page)
    if file_path.exists():
        print(f"✓ Page {page} already exists, skipping")
        return False

    print(f"Fetching page {page}...")
    try:
        response = session.get(
            config.catalogue_url, params={"page": page}, timeout=config.request_timeout
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise CatalogueError(f"Failed to fetch page {page}: {exc}") from exc

    dois = data.get("dois") if isinstance(data, dict) else None
    if not isinstance(dois, list):
        raise CatalogueError(f"Page {page} response is missing a 'dois' array")

    file_path.parent.mkdir(parents=True, exist_ok=True)
    save_json(dois, file_path)
    print(f"✓ Page {page} saved ({len(dois)} DOIs)")
    return True


def fetch_doi_range(
    start_page: int, end_page: int, config: PipelineConfig, session: requests.Session
) -> dict:
    """Fetch pages ``start_page..end_page`` in ascending order.

    Returns:
        ``{"fetched": [...], "skipped": [...]}`` page numbers.

    Raises:
        CatalogueError: From the first failing page; nothing after it runs.
    """
    summary: dict[str, list[int]] = {"fetched": [], "skipped": []}
    for page in range(start_page, end_page + 1):
        if fetch_doi_page(page, config, session):
            summary["fetched"].append(page)
            if page < end_page and config.catalogue_delay > 0:
                time.sleep(config.catalogue_delay)
        else:
            summary["skipped"].append(page)
    return summary


def last_downloaded_page(config: PipelineConfig) -> int:
    """Highest page number on disk, or 0 when none."""
    pages = list_page_numbers(config.doi_dir, ".json")
    return pages[-1] if pages else 0


def main(argv: list[str] | None = None) -> None:
    parser = page_range_parser("Fetch DOI lists from the catalogue API", require_start=False)
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Start after the highest page already downloaded (replaces --start-page)",
    )
    args = parse_page_range(parser, argv)
    if args.start_page is None and not args.resume:
        parser.error("--start-page is required unless --resume is given")

    config = load_config()
    ensure_directories(config)

    start_page = last_downloaded_page(config) + 1 if args.resume else args.start_page
    if start_page > args.end_page:
        print(f"✓ Nothing to fetch: already have pages up to {start_page - 1}")
        return

    print(f"Fetching catalogue pages {start_page} → {args.end_page}")
    session = requests.Session()
    try:
        summary = fetch_doi_range(start_page, args.end_page, config, session)
    except CatalogueError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        print("Stopping. Rerun to resume from this page.", file=sys.stderr)
        sys.exit(1)

    print()
    print(f"✓ Fetched {len(summary['fetched'])} page(s)")
    print(f"✓ Skipped {len(summary['skipped'])} existing page(s)")


if __name__ == "__main__":
    main()
