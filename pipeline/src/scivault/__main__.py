"""Run the full SciVault pipeline page by page: python -m scivault --start-page=1 --end-page=10"""

import argparse
import subprocess
import sys

from scivault.config import PipelineConfig, load_config
from scivault.utils import page_range_parser, parse_page_range, positive_int

STEPS = [
    ("fetch_dois", "Fetching DOI list"),
    ("fetch_pdfs", "Downloading PDFs"),
    ("enrich", "Generating metadata"),
    ("upload_metadata", "Uploading metadata to Irys"),
    ("upload_pdfs", "Uploading PDFs to Irys"),
]


def make_batches(start_page: int, end_page: int, batch_size: int | None) -> list[list[int]]:
    """Split ``start_page..end_page`` into contiguous batches."""
    pages = list(range(start_page, end_page + 1))
    if not batch_size:
        return [pages] if pages else []
    return [pages[i : i + batch_size] for i in range(0, len(pages), batch_size)]


def run_step(module: str, page: int) -> int:
    result = subprocess.run(
        [
            sys.executable,
            "-m",
            f"scivault.{module}",
            f"--start-page={page}",
            f"--end-page={page}",
        ],
        check=False,
    )
    return result.returncode


def process_page(page: int) -> None:
    """Run every step for *page*; exit the whole run on the first failure."""
    print(f"\n{'#' * 60}\nPage {page}\n{'#' * 60}")
    for module, description in STEPS:
        print(f"\n{'=' * 60}\nStep: {description} (page {page})\n{'=' * 60}")
        if run_step(module, page) != 0:
            print(f"\nPipeline failed on page {page} at step: {description}", file=sys.stderr)
            sys.exit(1)
    print(f"\n✓ Page {page} completed")


def cleanup_batch(pages: list[int], config: PipelineConfig) -> int:
    """Delete PDFs still on disk for *pages*; metadata, logs and reports stay.

    Returns:
        Number of files removed.
    """
    removed = 0
    for page in pages:
        page_dir = config.pdf_page_dir(page)
        if not page_dir.is_dir():
            continue
        for pdf_path in page_dir.glob("*.pdf"):
            pdf_path.unlink()
            removed += 1
    print(f"🧹 Removed {removed} local PDF(s) for pages {pages[0]}-{pages[-1]}")
    return removed


def build_parser() -> argparse.ArgumentParser:
    parser = page_range_parser("Run the SciVault pipeline over a page range")
    parser.add_argument(
        "--batch-size",
        type=positive_int,
        help="Pages per batch; local PDFs are deleted after each batch (default: one batch, no cleanup)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parse_page_range(parser, argv)
    config = load_config()

    batches = make_batches(args.start_page, args.end_page, args.batch_size)
    print(
        f"SciVault Pipeline — pages {args.start_page}-{args.end_page}, "
        f"{len(batches)} batch(es), {len(STEPS)} steps per page"
    )
    for number, batch in enumerate(batches, start=1):
        print(f"\n{'*' * 60}\nBatch {number}/{len(batches)}: pages {batch[0]}-{batch[-1]}\n{'*' * 60}")
        for page in batch:
            process_page(page)
        if args.batch_size:
            cleanup_batch(batch, config)

    print("\nPipeline complete!")


if __name__ == "__main__":
    main()
