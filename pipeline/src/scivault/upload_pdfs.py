#!/usr/bin/env python3
"""
Upload each page's PDFs to Irys, deleting local copies once uploaded.

A PDF already on the network (same App-Name, Content-Type, Version and doi
tags) is skipped and kept on disk. After a confirmed upload the network copy
is the only copy.

Output: pdf/page_<n>/upload_pdf_report_page_<n>.json

Usage:
    python -m scivault.upload_pdfs --start-page=1 --end-page=3
"""

import requests

from scivault.config import PDF_CONTENT_TYPE, PipelineConfig, load_config
from scivault.publish import (
    FAILED,
    PUBLISHED,
    PublishResult,
    index_from_config,
    publish_item,
    record_result,
    uploader_from_config,
)
from scivault.storage import StorageIndex, StorageUploader
from scivault.utils import (
    StageReport,
    filename_to_doi,
    filter_pages,
    list_page_numbers,
    page_range_parser,
    parse_page_range,
)

REPORT_PREFIX = "upload_pdf_report"


def upload_pdfs_page(
    page: int, uploader: StorageUploader, index: StorageIndex, config: PipelineConfig
) -> StageReport | None:
    """Publish every PDF in the page directory.

    Returns:
        The page's report, or None if the page directory does not exist.
    """
    page_dir = config.pdf_page_dir(page)
    if not page_dir.is_dir():
        print(f"⚠️  Skipping page_{page}: {page_dir} not found")
        return None

    pdf_files = sorted(p for p in page_dir.iterdir() if p.suffix == ".pdf")
    print(f"\n📂 page_{page}: found {len(pdf_files)} PDFs")
    report = StageReport("upload_pdfs", page, len(pdf_files), config.progress_every)

    for pdf_path in pdf_files:
        doi = filename_to_doi(pdf_path.name)
        if not doi:
            report.record("failed", file=pdf_path.name, reason="invalid DOI from filename")
            continue

        size = pdf_path.stat().st_size
        if size < config.min_valid_size:
            print(f"  ✗ {pdf_path.name} too small ({size} bytes)")
            record_result(
                report,
                PublishResult(doi, FAILED, reason=f"file too small ({size} bytes)"),
                file=pdf_path.name,
            )
            continue

        tags = config.base_tags(PDF_CONTENT_TYPE) + [("doi", doi)]
        result = publish_item(
            doi,
            lambda: uploader.upload_file(pdf_path, tags),
            content_type=PDF_CONTENT_TYPE,
            index=index,
            config=config,
        )
        if result.status == PUBLISHED:
            pdf_path.unlink()
            print(f"  🗑️  Deleted local file: {pdf_path.name}")
        record_result(report, result, file=pdf_path.name)

    report.save(config.report_path(page, REPORT_PREFIX))
    return report


def main(argv: list[str] | None = None) -> None:
    parser = page_range_parser("Upload PDFs to Irys")
    args = parse_page_range(parser, argv)

    config = load_config()
    uploader = uploader_from_config(config)
    index = index_from_config(config, requests.Session())

    pages = filter_pages(list_page_numbers(config.pdf_dir), args.start_page, args.end_page)
    for page in pages:
        upload_pdfs_page(page, uploader, index, config)

    print("\n✓ All PDF uploads completed.")


if __name__ == "__main__":
    main()
