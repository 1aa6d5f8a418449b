#!/usr/bin/env python3
"""
Upload each page's basic metadata records to Irys.

Records already on the network (same App-Name, Content-Type, Version and
doi tags) are skipped, so the stage can be rerun safely.

Output: pdf/page_<n>/upload_basic_metadata_report_page_<n>.json

Usage:
    python -m scivault.upload_metadata --start-page=1 --end-page=3
"""

import json

import requests

from scivault.config import METADATA_CONTENT_TYPE, PipelineConfig, load_config
from scivault.publish import index_from_config, publish_item, record_result, uploader_from_config
from scivault.storage import StorageIndex, StorageUploader
from scivault.storage.base import Tags
from scivault.utils import (
    StageReport,
    filter_pages,
    list_page_numbers,
    load_json,
    page_range_parser,
    parse_page_range,
)

REPORT_PREFIX = "upload_basic_metadata_report"


def normalize_whitespace(text) -> str:
    return " ".join(str(text or "").split())


def metadata_tags(record: dict, config: PipelineConfig) -> Tags:
    """Tags for one metadata record: the fixed vocabulary plus searchable fields."""
    tags = config.base_tags(METADATA_CONTENT_TYPE)
    tags += [
        ("doi", record["doi"].strip()),
        ("title", normalize_whitespace(record.get("title"))),
        ("authors", normalize_whitespace(record.get("authors"))),
        ("aid", normalize_whitespace(record.get("aid"))),
    ]
    if config.collection:
        tags.append(("Collection", config.collection))
    return tags


def upload_metadata_page(
    page: int, uploader: StorageUploader, index: StorageIndex, config: PipelineConfig
) -> StageReport | None:
    """Publish every record in the page's ``basic_metadata.json``.

    Returns:
        The page's report, or None when the page has no metadata file.
    """
    meta_path = config.metadata_path(page)
    if not meta_path.exists():
        print(f"⚠️  Skipping page_{page}: no basic_metadata.json")
        return None

    records = load_json(meta_path)
    print(f"\n📄 Found {len(records)} records in page_{page}")
    report = StageReport("upload_metadata", page, len(records), config.progress_every)

    for i, record in enumerate(records):
        doi = record.get("doi") if isinstance(record, dict) else None
        doi = doi.strip() if isinstance(doi, str) else ""
        if not doi:
            print(f"  ⚠️  Skipping record {i} of page_{page}: no DOI")
            report.record("failed", doi="[no-doi]", index=i, reason="no-doi")
            continue

        payload = json.dumps(record, ensure_ascii=False).encode("utf-8")
        tags = metadata_tags(record, config)
        result = publish_item(
            doi,
            lambda: uploader.upload(payload, tags),
            content_type=METADATA_CONTENT_TYPE,
            index=index,
            config=config,
        )
        record_result(report, result, index=i)

    report.save(config.report_path(page, REPORT_PREFIX))
    print(
        f"✓ Finished page_{page}: {report.count('success')} uploaded, "
        f"{report.count('skipped')} already present, {report.count('failed')} failed"
    )
    return report


def main(argv: list[str] | None = None) -> None:
    parser = page_range_parser("Upload basic metadata records to Irys")
    args = parse_page_range(parser, argv)

    config = load_config()
    uploader = uploader_from_config(config)
    index = index_from_config(config, requests.Session())

    pages = filter_pages(list_page_numbers(config.pdf_dir), args.start_page, args.end_page)
    for page in pages:
        upload_metadata_page(page, uploader, index, config)

    print("\n✓ All basic metadata uploads completed.")


if __name__ == "__main__":
    main()
