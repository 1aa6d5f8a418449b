#!/usr/bin/env python3
"""
Generate basic metadata for downloaded PDFs from OpenAlex.

Each ``<urlencoded-doi>.pdf`` in a page directory is looked up at
``<openalex>/doi:<doi>`` and reduced to ``{title, authors, abstract, doi, aid}``.
Lookups that fail are reported and skipped; the page's
``basic_metadata.json`` is always written with whatever succeeded.

Usage:
    python -m scivault.enrich --start-page=1 --end-page=3
"""

import time

import requests

from scivault.config import PipelineConfig, ensure_directories, load_config
from scivault.utils import (
    StageReport,
    filename_to_doi,
    filter_pages,
    list_page_numbers,
    page_range_parser,
    parse_page_range,
    retry,
    save_json,
)

REPORT_PREFIX = "generate_metadata_report"
DOI_URL_PREFIX = "https://doi.org/"
OPENALEX_ID_PREFIX = "https://openalex.org/"


def reconstruct_abstract(inverted_index) -> str:
    """Rebuild abstract text from an OpenAlex ``abstract_inverted_index``.

    Each word is placed at every position it occupies; occupied positions are
    joined in order with single spaces, so gaps in the numbering collapse.

    >>> reconstruct_abstract({"the": [0, 2], "cat": [1]})
    'the cat the'
    """
    if not inverted_index or not isinstance(inverted_index, dict):
        return ""
    positions: dict[int, str] = {}
    for word, indices in inverted_index.items():
        for pos in indices or []:
            positions[pos] = word
    return " ".join(positions[pos] for pos in sorted(positions))


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def _author_names(authorships) -> list[str]:
    """Author display names; entries that are not objects are ignored."""
    if not isinstance(authorships, list):
        return []
    names = []
    for authorship in authorships:
        if not isinstance(authorship, dict):
            continue
        author = authorship.get("author")
        name = author.get("display_name") if isinstance(author, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
    return names


def extract_metadata(data: dict) -> dict:
    """Reduce an OpenAlex work to the fields published downstream.

    Fields with an unexpected type are treated as missing.
    """
    title = _text(data.get("title")) or _text(data.get("display_name"))
    authors = ", ".join(_author_names(data.get("authorships")))
    doi = _text(data.get("doi")).replace(DOI_URL_PREFIX, "")
    aid = _text(data.get("id")).replace(OPENALEX_ID_PREFIX, "")
    return {
        "title": title,
        "authors": authors,
        "abstract": reconstruct_abstract(data.get("abstract_inverted_index")),
        "doi": doi,
        "aid": aid,
    }


def fetch_openalex_work(doi: str, config: PipelineConfig, session: requests.Session) -> dict:
    """GET ``<openalex>/doi:<doi>`` with bounded retries.

    Raises:
        ValueError: The work does not exist (404); not retried.
        requests.RequestException: Once retries are exhausted.
    """
    url = f"{config.openalex_url.rstrip('/')}/doi:{doi}"

    def _get() -> dict:
        response = session.get(url, timeout=config.request_timeout)
        if response.status_code == 404:
            raise ValueError(f"{doi} not found in OpenAlex")
        response.raise_for_status()
        return response.json()

    return retry(
        _get,
        attempts=config.retry_attempts,
        delay=config.openalex_delay,
        backoff=2.0,
        exceptions=(requests.RequestException,),
        label=f"OpenAlex lookup {doi}",
    )


def generate_metadata_for_page(
    page: int, config: PipelineConfig, session: requests.Session
) -> StageReport | None:
    """Write ``basic_metadata.json`` for every PDF in the page directory.

    Returns:
        The page's report, or None if the page directory does not exist.
    """
    page_dir = config.pdf_page_dir(page)
    if not page_dir.is_dir():
        print(f"⚠️  Skipping page {page}: {page_dir} not found")
        return None

    pdf_files = sorted(p for p in page_dir.iterdir() if p.suffix == ".pdf")
    print(f"\n📁 page_{page}: {len(pdf_files)} PDFs")
    report = StageReport("generate_metadata", page, len(pdf_files), config.progress_every)
    records: list[dict] = []

    for i, pdf_path in enumerate(pdf_files):
        if i > 0 and config.openalex_delay > 0:
            time.sleep(config.openalex_delay)

        doi = filename_to_doi(pdf_path.name)
        print(f"  Fetching metadata for DOI: {doi}")
        try:
            work = fetch_openalex_work(doi, config, session)
            if not isinstance(work, dict):
                raise ValueError("response is not a JSON object")
            record = extract_metadata(work)
        except (requests.RequestException, ValueError, TypeError, AttributeError) as exc:
            print(f"  ⚠️  Failed to fetch metadata for {doi}: {exc}")
            report.record("failed", doi=doi, reason=str(exc))
            continue

        records.append(record)
        report.record("success", doi=doi, aid=record["aid"])

    output_path = config.metadata_path(page)
    save_json(records, output_path)
    print(f"  ✓ Saved {len(records)} records to {output_path}")
    report.save(config.report_path(page, REPORT_PREFIX))
    return report


def main(argv: list[str] | None = None) -> None:
    parser = page_range_parser("Generate basic metadata from OpenAlex")
    args = parse_page_range(parser, argv)

    config = load_config()
    ensure_directories(config)
    session = requests.Session()

    pages = filter_pages(list_page_numbers(config.pdf_dir), args.start_page, args.end_page)
    if not pages:
        print(f"No PDF pages between {args.start_page} and {args.end_page}")
        return

    for page in pages:
        generate_metadata_for_page(page, config, session)

    print("\n✓ Metadata generation completed for all selected pages.")


if __name__ == "__main__":
    main()
