#!/usr/bin/env python3
"""
Download PDFs for every DOI of a catalogue page, trying mirrors in order.

For each DOI not yet on disk and not in the page's failure log, every mirror
is asked for a direct document link which is then streamed to disk. The first
mirror that produces a file of at least ``min_valid_size`` bytes wins. DOIs
that no mirror can serve go to ``failed_log_page_<n>.txt`` and are not tried
again until an operator clears that log.

Output: pdf/page_<n>/<urlencoded-doi>.pdf
        pdf/page_<n>/failed_log_page_<n>.txt
        pdf/page_<n>/fetch_pdf_report_page_<n>.json

Usage:
    python -m scivault.fetch_pdfs --start-page=1 --end-page=3
"""

import time
from pathlib import Path

import requests

from scivault.config import BROWSER_HEADERS, PipelineConfig, ensure_directories, load_config
from scivault.mirrors import MirrorProvider, build_mirrors, discover_mirrors
from scivault.utils import (
    StageReport,
    append_failed_log,
    doi_to_filename,
    filter_pages,
    list_page_numbers,
    load_json,
    page_range_parser,
    parse_page_range,
    read_failed_log,
    retry,
)

REPORT_PREFIX = "fetch_pdf_report"
CHUNK_SIZE = 8192
PART_SUFFIX = ".part"


class PdfFetcher:
    """Fetch the PDFs of one page at a time from an ordered list of mirrors."""

    def __init__(
        self,
        config: PipelineConfig,
        mirrors: list[MirrorProvider],
        session: requests.Session,
    ) -> None:
        self.config = config
        self.mirrors = mirrors
        self._session = session
        self._touched_network = False
        self.stats: dict[str, int] = {
            "total": 0,
            "success": 0,
            "exists": 0,
            "previously_failed": 0,
            "failed": 0,
        }

    # ── Single download ──────────────────────────────────────────────

    def _stream_to_file(self, url: str, file_path: Path) -> int:
        """Stream *url* into ``<file_path>.part`` and move it into place if large enough.

        *file_path* only ever appears fully written. The ``.part`` file is
        removed on every exit, including interrupts.

        Returns:
            Size in bytes of the downloaded body.
        """
        part_path = file_path.with_name(file_path.name + PART_SUFFIX)
        try:
            with self._session.get(
                url,
                headers={**BROWSER_HEADERS, "Accept": "application/pdf"},
                timeout=self.config.request_timeout,
                stream=True,
            ) as response:
                response.raise_for_status()
                with part_path.open("wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            size = part_path.stat().st_size
            if size >= self.config.min_valid_size:
                part_path.replace(file_path)
            return size
        finally:
            part_path.unlink(missing_ok=True)

    def download_pdf(self, url: str, file_path: Path) -> bool:
        """Download *url* with bounded retries and validate its size.

        Returns:
            True if a file of at least ``min_valid_size`` bytes is on disk.
        """
        try:
            size = retry(
                lambda: self._stream_to_file(url, file_path),
                attempts=self.config.retry_attempts,
                delay=self.config.mirror_delay,
                exceptions=(requests.RequestException, OSError),
                label=f"download {url}",
            )
        except (requests.RequestException, OSError) as exc:
            print(f"    ✗ Download failed: {url} ({exc})")
            return False

        if size < self.config.min_valid_size:
            print(f"    ✗ Downloaded file too small ({size} bytes): {url}")
            return False

        print(f"    ✓ Downloaded {size / 1024:.1f} KB from {url}")
        return True

    def _try_mirror(self, mirror: MirrorProvider, doi: str, file_path: Path) -> bool:
        try:
            link = retry(
                lambda: mirror.fetch_document_link(doi),
                attempts=self.config.retry_attempts,
                delay=self.config.mirror_delay,
                exceptions=(requests.RequestException,),
                label=f"{mirror.name} lookup",
            )
        except requests.RequestException as exc:
            print(f"    ✗ {mirror.name} unreachable for {doi}: {exc}")
            return False

        if link is None:
            print(f"    ✗ No document link on {mirror.name} for {doi}")
            return False

        return self.download_pdf(link, file_path)

    def try_all_mirrors(self, doi: str, file_path: Path) -> str | None:
        """Try mirrors in priority order.

        Returns:
            The name of the mirror that served a valid file, or None.
        """
        for i, mirror in enumerate(self.mirrors):
            if i > 0:
                self._sleep(self.config.mirror_delay)
            print(f"    → Trying {mirror.name}")
            if self._try_mirror(mirror, doi, file_path):
                return mirror.name
        return None

    # ── Page ─────────────────────────────────────────────────────────

    def fetch_page(self, page: int) -> StageReport | None:
        """Download every outstanding DOI of *page*.

        Returns:
            The page's report, or None when the page has no DOI list.
        """
        doi_path = self.config.doi_page_path(page)
        if not doi_path.exists():
            print(f"⚠️  Skipping page {page}: {doi_path} not found")
            return None

        out_dir = self.config.pdf_page_dir(page)
        out_dir.mkdir(parents=True, exist_ok=True)
        failed_log = self.config.failed_log_path(page)
        failed_dois = read_failed_log(failed_log)
        dois = load_json(doi_path)

        print(f"\n=== page_{page}: {len(dois)} DOIs ===")
        report = StageReport("fetch_pdfs", page, len(dois), self.config.progress_every)

        for doi in dois:
            self.stats["total"] += 1
            pdf_path = out_dir / doi_to_filename(doi)

            if pdf_path.exists():
                if pdf_path.stat().st_size >= self.config.min_valid_size:
                    self.stats["exists"] += 1
                    report.record("skipped", doi=doi, reason="exists")
                    continue
                print(f"  ⚠️  Removing undersized PDF: {pdf_path.name}")
                pdf_path.unlink()

            if doi in failed_dois:
                self.stats["previously_failed"] += 1
                print(f"  Previously failed, skipping: {doi}")
                report.record("skipped", doi=doi, reason="previously-failed")
                continue

            if self._touched_network:
                self._sleep(self.config.download_delay)
            self._touched_network = True

            print(f"  Processing DOI: {doi}")
            mirror_name = self.try_all_mirrors(doi, pdf_path)
            if mirror_name is None:
                append_failed_log(failed_log, doi)
                failed_dois.add(doi)
                self.stats["failed"] += 1
                print(f"  ✗ All mirrors failed for {doi}")
                report.record("failed", doi=doi, reason="all-mirrors-failed")
            else:
                self.stats["success"] += 1
                report.record("success", doi=doi, mirror=mirror_name, file=pdf_path.name)

        report.save(self.config.report_path(page, REPORT_PREFIX))
        return report

    @staticmethod
    def _sleep(seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)

    def print_summary(self) -> None:
        print("\n" + "=" * 60)
        print("PDF DOWNLOAD SUMMARY")
        print("=" * 60)
        print(f"Total DOIs:          {self.stats['total']}")
        print(f"Downloaded:          {self.stats['success']}")
        print(f"Already on disk:     {self.stats['exists']}")
        print(f"Previously failed:   {self.stats['previously_failed']}")
        print(f"Failed:              {self.stats['failed']}")
        print("=" * 60)


def main(argv: list[str] | None = None) -> None:
    parser = page_range_parser("Download PDFs for catalogue pages")
    parser.add_argument(
        "--discover-mirrors",
        action="store_true",
        help="Refresh the mirror list from the mirror index page first",
    )
    args = parse_page_range(parser, argv)

    config = load_config()
    ensure_directories(config)
    session = requests.Session()

    if args.discover_mirrors:
        mirror_urls = discover_mirrors(
            session, config.mirror_index_url, config.mirrors, timeout=config.request_timeout
        )
    else:
        mirror_urls = list(config.mirrors)

    fetcher = PdfFetcher(config, build_mirrors(mirror_urls, session, config), session)
    pages = filter_pages(list_page_numbers(config.doi_dir, ".json"), args.start_page, args.end_page)
    if not pages:
        print(f"No DOI pages between {args.start_page} and {args.end_page}")
        return

    for page in pages:
        fetcher.fetch_page(page)

    fetcher.print_summary()
    print("\nDone.")


if __name__ == "__main__":
    main()
