"""Tests for scivault.fetch_pdfs: mirror fallback, failure log, size checks."""

import json

import pytest
import requests
from conftest import PDF_BYTES, FakeSession, make_response

from scivault.fetch_pdfs import PdfFetcher
from scivault.mirrors import MirrorProvider
from scivault.utils import doi_to_filename, read_failed_log


class StubMirror(MirrorProvider):
    """Mirror answering from a fixed DOI -> link (or exception) table."""

    def __init__(self, name: str, links: dict) -> None:
        self.name = name
        self.links = links
        self.lookups: list[str] = []

    def fetch_document_link(self, doi):
        self.lookups.append(doi)
        result = self.links.get(doi)
        if isinstance(result, Exception):
            raise result
        return result


def write_doi_page(config, page, dois):
    config.doi_dir.mkdir(parents=True, exist_ok=True)
    config.doi_page_path(page).write_text(json.dumps(dois))


@pytest.fixture
def pdf_session():
    return FakeSession(
        {
            "https://a.test/one.pdf": make_response(content=PDF_BYTES),
            "https://b.test/one.pdf": make_response(content=PDF_BYTES),
            "https://b.test/two.pdf": make_response(content=PDF_BYTES),
            "https://a.test/tiny.pdf": make_response(content=b"%PDF tiny"),
        }
    )


# ── Mirror fallback ──────────────────────────────────────────────────


def test_first_mirror_wins(config, pdf_session):
    write_doi_page(config, 1, ["10.1/a"])
    a = StubMirror("A", {"10.1/a": "https://a.test/one.pdf"})
    b = StubMirror("B", {"10.1/a": "https://b.test/one.pdf"})

    report = PdfFetcher(config, [a, b], pdf_session).fetch_page(1)

    assert report.count("success") == 1
    assert report.details["success"][0]["mirror"] == "A"
    assert b.lookups == []
    assert (config.pdf_page_dir(1) / doi_to_filename("10.1/a")).read_bytes() == PDF_BYTES


def test_falls_back_to_next_mirror(config, pdf_session):
    write_doi_page(config, 1, ["10.1/a", "10.1/b"])
    a = StubMirror(
        "A",
        {"10.1/a": requests.ConnectionError("down"), "10.1/b": None},
    )
    b = StubMirror("B", {"10.1/a": "https://b.test/one.pdf", "10.1/b": "https://b.test/two.pdf"})

    report = PdfFetcher(config, [a, b], pdf_session).fetch_page(1)

    assert report.count("success") == 2
    assert {d["mirror"] for d in report.details["success"]} == {"B"}
    # Lookup errors are retried before moving on
    assert a.lookups.count("10.1/a") == config.retry_attempts


def test_all_mirrors_fail_logs_doi(config, pdf_session):
    write_doi_page(config, 1, ["10.1/missing"])
    mirrors = [StubMirror("A", {}), StubMirror("B", {})]

    report = PdfFetcher(config, mirrors, pdf_session).fetch_page(1)

    assert report.count("failed") == 1
    assert report.details["failed"][0]["reason"] == "all-mirrors-failed"
    assert read_failed_log(config.failed_log_path(1)) == {"10.1/missing"}
    assert list(config.pdf_page_dir(1).glob("*.pdf")) == []


def test_previously_failed_doi_not_attempted(config, pdf_session):
    write_doi_page(config, 1, ["10.1/a"])
    config.pdf_page_dir(1).mkdir(parents=True)
    config.failed_log_path(1).write_text("10.1/a\n")
    a = StubMirror("A", {"10.1/a": "https://a.test/one.pdf"})

    report = PdfFetcher(config, [a], pdf_session).fetch_page(1)

    assert a.lookups == []
    assert pdf_session.calls == []
    assert report.details["skipped"] == [{"doi": "10.1/a", "reason": "previously-failed"}]


def test_existing_valid_pdf_skipped(config, pdf_session):
    write_doi_page(config, 1, ["10.1/a"])
    out = config.pdf_page_dir(1)
    out.mkdir(parents=True)
    (out / doi_to_filename("10.1/a")).write_bytes(PDF_BYTES)
    a = StubMirror("A", {"10.1/a": "https://a.test/one.pdf"})

    report = PdfFetcher(config, [a], pdf_session).fetch_page(1)

    assert a.lookups == []
    assert report.details["skipped"][0]["reason"] == "exists"


def test_existing_undersized_pdf_is_replaced(config, pdf_session):
    write_doi_page(config, 1, ["10.1/a"])
    out = config.pdf_page_dir(1)
    out.mkdir(parents=True)
    (out / doi_to_filename("10.1/a")).write_bytes(b"broken")
    a = StubMirror("A", {"10.1/a": "https://a.test/one.pdf"})

    report = PdfFetcher(config, [a], pdf_session).fetch_page(1)

    assert report.count("success") == 1
    assert (out / doi_to_filename("10.1/a")).stat().st_size == len(PDF_BYTES)


def test_undersized_download_is_deleted(config, pdf_session):
    write_doi_page(config, 1, ["10.1/a"])
    a = StubMirror("A", {"10.1/a": "https://a.test/tiny.pdf"})

    report = PdfFetcher(config, [a], pdf_session).fetch_page(1)

    assert report.count("failed") == 1
    assert not (config.pdf_page_dir(1) / doi_to_filename("10.1/a")).exists()


def test_interrupted_download_leaves_no_partial_file(config, tmp_path):
    def broken_stream(chunk_size=8192):
        yield b"%PDF partial"
        raise requests.ConnectionError("reset by peer")

    resp = make_response(content=PDF_BYTES)
    resp.iter_content.side_effect = broken_stream
    session = FakeSession({"https://a.test/one.pdf": resp})
    target = tmp_path / "out.pdf"

    fetcher = PdfFetcher(config, [], session)
    assert fetcher.download_pdf("https://a.test/one.pdf", target) is False
    assert not target.exists()
    assert list(tmp_path.glob("*.part")) == []


def test_killed_download_is_not_kept_as_existing(config):
    def killed_stream(chunk_size=8192):
        yield b"%PDF" + b"0" * 2000
        raise KeyboardInterrupt

    resp = make_response(content=PDF_BYTES)
    resp.iter_content.side_effect = killed_stream
    session = FakeSession({"https://a.test/one.pdf": resp})
    write_doi_page(config, 1, ["10.1/a"])
    a = StubMirror("A", {"10.1/a": "https://a.test/one.pdf"})

    with pytest.raises(KeyboardInterrupt):
        PdfFetcher(config, [a], session).fetch_page(1)

    out = config.pdf_page_dir(1)
    assert list(out.glob("*.pdf")) == []
    assert list(out.glob("*.part")) == []

    # Rerun downloads the paper again instead of skipping it
    session.routes["https://a.test/one.pdf"] = make_response(content=PDF_BYTES)
    report = PdfFetcher(config, [a], session).fetch_page(1)
    assert report.count("success") == 1
    assert report.count("skipped") == 0
    assert (out / doi_to_filename("10.1/a")).read_bytes() == PDF_BYTES


def test_missing_doi_page_returns_none(config):
    assert PdfFetcher(config, [], FakeSession()).fetch_page(9) is None


def test_report_written(config, pdf_session):
    write_doi_page(config, 2, ["10.1/a", "10.1/missing"])
    a = StubMirror("A", {"10.1/a": "https://a.test/one.pdf"})

    fetcher = PdfFetcher(config, [a], pdf_session)
    fetcher.fetch_page(2)

    report = json.loads(config.report_path(2, "fetch_pdf_report").read_text())
    assert (report["total"], report["success"], report["failed"]) == (2, 1, 1)
    assert report["success_rate"] == "50%"
    assert fetcher.stats["success"] == 1
    assert fetcher.stats["failed"] == 1
