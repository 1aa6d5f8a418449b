"""Shared utilities: JSON I/O, DOI filenames, page discovery, retries, and run reports."""

import argparse
import json
import re
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar
from urllib.parse import quote, unquote

T = TypeVar("T")

# Characters encodeURIComponent leaves alone, beyond quote()'s own unreserved set.
_URI_COMPONENT_SAFE = "!*'()"


def load_json(filepath: Path):
    """Load JSON file."""
    with filepath.open(encoding="utf-8") as f:
        return json.load(f)


def save_json(data, filepath: Path) -> None:
    """Save JSON file."""
    with filepath.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


# ── DOI <-> filename ─────────────────────────────────────────────────


def encode_doi(doi: str) -> str:
    """URL-encode a DOI the way browsers encode a URI component (``/`` -> ``%2F``)."""
    return quote(doi, safe=_URI_COMPONENT_SAFE)


def doi_to_filename(doi: str) -> str:
    return f"{encode_doi(doi)}.pdf"


def filename_to_doi(filename: str) -> str:
    """Recover the DOI from a downloaded file's name."""
    base = Path(filename).name
    if base.endswith(".pdf"):
        base = base[: -len(".pdf")]
    return unquote(base).strip()


# ── Pages ────────────────────────────────────────────────────────────


def list_page_numbers(directory: Path, suffix: str = "") -> list[int]:
    """Page numbers found in *directory*, ascending.

    With a *suffix* (e.g. ``".json"``) matches files named ``page_<n><suffix>``;
    without one, matches ``page_<n>`` directories.
    """
    if not directory.is_dir():
        return []
    pattern = re.compile(rf"page_(\d+){re.escape(suffix)}")
    pages = []
    for entry in directory.iterdir():
        m = pattern.fullmatch(entry.name)
        if not m:
            continue
        if suffix and not entry.is_file():
            continue
        if not suffix and not entry.is_dir():
            continue
        pages.append(int(m.group(1)))
    return sorted(pages)


def filter_pages(pages: Iterable[int], start: int | None, end: int | None) -> list[int]:
    """Keep pages within ``[start, end]``; a ``None`` bound is open."""
    return [
        p for p in sorted(pages) if (start is None or p >= start) and (end is None or p <= end)
    ]


# ── Failure log ──────────────────────────────────────────────────────


def read_failed_log(path: Path) -> set[str]:
    if not path.exists():
        return set()
    return {line.strip() for line in path.read_text(encoding="utf-8").splitlines() if line.strip()}


def append_failed_log(path: Path, doi: str) -> None:
    """Append *doi* to the page's failure log. Entries are never removed here."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(f"{doi}\n")


# ── Bounded retry ────────────────────────────────────────────────────


def retry(
    operation: Callable[[], T],
    *,
    attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    label: str = "request",
) -> T:
    """Call *operation* until it succeeds or *attempts* are used up.

    Args:
        operation: Zero-argument callable to invoke.
        attempts: Maximum number of calls (>= 1).
        delay: Seconds to wait after the first failure.
        backoff: Multiplier applied to the wait after each further failure.
        exceptions: Exception types that trigger another attempt. Anything
            else propagates immediately.
        label: Short description used in progress output.

    Returns:
        Whatever *operation* returns on its first successful call.

    Raises:
        The last exception raised by *operation* once attempts are exhausted.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    for attempt in range(1, attempts):
        try:
            return operation()
        except exceptions as exc:
            wait = delay * (backoff ** (attempt - 1))
            print(f"    ⚠️  {label} failed (attempt {attempt}/{attempts}): {exc}")
            if wait > 0:
                time.sleep(wait)

    # Final attempt: whatever it raises propagates unchanged
    return operation()


# ── CLI ──────────────────────────────────────────────────────────────


def positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return number


def page_range_parser(description: str, *, require_start: bool = True) -> argparse.ArgumentParser:
    """Argument parser with the ``--start-page=N --end-page=M`` pair every stage accepts."""
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--start-page", type=positive_int, required=require_start, help="First page (inclusive)"
    )
    parser.add_argument("--end-page", type=positive_int, required=True, help="Last page (inclusive)")
    return parser


def parse_page_range(parser: argparse.ArgumentParser, argv: list[str] | None = None):
    """Parse *argv* and reject reversed ranges with a usage error."""
    args = parser.parse_args(argv)
    if args.start_page is not None and args.start_page > args.end_page:
        parser.error("--start-page must be <= --end-page")
    return args


# ── Run reports ──────────────────────────────────────────────────────


class StageReport:
    """Per-page run summary: counts, per-item details, periodic progress."""

    STATUSES = ("success", "failed", "skipped")

    def __init__(self, stage: str, page: int, total: int, progress_every: int = 10) -> None:
        self.stage = stage
        self.page = page
        self.total = total
        self.progress_every = max(progress_every, 1)
        self.details: dict[str, list[dict]] = {status: [] for status in self.STATUSES}

    @property
    def processed(self) -> int:
        return sum(len(items) for items in self.details.values())

    def count(self, status: str) -> int:
        return len(self.details[status])

    def record(self, status: str, **detail) -> None:
        """Record one item's outcome and print progress every N items."""
        if status not in self.details:
            raise ValueError(f"Unknown status: {status!r}")
        self.details[status].append(detail)
        done = self.processed
        if done % self.progress_every == 0 or done == self.total:
            print(
                f"  📊 page_{self.page} progress: {done}/{self.total}, "
                f"✓ {self.count('success')}, ✗ {self.count('failed')}, "
                f"skipped {self.count('skipped')}"
            )

    def to_dict(self) -> dict:
        success = self.count("success")
        return {
            "stage": self.stage,
            "page": f"page_{self.page}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "total": self.total,
            "success": success,
            "failed": self.count("failed"),
            "skipped": self.count("skipped"),
            "success_rate": f"{round(success / self.total * 100) if self.total else 0}%",
            "details": self.details,
        }

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        save_json(self.to_dict(), path)
        print(f"  📝 Report saved to {path}")
