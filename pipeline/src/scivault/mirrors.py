"""
Document mirrors: sites that serve a paper's PDF behind an HTML page addressed by DOI.

A mirror is anything implementing ``MirrorProvider.fetch_document_link``.
Callers try providers in priority order and never look at how a provider
finds its link.
"""

import re
from abc import ABC, abstractmethod

import requests
from bs4 import BeautifulSoup

from scivault.config import BROWSER_HEADERS, EXTRA_MIRROR, PipelineConfig
from scivault.utils import encode_doi

# First <embed> whose src points at a .pdf
EMBED_PDF_PATTERN = re.compile(r"""<embed[^>]*src=["']([^"']+\.pdf[^"']*)["']""", re.IGNORECASE)


class MirrorProvider(ABC):
    """Something that can turn a DOI into a direct document URL."""

    name: str = "mirror"

    @abstractmethod
    def fetch_document_link(self, doi: str) -> str | None:
        """Return an absolute URL for the DOI's document, or None if not found.

        Raises:
            requests.RequestException: On network or HTTP errors, so the
                caller can retry.
        """


def resolve_link(link: str, base_url: str) -> str:
    """Make an extracted link absolute relative to the mirror it came from."""
    if link.startswith("//"):
        return f"https:{link}"
    if link.startswith(("http://", "https://")):
        return link
    base = base_url if base_url.endswith("/") else f"{base_url}/"
    return base + link.lstrip("/")


def extract_embed_link(html: str) -> str | None:
    m = EMBED_PDF_PATTERN.search(html)
    return m.group(1) if m else None


class EmbedLinkMirror(MirrorProvider):
    """Mirror page at ``<base_url><encoded doi>`` embedding the PDF in an ``<embed>`` tag."""

    def __init__(self, base_url: str, session: requests.Session, timeout: float = 10) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.name = self.base_url
        self._session = session
        self._timeout = timeout

    def fetch_document_link(self, doi: str) -> str | None:
        url = self.base_url + encode_doi(doi)
        response = self._session.get(url, headers=BROWSER_HEADERS, timeout=self._timeout)
        response.raise_for_status()
        link = extract_embed_link(response.text)
        if link is None:
            return None
        return resolve_link(link, self.base_url)

    def __repr__(self) -> str:
        return f"EmbedLinkMirror({self.base_url!r})"


def discover_mirrors(
    session: requests.Session,
    index_url: str,
    defaults: tuple[str, ...],
    timeout: float = 10,
) -> list[str]:
    """Read the current mirror list from a mirror index page.

    Collects every ``<a href>`` that is an absolute ``sci-hub`` URL, then
    appends the fixed extra mirror. Falls back to *defaults* when the index
    cannot be fetched or lists nothing.
    """
    print(f"Fetching mirror list from {index_url}")
    try:
        response = session.get(index_url, headers=BROWSER_HEADERS, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        print(f"  ⚠️  Could not fetch mirror list ({exc}), using defaults")
        return list(defaults)

    soup = BeautifulSoup(response.text, "html.parser")
    mirrors: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if "sci-hub" in href and href.startswith("http"):
            href = href if href.endswith("/") else f"{href}/"
            if href not in mirrors:
                mirrors.append(href)

    if not mirrors:
        print("  ⚠️  No mirrors listed, using defaults")
        return list(defaults)

    if EXTRA_MIRROR not in mirrors:
        mirrors.append(EXTRA_MIRROR)
    print(f"  Mirrors: {', '.join(mirrors)}")
    return mirrors


def build_mirrors(
    urls: list[str] | tuple[str, ...], session: requests.Session, config: PipelineConfig
) -> list[MirrorProvider]:
    """Providers for *urls*, preserving priority order."""
    return [EmbedLinkMirror(url, session, timeout=config.request_timeout) for url in urls]
