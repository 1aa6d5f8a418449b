"""
Shared configuration: paths, constants, and environment.

Every stage receives a ``PipelineConfig`` built by ``load_config()``.
No hardcoded workspace paths elsewhere.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

# ── Workspace root ──
# Override with SCIVAULT_WORKSPACE env var for testing or alternate deployments.
WORKSPACE_ROOT = Path(
    os.environ.get(
        "SCIVAULT_WORKSPACE",
        str(Path(__file__).resolve().parent.parent.parent.parent),
    )
)

# ── Catalogue / metadata APIs ──
CATALOGUE_URL = "https://api.scai.sh/dois"
OPENALEX_URL = "https://api.openalex.org/works"
CATALOGUE_DELAY = 2.0  # seconds between catalogue pages
OPENALEX_DELAY = 1.5  # seconds between OpenAlex lookups

# ── Mirrors ──
MIRROR_INDEX_URL = "https://www.sci-hub.pub"
EXTRA_MIRROR = "https://www.tesble.com/"
DEFAULT_MIRRORS = (
    "https://sci-hub.st/",
    "https://sci-hub.se/",
    "https://sci-hub.ru/",
    EXTRA_MIRROR,
)
DOWNLOAD_DELAY = 3.0  # seconds between DOIs
MIRROR_DELAY = 1.0  # seconds between mirrors and between retries
MIN_VALID_SIZE = 1024  # bytes; smaller downloads are discarded
RETRY_ATTEMPTS = 3
REQUEST_TIMEOUT = 10  # seconds
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
}

# ── Storage network (Irys) ──
GRAPHQL_URL = "https://uploader.irys.xyz/graphql"
GATEWAY_URL = "https://gateway.irys.xyz"
IRYS_NETWORK = "mainnet"
IRYS_TOKEN = "solana"
APP_NAME = "scivault"
SCHEMA_VERSION = "2.0.0"
METADATA_CONTENT_TYPE = "application/json"
PDF_CONTENT_TYPE = "application/pdf"

# ── Reporting ──
PROGRESS_EVERY = 10  # print progress every N items


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable settings handed to every stage."""

    workspace: Path = WORKSPACE_ROOT
    catalogue_url: str = CATALOGUE_URL
    openalex_url: str = OPENALEX_URL
    graphql_url: str = GRAPHQL_URL
    gateway_url: str = GATEWAY_URL
    mirror_index_url: str = MIRROR_INDEX_URL
    mirrors: tuple[str, ...] = DEFAULT_MIRRORS
    catalogue_delay: float = CATALOGUE_DELAY
    openalex_delay: float = OPENALEX_DELAY
    download_delay: float = DOWNLOAD_DELAY
    mirror_delay: float = MIRROR_DELAY
    min_valid_size: int = MIN_VALID_SIZE
    retry_attempts: int = RETRY_ATTEMPTS
    request_timeout: float = REQUEST_TIMEOUT
    progress_every: int = PROGRESS_EVERY
    app_name: str = APP_NAME
    schema_version: str = SCHEMA_VERSION
    collection: str = ""
    private_key: str = field(default="", repr=False)
    wallet_address: str = ""
    network: str = IRYS_NETWORK
    token: str = IRYS_TOKEN

    # ── Data paths ──
    @property
    def doi_dir(self) -> Path:
        return self.workspace / "doi"

    @property
    def pdf_dir(self) -> Path:
        return self.workspace / "pdf"

    @property
    def index_dir(self) -> Path:
        return self.workspace / "index"

    def doi_page_path(self, page: int) -> Path:
        return self.doi_dir / f"page_{page}.json"

    def pdf_page_dir(self, page: int) -> Path:
        return self.pdf_dir / f"page_{page}"

    def failed_log_path(self, page: int) -> Path:
        return self.pdf_page_dir(page) / f"failed_log_page_{page}.txt"

    def metadata_path(self, page: int) -> Path:
        return self.pdf_page_dir(page) / "basic_metadata.json"

    def report_path(self, page: int, prefix: str) -> Path:
        """Per-stage report, e.g. ``pdf/page_3/upload_pdf_report_page_3.json``."""
        return self.pdf_page_dir(page) / f"{prefix}_page_{page}.json"

    def base_tags(self, content_type: str) -> list[tuple[str, str]]:
        """Fixed tag vocabulary shared by every uploaded object."""
        return [
            ("App-Name", self.app_name),
            ("Content-Type", content_type),
            ("Version", self.schema_version),
        ]


def load_config() -> PipelineConfig:
    """Build the run configuration from module defaults and the environment.

    Returns:
        A frozen ``PipelineConfig``. Environment variables consulted:
        ``SCIVAULT_WORKSPACE``, ``SCIVAULT_CATALOGUE_URL``,
        ``SCIVAULT_OPENALEX_URL``, ``SCIVAULT_GRAPHQL_URL``,
        ``SCIVAULT_GATEWAY_URL``, ``SCIVAULT_COLLECTION``,
        ``SCIVAULT_NETWORK``, ``PRIVATE_KEY`` and ``WALLET_ADDRESS``.
    """
    env = os.environ
    return PipelineConfig(
        workspace=Path(env.get("SCIVAULT_WORKSPACE", str(WORKSPACE_ROOT))),
        catalogue_url=env.get("SCIVAULT_CATALOGUE_URL", CATALOGUE_URL),
        openalex_url=env.get("SCIVAULT_OPENALEX_URL", OPENALEX_URL),
        graphql_url=env.get("SCIVAULT_GRAPHQL_URL", GRAPHQL_URL),
        gateway_url=env.get("SCIVAULT_GATEWAY_URL", GATEWAY_URL),
        collection=env.get("SCIVAULT_COLLECTION", ""),
        network=env.get("SCIVAULT_NETWORK", IRYS_NETWORK),
        private_key=env.get("PRIVATE_KEY", ""),
        wallet_address=env.get("WALLET_ADDRESS", ""),
    )


def ensure_directories(config: PipelineConfig) -> None:
    """Create data directories if they don't exist."""
    config.doi_dir.mkdir(parents=True, exist_ok=True)
    config.pdf_dir.mkdir(parents=True, exist_ok=True)
    config.index_dir.mkdir(parents=True, exist_ok=True)
