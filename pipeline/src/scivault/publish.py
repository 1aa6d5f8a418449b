"""
Shared publishing logic for metadata records and PDFs.

Every item goes through the same states::

    pending -> dedupe-check -> skipped                  (already on the network)
                            -> uploading -> published
                                         -> failed

Nothing leaves ``failed`` on its own; rerunning the stage repeats the dedupe
check and tries again.
"""

import sys
from collections.abc import Callable
from dataclasses import dataclass

import requests

from scivault.config import PipelineConfig
from scivault.storage import (
    Receipt,
    StorageError,
    StorageIndex,
    StorageUploader,
    UploaderUnavailableError,
    create_uploader,
)
from scivault.utils import StageReport, retry

PUBLISHED = "published"
SKIPPED = "skipped"
FAILED = "failed"

# How each item state is counted in a StageReport
_REPORT_STATUS = {PUBLISHED: "success", SKIPPED: "skipped", FAILED: "failed"}


@dataclass
class PublishResult:
    doi: str
    status: str
    id: str | None = None
    reason: str = ""


def dedupe_tags(config: PipelineConfig, content_type: str, doi: str) -> dict[str, str]:
    """Tags that identify an already-published copy of *doi*."""
    tags = dict(config.base_tags(content_type))
    tags["doi"] = doi
    return tags


def publish_item(
    doi: str,
    upload: Callable[[], Receipt],
    *,
    content_type: str,
    index: StorageIndex,
    config: PipelineConfig,
) -> PublishResult:
    """Run one item through dedupe check and upload.

    Args:
        doi: Identifier of the item; used for the dedupe query.
        upload: Performs the upload and returns the receipt.
        content_type: Content-Type tag value to match during dedupe.
        index: Storage index used for the existence query.
        config: Run configuration (retry counts, tag vocabulary).

    Returns:
        A ``PublishResult`` in state published, skipped or failed.
    """
    try:
        existing = retry(
            lambda: index.find_existing(dedupe_tags(config, content_type, doi)),
            attempts=config.retry_attempts,
            delay=config.mirror_delay,
            exceptions=(requests.RequestException,),
            label=f"dedupe check {doi}",
        )
    except (requests.RequestException, StorageError, ValueError) as exc:
        print(f"  ✗ Dedupe check failed for {doi}: {exc}")
        return PublishResult(doi, FAILED, reason=f"dedupe-check: {exc}")

    if existing:
        print(f"  ⚠️  Already uploaded: {doi} ({existing})")
        return PublishResult(doi, SKIPPED, id=existing)

    try:
        receipt = retry(
            upload,
            attempts=config.retry_attempts,
            delay=config.mirror_delay,
            exceptions=(StorageError,),
            label=f"upload {doi}",
        )
    except (StorageError, OSError) as exc:
        print(f"  ✗ Upload failed: {doi} - {exc}")
        return PublishResult(doi, FAILED, reason=str(exc))

    print(f"  ✓ Uploaded {doi} ({receipt.id})")
    return PublishResult(doi, PUBLISHED, id=receipt.id)


def record_result(report: StageReport, result: PublishResult, **extra) -> None:
    detail = {"doi": result.doi, **extra}
    if result.id:
        detail["id"] = result.id
    if result.reason:
        detail["reason"] = result.reason
    report.record(_REPORT_STATUS[result.status], **detail)


def uploader_from_config(config: PipelineConfig) -> StorageUploader:
    """Create the configured uploader, exiting with status 1 if it cannot start."""
    try:
        uploader = create_uploader(
            "irys",
            private_key=config.private_key,
            network=config.network,
            token=config.token,
            wallet_address=config.wallet_address,
        )
    except UploaderUnavailableError as exc:
        print(f"✗ Failed to initialise uploader: {exc}", file=sys.stderr)
        sys.exit(1)
    print("✓ Irys uploader initialised")
    return uploader


def index_from_config(config: PipelineConfig, session: requests.Session) -> StorageIndex:
    return StorageIndex(
        config.graphql_url, config.gateway_url, session, timeout=config.request_timeout
    )
