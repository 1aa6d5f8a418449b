"""
Storage network access for the publishing stages.

Writes go through a ``StorageUploader`` picked by name with
``create_uploader``; reads (dedupe checks, statistics, search) go through
``StorageIndex``. Backends are imported only when selected, so stages that
only read never need the uploader's tooling.
"""

from importlib import import_module

from scivault.storage.base import (
    Receipt,
    StorageError,
    StorageUploader,
    UploaderUnavailableError,
)
from scivault.storage.index import StorageIndex

# provider name -> (module, class)
UPLOADERS = {
    "irys": ("scivault.storage.irys", "IrysCliUploader"),
}


def create_uploader(provider: str, **kwargs: object) -> StorageUploader:
    """Build the uploader registered as *provider*, passing *kwargs* through.

    Raises:
        ValueError: No uploader is registered under that name.
        UploaderUnavailableError: The backend's wallet or tooling is missing.
    """
    try:
        module_name, class_name = UPLOADERS[provider]
    except KeyError:
        known = ", ".join(sorted(UPLOADERS))
        raise ValueError(f"Unknown storage provider: {provider!r} (known: {known})") from None
    uploader_cls = getattr(import_module(module_name), class_name)
    return uploader_cls(**kwargs)


__all__ = [
    "Receipt",
    "StorageError",
    "StorageIndex",
    "StorageUploader",
    "UploaderUnavailableError",
    "create_uploader",
]
