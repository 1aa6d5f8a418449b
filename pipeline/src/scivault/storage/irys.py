"""
Irys uploader driven through the ``irys`` command-line tool.

The CLI handles signing and bundling; this wrapper only builds the command,
runs it, and pulls the transaction id out of its output.

The wallet key never appears on the command line. ``-w`` accepts a keyfile
path, so each signing command gets a private temporary keyfile that is
removed as soon as the command returns.
"""

import json
import re
import shutil
import subprocess
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from scivault.storage.base import (
    Receipt,
    StorageError,
    StorageUploader,
    Tags,
    UploaderUnavailableError,
)

_UPLOAD_TIMEOUT = 300  # seconds
_UPLOADED_URL = re.compile(r"https?://\S+?/([A-Za-z0-9_-]{32,})")
_TRANSACTION_ID = re.compile(r"(?:Transaction|TX)\s*ID:?\s*([A-Za-z0-9_-]+)", re.IGNORECASE)


def keyfile_contents(private_key: str) -> str:
    """Keyfile body the CLI parses back into *private_key*.

    The CLI JSON-decodes keyfiles: byte-array keys are written as they are,
    string keys (base58) as a JSON string.
    """
    key = private_key.strip()
    return key if key.startswith("[") else json.dumps(key)


class IrysCliUploader(StorageUploader):
    """Upload to Irys by shelling out to ``irys upload``."""

    def __init__(
        self,
        private_key: str,
        *,
        network: str = "mainnet",
        token: str = "solana",
        wallet_address: str = "",
        binary: str | None = None,
    ) -> None:
        if not private_key:
            raise UploaderUnavailableError("PRIVATE_KEY is not set or empty")
        resolved = binary or shutil.which("irys")
        if resolved is None:
            raise UploaderUnavailableError(
                "irys CLI not found on PATH (install with: npm install -g @irys/cli)"
            )
        self._binary = resolved
        self._private_key = private_key
        self._network = network
        self._token = token
        self._wallet_address = wallet_address

    @contextmanager
    def _keyfile(self) -> Iterator[Path]:
        # NamedTemporaryFile creates the file readable by the owner only
        with tempfile.NamedTemporaryFile(
            "w", prefix="scivault_key_", suffix=".json", delete=False
        ) as tmp:
            tmp.write(keyfile_contents(self._private_key))
            path = Path(tmp.name)
        try:
            yield path
        finally:
            path.unlink(missing_ok=True)

    def _network_args(self) -> list[str]:
        return ["-n", self._network, "-t", self._token]

    def _run(self, args: list[str]) -> str:
        try:
            result = subprocess.run(
                [self._binary, *args],
                capture_output=True,
                text=True,
                timeout=_UPLOAD_TIMEOUT,
            )
        except subprocess.TimeoutExpired as exc:
            raise StorageError(f"irys {args[0]} timed out after {_UPLOAD_TIMEOUT}s") from exc
        except OSError as exc:
            raise StorageError(f"irys {args[0]} could not run: {exc}") from exc

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise StorageError(f"irys {args[0]} failed (exit {result.returncode}): {detail}")
        return result.stdout

    def _run_signed(self, args: list[str]) -> str:
        """Run a command that needs the wallet, passing it as ``-w <keyfile>``."""
        try:
            with self._keyfile() as key_path:
                return self._run([*args, "-w", str(key_path)])
        except OSError as exc:
            raise StorageError(f"could not write wallet keyfile: {exc}") from exc

    @staticmethod
    def build_tag_args(tags: Tags) -> list[str]:
        """``--tags name1 value1 name2 value2 ...``"""
        if not tags:
            return []
        flat = ["--tags"]
        for name, value in tags:
            flat += [name, value]
        return flat

    @staticmethod
    def parse_upload_id(output: str) -> str:
        m = _UPLOADED_URL.search(output)
        if not m:
            raise StorageError(f"Could not find a transaction id in irys output: {output.strip()!r}")
        return m.group(1)

    def upload_file(self, path: Path, tags: Tags) -> Receipt:
        output = self._run_signed(
            ["upload", str(path), *self._network_args(), *self.build_tag_args(tags)]
        )
        return Receipt(id=self.parse_upload_id(output))

    def upload(self, data: bytes, tags: Tags) -> Receipt:
        with tempfile.NamedTemporaryFile(prefix="scivault_", delete=False) as tmp:
            tmp.write(data)
            tmp_path = Path(tmp.name)
        try:
            return self.upload_file(tmp_path, tags)
        finally:
            tmp_path.unlink(missing_ok=True)

    def balance(self) -> str:
        if not self._wallet_address:
            raise StorageError("WALLET_ADDRESS is not set; cannot query balance")
        output = self._run(["balance", self._wallet_address, *self._network_args()])
        return output.strip()

    def fund(self, amount: str) -> str:
        output = self._run_signed(["fund", amount, *self._network_args()])
        m = _TRANSACTION_ID.search(output)
        return m.group(1) if m else output.strip()
