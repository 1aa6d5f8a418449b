"""Shared pytest fixtures for scivault tests."""

from unittest.mock import MagicMock
from urllib.parse import urlencode

import pytest
import requests

from scivault.config import PipelineConfig
from scivault.storage import Receipt, StorageUploader

PDF_BYTES = b"%PDF-1.4\n" + b"0" * 4096


def make_response(status: int = 200, json=None, text: str = "", content: bytes = b"") -> MagicMock:
    """A requests.Response stand-in usable directly or as a context manager."""
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.content = content
    resp.json.return_value = json
    resp.iter_content.side_effect = lambda chunk_size=8192: iter([content])
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        resp.raise_for_status.return_value = None
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    return resp


class FakeSession:
    """Routes GET requests by full URL; unknown URLs answer 404.

    A route may be a response, an exception to raise, or a list of either
    consumed one per call.
    """

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = routes or {}
        self.calls: list[str] = []

    def get(self, url, params=None, **kwargs):
        full = f"{url}?{urlencode(params)}" if params else url
        self.calls.append(full)
        route = self.routes.get(full)
        if isinstance(route, list):
            route = route.pop(0) if route else None
        if route is None:
            return make_response(404)
        if isinstance(route, Exception):
            raise route
        return route


class FakeNetwork(StorageUploader):
    """In-memory storage network: uploader and tag index in one."""

    def __init__(self) -> None:
        self.objects: list[dict] = []
        self.queries = 0

    @property
    def uploads(self) -> int:
        return len(self.objects)

    def upload(self, data: bytes, tags) -> Receipt:
        tx_id = f"tx{len(self.objects) + 1}"
        self.objects.append({"id": tx_id, "data": data, "tags": dict(tags)})
        return Receipt(id=tx_id)

    def find_existing(self, tags: dict[str, str]) -> str | None:
        self.queries += 1
        for obj in self.objects:
            if all(obj["tags"].get(name) == value for name, value in tags.items()):
                return obj["id"]
        return None

    def balance(self) -> str:
        return "0"

    def fund(self, amount: str) -> str:
        return "fund-tx"


@pytest.fixture
def config(tmp_path) -> PipelineConfig:
    return PipelineConfig(
        workspace=tmp_path,
        catalogue_url="https://catalogue.test/dois",
        openalex_url="https://openalex.test/works",
        graphql_url="https://irys.test/graphql",
        gateway_url="https://gateway.test",
        mirrors=("https://mirror-a.test/", "https://mirror-b.test/"),
        catalogue_delay=0,
        openalex_delay=0,
        download_delay=0,
        mirror_delay=0,
        private_key="test-key",
    )


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def openalex_work() -> dict:
    return {
        "id": "https://openalex.org/W2741809807",
        "doi": "https://doi.org/10.1/a",
        "title": "Graph Neural Networks: A Review",
        "display_name": "Graph Neural Networks: A Review",
        "authorships": [
            {"author": {"display_name": "Alice Smith"}},
            {"author": {"display_name": "Bob Jones"}},
        ],
        "abstract_inverted_index": {"Graphs": [0], "are": [1], "everywhere.": [2]},
    }
