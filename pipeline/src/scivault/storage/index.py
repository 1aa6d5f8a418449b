"""
Read side of the storage network: the GraphQL tag index and the gateway.

The index is eventually consistent. An object uploaded moments ago may not
be visible yet, so a dedupe check can miss it and the object may be uploaded
twice (at-least-once delivery).
"""

import json
from collections.abc import Iterator

import requests

from scivault.storage.base import StorageError


def _tag_filter(tags: dict[str, str]) -> str:
    # json.dumps yields valid, escaped GraphQL string literals
    return ", ".join(
        f"{{ name: {json.dumps(name)}, values: [{json.dumps(value)}] }}"
        for name, value in tags.items()
    )


def build_transactions_query(
    tags: dict[str, str],
    *,
    first: int | None = None,
    order: str | None = None,
    after: str | None = None,
    with_tags: bool = False,
    with_cursor: bool = False,
) -> str:
    """Build a ``transactions(tags: ...)`` GraphQL query."""
    args = [f"tags: [{_tag_filter(tags)}]"]
    if first is not None:
        args.append(f"first: {int(first)}")
    if order is not None:
        args.append(f"order: {order}")
    if after:
        args.append(f"after: {json.dumps(after)}")

    node_fields = "id tags { name value }" if with_tags else "id"
    edge_fields = f"node {{ {node_fields} }}" + (" cursor" if with_cursor else "")
    return (
        "query { transactions("
        + ", ".join(args)
        + f") {{ edges {{ {edge_fields} }} pageInfo {{ hasNextPage }} }} }}"
    )


class StorageIndex:
    """Tag-filtered queries against the network's GraphQL endpoint."""

    def __init__(
        self,
        graphql_url: str,
        gateway_url: str,
        session: requests.Session,
        timeout: float = 30,
    ) -> None:
        self.graphql_url = graphql_url
        self.gateway_url = gateway_url.rstrip("/")
        self._session = session
        self._timeout = timeout

    def query(self, query: str) -> dict:
        """POST a GraphQL query and return its ``data`` object.

        Raises:
            requests.RequestException: On network or HTTP errors.
            StorageError: If the endpoint reports GraphQL errors.
        """
        response = self._session.post(
            self.graphql_url,
            json={"query": query},
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
        )
        response.raise_for_status()
        result = response.json()
        if result.get("errors"):
            raise StorageError(f"GraphQL error: {result['errors']}")
        return result.get("data") or {}

    def find_existing(self, tags: dict[str, str]) -> str | None:
        """Id of an object carrying all of *tags*, or None."""
        data = self.query(build_transactions_query(tags))
        edges = (data.get("transactions") or {}).get("edges") or []
        if not edges:
            return None
        return (edges[0].get("node") or {}).get("id")

    def iter_transactions(
        self,
        tags: dict[str, str],
        *,
        page_size: int = 1000,
        order: str = "DESC",
        after: str | None = None,
        with_tags: bool = False,
        max_pages: int | None = None,
    ) -> Iterator[list[dict]]:
        """Yield pages of edges (``{node: {...}, cursor}``) until the index is exhausted."""
        cursor = after
        pages = 0
        while max_pages is None or pages < max_pages:
            query = build_transactions_query(
                tags,
                first=page_size,
                order=order,
                after=cursor,
                with_tags=with_tags,
                with_cursor=True,
            )
            data = self.query(query)
            transactions = data.get("transactions") or {}
            edges = transactions.get("edges") or []
            if not edges:
                return
            pages += 1
            yield edges
            cursor = edges[-1].get("cursor")
            has_next = (transactions.get("pageInfo") or {}).get("hasNextPage", False)
            if not cursor or not has_next:
                return

    def fetch_json(self, tx_id: str):
        """Download an object by id from the gateway and decode it as JSON."""
        response = self._session.get(f"{self.gateway_url}/{tx_id}", timeout=self._timeout)
        response.raise_for_status()
        return response.json()


def tag_value(node: dict, name: str) -> str | None:
    """Value of tag *name* on a transaction node, if present."""
    for tag in node.get("tags") or []:
        if tag.get("name") == name:
            return tag.get("value")
    return None
