"""
HTTP client for the index service (Graph external connections API)
"""

from typing import Any, Dict, List, Optional
import logging

import httpx
from pydantic import ValidationError

from connector.base import IndexService
from connector.clients.auth import ClientCredentialsTokenProvider
from core.exceptions import (
    AuthenticationError,
    IndexNotFoundError,
    IndexRequestError,
)
from schemas.index import Connection, ConnectionSchema, ConnectionState, IndexItem, ItemPage

logger = logging.getLogger(__name__)

CONNECTIONS_PATH = "/external/connections"


def _parse_connection(payload: Dict[str, Any]) -> Connection:
    return Connection(
        id=payload.get("id", ""),
        name=payload.get("name"),
        description=payload.get("description"),
        state=ConnectionState.parse(payload.get("state")),
    )


class HttpIndexService(IndexService):
    """
    Index service backed by the external connections REST API.

    404 responses raise IndexNotFoundError; every other failure raises
    IndexRequestError with the HTTP status attached.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_provider: ClientCredentialsTokenProvider,
        base_url: str,
        scope: str,
        page_size: int = 100,
        timeout: float = 30.0
    ):
        self.http_client = http_client
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.scope = scope
        self.page_size = page_size
        self.timeout = timeout

    def _connection_url(self, connection_id: str) -> str:
        return f"{self.base_url}{CONNECTIONS_PATH}/{connection_id}"

    async def _request(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        context = {"method": method, "url": url, **(context or {})}

        try:
            token = await self.token_provider.get_token(self.scope)
        except AuthenticationError as e:
            raise IndexRequestError(
                "Could not authenticate to the index service",
                context=context,
                original_exception=e,
                status_code=e.status_code
            )

        try:
            response = await self.http_client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {token}"},
                json=json,
                params=params,
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise IndexRequestError("Request timeout", context=context, original_exception=e)
        except httpx.HTTPError as e:
            raise IndexRequestError("Network error", context=context, original_exception=e)

        if response.status_code == 404:
            raise IndexNotFoundError(
                f"Not found: {url}",
                context=context,
                status_code=404
            )

        if response.status_code in (401, 403):
            self.token_provider.invalidate(self.scope)

        if response.status_code >= 400:
            raise IndexRequestError(
                f"Index service returned HTTP {response.status_code}",
                context={**context, "response_body": response.text[:500]},
                status_code=response.status_code
            )

        return response

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as e:
            raise IndexRequestError(
                "Invalid JSON response",
                context={"url": str(response.request.url)},
                original_exception=e,
                status_code=response.status_code
            )

    async def create_connection(self, connection: Connection) -> Connection:
        body = {"id": connection.id, "name": connection.name, "description": connection.description}
        response = await self._request(
            "POST",
            f"{self.base_url}{CONNECTIONS_PATH}",
            json={k: v for k, v in body.items() if v is not None},
            context={"connection_id": connection.id}
        )
        return _parse_connection(self._json(response))

    async def get_connection(self, connection_id: str) -> Connection:
        response = await self._request(
            "GET",
            self._connection_url(connection_id),
            context={"connection_id": connection_id}
        )
        return _parse_connection(self._json(response))

    async def list_connections(self) -> List[Connection]:
        response = await self._request("GET", f"{self.base_url}{CONNECTIONS_PATH}")
        return [_parse_connection(entry) for entry in self._json(response).get("value", [])]

    async def delete_connection(self, connection_id: str) -> None:
        await self._request(
            "DELETE",
            self._connection_url(connection_id),
            context={"connection_id": connection_id}
        )

    async def get_schema(self, connection_id: str) -> ConnectionSchema:
        response = await self._request(
            "GET",
            f"{self._connection_url(connection_id)}/schema",
            context={"connection_id": connection_id}
        )
        try:
            return ConnectionSchema.model_validate(self._json(response))
        except ValidationError as e:
            raise IndexRequestError(
                "Malformed schema payload",
                context={"connection_id": connection_id},
                original_exception=e
            )

    async def patch_schema(self, connection_id: str, schema: ConnectionSchema) -> None:
        await self._request(
            "PATCH",
            f"{self._connection_url(connection_id)}/schema",
            json=schema.to_payload(),
            context={"connection_id": connection_id}
        )

    async def put_item(self, connection_id: str, item: IndexItem) -> None:
        await self._request(
            "PUT",
            f"{self._connection_url(connection_id)}/items/{item.id}",
            json=item.to_payload(),
            context={"connection_id": connection_id, "item_id": item.id}
        )

    async def delete_item(self, connection_id: str, item_id: str) -> None:
        await self._request(
            "DELETE",
            f"{self._connection_url(connection_id)}/items/{item_id}",
            context={"connection_id": connection_id, "item_id": item_id}
        )

    async def list_items_page(
        self,
        connection_id: str,
        next_link: Optional[str] = None
    ) -> ItemPage:
        if next_link:
            # Continuation links already carry the query
            response = await self._request("GET", next_link, context={"connection_id": connection_id})
        else:
            response = await self._request(
                "GET",
                f"{self._connection_url(connection_id)}/items",
                params={"$select": "id", "$top": self.page_size},
                context={"connection_id": connection_id}
            )

        payload = self._json(response)
        entries = payload.get("value", []) if isinstance(payload, dict) else None
        if not isinstance(entries, list) or not all(
            isinstance(entry, dict) and isinstance(entry.get("id"), (str, type(None))) for entry in entries
        ):
            raise IndexRequestError(
                "Unexpected item list payload",
                context={"connection_id": connection_id, "payload_type": type(payload).__name__},
                status_code=response.status_code
            )
        next_link = payload.get("@odata.nextLink")
        if next_link is not None and not isinstance(next_link, str):
            raise IndexRequestError(
                "Unexpected item list continuation link",
                context={"connection_id": connection_id},
                status_code=response.status_code
            )
        return ItemPage(
            ids=[entry["id"] for entry in entries if entry.get("id")],
            next_link=next_link,
        )
