"""
HTTP client for the source catalog (Atlas glossary REST API)
"""

from typing import Any, Dict, List, Optional
import logging

import httpx
from pydantic import ValidationError

from connector.base import CatalogService
from connector.clients.auth import ClientCredentialsTokenProvider
from core.exceptions import (
    AuthenticationError,
    CatalogNotFoundError,
    CatalogRequestError,
)
from schemas.catalog import Catalog, Record

logger = logging.getLogger(__name__)

GLOSSARY_PATH = "/datamap/api/atlas/v2/glossary"


class HttpCatalogService(CatalogService):
    """
    Catalog service backed by the Atlas glossary endpoints.

    Every failure surfaces as a SourceError subclass so the reader can
    isolate it to the catalog being read.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_provider: ClientCredentialsTokenProvider,
        endpoint: str,
        scope: str,
        api_version: str = "2023-09-01",
        page_size: int = 100,
        timeout: float = 30.0
    ):
        self.http_client = http_client
        self.token_provider = token_provider
        self.base_url = endpoint.rstrip("/") + GLOSSARY_PATH
        self.scope = scope
        self.api_version = api_version
        self.page_size = page_size
        self.timeout = timeout

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, catalog_id: str = None) -> Any:
        url = self.base_url + path
        context = {"url": url}
        if catalog_id:
            context["catalog_id"] = catalog_id

        try:
            token = await self.token_provider.get_token(self.scope)
        except AuthenticationError as e:
            raise CatalogRequestError(
                "Could not authenticate to the source catalog",
                context=context,
                original_exception=e
            )

        query = {"api-version": self.api_version}
        if params:
            query.update(params)

        try:
            response = await self.http_client.get(
                url,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                params=query,
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise CatalogRequestError("Request timeout", context=context, original_exception=e)
        except httpx.HTTPError as e:
            raise CatalogRequestError("Network error", context=context, original_exception=e)

        if response.status_code == 404:
            raise CatalogNotFoundError(
                f"Not found: {url}",
                context={**context, "status_code": 404}
            )

        if response.status_code in (401, 403):
            self.token_provider.invalidate(self.scope)

        if response.status_code >= 400:
            raise CatalogRequestError(
                f"Source catalog returned HTTP {response.status_code}",
                context={
                    **context,
                    "status_code": response.status_code,
                    "response_body": response.text[:500],
                }
            )

        try:
            return response.json()
        except ValueError as e:
            raise CatalogRequestError("Invalid JSON response", context=context, original_exception=e)

    async def list_catalogs(self) -> List[Catalog]:
        payload = await self._get("")
        if not isinstance(payload, list):
            raise CatalogRequestError(
                "Unexpected glossary list payload",
                context={"payload_type": type(payload).__name__}
            )
        try:
            return [Catalog.model_validate(entry) for entry in payload]
        except ValidationError as e:
            raise CatalogRequestError("Malformed glossary in list", original_exception=e)

    async def get_catalog(self, catalog_id: str) -> Catalog:
        payload = await self._get(f"/{catalog_id}", catalog_id=catalog_id)
        if not payload:
            raise CatalogNotFoundError(
                f"Glossary {catalog_id} not found",
                context={"catalog_id": catalog_id}
            )
        try:
            return Catalog.model_validate(payload)
        except ValidationError as e:
            raise CatalogRequestError(
                "Malformed glossary payload",
                context={"catalog_id": catalog_id},
                original_exception=e
            )

    async def list_records(self, catalog_id: str) -> List[Record]:
        """Fetch all terms of a glossary using offset paging"""
        records: List[Record] = []
        offset = 0

        while True:
            page = await self._get(
                f"/{catalog_id}/terms",
                params={"limit": self.page_size, "offset": offset},
                catalog_id=catalog_id
            )
            if not isinstance(page, list):
                raise CatalogRequestError(
                    "Unexpected terms payload",
                    context={"catalog_id": catalog_id, "offset": offset}
                )

            try:
                records.extend(Record.model_validate(entry) for entry in page)
            except ValidationError as e:
                raise CatalogRequestError(
                    "Malformed term payload",
                    context={"catalog_id": catalog_id, "offset": offset},
                    original_exception=e
                )

            logger.debug(f"Fetched {len(page)} terms from glossary {catalog_id} at offset {offset}")

            if len(page) < self.page_size:
                break
            offset += self.page_size

        return records
