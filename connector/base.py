"""
Abstract interfaces for the remote services and checkpoint storage.

The sync engine only talks to these capabilities. Concrete HTTP clients live
in connector.clients; tests substitute in-memory implementations.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from schemas.catalog import Catalog, Record
from schemas.index import Connection, ConnectionSchema, IndexItem, ItemPage


class CatalogService(ABC):
    """
    Read access to the source catalog.

    Implementations raise core.exceptions.SourceError subclasses on failure.
    """

    @abstractmethod
    async def list_catalogs(self) -> List[Catalog]:
        """Return every catalog visible to the account"""
        pass

    @abstractmethod
    async def get_catalog(self, catalog_id: str) -> Catalog:
        """
        Fetch a single catalog.

        Raises:
            CatalogNotFoundError: If the catalog does not exist
        """
        pass

    @abstractmethod
    async def list_records(self, catalog_id: str) -> List[Record]:
        """Return every record of a catalog"""
        pass


class IndexService(ABC):
    """
    Connection-scoped operations on the index service.

    Implementations raise core.exceptions.IndexServiceError subclasses;
    a missing resource is reported as IndexNotFoundError.
    """

    @abstractmethod
    async def create_connection(self, connection: Connection) -> Connection:
        pass

    @abstractmethod
    async def get_connection(self, connection_id: str) -> Connection:
        pass

    @abstractmethod
    async def list_connections(self) -> List[Connection]:
        pass

    @abstractmethod
    async def delete_connection(self, connection_id: str) -> None:
        pass

    @abstractmethod
    async def get_schema(self, connection_id: str) -> ConnectionSchema:
        pass

    @abstractmethod
    async def patch_schema(self, connection_id: str, schema: ConnectionSchema) -> None:
        """Submit a schema; provisioning continues asynchronously on the service"""
        pass

    @abstractmethod
    async def put_item(self, connection_id: str, item: IndexItem) -> None:
        """Create or fully replace an item"""
        pass

    @abstractmethod
    async def delete_item(self, connection_id: str, item_id: str) -> None:
        pass

    @abstractmethod
    async def list_items_page(
        self,
        connection_id: str,
        next_link: Optional[str] = None
    ) -> ItemPage:
        """
        Fetch one page of item ids.

        Args:
            connection_id: Connection to enumerate
            next_link: Continuation link from the previous page, or None for the first page
        """
        pass


class CheckpointStorage(ABC):
    """Durable storage for a single value addressed by a fixed key"""

    key: str

    @abstractmethod
    async def read(self) -> Optional[bytes]:
        """Return the stored bytes, or None when nothing has been written"""
        pass

    @abstractmethod
    async def write_atomic(self, data: bytes) -> None:
        """Replace the stored value; readers see either the old or the new value"""
        pass
