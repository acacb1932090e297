"""
Index reconciler - pushes items to the index service and manages the
connection's schema provisioning.

Single-item operations return OperationResult and bulk operations return
BulkResult; only item enumeration raises (ItemEnumerationError), because
a partial id list must never be mistaken for a complete one.
"""

from typing import Awaitable, Callable, Iterable, List, Optional
import asyncio
import logging
import time

from connector.base import IndexService
from connector.loaders.index_schema import GLOSSARY_SCHEMA
from core.exceptions import (
    IndexNotFoundError,
    IndexServiceError,
    ItemEnumerationError,
    ProvisioningTimeoutError,
)
from schemas.index import Connection, ConnectionSchema, ConnectionState, IndexItem
from schemas.sync import BulkResult, OperationResult

logger = logging.getLogger(__name__)

DEFAULT_POLL_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 5.0


class IndexReconciler:
    """
    Reconciles mapped items against one or more index connections.

    Args:
        service: Index service implementation
        poll_timeout: Upper bound in seconds for schema provisioning
        poll_interval: Seconds between provisioning state polls
        clock: Monotonic clock, injectable for tests
        sleep: Async sleep, injectable for tests
    """

    def __init__(
        self,
        service: IndexService,
        poll_timeout: float = DEFAULT_POLL_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.service = service
        self.poll_timeout = poll_timeout
        self.poll_interval = poll_interval
        self.clock = clock
        self.sleep = sleep

    # ------------------------------------------------------------------
    # Connection state and schema
    # ------------------------------------------------------------------

    async def get_state(self, connection_id: str) -> Optional[ConnectionState]:
        """Read the connection state; None when it cannot be read"""
        try:
            connection = await self.service.get_connection(connection_id)
        except IndexServiceError as e:
            logger.error(
                f"Failed to read state of connection {connection_id}",
                extra={"error_context": e.to_dict()}
            )
            return None
        return connection.state

    async def get_schema(self, connection_id: str) -> Optional[ConnectionSchema]:
        try:
            return await self.service.get_schema(connection_id)
        except IndexNotFoundError:
            logger.warning(f"No schema found for connection {connection_id}")
            return None
        except IndexServiceError as e:
            logger.error(
                f"Failed to read schema of connection {connection_id}",
                extra={"error_context": e.to_dict()}
            )
            return None

    async def register_schema(
        self,
        connection_id: str,
        schema: ConnectionSchema = GLOSSARY_SCHEMA
    ) -> OperationResult:
        """
        Submit the schema and wait until provisioning settles.

        Registration is only attempted when the connection is in draft
        state or its state could not be determined.
        """
        state = await self.get_state(connection_id)
        if state is not None and state != ConnectionState.DRAFT:
            logger.warning(
                f"Refusing schema registration on connection {connection_id}: state is {state.value}"
            )
            return OperationResult.failure(
                f"Schema registration requires a draft connection, state is {state.value}",
                state=state
            )

        logger.info(f"Registering schema on connection {connection_id} ({len(schema.properties)} properties)")
        try:
            await self.service.patch_schema(connection_id, schema)
        except IndexServiceError as e:
            logger.error(
                f"Schema registration rejected for connection {connection_id}",
                extra={"error_context": e.to_dict()}
            )
            return OperationResult.failure("Schema registration rejected", error=e, state=state)

        logger.info("Schema submitted; waiting for provisioning")
        return await self.wait_for_provisioning(connection_id)

    async def wait_for_provisioning(self, connection_id: str) -> OperationResult:
        """
        Poll the connection state until ready, a fatal state, or timeout.

        A failed poll is logged and polled again on the next tick.
        """
        deadline = self.clock() + self.poll_timeout
        last_state: Optional[ConnectionState] = None

        while True:
            try:
                connection = await self.service.get_connection(connection_id)
                last_state = connection.state
            except IndexServiceError as e:
                logger.warning(
                    f"Transient error polling connection {connection_id}: {e.message}"
                )

            if last_state == ConnectionState.READY:
                logger.info(f"Connection {connection_id} is ready")
                return OperationResult.success("Schema provisioned", state=last_state)

            if last_state is not None and last_state.is_fatal:
                logger.error(
                    f"Schema provisioning failed for connection {connection_id}: state {last_state.value}"
                )
                return OperationResult.failure(
                    f"Provisioning ended in state {last_state.value}",
                    state=last_state
                )

            if self.clock() >= deadline:
                break

            await self.sleep(self.poll_interval)

        observed = last_state.value if last_state else "unknown"
        error = ProvisioningTimeoutError(
            "Schema provisioning did not complete in time",
            context={
                "connection_id": connection_id,
                "last_state": observed,
                "timeout_seconds": self.poll_timeout,
            }
        )
        logger.error(
            f"Schema provisioning timed out after {self.poll_timeout}s; last state {observed}",
            extra={"error_context": error.to_dict()}
        )
        return OperationResult.failure("Provisioning timed out", error=error, state=last_state)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def create_connection(
        self,
        connection_id: str,
        name: str,
        description: Optional[str] = None
    ) -> OperationResult:
        try:
            created = await self.service.create_connection(
                Connection(id=connection_id, name=name, description=description)
            )
        except IndexServiceError as e:
            logger.error(
                f"Failed to create connection {connection_id}",
                extra={"error_context": e.to_dict()}
            )
            return OperationResult.failure("Connection creation failed", error=e)

        logger.info(f"Connection {connection_id} created")
        return OperationResult.success("Connection created", state=created.state)

    async def list_connections(self) -> List[Connection]:
        try:
            return await self.service.list_connections()
        except IndexServiceError as e:
            logger.error("Failed to list connections", extra={"error_context": e.to_dict()})
            return []

    async def delete_connection(self, connection_id: str) -> OperationResult:
        try:
            await self.service.delete_connection(connection_id)
        except IndexNotFoundError:
            logger.info(f"Connection {connection_id} not found; already deleted")
            return OperationResult.success("Connection not found")
        except IndexServiceError as e:
            logger.error(
                f"Failed to delete connection {connection_id}",
                extra={"error_context": e.to_dict()}
            )
            return OperationResult.failure("Connection deletion failed", error=e)

        logger.info(f"Connection {connection_id} deleted")
        return OperationResult.success("Connection deleted")

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def upsert(self, connection_id: str, item: IndexItem) -> OperationResult:
        """Create or fully replace an item"""
        try:
            await self.service.put_item(connection_id, item)
        except IndexServiceError as e:
            logger.error(
                f"Failed to upsert item {item.id}",
                extra={"error_context": e.to_dict()}
            )
            return OperationResult.failure(f"Upsert of {item.id} failed", error=e)

        logger.debug(f"Item {item.id} upserted")
        return OperationResult.success()

    async def delete(self, connection_id: str, item_id: str) -> OperationResult:
        """Delete an item; an item that does not exist counts as deleted"""
        try:
            await self.service.delete_item(connection_id, item_id)
        except IndexNotFoundError:
            logger.debug(f"Item {item_id} not found; already deleted")
            return OperationResult.success("Item not found")
        except IndexServiceError as e:
            logger.error(
                f"Failed to delete item {item_id}",
                extra={"error_context": e.to_dict()}
            )
            return OperationResult.failure(f"Delete of {item_id} failed", error=e)

        logger.debug(f"Item {item_id} deleted")
        return OperationResult.success()

    async def list_item_ids(self, connection_id: str) -> List[str]:
        """
        Enumerate every item id on the connection, following continuation links.

        Raises:
            ItemEnumerationError: If any page fails; collected ids are discarded
        """
        ids: List[str] = []
        seen = set()
        next_link: Optional[str] = None
        pages = 0

        try:
            while True:
                page = await self.service.list_items_page(connection_id, next_link)
                pages += 1
                for item_id in page.ids:
                    if item_id not in seen:
                        seen.add(item_id)
                        ids.append(item_id)
                next_link = page.next_link
                if not next_link:
                    break
        except IndexServiceError as e:
            raise ItemEnumerationError(
                "Failed to enumerate items",
                context={
                    "connection_id": connection_id,
                    "pages_read": pages,
                    "ids_discarded": len(ids),
                },
                original_exception=e,
                status_code=e.status_code
            )

        logger.info(f"Enumerated {len(ids)} items on connection {connection_id} ({pages} pages)")
        return ids

    async def upsert_many(self, connection_id: str, items: Iterable[IndexItem]) -> BulkResult:
        result = BulkResult()
        for item in items:
            outcome = await self.upsert(connection_id, item)
            if outcome.ok:
                result.succeeded += 1
            else:
                result.failed += 1
        return result

    async def delete_many(self, connection_id: str, item_ids: Iterable[str]) -> BulkResult:
        result = BulkResult()
        for item_id in item_ids:
            outcome = await self.delete(connection_id, item_id)
            if outcome.ok:
                result.succeeded += 1
            else:
                result.failed += 1
        return result

    async def delete_all_items(self, connection_id: str) -> BulkResult:
        """
        Delete every item on the connection.

        Raises:
            ItemEnumerationError: If the items could not be listed
        """
        item_ids = await self.list_item_ids(connection_id)
        if not item_ids:
            logger.info(f"No items to delete on connection {connection_id}")
            return BulkResult()

        logger.info(f"Deleting {len(item_ids)} items from connection {connection_id}")
        result = await self.delete_many(connection_id, item_ids)
        logger.info(f"Delete complete: {result.succeeded} deleted, {result.failed} failed")
        return result
