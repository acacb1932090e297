"""
Read glossaries and their terms from the source catalog with change-time filtering
"""

from typing import List, Optional
from datetime import datetime, timedelta, timezone
import logging

from connector.base import CatalogService
from core.exceptions import SourceError
from schemas.catalog import Catalog, Record, SourceRecord
from schemas.sync import FetchResult

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Convert an instant to epoch milliseconds; naive values are taken as UTC"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


class GlossaryReader:
    """
    Collects the records a run has to process.

    Failures are tolerated at catalog granularity: a catalog that cannot
    be read is logged and counted, and the remaining catalogs are still
    processed. Nothing here raises to the caller.
    """

    def __init__(self, service: CatalogService):
        self.service = service

    async def test_connection(self) -> bool:
        """Check that the source catalog answers by listing its catalogs"""
        try:
            catalogs = await self.service.list_catalogs()
        except SourceError as e:
            logger.error(
                "Source catalog connection test failed",
                extra={"error_context": e.to_dict()}
            )
            return False

        logger.info(f"Source catalog reachable: {len(catalogs)} glossaries visible")
        return True

    async def find_catalog_id_by_name(self, name: str) -> Optional[str]:
        """Case-insensitive lookup of a catalog id by display name"""
        try:
            catalogs = await self.service.list_catalogs()
        except SourceError as e:
            logger.error(
                f"Failed to list catalogs while looking up '{name}'",
                extra={"error_context": e.to_dict()}
            )
            return None

        for catalog in catalogs:
            if catalog.name and catalog.name.lower() == name.lower():
                return catalog.id

        logger.warning(f"No catalog named '{name}' found")
        return None

    async def _resolve_catalogs(self, catalog_filter: Optional[str]) -> Optional[List[Catalog]]:
        if catalog_filter:
            try:
                catalog = await self.service.get_catalog(catalog_filter)
            except SourceError as e:
                logger.error(
                    f"Catalog {catalog_filter} could not be resolved; nothing to fetch this run",
                    extra={"error_context": e.to_dict()}
                )
                return None
            if catalog.id is None:
                catalog = catalog.model_copy(update={"id": catalog_filter})
            return [catalog]

        try:
            return await self.service.list_catalogs()
        except SourceError as e:
            logger.error(
                "Failed to enumerate catalogs; nothing to fetch this run",
                extra={"error_context": e.to_dict()}
            )
            return None

    def _is_changed(self, record: Record, since_ms: Optional[int]) -> bool:
        if since_ms is None:
            return True
        if record.last_modified is None:
            # Unknown modification time is treated as possibly changed
            logger.debug(f"Record {record.id} has no last_modified; including")
            return True
        try:
            datetime.fromtimestamp(record.last_modified / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning(
                f"Record {record.id} has out-of-range last_modified {record.last_modified}; including"
            )
            return True
        return record.last_modified > since_ms

    async def fetch_changed(
        self,
        catalog_filter: Optional[str] = None,
        since: Optional[datetime] = None
    ) -> FetchResult:
        """
        Fetch records modified after ``since`` (all records when None).

        Args:
            catalog_filter: Restrict the run to one catalog id
            since: Last checkpoint; records with last_modified <= since are excluded

        Returns:
            FetchResult with the selected records and per-catalog counts
        """
        result = FetchResult()

        catalogs = await self._resolve_catalogs(catalog_filter)
        if not catalogs:
            return result

        since_ms = to_epoch_ms(since) if since is not None else None
        if since_ms is not None:
            logger.info(f"Fetching records modified after {since.isoformat()}")
        else:
            logger.info("Fetching all records (no checkpoint)")

        for catalog in catalogs:
            if not catalog.id:
                logger.warning(f"Skipping catalog '{catalog.display_name}' without an identifier")
                continue

            try:
                records = await self.service.list_records(catalog.id)
            except SourceError as e:
                result.failed_catalogs += 1
                logger.error(
                    f"Failed to fetch records for catalog '{catalog.display_name}'",
                    extra={"error_context": e.to_dict()}
                )
                continue

            result.catalogs_scanned += 1
            selected = 0
            for record in records:
                if self._is_changed(record, since_ms):
                    result.records.append(
                        SourceRecord(record=record, catalog_name=catalog.display_name)
                    )
                    selected += 1
                else:
                    result.excluded += 1

            logger.info(
                f"Catalog '{catalog.display_name}': {len(records)} records, {selected} selected"
            )

        logger.info(
            f"Fetch complete: {len(result.records)} records selected, "
            f"{result.excluded} unmodified, {result.failed_catalogs} catalogs failed"
        )
        return result
