"""
Map glossary records into index items
"""

from typing import Dict, Optional
from datetime import datetime, timezone
import html
import logging
import re

from core.config import DEFAULT_ITEM_URL_TEMPLATE, DEFAULT_STATUS_TRANSLATIONS
from core.exceptions import MissingIdentifierError, RecordMappingError
from schemas.catalog import Record, RecordStatus
from schemas.index import AclEntry, IndexItem, ItemContent, ItemProperties
from schemas.sync import MapResult

logger = logging.getLogger(__name__)

DEFAULT_UNKNOWN_LABEL = "Ukjent"
UNKNOWN_TERM_NAME = "Unknown Term"

_TAG_PATTERN = re.compile(r"<.*?>", re.DOTALL)


def clean_markup(text: Optional[str]) -> str:
    """
    Strip markup tags, decode entity references and trim whitespace.

    Best-effort text cleanup only; the input is not validated as HTML.
    """
    if not text:
        return ""
    stripped = _TAG_PATTERN.sub("", text)
    return html.unescape(stripped).strip()


def epoch_ms_to_iso(value: int) -> str:
    """Convert epoch milliseconds to an ISO-8601 UTC string"""
    dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordMapper:
    """
    Convert a Record into the index item shape.

    Mapping is pure: the same record, catalog name and tenant always
    produce the same item bytes.
    """

    def __init__(
        self,
        tenant_id: str,
        status_translations: Optional[Dict[str, str]] = None,
        item_url_template: str = DEFAULT_ITEM_URL_TEMPLATE,
        unknown_label: str = DEFAULT_UNKNOWN_LABEL
    ):
        self.tenant_id = tenant_id
        translations = status_translations if status_translations is not None else DEFAULT_STATUS_TRANSLATIONS
        # Lookup is case-insensitive on the source vocabulary
        self._translations = {k.lower(): v for k, v in translations.items()}
        self.item_url_template = item_url_template
        self.unknown_label = unknown_label

    def translate_status(self, status: Optional[str]) -> str:
        if not status or status.lower() == RecordStatus.UNKNOWN.value.lower():
            return self.unknown_label
        return self._translations.get(status.lower(), status)

    def build_url(self, record_id: str) -> str:
        return self.item_url_template.format(record_id=record_id)

    def map(self, record: Record, catalog_name: str) -> MapResult:
        """
        Map one record.

        Returns:
            MapResult carrying the item, or MissingIdentifierError /
            RecordMappingError when the record cannot be mapped
        """
        if not record.id or not record.id.strip():
            return MapResult.failure(MissingIdentifierError(
                "Record has no identifier",
                context={"record_name": record.name, "catalog_name": catalog_name}
            ))

        try:
            item = self._build_item(record, catalog_name)
        except Exception as e:
            logger.error(f"Failed to map record {record.id} from '{catalog_name}': {str(e)}")
            return MapResult.failure(RecordMappingError(
                "Failed to build index item",
                context={"record_id": record.id, "catalog_name": catalog_name},
                original_exception=e
            ))

        return MapResult.success(item)

    def _build_item(self, record: Record, catalog_name: str) -> IndexItem:
        definition = record.long_description
        if definition is None:
            definition = record.short_description if record.short_description is not None else ""
        definition = clean_markup(definition)

        last_modified_time = None
        if record.last_modified is not None:
            try:
                last_modified_time = epoch_ms_to_iso(record.last_modified)
            except (OverflowError, OSError, ValueError):
                logger.warning(
                    f"Record {record.id} has out-of-range last_modified {record.last_modified}; "
                    f"omitting lastModifiedTime"
                )

        properties = ItemProperties(
            term_name=record.name or UNKNOWN_TERM_NAME,
            definition=definition,
            status=self.translate_status(record.status),
            acronym=record.abbreviation or "",
            glossary_name=catalog_name,
            source_url=self.build_url(record.id),
            source_id=record.id,
            last_modified_time=last_modified_time,
        )

        return IndexItem(
            id=record.id,
            content=ItemContent(value=definition, type="text"),
            properties=properties,
            acl=[AclEntry(type="everyone", value=self.tenant_id, access_type="grant")],
        )
