"""
Pydantic schemas for the index service (external connections, schema, items).

Field names are snake_case in Python and camelCase on the wire; use
``by_alias=True`` when serialising request bodies.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
import enum


class ConnectionState(str, enum.Enum):
    """Lifecycle state of an external connection"""
    DRAFT = "draft"
    READY = "ready"
    OBSOLETE = "obsolete"
    LIMIT_EXCEEDED = "limitExceeded"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> Optional["ConnectionState"]:
        """Parse a wire value; unrecognised values map to UNKNOWN, missing to None"""
        if value is None or value == "":
            return None
        for state in cls:
            if state.value.lower() == str(value).lower():
                return state
        return cls.UNKNOWN

    @property
    def is_fatal(self) -> bool:
        return self in (ConnectionState.ERROR, ConnectionState.LIMIT_EXCEEDED)


class Connection(BaseModel):
    """An external connection (index destination)"""
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    state: Optional[ConnectionState] = None


class PropertyType(str, enum.Enum):
    STRING = "string"
    DATETIME = "dateTime"
    BOOLEAN = "boolean"
    INT64 = "int64"
    DOUBLE = "double"
    STRING_COLLECTION = "stringCollection"


class SchemaProperty(BaseModel):
    """A property declared in the connection schema"""
    name: str
    type: PropertyType
    is_searchable: Optional[bool] = Field(None, alias="isSearchable")
    is_retrievable: Optional[bool] = Field(None, alias="isRetrievable")
    is_queryable: Optional[bool] = Field(None, alias="isQueryable")
    is_refinable: Optional[bool] = Field(None, alias="isRefinable")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ConnectionSchema(BaseModel):
    """Schema registered on a connection"""
    base_type: str = Field("microsoft.graph.externalItem", alias="baseType")
    properties: List[SchemaProperty] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ItemContent(BaseModel):
    value: str
    type: str = "text"


class AclEntry(BaseModel):
    type: str = "everyone"
    value: str
    access_type: str = Field("grant", alias="accessType")

    model_config = ConfigDict(populate_by_name=True)


class ItemProperties(BaseModel):
    """Searchable properties of a glossary term item"""
    term_name: str = Field(..., alias="termName")
    definition: str
    status: str
    acronym: str
    glossary_name: str = Field(..., alias="glossaryName")
    source_url: str = Field(..., alias="sourceUrl")
    source_id: str = Field(..., alias="sourceId")
    last_modified_time: Optional[str] = Field(None, alias="lastModifiedTime")

    model_config = ConfigDict(populate_by_name=True)


class IndexItem(BaseModel):
    """
    An external item pushed to a connection.

    The item id travels in the request path; the body carries acl,
    properties and content. ``to_payload`` omits absent optional
    properties so an unchanged record always serialises identically.
    """
    id: str
    content: ItemContent
    properties: ItemProperties
    acl: List[AclEntry]

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"id"}, mode="json")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, exclude={"id"})


class ItemPage(BaseModel):
    """One page of item ids with the continuation link for the next page"""
    ids: List[str] = Field(default_factory=list)
    next_link: Optional[str] = None
