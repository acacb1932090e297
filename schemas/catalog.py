"""
Pydantic schemas for source catalog entities (glossaries and terms)
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
import enum


class RecordStatus(str, enum.Enum):
    """Life-cycle status of a glossary term"""
    DRAFT = "Draft"
    APPROVED = "Approved"
    ALERT = "Alert"
    EXPIRED = "Expired"
    UNKNOWN = "Unknown"


class Catalog(BaseModel):
    """A glossary in the source catalog"""
    id: Optional[str] = Field(None, alias="guid")
    name: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def display_name(self) -> str:
        return self.name or "Unknown Glossary"


class Record(BaseModel):
    """
    A glossary term as returned by the source catalog.

    Wire names follow the Atlas glossary API (guid, longDescription,
    shortDescription, updateTime). Statuses matching the known vocabulary
    are normalised to its spelling; anything else is kept verbatim.
    """
    id: Optional[str] = Field(None, alias="guid")
    name: Optional[str] = None
    long_description: Optional[str] = Field(None, alias="longDescription")
    short_description: Optional[str] = Field(None, alias="shortDescription")
    status: Optional[str] = None
    abbreviation: Optional[str] = None
    last_modified: Optional[int] = Field(None, alias="updateTime")  # epoch milliseconds

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if v is None:
            return None
        if isinstance(v, enum.Enum):
            v = v.value
        v = str(v).strip()
        for known in RecordStatus:
            if known.value.lower() == v.lower():
                return known.value
        return v


class SourceRecord(BaseModel):
    """A record paired with the display name of the catalog it came from"""
    record: Record
    catalog_name: str
