"""
HubSpot request bodies and typed fetch results.
"""
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class ContactCreateRequest(BaseModel):
    """Request body for POST /api/contacts."""
    properties: Dict[str, Any] = Field(
        ..., description="Contact properties: firstname, lastname, email, phone, jobtitle, company"
    )


class DealCreateRequest(BaseModel):
    """Request body for POST /api/deals."""
    model_config = ConfigDict(populate_by_name=True)

    deal_properties: Dict[str, Any] = Field(..., alias="dealProperties")
    contact_id: Optional[str] = Field(
        None, alias="contactId", description="Contact to associate the new deal with"
    )

    @field_validator("contact_id", mode="before")
    @classmethod
    def _coerce_contact_id(cls, value: Union[str, int, None]) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)


class FetchResult(BaseModel, Generic[T]):
    """Outcome of a sub-fetch that falls back to a default instead of failing."""
    value: T
    degraded: bool = False
    error: Optional[str] = None

    @classmethod
    def fetched(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: Any) -> "FetchResult[T]":
        return cls(value=value, degraded=True, error=str(error))


class QuantitySource(str, Enum):
    """Where a hardware deal's unit count came from."""
    LINE_ITEMS = "line_items"
    NO_LINE_ITEMS = "no_line_items"
    FETCH_FAILED = "fetch_failed"


class QuantityResult(BaseModel):
    """Summed line-item quantity for one hardware deal."""
    deal_id: str
    quantity: int
    source: QuantitySource

    @property
    def degraded(self) -> bool:
        return self.source is not QuantitySource.LINE_ITEMS
