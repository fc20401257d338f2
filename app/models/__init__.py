"""Data models for Breezy CRM Gateway."""
from .hubspot import (
    ContactCreateRequest,
    DealCreateRequest,
    FetchResult,
    QuantityResult,
    QuantitySource,
)
from .insight import (
    CustomerInsight,
    InsightResponse,
    ParsedInsight,
    FallbackInsight,
    InsightParseResult,
)

__all__ = [
    "ContactCreateRequest",
    "DealCreateRequest",
    "FetchResult",
    "QuantityResult",
    "QuantitySource",
    "CustomerInsight",
    "InsightResponse",
    "ParsedInsight",
    "FallbackInsight",
    "InsightParseResult",
]
