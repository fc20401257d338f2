"""
Customer health insight models.
"""
from typing import Any, Dict, Union
from pydantic import BaseModel, ConfigDict, Field


class CustomerInsight(BaseModel):
    """Four-field health insight returned by the AI provider."""
    model_config = ConfigDict(extra="allow")

    likelihoodToUpgrade: str = Field(..., description="e.g. 'High (85%)'")
    riskOfChurn: str = Field(..., description="e.g. 'Medium (45%)'")
    suggestedAction: str = Field(..., description="Action naming HubSpot AI tools to use")
    justification: str = Field(..., description="2-3 sentence explanation")


class InsightResponse(BaseModel):
    """Response body for POST /api/contacts/{id}/ai-insight."""
    success: bool = True
    insight: Dict[str, Any]
    rawResponse: str


class ParsedInsight(BaseModel):
    """Model text contained a JSON object."""
    insight: Dict[str, Any]


class FallbackInsight(BaseModel):
    """Model text could not be parsed; carries the placeholder insight."""
    text: str
    insight: CustomerInsight


InsightParseResult = Union[ParsedInsight, FallbackInsight]
