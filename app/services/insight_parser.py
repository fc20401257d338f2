"""
Best-effort extraction of the insight JSON object from free-form model text.
"""
import json
import logging
import re

from app.models.insight import CustomerInsight, FallbackInsight, InsightParseResult, ParsedInsight

logger = logging.getLogger(__name__)

FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")
JUSTIFICATION_PREVIEW_CHARS = 200


def placeholder_insight(text: str) -> CustomerInsight:
    return CustomerInsight(
        likelihoodToUpgrade="Analysis unavailable",
        riskOfChurn="Analysis unavailable",
        suggestedAction="Review customer data manually",
        justification=text[:JUSTIFICATION_PREVIEW_CHARS] + "...",
    )


def parse_insight(text: str) -> InsightParseResult:
    """
    Parse model output into an insight.

    A fenced ```json block is preferred; otherwise the whole text is parsed.
    Anything that does not yield a JSON object falls back to the placeholder.
    """
    match = FENCED_JSON.search(text)
    candidate = match.group(1) if match else text

    try:
        data = json.loads(candidate)
    except ValueError as e:
        logger.error(f"Error parsing AI response: {e}")
        return FallbackInsight(text=text, insight=placeholder_insight(text))

    if not isinstance(data, dict):
        logger.error(f"AI response JSON is a {type(data).__name__}, expected an object")
        return FallbackInsight(text=text, insight=placeholder_insight(text))

    return ParsedInsight(insight=data)
