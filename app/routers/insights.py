"""
Insights Router - AI customer health insight for a contact.
"""
import logging
from fastapi import APIRouter, Depends, status

from app.core.dependencies import get_health_service
from app.core.errors import GatewayError, UpstreamError
from app.models.insight import InsightResponse
from app.services.health_service import CustomerHealthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["insights"])


@router.post("/contacts/{contact_id}/ai-insight", response_model=InsightResponse)
async def generate_ai_insight(
    contact_id: str,
    health: CustomerHealthService = Depends(get_health_service),
):
    """
    Generate an AI Customer Health Insight for a contact.

    CRM sub-fetches that fail are replaced by empty defaults; only a failed
    AI call fails the request. Unparseable model output still returns 200
    with a placeholder insight next to the raw text.
    """
    engine = health.engine
    if not engine.is_configured:
        provider = engine.provider_name
        raise GatewayError(
            f"{provider} API key not configured",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=f"Please set {provider.upper()}_API_KEY in your .env file",
        )

    logger.info(f"Generating AI insight for contact: {contact_id}")
    try:
        return await health.generate_insight(contact_id)
    except UpstreamError as e:
        logger.error(f"Error generating AI insight: {e.details}")
        raise GatewayError.from_upstream("Failed to generate AI insight", e) from e
