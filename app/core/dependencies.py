"""FastAPI dependency providers."""
from fastapi import Depends

from app.core.config import Settings, get_settings
from app.services.gemini_service import GeminiEngine
from app.services.groq_service import GroqEngine
from app.services.health_service import CustomerHealthService, InsightEngine
from app.services.hubspot_service import HubSpotService


def get_hubspot_service(settings: Settings = Depends(get_settings)) -> HubSpotService:
    """Dependency to get the HubSpot client."""
    return HubSpotService(settings)


def get_insight_engine(settings: Settings = Depends(get_settings)) -> InsightEngine:
    """Dependency to get the configured AI provider."""
    if settings.ai_provider == "groq":
        return GroqEngine(settings)
    return GeminiEngine(settings)


def get_health_service(
    hubspot: HubSpotService = Depends(get_hubspot_service),
    engine: InsightEngine = Depends(get_insight_engine),
) -> CustomerHealthService:
    return CustomerHealthService(hubspot, engine)
