"""Services module for Breezy CRM Gateway."""
from .hubspot_service import HubSpotService
from .gemini_service import GeminiEngine
from .groq_service import GroqEngine
from .health_service import CustomerHealthService

__all__ = ["HubSpotService", "GeminiEngine", "GroqEngine", "CustomerHealthService"]
