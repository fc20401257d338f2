"""
Configuration module for Breezy CRM Gateway.
Manages environment variables and application settings.
"""
from typing import Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    app_name: str = "Breezy CRM Gateway"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001
    shutdown_grace_seconds: int = 10
    static_dir: str = "public"

    # HubSpot Configuration
    hubspot_access_token: str = Field(..., min_length=1)
    hubspot_api_base: str = "https://api.hubapi.com"
    http_timeout: float = 10.0
    page_size: int = 50

    # HubSpot portal constants
    hardware_pipeline_id: str = "829155852"  # thermostat order pipeline
    subscription_object_type: str = "2-53381506"  # Breezy Subscriptions custom object
    deal_to_contact_association_type_id: int = 3

    # Business rules
    enforce_single_trial_per_contact: bool = False

    # AI Configuration
    ai_provider: Literal["gemini", "groq"] = "gemini"
    ai_temperature: float = 0.7
    ai_top_k: int = 40
    ai_top_p: float = 0.95
    ai_max_output_tokens: int = 1024

    gemini_api_key: Optional[str] = None
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-2.0-flash-exp"

    groq_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
