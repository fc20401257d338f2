"""
HubSpot Router - contact, deal and pipeline endpoints for the admin dashboard.
"""
import logging
from fastapi import APIRouter, Depends

from app.core.dependencies import get_hubspot_service
from app.core.errors import GatewayError, UpstreamError
from app.models.hubspot import ContactCreateRequest, DealCreateRequest
from app.services.hubspot_service import HubSpotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["hubspot"])


@router.get("/contacts")
async def list_contacts(hubspot: HubSpotService = Depends(get_hubspot_service)):
    """Fetch the first page of contacts."""
    try:
        return await hubspot.list_contacts()
    except UpstreamError as e:
        logger.error(f"Error fetching contacts: {e.details}")
        raise GatewayError.from_upstream("Failed to fetch contacts", e) from e


@router.post("/contacts")
async def create_contact(
    request: ContactCreateRequest,
    hubspot: HubSpotService = Depends(get_hubspot_service),
):
    """
    Create a new contact.

    A duplicate email is reported as 409 with an explanation, whatever status
    HubSpot used for it.
    """
    try:
        return await hubspot.create_contact(request.properties)
    except UpstreamError as e:
        logger.error(f"Error creating contact: {e.details}")
        raise GatewayError.from_upstream("Failed to create contact", e) from e


@router.get("/deals")
async def list_deals(hubspot: HubSpotService = Depends(get_hubspot_service)):
    """Fetch the first page of deals."""
    try:
        return await hubspot.list_deals()
    except UpstreamError as e:
        logger.error(f"Error fetching deals: {e.details}")
        raise GatewayError.from_upstream("Failed to fetch deals", e) from e


@router.post("/deals")
async def create_deal(
    request: DealCreateRequest,
    hubspot: HubSpotService = Depends(get_hubspot_service),
):
    """Create a deal and associate it to `contactId` when given."""
    try:
        return await hubspot.create_deal(request.deal_properties, request.contact_id)
    except UpstreamError as e:
        logger.error(f"Error creating deal: {e.details}")
        raise GatewayError.from_upstream("Failed to create deal", e) from e


@router.get("/pipelines")
async def list_pipelines(hubspot: HubSpotService = Depends(get_hubspot_service)):
    """Fetch deal pipelines and their stages."""
    try:
        return await hubspot.list_pipelines()
    except UpstreamError as e:
        logger.error(f"Error fetching pipelines: {e.details}")
        raise GatewayError.from_upstream("Failed to fetch pipelines", e) from e


@router.get("/contacts/{contact_id}/deals")
async def get_contact_trial_deals(
    contact_id: str,
    hubspot: HubSpotService = Depends(get_hubspot_service),
):
    """Trial deals for a contact (everything outside the hardware order pipeline)."""
    try:
        return {"results": await hubspot.get_trial_deals(contact_id)}
    except UpstreamError as e:
        logger.error(f"Error fetching deals for contact {contact_id}: {e.details}")
        raise GatewayError.from_upstream("Failed to fetch deals for contact", e) from e


@router.get("/contacts/{contact_id}/thermostat-deals")
async def get_contact_thermostat_deals(
    contact_id: str,
    hubspot: HubSpotService = Depends(get_hubspot_service),
):
    """Thermostat purchase deals for a contact, with line-item quantity."""
    try:
        return {"results": await hubspot.get_thermostat_deals(contact_id)}
    except UpstreamError as e:
        logger.error(f"Error fetching thermostat deals for contact {contact_id}: {e.details}")
        raise GatewayError.from_upstream("Failed to fetch thermostat deals for contact", e) from e


@router.get("/contacts/{contact_id}/subscriptions")
async def get_contact_subscriptions(
    contact_id: str,
    hubspot: HubSpotService = Depends(get_hubspot_service),
):
    """Breezy Subscription records associated with a contact."""
    try:
        return await hubspot.get_subscriptions(contact_id)
    except UpstreamError as e:
        logger.error(f"Error fetching subscriptions for contact {contact_id}: {e.details}")
        raise GatewayError.from_upstream("Failed to fetch subscriptions for contact", e) from e
