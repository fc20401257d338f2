"""
HubSpot CRM Integration Service.
Proxies contact, deal, pipeline and custom-object calls to the HubSpot v3 API
and resolves "records related to a contact" through association lookups.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional
import httpx
from app.core.config import Settings
from app.core.errors import (
    DuplicateContactError,
    TrialAlreadyExistsError,
    UpstreamError,
    response_details,
)
from app.models.hubspot import QuantityResult, QuantitySource
from app.services.health_signals import parse_quantity, partition_deals

logger = logging.getLogger(__name__)

DUPLICATE_MARKERS = ("already exists", "duplicate", "unique constraint")


def is_duplicate_contact_error(status_code: Optional[int], details: Any) -> bool:
    """
    Decide whether a failed contact create means the email is already taken.

    HubSpot answers duplicates with 409 or 400, and the wording of the error
    message varies, so both the status and the message text are checked.
    """
    if status_code in (400, 409):
        return True

    messages: List[str] = []
    if isinstance(details, dict):
        messages.append(str(details.get("message") or ""))
        for err in details.get("errors") or []:
            if isinstance(err, dict):
                messages.append(str(err.get("message") or ""))
    elif isinstance(details, str):
        messages.append(details)

    return any(
        marker in message.lower()
        for message in messages
        for marker in DUPLICATE_MARKERS
    )


class HubSpotService:
    """Service for reading and writing HubSpot CRM records."""

    CONTACT_LIST_PROPERTIES = "firstname,lastname,email,phone,address,jobtitle,company"
    DEAL_LIST_PROPERTIES = "dealname,amount,dealstage,closedate,pipeline"
    TRIAL_DEAL_PROPERTIES = [
        "dealname", "amount", "dealstage", "closedate", "pipeline", "converted_subscription_id"
    ]
    THERMOSTAT_DEAL_PROPERTIES = ["dealname", "amount", "dealstage", "pipeline"]
    LINE_ITEM_PROPERTIES = ["quantity", "name"]
    SUBSCRIPTION_PROPERTIES = [
        "hs_object_id", "status", "subscription_id", "active_date", "cancellation_date", "trial_id"
    ]

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize HubSpot service with configuration."""
        self.api_url = settings.hubspot_api_base.rstrip("/")
        self.access_token = settings.hubspot_access_token
        self.timeout = settings.http_timeout
        self.page_size = settings.page_size
        self.hardware_pipeline_id = settings.hardware_pipeline_id
        self.subscription_object_type = settings.subscription_object_type
        self.deal_to_contact_association_type_id = settings.deal_to_contact_association_type_id
        self.enforce_single_trial = settings.enforce_single_trial_per_contact
        self._transport = transport

    # ------------------------------------------------------------------
    # Contacts
    # ------------------------------------------------------------------

    async def list_contacts(self) -> dict:
        """Fetch the first page of contacts with the dashboard property set."""
        return await self._make_crm_request(
            method="GET",
            endpoint="/crm/v3/objects/contacts",
            params={"limit": self.page_size, "properties": self.CONTACT_LIST_PROPERTIES},
        )

    async def get_contact(self, contact_id: str, properties: List[str]) -> dict:
        return await self._make_crm_request(
            method="GET",
            endpoint=f"/crm/v3/objects/contacts/{contact_id}",
            params={"properties": ",".join(properties)},
        )

    async def create_contact(self, properties: Dict[str, Any]) -> dict:
        """
        Create a contact in HubSpot.

        Raises:
            DuplicateContactError: HubSpot rejected the contact as a duplicate
            UpstreamError: any other HubSpot failure
        """
        try:
            result = await self._make_crm_request(
                method="POST",
                endpoint="/crm/v3/objects/contacts",
                payload={"properties": properties},
            )
        except UpstreamError as e:
            if is_duplicate_contact_error(e.status_code, e.details):
                logger.warning(f"Contact create rejected as duplicate: {e.details}")
                raise DuplicateContactError(e.details) from e
            raise

        logger.info(f"Contact created in HubSpot: {result.get('id')}")
        return result

    # ------------------------------------------------------------------
    # Deals & pipelines
    # ------------------------------------------------------------------

    async def list_deals(self) -> dict:
        """Fetch the first page of deals with the dashboard property set."""
        return await self._make_crm_request(
            method="GET",
            endpoint="/crm/v3/objects/deals",
            params={"limit": self.page_size, "properties": self.DEAL_LIST_PROPERTIES},
        )

    async def create_deal(
        self,
        deal_properties: Dict[str, Any],
        contact_id: Optional[str] = None,
    ) -> dict:
        """
        Create a deal, associating it to a contact when one is given.

        The contact is not looked up first; HubSpot rejects unknown ids.

        Raises:
            TrialAlreadyExistsError: single-trial enforcement is on and the
                contact already has a trial deal
            UpstreamError: HubSpot failure
        """
        if self.enforce_single_trial and contact_id and not self._is_hardware_pipeline(
            deal_properties.get("pipeline")
        ):
            existing = await self.get_trial_deals(contact_id)
            if existing:
                existing_ids = [deal.get("id") for deal in existing]
                logger.warning(
                    f"Refusing second trial deal for contact {contact_id}; "
                    f"existing trial deals: {existing_ids}"
                )
                raise TrialAlreadyExistsError(existing_ids)

        associations = []
        if contact_id:
            associations.append({
                "to": {"id": contact_id},
                "types": [{
                    "associationCategory": "HUBSPOT_DEFINED",
                    "associationTypeId": self.deal_to_contact_association_type_id,
                }],
            })

        result = await self._make_crm_request(
            method="POST",
            endpoint="/crm/v3/objects/deals",
            payload={"properties": deal_properties, "associations": associations},
        )
        logger.info(f"Deal created in HubSpot: {result.get('id')} (contact: {contact_id or 'none'})")
        return result

    async def list_pipelines(self) -> dict:
        """Fetch every deal pipeline with its stage definitions."""
        return await self._make_crm_request(
            method="GET",
            endpoint="/crm/v3/pipelines/deals",
        )

    # ------------------------------------------------------------------
    # Associations
    # ------------------------------------------------------------------

    async def get_associated_ids(self, from_type: str, object_id: str, to_type: str) -> List[str]:
        """Return the ids of `to_type` records associated with one record."""
        result = await self._make_crm_request(
            method="GET",
            endpoint=f"/crm/v3/objects/{from_type}/{object_id}/associations/{to_type}",
        )
        return [str(item["id"]) for item in result.get("results") or []]

    async def batch_read(self, object_type: str, ids: List[str], properties: List[str]) -> dict:
        return await self._make_crm_request(
            method="POST",
            endpoint=f"/crm/v3/objects/{object_type}/batch/read",
            payload={
                "inputs": [{"id": record_id} for record_id in ids],
                "properties": properties,
            },
        )

    async def get_contact_related(
        self,
        contact_id: str,
        to_type: str,
        properties: List[str],
    ) -> dict:
        """
        Fetch full records of `to_type` associated with a contact.

        HubSpot cannot filter objects by associated contact, so this looks up
        the association ids first and batch-reads them. No associations means
        no batch read.
        """
        ids = await self.get_associated_ids("contacts", contact_id, to_type)
        if not ids:
            return {"results": []}
        return await self.batch_read(to_type, ids, properties)

    async def get_contact_deals(self, contact_id: str, properties: List[str]) -> List[dict]:
        result = await self.get_contact_related(contact_id, "deals", properties)
        return result.get("results") or []

    async def get_trial_deals(self, contact_id: str) -> List[dict]:
        """Deals for a contact outside the hardware order pipeline."""
        deals = await self.get_contact_deals(contact_id, self.TRIAL_DEAL_PROPERTIES)
        _, trial_deals = partition_deals(deals, self.hardware_pipeline_id)
        return trial_deals

    async def get_thermostat_deals(self, contact_id: str) -> List[dict]:
        """Hardware order deals for a contact, each annotated with `quantity`."""
        deals = await self.get_contact_deals(contact_id, self.THERMOSTAT_DEAL_PROPERTIES)
        hardware_deals, _ = partition_deals(deals, self.hardware_pipeline_id)
        if not hardware_deals:
            return []

        quantities = await self.get_line_item_quantities(
            [str(deal["id"]) for deal in hardware_deals]
        )
        return [
            {**deal, "quantity": quantity.quantity}
            for deal, quantity in zip(hardware_deals, quantities)
        ]

    async def get_subscriptions(self, contact_id: str) -> dict:
        """Breezy Subscription custom-object records associated with a contact."""
        return await self.get_contact_related(
            contact_id, self.subscription_object_type, self.SUBSCRIPTION_PROPERTIES
        )

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    async def get_line_item_quantity(self, deal_id: str) -> QuantityResult:
        """
        Sum the line-item quantities of one hardware deal.

        A deal without line items counts as one unit. A failed lookup counts
        as zero and is logged rather than raised, so one broken deal does not
        fail the whole listing.
        """
        try:
            ids = await self.get_associated_ids("deals", deal_id, "line_items")
            if not ids:
                return QuantityResult(deal_id=deal_id, quantity=1, source=QuantitySource.NO_LINE_ITEMS)

            result = await self.batch_read("line_items", ids, self.LINE_ITEM_PROPERTIES)
            total = sum(
                parse_quantity((item.get("properties") or {}).get("quantity"))
                for item in result.get("results") or []
            )
        except UpstreamError as e:
            logger.error(f"Error fetching line items for deal {deal_id}: {e.details}")
            return QuantityResult(deal_id=deal_id, quantity=0, source=QuantitySource.FETCH_FAILED)
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"Malformed line item response for deal {deal_id}: {e!r}")
            return QuantityResult(deal_id=deal_id, quantity=0, source=QuantitySource.FETCH_FAILED)

        return QuantityResult(deal_id=deal_id, quantity=total, source=QuantitySource.LINE_ITEMS)

    async def get_line_item_quantities(self, deal_ids: List[str]) -> List[QuantityResult]:
        """Look up line-item quantities for several deals concurrently."""
        return list(await asyncio.gather(
            *(self.get_line_item_quantity(deal_id) for deal_id in deal_ids)
        ))

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _is_hardware_pipeline(self, pipeline_id: Any) -> bool:
        return pipeline_id is not None and str(pipeline_id) == self.hardware_pipeline_id

    async def _make_crm_request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> dict:
        """
        Make a HubSpot API request with bearer-token auth.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            payload: JSON request body
            params: Query parameters

        Returns:
            Decoded JSON response body

        Raises:
            UpstreamError: non-2xx response, network failure or undecodable body
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method=method,
                    url=f"{self.api_url}{endpoint}",
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                    params=params,
                )
        except httpx.HTTPError as e:
            logger.error(f"HubSpot API request failed: {method} {endpoint}: {e}")
            raise UpstreamError(None, str(e)) from e

        if response.is_error:
            details = response_details(response)
            logger.error(
                f"HubSpot API HTTP error: {method} {endpoint} -> "
                f"{response.status_code}: {details}"
            )
            raise UpstreamError(response.status_code, details)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"HubSpot API returned invalid JSON for {method} {endpoint}: {e}")
            raise UpstreamError(None, f"Invalid JSON from HubSpot: {e}") from e
