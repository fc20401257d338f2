"""
Customer Health Insight Service.
Aggregates a contact's deals into health signals and asks the AI provider
for an upgrade/churn insight.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from app.core.errors import UpstreamError
from app.models.hubspot import FetchResult, QuantityResult
from app.models.insight import InsightResponse, ParsedInsight
from app.services.health_signals import (
    CustomerHealthSnapshot,
    build_insight_prompt,
    build_snapshot,
    build_stage_label_map,
    partition_deals,
    render_customer_summary,
)
from app.services.hubspot_service import HubSpotService
from app.services.insight_parser import parse_insight

logger = logging.getLogger(__name__)


class InsightEngine(Protocol):
    provider_name: str

    @property
    def is_configured(self) -> bool: ...

    async def generate(self, prompt: str) -> str: ...


class CustomerHealthService:
    """Builds the AI customer health insight for one contact."""

    CONTACT_PROPERTIES = ["firstname", "lastname", "email", "createdate"]
    DEAL_PROPERTIES = [
        "dealname", "amount", "dealstage", "closedate", "pipeline", "createdate",
        "converted_subscription_id",
    ]

    def __init__(self, hubspot: HubSpotService, engine: InsightEngine):
        self.hubspot = hubspot
        self.engine = engine

    async def fetch_contact(self, contact_id: str) -> FetchResult[Optional[dict]]:
        try:
            contact = await self.hubspot.get_contact(contact_id, self.CONTACT_PROPERTIES)
        except UpstreamError as e:
            logger.error(f"Error fetching contact {contact_id}: {e.details}")
            return FetchResult.fallback(None, e)
        return FetchResult.fetched(contact)

    async def fetch_deals(self, contact_id: str) -> FetchResult[List[dict]]:
        try:
            deals = await self.hubspot.get_contact_deals(contact_id, self.DEAL_PROPERTIES)
        except UpstreamError as e:
            logger.error(f"Error fetching deals for contact {contact_id}: {e.details}")
            return FetchResult.fallback([], e)
        return FetchResult.fetched(deals)

    async def fetch_stage_labels(self) -> FetchResult[Dict[str, str]]:
        try:
            pipelines = await self.hubspot.list_pipelines()
        except UpstreamError as e:
            logger.error(f"Error fetching pipeline stages: {e.details}")
            return FetchResult.fallback({}, e)
        return FetchResult.fetched(build_stage_label_map(pipelines))

    async def collect_snapshot(self, contact_id: str) -> CustomerHealthSnapshot:
        """
        Gather the contact, its deals, stage labels and hardware quantities.

        Every sub-fetch degrades to an empty default on failure, so the
        insight is still produced from whatever could be loaded.
        """
        contact = await self.fetch_contact(contact_id)
        deals = await self.fetch_deals(contact_id)
        hardware_deals, trial_deals = partition_deals(deals.value, self.hubspot.hardware_pipeline_id)
        stage_labels = await self.fetch_stage_labels()

        quantities: List[QuantityResult] = await self.hubspot.get_line_item_quantities(
            [str(deal["id"]) for deal in hardware_deals]
        )

        degraded = [
            name for name, result in (
                ("contact", contact), ("deals", deals), ("stages", stage_labels)
            ) if result.degraded
        ]
        if degraded:
            logger.warning(f"Insight for contact {contact_id} built from degraded data: {degraded}")

        return build_snapshot(
            contact=contact.value,
            hardware_deals=hardware_deals,
            trial_deals=trial_deals,
            stage_labels=stage_labels.value,
            hardware_units=sum(q.quantity for q in quantities),
        )

    async def generate_insight(
        self,
        contact_id: str,
        now: Optional[datetime] = None,
    ) -> InsightResponse:
        """
        Produce the insight response for a contact.

        Raises:
            UpstreamError: the AI provider call failed
        """
        snapshot = await self.collect_snapshot(contact_id)
        summary = render_customer_summary(snapshot, now or datetime.now(timezone.utc))
        prompt = build_insight_prompt(summary)

        raw_text = await self.engine.generate(prompt)
        result = parse_insight(raw_text)

        if isinstance(result, ParsedInsight):
            insight = result.insight
        else:
            logger.warning(f"AI response for contact {contact_id} was not valid JSON; using placeholder")
            insight = result.insight.model_dump()

        logger.info(
            f"Insight generated for contact {contact_id} - "
            f"Upgrade: {insight.get('likelihoodToUpgrade')}, Churn: {insight.get('riskOfChurn')}"
        )
        return InsightResponse(success=True, insight=insight, rawResponse=raw_text)
