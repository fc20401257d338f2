"""Tests for the insight service's degrading CRM sub-fetches."""
import json
from datetime import datetime, timezone

import pytest

from app.services.health_service import CustomerHealthService
from tests.fakes import HARDWARE_PIPELINE, TRIAL_PIPELINE, associations, batch, deal, line_item

CONTACT_PATH = "/crm/v3/objects/contacts/42"
DEALS_PATH = "/crm/v3/objects/contacts/42/associations/deals"
PIPELINES_PATH = "/crm/v3/pipelines/deals"

PIPELINES = {"results": [
    {"id": TRIAL_PIPELINE, "archived": False, "stages": [
        {"id": "closedwon", "label": "Converted (Active Subscription)"},
    ]},
]}
NOW = datetime(2025, 3, 1, tzinfo=timezone.utc)


class StubEngine:
    provider_name = "Stub"
    is_configured = True

    def __init__(self, reply: str):
        self.reply = reply
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply


def add_hardware_customer(fake_hubspot):
    """Two hardware deals; only deal 7 has its line-item route registered."""
    fake_hubspot.add("GET", CONTACT_PATH, body={"id": "42", "properties": {}})
    fake_hubspot.add("GET", DEALS_PATH, body=associations("7", "8"))
    fake_hubspot.add("POST", "/crm/v3/objects/deals/batch/read", body=batch(
        deal("7", HARDWARE_PIPELINE, "shipped", amount="200"),
        deal("8", HARDWARE_PIPELINE, "shipped", amount="100"),
    ))
    fake_hubspot.add("GET", PIPELINES_PATH, body=PIPELINES)
    fake_hubspot.add("GET", "/crm/v3/objects/deals/7/associations/line_items", body=associations("a"))
    fake_hubspot.add("POST", "/crm/v3/objects/line_items/batch/read", body=batch(line_item("a", "4")))


@pytest.fixture
def engine() -> StubEngine:
    return StubEngine(json.dumps({
        "likelihoodToUpgrade": "Low (10%)",
        "riskOfChurn": "Low (10%)",
        "suggestedAction": "Use HubSpot AI Email Assistant",
        "justification": "Steady customer.",
    }))


@pytest.fixture
def health(hubspot_service, engine) -> CustomerHealthService:
    return CustomerHealthService(hubspot_service, engine)


class TestFetchContact:

    @pytest.mark.asyncio
    async def test_success(self, health, fake_hubspot):
        contact = {"id": "42", "properties": {"firstname": "Ada"}}
        fake_hubspot.add("GET", CONTACT_PATH, body=contact)

        result = await health.fetch_contact("42")

        assert result.degraded is False
        assert result.value == contact
        assert result.error is None

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_none(self, health, fake_hubspot):
        fake_hubspot.add("GET", CONTACT_PATH, status_code=404, body={"message": "Object not found"})

        result = await health.fetch_contact("42")

        assert result.degraded is True
        assert result.value is None
        assert result.error
        assert result.model_dump()["degraded"] is True


class TestFetchDeals:

    @pytest.mark.asyncio
    async def test_success(self, health, fake_hubspot):
        fake_hubspot.add("GET", DEALS_PATH, body=associations("1"))
        fake_hubspot.add("POST", "/crm/v3/objects/deals/batch/read", body=batch(deal("1", TRIAL_PIPELINE)))

        result = await health.fetch_deals("42")

        assert result.degraded is False
        assert [d["id"] for d in result.value] == ["1"]

    @pytest.mark.asyncio
    async def test_association_failure_falls_back_to_empty(self, health, fake_hubspot):
        fake_hubspot.add("GET", DEALS_PATH, status_code=500, body={"message": "down"})

        result = await health.fetch_deals("42")

        assert result.degraded is True
        assert result.value == []

    @pytest.mark.asyncio
    async def test_batch_read_failure_falls_back_to_empty(self, health, fake_hubspot):
        fake_hubspot.add("GET", DEALS_PATH, body=associations("1"))
        fake_hubspot.add("POST", "/crm/v3/objects/deals/batch/read", status_code=502, body={})

        result = await health.fetch_deals("42")

        assert result.degraded is True
        assert result.value == []


class TestFetchStageLabels:

    @pytest.mark.asyncio
    async def test_success(self, health, fake_hubspot):
        fake_hubspot.add("GET", PIPELINES_PATH, body=PIPELINES)

        result = await health.fetch_stage_labels()

        assert result.degraded is False
        assert result.value == {"closedwon": "Converted (Active Subscription)"}

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_empty_map(self, health, fake_hubspot):
        fake_hubspot.add("GET", PIPELINES_PATH, status_code=401, body={"message": "Expired token"})

        result = await health.fetch_stage_labels()

        assert result.degraded is True
        assert result.value == {}


class TestCollectSnapshot:

    @pytest.mark.asyncio
    async def test_failed_line_item_fetch_counts_zero(self, health, fake_hubspot):
        add_hardware_customer(fake_hubspot)
        fake_hubspot.add("GET", "/crm/v3/objects/deals/8/associations/line_items", status_code=500, body={})

        snapshot = await health.collect_snapshot("42")

        assert snapshot.hardware_units == 4
        assert snapshot.hardware_value == 300.0
        assert len(snapshot.hardware_deals) == 2

    @pytest.mark.asyncio
    async def test_every_crm_fetch_failing(self, health, fake_hubspot):
        fake_hubspot.add("GET", CONTACT_PATH, status_code=500, body={})
        fake_hubspot.add("GET", DEALS_PATH, status_code=500, body={})
        fake_hubspot.add("GET", PIPELINES_PATH, status_code=500, body={})

        snapshot = await health.collect_snapshot("42")

        assert snapshot.contact is None
        assert snapshot.hardware_deals == []
        assert snapshot.trial_deals == []
        assert snapshot.hardware_units == 0


class TestGenerateInsight:

    @pytest.mark.asyncio
    async def test_failed_line_item_fetch_lowers_unit_count(self, health, engine, fake_hubspot):
        add_hardware_customer(fake_hubspot)
        fake_hubspot.add("GET", "/crm/v3/objects/deals/8/associations/line_items", status_code=500, body={})

        response = await health.generate_insight("42", now=NOW)

        assert response.success is True
        assert response.insight["riskOfChurn"] == "Low (10%)"
        assert "- Total thermostats purchased: 4" in engine.prompts[0]
        assert "- Total hardware value: $300.00" in engine.prompts[0]

    @pytest.mark.asyncio
    async def test_unparseable_reply_uses_placeholder(self, hubspot_service, fake_hubspot):
        fake_hubspot.add("GET", CONTACT_PATH, body={"id": "42", "properties": {}})
        fake_hubspot.add("GET", DEALS_PATH, body={"results": []})
        fake_hubspot.add("GET", PIPELINES_PATH, body=PIPELINES)
        health = CustomerHealthService(hubspot_service, StubEngine("no json here"))

        response = await health.generate_insight("42", now=NOW)

        assert response.rawResponse == "no json here"
        assert set(response.insight) >= {
            "likelihoodToUpgrade", "riskOfChurn", "suggestedAction", "justification",
        }
