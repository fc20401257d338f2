"""
Customer health signals.

Pure functions that turn a contact's HubSpot deals into the churn/upgrade
summary sent to the AI provider. Nothing in this module performs I/O.
"""
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
SECONDS_PER_DAY = 60 * 60 * 24


class StageBucket(str, Enum):
    """Trial deal outcome derived from the deal stage label."""
    CANCELLED = "cancelled"
    ENDED = "ended"
    CONVERTED = "converted"
    ACTIVE = "active"


# Checked in order; the first matching substring wins.
STAGE_PRIORITY = (
    (StageBucket.CANCELLED, "cancelled"),
    (StageBucket.ENDED, "ended"),
    (StageBucket.CONVERTED, "converted"),
    (StageBucket.ACTIVE, "active"),
)


class TrialBuckets(BaseModel):
    converted: List[dict] = Field(default_factory=list)
    ended: List[dict] = Field(default_factory=list)
    cancelled: List[dict] = Field(default_factory=list)
    active: List[dict] = Field(default_factory=list)


class HealthSignals(BaseModel):
    has_active_subscription: bool
    has_cancelled_subscription: bool
    has_unconverted_trial: bool


class CustomerHealthSnapshot(BaseModel):
    """Everything the summary text is rendered from."""
    contact: Optional[dict]
    hardware_deals: List[dict]
    trial_deals: List[dict]
    buckets: TrialBuckets
    signals: HealthSignals
    hardware_units: int
    hardware_value: float
    trial_value: float
    latest_hardware_purchase: Optional[str]
    latest_trial: Optional[str]


# ----------------------------------------------------------------------
# Property parsing
# ----------------------------------------------------------------------

def parse_quantity(value: Any) -> int:
    """Line-item quantity as an integer; blank or malformed counts as 0."""
    if value is None or value == "":
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def parse_amount(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def parse_hubspot_date(value: Any) -> Optional[datetime]:
    """Parse a HubSpot ISO-8601 (or epoch-millisecond) timestamp as UTC."""
    if not value:
        return None
    text = str(value).strip()
    try:
        if text.isdigit():
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except (ValueError, OverflowError, OSError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _props(record: Optional[dict]) -> dict:
    return (record or {}).get("properties") or {}


# ----------------------------------------------------------------------
# Partitioning & classification
# ----------------------------------------------------------------------

def partition_deals(deals: List[dict], hardware_pipeline_id: str) -> Tuple[List[dict], List[dict]]:
    """Split deals into (hardware, trial) by pipeline id equality."""
    hardware, trial = [], []
    for deal in deals:
        pipeline = _props(deal).get("pipeline")
        if pipeline is not None and str(pipeline) == hardware_pipeline_id:
            hardware.append(deal)
        else:
            trial.append(deal)
    return hardware, trial


def build_stage_label_map(pipelines: dict) -> Dict[str, str]:
    """
    Map deal stage id to label across the portal's deal pipelines.

    Archived pipelines are skipped unless nothing else is left.
    """
    results = pipelines.get("results") or []
    live = [p for p in results if not p.get("archived")] or results
    labels = {}
    for pipeline in live:
        for stage in pipeline.get("stages") or []:
            labels[str(stage.get("id"))] = stage.get("label") or ""
    return labels


def classify_stage(label: Optional[str]) -> Optional[StageBucket]:
    """Case-insensitive substring match of a stage label, by priority."""
    text = (label or "").lower()
    for bucket, marker in STAGE_PRIORITY:
        if marker in text:
            return bucket
    return None


def classify_trial_deals(trial_deals: List[dict], stage_labels: Dict[str, str]) -> TrialBuckets:
    buckets = TrialBuckets()
    for deal in trial_deals:
        stage_id = _props(deal).get("dealstage")
        bucket = classify_stage(stage_labels.get(str(stage_id), ""))
        if bucket is not None:
            getattr(buckets, bucket.value).append(deal)
    return buckets


def derive_health_signals(buckets: TrialBuckets) -> HealthSignals:
    """Independent signals; more than one may hold for the same contact."""
    return HealthSignals(
        has_active_subscription=bool(buckets.converted) and not buckets.cancelled,
        has_cancelled_subscription=bool(buckets.cancelled),
        has_unconverted_trial=bool(buckets.ended),
    )


# ----------------------------------------------------------------------
# Aggregates
# ----------------------------------------------------------------------

def total_amount(deals: List[dict]) -> float:
    return sum(parse_amount(_props(deal).get("amount")) for deal in deals)


def latest_createdate(deals: List[dict]) -> Optional[str]:
    """Raw createdate of the most recently created deal, or None."""
    if not deals:
        return None
    latest = max(deals, key=lambda d: parse_hubspot_date(_props(d).get("createdate")) or EPOCH)
    value = _props(latest).get("createdate")
    return str(value) if value else None


def days_since(value: Optional[str], now: datetime) -> Optional[int]:
    parsed = parse_hubspot_date(value)
    if parsed is None:
        return None
    return math.floor((now - parsed).total_seconds() / SECONDS_PER_DAY)


def build_snapshot(
    contact: Optional[dict],
    hardware_deals: List[dict],
    trial_deals: List[dict],
    stage_labels: Dict[str, str],
    hardware_units: int,
) -> CustomerHealthSnapshot:
    buckets = classify_trial_deals(trial_deals, stage_labels)
    return CustomerHealthSnapshot(
        contact=contact,
        hardware_deals=hardware_deals,
        trial_deals=trial_deals,
        buckets=buckets,
        signals=derive_health_signals(buckets),
        hardware_units=hardware_units,
        hardware_value=total_amount(hardware_deals),
        trial_value=total_amount(trial_deals),
        latest_hardware_purchase=latest_createdate(hardware_deals),
        latest_trial=latest_createdate(trial_deals),
    )


# ----------------------------------------------------------------------
# Rendering
# ----------------------------------------------------------------------

def render_customer_summary(snapshot: CustomerHealthSnapshot, now: Optional[datetime] = None) -> str:
    """Render the fixed-structure customer profile block."""
    now = now or datetime.now(timezone.utc)
    contact = _props(snapshot.contact)
    signals = snapshot.signals
    buckets = snapshot.buckets
    has_trials = bool(snapshot.trial_deals)

    health_lines = []
    if signals.has_active_subscription:
        health_lines.append("- [ACTIVE] HAS ACTIVE SUBSCRIPTION (deal stage: Converted (Active Subscription))")
    if signals.has_cancelled_subscription:
        health_lines.append("- [CANCELLED] SUBSCRIPTION CANCELLED (deal stage: Cancelled)")
    if signals.has_unconverted_trial:
        health_lines.append("- [WARNING] TRIAL ENDED WITHOUT SUBSCRIPTION (deal stage: Trial Ended)")
    if has_trials and not (
        signals.has_active_subscription
        or signals.has_cancelled_subscription
        or signals.has_unconverted_trial
    ):
        health_lines.append("- [PENDING] Trial in progress")
    if not has_trials:
        health_lines.append("- No trials yet")

    risk_lines = []
    if signals.has_cancelled_subscription:
        risk_lines.append("- HIGH RISK: Customer had a subscription but cancelled it")
    if signals.has_unconverted_trial:
        risk_lines.append("- MEDIUM RISK: Customer completed trial but did not convert to subscription")
    if signals.has_active_subscription:
        risk_lines.append("- LOW RISK: Customer has active subscription (converted trial)")
    if not has_trials and snapshot.hardware_units > 0:
        risk_lines.append("- OPPORTUNITY: Customer has hardware but has not started a trial")

    hardware_days = days_since(snapshot.latest_hardware_purchase, now)
    trial_days = days_since(snapshot.latest_trial, now)
    name = f"{contact.get('firstname') or ''} {contact.get('lastname') or ''}".strip()

    lines = [
        f"Customer Profile for {name or 'Unknown'} ({contact.get('email') or 'N/A'}):",
        "",
        "Hardware Purchases:",
        f"- Total thermostats purchased: {snapshot.hardware_units}",
        f"- Total hardware value: ${snapshot.hardware_value:.2f}",
        f"- Latest purchase date: {snapshot.latest_hardware_purchase or 'No purchases'}",
        "",
        "Trial & Subscription Status (based on deal stages):",
        f"- Total trials: {len(snapshot.trial_deals)}",
        f"- Active trials: {len(buckets.active)}",
        f"- Converted trials (active subscription): {len(buckets.converted)}",
        f"- Trial ended (no subscription): {len(buckets.ended)}",
        f"- Cancelled subscriptions: {len(buckets.cancelled)}",
        f"- Total trial value: ${snapshot.trial_value:.2f}",
        f"- Latest trial date: {snapshot.latest_trial or 'No trials'}",
        "",
        "Subscription Health:",
        *health_lines,
        "",
        "Key Dates:",
        f"- Customer since: {contact.get('createdate') or 'Unknown'}",
        f"- Days since last hardware purchase: {hardware_days if hardware_days is not None else 'N/A'}",
        f"- Days since last trial: {trial_days if trial_days is not None else 'N/A'}",
        "",
        "Churn Risk Indicators:",
        *risk_lines,
    ]
    return "\n".join(lines)


INSIGHT_INSTRUCTIONS = """Based on this customer data, provide a concise AI Customer Health Insight analysis. Return your response as a JSON object with the following structure:
{
  "likelihoodToUpgrade": "Low/Medium/High with percentage (e.g., 'High (85%)')",
  "riskOfChurn": "Low/Medium/High with percentage (e.g., 'Medium (45%)')",
  "suggestedAction": "A specific, actionable marketing or sales recommendation that includes which HubSpot AI tools to use for execution (e.g., 'Use HubSpot AI Content Writer to create personalized email campaign', 'Leverage ChatSpot AI to analyze customer engagement patterns', 'Use HubSpot AI Email Assistant to draft follow-up sequences', 'Utilize HubSpot AI-powered workflows to automate re-engagement')",
  "justification": "A brief 2-3 sentence explanation of the insights"
}

Focus on:
- Their engagement level (hardware ownership, trial activity)
- Deal stage analysis: Converted (Active Subscription) = active subscription (low churn risk), Trial Ended = no subscription (medium churn risk), Cancelled = cancelled subscription (high churn risk)
- Conversion patterns (trial to subscription based on deal stages)
- Time-based signals (recent activity vs. inactivity)
- Risk factors based on deal stages (cancelled deals = high risk, trial ended = medium risk, converted (active subscription) = low risk)
- Opportunities (upsell potential, re-engagement needs)

IMPORTANT: Use the deal stage information to determine churn risk:
- "Converted (Active Subscription)" stage = customer has active subscription, successful trial conversion (LOW churn risk)
- "Trial Ended" stage = trial ended without converting to subscription (MEDIUM churn risk - opportunity to re-engage)
- "Cancelled" stage = customer had subscription but cancelled it (HIGH churn risk - needs immediate attention)

IMPORTANT: In your suggestedAction field, you MUST recommend specific HubSpot AI tools that sales and marketing teams can use to tactically execute on the suggestion. Examples include:
- HubSpot AI Content Writer (for creating personalized content)
- ChatSpot AI (for data analysis and insights)
- HubSpot AI Email Assistant (for drafting emails)
- HubSpot AI-powered Workflows (for automation)
- HubSpot AI Chatbot (for customer engagement)
- HubSpot AI Sales Assistant (for sales recommendations)
- HubSpot AI Marketing Hub features (for campaign optimization)

Be specific and actionable in your recommendations, always tying them to HubSpot AI tool capabilities."""


def build_insight_prompt(summary: str) -> str:
    return f"{summary}\n\n{INSIGHT_INSTRUCTIONS}"
