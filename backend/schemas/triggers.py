"""Trigger rule, action and event schemas."""

import re
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

Priority = Literal["high", "medium", "low"]
EventStatus = Literal["pending", "processed", "failed"]

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def _snake_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_snake(k): v for k, v in data.items()}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TriggerCondition(BaseModel):
    """Single comparison of a campaign metric against a threshold."""
    metric_name: str
    operator: Literal["less_than", "greater_than", "equal_to"]
    threshold: float
    unit: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return _snake_keys(data)
        return data


# =============================================================================
# Actions (tagged union keyed by action_type)
# =============================================================================

class _ActionBase(BaseModel):
    priority: Priority = "medium"


class PauseCampaignAction(_ActionBase):
    action_type: Literal["pause_campaign"] = "pause_campaign"


class IncreaseBudgetAction(_ActionBase):
    action_type: Literal["increase_budget"] = "increase_budget"
    # Fraction of the current budget; settings.default_budget_change when unset
    amount: Optional[float] = None


class DecreaseBudgetAction(_ActionBase):
    action_type: Literal["decrease_budget"] = "decrease_budget"
    amount: Optional[float] = None


class ChangeTargetingAction(_ActionBase):
    action_type: Literal["change_targeting"] = "change_targeting"
    targeting: Dict[str, Any] = Field(default_factory=dict)


class NotifyTeamAction(_ActionBase):
    action_type: Literal["notify_team"] = "notify_team"
    message: Optional[str] = None
    recipients: Optional[List[str]] = None


class SendMessageAction(_ActionBase):
    action_type: Literal["send_message"] = "send_message"
    recipient: str
    message: str
    channel: str = "email"


class ApiCallAction(_ActionBase):
    action_type: Literal["api_call"] = "api_call"
    url: str
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Union[Dict[str, Any], List[Any], str, None] = None


class UpdateDataAction(_ActionBase):
    action_type: Literal["update_data"] = "update_data"
    entity: str
    entity_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class GenerateContentAction(_ActionBase):
    action_type: Literal["generate_content"] = "generate_content"
    prompt_template: str
    model: Optional[str] = None
    max_tokens: Optional[int] = None


TriggerAction = Annotated[
    Union[
        PauseCampaignAction,
        IncreaseBudgetAction,
        DecreaseBudgetAction,
        ChangeTargetingAction,
        NotifyTeamAction,
        SendMessageAction,
        ApiCallAction,
        UpdateDataAction,
        GenerateContentAction,
    ],
    Field(discriminator="action_type"),
]

ACTION_TYPES = (
    "pause_campaign",
    "increase_budget",
    "decrease_budget",
    "change_targeting",
    "notify_team",
    "send_message",
    "api_call",
    "update_data",
    "generate_content",
)

_action_adapter = TypeAdapter(TriggerAction)


class UnsupportedAction(_ActionBase):
    """Action whose type the executor does not know; executing it fails the event."""
    action_type: str
    action_params: Dict[str, Any] = Field(default_factory=dict)


RuleAction = Union[TriggerAction, UnsupportedAction]


def parse_action(data: Any) -> Any:
    """
    Build an action model from stored rule data.

    Accepts both the flat shape ({"action_type": "increase_budget", "amount": 0.2})
    and the stored shape ({"actionType": ..., "actionParams": {...}}).
    Unknown action types become UnsupportedAction so the rule still loads.
    """
    if not isinstance(data, dict):
        return data

    flat = _snake_keys(data)
    params = flat.pop("action_params", None) or {}
    for key, value in _snake_keys(params).items():
        flat.setdefault(key, value)

    action_type = flat.get("action_type")
    if action_type in ACTION_TYPES:
        return _action_adapter.validate_python(flat)

    return UnsupportedAction(
        action_type=str(action_type),
        priority=flat.pop("priority", "medium"),
        action_params={k: v for k, v in flat.items() if k != "action_type"},
    )


class TriggerRule(BaseModel):
    """Operator-configured automation rule."""
    id: str
    name: str
    conditions: List[TriggerCondition] = Field(default_factory=list)
    action: RuleAction
    is_active: bool = True
    last_triggered: Optional[datetime] = None
    # Per-campaign fire times; the cooldown window is scoped per (rule, campaign)
    last_triggered_by_campaign: Dict[str, datetime] = Field(default_factory=dict)
    cooldown_period: Optional[float] = None  # hours

    @model_validator(mode="before")
    @classmethod
    def _accept_camel_case(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return _snake_keys(data)
        return data

    @field_validator("action", mode="before")
    @classmethod
    def _parse_action(cls, value: Any) -> Any:
        return parse_action(value)

    @field_validator("last_triggered")
    @classmethod
    def _utc_last_triggered(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @field_validator("last_triggered_by_campaign")
    @classmethod
    def _utc_by_campaign(cls, value: Dict[str, datetime]) -> Dict[str, datetime]:
        return {k: _as_utc(v) for k, v in value.items()}

    def cooldown_anchor(self, campaign_id: str) -> Optional[datetime]:
        """
        When the cooldown window for this campaign started.

        Rules seeded with only a rule-level last_triggered (no per-campaign
        history yet) apply it to every campaign.
        """
        if campaign_id in self.last_triggered_by_campaign:
            return self.last_triggered_by_campaign[campaign_id]
        if not self.last_triggered_by_campaign:
            return self.last_triggered
        return None


class TriggerEvent(BaseModel):
    """Audit record of one rule firing for one campaign."""
    id: str
    rule_id: str
    campaign_id: str
    triggered_at: datetime
    status: EventStatus = "pending"
    action_result: Optional[str] = None

    @classmethod
    def new(cls, rule_id: str, campaign_id: str, triggered_at: datetime) -> "TriggerEvent":
        return cls(
            id=f"trig_{uuid.uuid4().hex[:12]}",
            rule_id=rule_id,
            campaign_id=campaign_id,
            triggered_at=triggered_at,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status != "pending"

    def mark_processed(self, result: str) -> None:
        self._finalize("processed", result)

    def mark_failed(self, error: str) -> None:
        self._finalize("failed", error)

    def _finalize(self, status: EventStatus, result: str) -> None:
        if self.is_terminal:
            raise ValueError(f"Trigger event {self.id} already {self.status}")
        self.status = status
        self.action_result = result
