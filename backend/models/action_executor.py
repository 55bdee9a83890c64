"""
Action Executor - Runs a fired rule's action and finalizes its TriggerEvent.

Each handler returns the result string stored on the event. Any handler
exception marks the event failed with the error message; nothing is
re-raised to the batch driver.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from config.settings import settings
from helpers.errors import (
    CampaignNotFoundError,
    ConfigurationError,
    DataError,
    UnsupportedActionError,
)
from helpers.llm_client import ReasoningClient
from helpers.notifier import SUPPORTED_CHANNELS, Notifier
from helpers.stores import CampaignStore, EntityStore
from helpers.template import resolve_structure, resolve_template
from schemas.performance import Campaign
from schemas.triggers import (
    ApiCallAction,
    ChangeTargetingAction,
    DecreaseBudgetAction,
    GenerateContentAction,
    IncreaseBudgetAction,
    NotifyTeamAction,
    PauseCampaignAction,
    SendMessageAction,
    TriggerEvent,
    UpdateDataAction,
)

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION = "Automation alert: Campaign {campaign_id} triggered an alert requiring attention."
BODY_METHODS = ("POST", "PUT", "PATCH")

Handler = Callable[[Any, TriggerEvent, Dict[str, Any]], Awaitable[str]]


class ActionExecutor:
    """Dispatches trigger actions to their effect handlers."""

    def __init__(
        self,
        campaign_store: CampaignStore,
        notifier: Notifier,
        reasoning_client: Optional[ReasoningClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        entity_store: Optional[EntityStore] = None,
    ):
        self.campaign_store = campaign_store
        self.notifier = notifier
        self.reasoning_client = reasoning_client
        self.http_client = http_client
        self.entity_store = entity_store

        self._handlers: Dict[type, Handler] = {
            PauseCampaignAction: self._pause_campaign,
            IncreaseBudgetAction: self._change_budget,
            DecreaseBudgetAction: self._change_budget,
            ChangeTargetingAction: self._change_targeting,
            NotifyTeamAction: self._notify_team,
            SendMessageAction: self._send_message,
            ApiCallAction: self._api_call,
            UpdateDataAction: self._update_data,
            GenerateContentAction: self._generate_content,
        }

    @property
    def supported_actions(self) -> tuple:
        return tuple(self._handlers)

    async def execute(
        self,
        event: TriggerEvent,
        action: Any,
        context: Optional[Dict[str, Any]] = None,
    ) -> TriggerEvent:
        """
        Run the action and move the event from pending to processed or failed.

        Args:
            event: Pending event created for this fire
            action: The rule's action model
            context: Template context for message, URL and payload placeholders

        Returns:
            The same event, now terminal

        Raises:
            ValueError: The event was already finalized
        """
        if event.is_terminal:
            raise ValueError(f"Trigger event {event.id} already {event.status}")

        action_type = getattr(action, "action_type", type(action).__name__)
        try:
            result = await self.dispatch(action, event, context or {})
        except ConfigurationError as e:
            logger.error(f"[ACTION] Configuration error in rule {event.rule_id} ({action_type}): {e}")
            event.mark_failed(str(e))
        except Exception as e:
            logger.error(
                f"[ACTION] {action_type} failed for campaign {event.campaign_id} "
                f"(rule {event.rule_id}): {type(e).__name__}: {e}"
            )
            event.mark_failed(str(e) or type(e).__name__)
        else:
            logger.info(f"[ACTION] {action_type} for campaign {event.campaign_id}: {result}")
            event.mark_processed(result)
        return event

    async def dispatch(self, action: Any, event: TriggerEvent, context: Dict[str, Any]) -> str:
        handler = self._handlers.get(type(action))
        if handler is None:
            raise UnsupportedActionError(getattr(action, "action_type", type(action).__name__))
        return await handler(action, event, context)

    # =========================================================================
    # Campaign mutations
    # =========================================================================

    async def _require_campaign(self, campaign_id: str) -> Campaign:
        campaign = await self.campaign_store.get_campaign(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    async def _pause_campaign(self, action: PauseCampaignAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        campaign = await self._require_campaign(event.campaign_id)
        if campaign.status == "paused":
            return f"Campaign {campaign.id} already paused"
        await self.campaign_store.update_campaign(campaign.id, {"status": "paused"})
        return f"Campaign {campaign.id} paused successfully"

    async def _change_budget(self, action: Any, event: TriggerEvent, context: Dict[str, Any]) -> str:
        increase = isinstance(action, IncreaseBudgetAction)
        amount = settings.default_budget_change if action.amount is None else action.amount

        if amount <= 0 or (not increase and amount > 1):
            raise ConfigurationError(
                f"Invalid budget change amount {amount} for {action.action_type}"
            )

        campaign = await self._require_campaign(event.campaign_id)
        if campaign.budget is None:
            raise DataError(f"Campaign {campaign.id} has no budget")

        factor = 1 + amount if increase else 1 - amount
        new_budget = campaign.budget * factor
        await self.campaign_store.update_campaign(campaign.id, {"budget": new_budget})
        return f"Campaign budget {'increased' if increase else 'decreased'} to {new_budget:.2f}"

    async def _change_targeting(self, action: ChangeTargetingAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        return "Targeting changes not implemented yet"

    # =========================================================================
    # Notifications
    # =========================================================================

    async def _notify_team(self, action: NotifyTeamAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        if action.message:
            message = resolve_template(action.message, context)
        else:
            message = DEFAULT_NOTIFICATION.format(campaign_id=event.campaign_id)
        await self.notifier.notify(message, action.recipients)
        return f"Notification sent: {message}"

    async def _send_message(self, action: SendMessageAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        if action.channel not in SUPPORTED_CHANNELS:
            raise ConfigurationError(f"Unsupported message channel: {action.channel}")
        recipient = resolve_template(action.recipient, context)
        message = resolve_template(action.message, context)
        await self.notifier.send(recipient, message, action.channel)
        return f"Message sent to {recipient} via {action.channel}"

    # =========================================================================
    # Workflow actions
    # =========================================================================

    async def _api_call(self, action: ApiCallAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        method = action.method.upper()
        url = resolve_template(action.url, context)
        headers = {k: resolve_template(v, context) for k, v in action.headers.items()}

        request_kwargs: Dict[str, Any] = {"headers": headers}
        if method in BODY_METHODS and action.body is not None:
            body = resolve_structure(action.body, context)
            if isinstance(body, str):
                request_kwargs["content"] = body
            else:
                request_kwargs["json"] = body

        if self.http_client is not None:
            response = await self.http_client.request(method, url, **request_kwargs)
        else:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.request(method, url, **request_kwargs)

        response.raise_for_status()
        return f"API call {method} {url} returned {response.status_code}"

    async def _update_data(self, action: UpdateDataAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        entity_id = resolve_template(action.entity_id, context)
        data = resolve_structure(action.data, context)

        if action.entity == "campaign":
            await self.campaign_store.update_campaign(entity_id, data)
        elif self.entity_store is not None:
            await self.entity_store.update_entity(action.entity, entity_id, data)
        else:
            raise ConfigurationError(f"No store configured for entity: {action.entity}")

        return f"Updated {action.entity} {entity_id}"

    async def _generate_content(self, action: GenerateContentAction, event: TriggerEvent, context: Dict[str, Any]) -> str:
        if self.reasoning_client is None:
            raise ConfigurationError("generate_content requires a reasoning client")
        prompt = resolve_template(action.prompt_template, context)
        content = await self.reasoning_client.complete(
            prompt, model=action.model, max_tokens=action.max_tokens
        )
        return f"Generated content: {content.strip()}"
