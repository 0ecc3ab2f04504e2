"""Automation schemas: a tagged union keyed by automation type.

Each variant carries its own trigger and action models, so a schedule rule can
never be stored with a webhook trigger. Rows from the backend hold trigger and
action as JSON documents; AUTOMATION_ADAPTER validates them into the variant
matching the row's ``type``.
"""
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (BaseModel, ConfigDict, Field, TypeAdapter,
                      model_validator)

from finance_hub.db import AutomationStatus

ComparisonOperator = Literal["gt", "gte", "lt", "lte", "eq"]


class _Part(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str


# ---- Triggers ----
class ScheduleTrigger(_Part):
    """Fires on a cron expression or every N minutes (exactly one of them)."""

    cron: str | None = None
    interval_minutes: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def _one_schedule(self) -> "ScheduleTrigger":
        if (self.cron is None) == (self.interval_minutes is None):
            raise ValueError("Provide exactly one of cron or interval_minutes")
        return self


class ConditionTrigger(_Part):
    """Fires when a watched metric crosses a threshold."""

    metric: str
    operator: ComparisonOperator
    threshold: float
    connection_id: str | None = None


class WebhookTrigger(_Part):
    """Fires when an external system posts the named event."""

    event: str
    secret: str | None = None


# ---- Actions ----
class ScheduledAction(_Part):
    kind: Literal["sync_connection", "send_report"]
    connection_id: str | None = None
    recipients: list[str] = Field(default_factory=list)


class NotifyAction(_Part):
    channel: Literal["in_app", "email"] = "in_app"
    message: str | None = None


class HttpRequestAction(_Part):
    url: str
    method: Literal["POST", "PUT", "PATCH"] = "POST"
    headers: dict[str, str] = Field(default_factory=dict)


# ---- Create payloads ----
class _AutomationDraft(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str | None = None
    status: AutomationStatus = AutomationStatus.DRAFT


class ScheduleAutomationCreate(_AutomationDraft):
    type: Literal["schedule"] = "schedule"
    trigger: ScheduleTrigger
    action: ScheduledAction


class ConditionAutomationCreate(_AutomationDraft):
    type: Literal["condition"] = "condition"
    trigger: ConditionTrigger
    action: NotifyAction


class WebhookAutomationCreate(_AutomationDraft):
    type: Literal["webhook"] = "webhook"
    trigger: WebhookTrigger
    action: HttpRequestAction


AutomationCreate = Annotated[
    Union[ScheduleAutomationCreate, ConditionAutomationCreate, WebhookAutomationCreate],
    Field(discriminator="type"),
]


# ---- Stored rows ----
class _StoredAutomation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    executions: int | None = 0
    last_execution: datetime | None = None
    next_execution: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def model_post_init(self, __context: Any) -> None:
        if self.executions is None:
            self.executions = 0


class ScheduleAutomation(ScheduleAutomationCreate, _StoredAutomation):
    model_config = ConfigDict(extra="ignore")


class ConditionAutomation(ConditionAutomationCreate, _StoredAutomation):
    model_config = ConfigDict(extra="ignore")


class WebhookAutomation(WebhookAutomationCreate, _StoredAutomation):
    model_config = ConfigDict(extra="ignore")


Automation = Annotated[
    Union[ScheduleAutomation, ConditionAutomation, WebhookAutomation],
    Field(discriminator="type"),
]


class AutomationUpdate(BaseModel):
    """Partial update; trigger/action are re-validated against the row's type."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    status: AutomationStatus | None = None
    trigger: dict[str, Any] | None = None
    action: dict[str, Any] | None = None
    last_execution: datetime | None = None
    next_execution: datetime | None = None
    executions: int | None = Field(default=None, ge=0)


AUTOMATION_ADAPTER: TypeAdapter[Automation] = TypeAdapter(Automation)
AUTOMATION_CREATE_ADAPTER: TypeAdapter[AutomationCreate] = TypeAdapter(AutomationCreate)
