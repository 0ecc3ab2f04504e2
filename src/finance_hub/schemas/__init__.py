"""Pydantic schemas for auth, rows and payloads. Not persisted directly."""
from finance_hub.schemas.auth import (AuthChangeEvent, AuthSession, AuthUser,
                                      SessionEvent)
from finance_hub.schemas.automations import (AUTOMATION_ADAPTER,
                                             AUTOMATION_CREATE_ADAPTER,
                                             Automation, AutomationCreate,
                                             AutomationUpdate,
                                             ConditionAutomation,
                                             ConditionAutomationCreate,
                                             ConditionTrigger,
                                             HttpRequestAction, NotifyAction,
                                             ScheduleAutomation,
                                             ScheduleAutomationCreate,
                                             ScheduledAction, ScheduleTrigger,
                                             WebhookAutomation,
                                             WebhookAutomationCreate,
                                             WebhookTrigger)
from finance_hub.schemas.resources import (ConnectionCreate, ConnectionRead,
                                           ConnectionUpdate, ManagedUser,
                                           ProfileUpdate,
                                           SecurityEventCreate,
                                           SecurityLogRead, SettingsUpdate,
                                           TransactionCreate, TransactionRead,
                                           TransactionUpdate, UserProfileRead,
                                           UserRoleRead, UserSettingsRead)

__all__ = [
    "AUTOMATION_ADAPTER",
    "AUTOMATION_CREATE_ADAPTER",
    "AuthChangeEvent",
    "AuthSession",
    "AuthUser",
    "Automation",
    "AutomationCreate",
    "AutomationUpdate",
    "ConditionAutomation",
    "ConditionAutomationCreate",
    "ConditionTrigger",
    "ConnectionCreate",
    "ConnectionRead",
    "ConnectionUpdate",
    "HttpRequestAction",
    "ManagedUser",
    "NotifyAction",
    "ProfileUpdate",
    "ScheduleAutomation",
    "ScheduleAutomationCreate",
    "ScheduleTrigger",
    "ScheduledAction",
    "SecurityEventCreate",
    "SecurityLogRead",
    "SessionEvent",
    "SettingsUpdate",
    "TransactionCreate",
    "TransactionRead",
    "TransactionUpdate",
    "UserProfileRead",
    "UserRoleRead",
    "UserSettingsRead",
    "WebhookAutomation",
    "WebhookAutomationCreate",
    "WebhookTrigger",
]
