"""Database package: table models, enums and session management."""
from finance_hub.db.models import (TABLES, Automation, AutomationStatus,
                                   AutomationType, Connection,
                                   ConnectionStatus, Language, Role,
                                   SecurityLog, Theme, Transaction,
                                   TransactionStatus, TransactionType,
                                   UserProfile, UserRole, UserSettings)

__all__ = [
    "TABLES",
    "Automation",
    "AutomationStatus",
    "AutomationType",
    "Connection",
    "ConnectionStatus",
    "Language",
    "Role",
    "SecurityLog",
    "Theme",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "UserProfile",
    "UserRole",
    "UserSettings",
]
