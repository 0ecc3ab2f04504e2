"""Resource services over the data gateway, plus the shared query cache."""
from finance_hub.services.admin import (AdminBootstrapper,
                                       AdminBootstrapResult, AdminCredentials)
from finance_hub.services.automations import AutomationFilters, AutomationService
from finance_hub.services.cache import QueryCache
from finance_hub.services.connections import ConnectionFilters, ConnectionService
from finance_hub.services.provisioning import ProvisionResult, UserProvisioner
from finance_hub.services.resource_service import (BaseService, ListFilters,
                                                   ResourceService)
from finance_hub.services.roles import RoleService
from finance_hub.services.security_logs import (SecurityLogFilters,
                                                SecurityLogService)
from finance_hub.services.settings import SettingsService
from finance_hub.services.transactions import (TransactionFilters,
                                               TransactionService)

__all__ = [
    "AdminBootstrapResult",
    "AdminBootstrapper",
    "AdminCredentials",
    "AutomationFilters",
    "AutomationService",
    "BaseService",
    "ConnectionFilters",
    "ConnectionService",
    "ListFilters",
    "ProvisionResult",
    "QueryCache",
    "ResourceService",
    "RoleService",
    "SecurityLogFilters",
    "SecurityLogService",
    "SettingsService",
    "TransactionFilters",
    "TransactionService",
    "UserProvisioner",
]
