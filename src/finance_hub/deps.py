"""FastAPI dependencies: resolve gateways and services from the app's container.

The lifespan (main.py) attaches the container to app.state; these getters are
used by Depends().
"""
from typing import Annotated

from fastapi import Depends, Request

from finance_hub.backend.core import AuthGatewayABC, DataGatewayABC
from finance_hub.services import AdminBootstrapper, UserProvisioner


def get_auth_gateway(request: Request) -> AuthGatewayABC:
    """Auth gateway with the service-role key (token checks, admin user creation)."""
    return request.app.state.container.admin_auth_gateway()


def get_user_data_gateway(request: Request) -> DataGatewayABC:
    """Data gateway meant to be scoped to the caller's token."""
    return request.app.state.container.function_data_gateway()


def get_user_provisioner(request: Request) -> UserProvisioner:
    return request.app.state.container.provisioner()


def get_admin_bootstrapper(request: Request) -> AdminBootstrapper:
    return request.app.state.container.admin_bootstrapper()


# Type aliases for route injection
AuthGatewayDep = Annotated[AuthGatewayABC, Depends(get_auth_gateway)]
UserDataGatewayDep = Annotated[DataGatewayABC, Depends(get_user_data_gateway)]
UserProvisionerDep = Annotated[UserProvisioner, Depends(get_user_provisioner)]
AdminBootstrapperDep = Annotated[AdminBootstrapper, Depends(get_admin_bootstrapper)]
