"""DI container: configuration, gateways, services and the session store.

Create it with init_container(); tests override gateway providers, e.g.
``container.auth_gateway.override(providers.Object(fake))``.
"""
from dependency_injector import containers, providers

from finance_hub.backend.core import FileSessionStorage, MemorySessionStorage
from finance_hub.backend.sql import SqlGateway
from finance_hub.backend.supabase import PostgrestGateway, SupabaseAuthGateway
from finance_hub.client import HubClient
from finance_hub.db.sessions import DATABASE_URL, make_engine
from finance_hub.notifications import Notifier
from finance_hub.routing import Navigator, RouteGuard, Router
from finance_hub.services import (AdminBootstrapper, AutomationService,
                                  ConnectionService, QueryCache, RoleService,
                                  SecurityLogService, SettingsService,
                                  TransactionService, UserProvisioner)
from finance_hub.services.admin import (DEFAULT_ADMIN_EMAIL,
                                        DEFAULT_ADMIN_FULL_NAME)
from finance_hub.services.connections import DEFAULT_SYNC_DELAY_SECONDS
from finance_hub.session import SessionStore


def make_session_storage(path: str | None) -> MemorySessionStorage | FileSessionStorage:
    return FileSessionStorage(path) if path else MemorySessionStorage()


class Container(containers.DeclarativeContainer):
    config = providers.Configuration()

    # ---- backend ----
    engine = providers.Singleton(make_engine, config.database_url)
    session_storage = providers.Singleton(make_session_storage, config.session_file)

    auth_gateway = providers.Singleton(
        SupabaseAuthGateway,
        config.supabase_url,
        config.supabase_anon_key,
        storage=session_storage,
        timeout=config.http_timeout,
    )
    # user-facing data access; acts with the signed-in user's token
    data_gateway = providers.Selector(
        config.data_backend,
        postgrest=providers.Singleton(
            PostgrestGateway,
            config.supabase_url,
            config.supabase_anon_key,
            token_provider=auth_gateway.provided.access_token,
            timeout=config.http_timeout,
        ),
        sql=providers.Singleton(SqlGateway, engine),
    )

    # server-side (function handlers)
    admin_auth_gateway = providers.Singleton(
        SupabaseAuthGateway,
        config.supabase_url,
        config.supabase_anon_key,
        service_role_key=config.supabase_service_role_key,
        timeout=config.http_timeout,
    )
    service_data_gateway = providers.Selector(
        config.data_backend,
        postgrest=providers.Singleton(
            PostgrestGateway,
            config.supabase_url,
            config.supabase_service_role_key,
            timeout=config.http_timeout,
        ),
        sql=providers.Singleton(SqlGateway, engine),
    )
    function_data_gateway = providers.Selector(
        config.data_backend,
        postgrest=providers.Singleton(
            PostgrestGateway,
            config.supabase_url,
            config.supabase_anon_key,
            timeout=config.http_timeout,
        ),
        sql=providers.Singleton(SqlGateway, engine),
    )
    provisioner = providers.Singleton(UserProvisioner, service_data_gateway)
    admin_bootstrapper = providers.Singleton(
        AdminBootstrapper,
        admin_auth_gateway,
        service_data_gateway,
        provisioner,
        email=config.admin_email,
        full_name=config.admin_full_name,
    )

    # ---- client ----
    notifier = providers.Singleton(Notifier)
    navigator = providers.Singleton(Navigator)
    cache = providers.Singleton(QueryCache)

    connection_service = providers.Singleton(
        ConnectionService,
        auth_gateway,
        data_gateway,
        cache,
        notifier,
        sync_delay=config.sync_delay_seconds,
    )
    transaction_service = providers.Singleton(
        TransactionService, auth_gateway, data_gateway, cache, notifier
    )
    automation_service = providers.Singleton(
        AutomationService, auth_gateway, data_gateway, cache, notifier
    )
    settings_service = providers.Singleton(
        SettingsService, auth_gateway, data_gateway, cache, notifier
    )
    role_service = providers.Singleton(RoleService, auth_gateway, data_gateway, cache, notifier)
    security_log_service = providers.Singleton(
        SecurityLogService, auth_gateway, data_gateway, cache, notifier
    )

    client_provisioner = providers.Singleton(UserProvisioner, data_gateway)
    session_store = providers.Singleton(
        SessionStore,
        auth_gateway,
        data_gateway,
        client_provisioner,
        notifier,
        navigator,
        cache,
    )
    route_guard = providers.Singleton(
        RouteGuard,
        catch_all=config.catch_all,
        forbidden_mode=config.forbidden_mode,
    )
    router = providers.Singleton(
        Router,
        providers.Callable(lambda store: lambda: store.state, session_store),
        navigator,
        route_guard,
    )

    hub_client = providers.Singleton(
        HubClient,
        store=session_store,
        router=router,
        notifier=notifier,
        connections=connection_service,
        transactions=transaction_service,
        automations=automation_service,
        settings=settings_service,
        roles=role_service,
        security_logs=security_log_service,
    )


def load_config(container: Container) -> None:
    """Populate configuration from environment variables."""
    config = container.config
    config.supabase_url.from_env("SUPABASE_URL", default="http://localhost:54321")
    config.supabase_anon_key.from_env("SUPABASE_ANON_KEY", default="")
    config.supabase_service_role_key.from_env("SUPABASE_SERVICE_ROLE_KEY", default="")
    config.data_backend.from_env("DATA_BACKEND", default="postgrest")
    config.database_url.from_env("DATABASE_URL", default=DATABASE_URL)
    config.session_file.from_env("SESSION_FILE", default="")
    config.http_timeout.from_env("HTTP_TIMEOUT", default=10.0, as_=float)
    config.admin_email.from_env("ADMIN_EMAIL", default=DEFAULT_ADMIN_EMAIL)
    config.admin_full_name.from_env("ADMIN_FULL_NAME", default=DEFAULT_ADMIN_FULL_NAME)
    config.sync_delay_seconds.from_env(
        "SYNC_DELAY_SECONDS", default=DEFAULT_SYNC_DELAY_SECONDS, as_=float
    )
    config.catch_all.from_env("CATCH_ALL", default="not_found")
    config.forbidden_mode.from_env("FORBIDDEN_MODE", default="redirect")


def init_container() -> Container:
    """Create the container with configuration loaded from the environment."""
    container = Container()
    load_config(container)
    return container
