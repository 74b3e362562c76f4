"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.database import Database
from core.cache import CacheStore
from services.cache_client import CacheClient
from services.dashboard import DashboardService
from services.preferences import PreferencesService
from services.sessions import SessionService
from services.simulation_client import SimulationClient
from services.stats_events import StatsEventBus
from services.user_auth import UserAuthService
from services.workflows import WorkflowService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    settings = providers.Singleton(
        Settings,
    )

    database = providers.Singleton(
        Database,
        settings=settings
    )

    cache = providers.Singleton(
        CacheStore,
        database=database
    )

    simulation_client = providers.Singleton(
        SimulationClient,
        base_url=settings.provided.simulation_api_url,
        timeout=settings.provided.simulation_timeout
    )

    stats_events = providers.Singleton(
        StatsEventBus
    )

    # Services
    cache_client = providers.Factory(
        CacheClient,
        store=cache
    )

    session_service = providers.Factory(
        SessionService,
        database=database,
        settings=settings
    )

    user_auth_service = providers.Factory(
        UserAuthService,
        database=database,
        settings=settings,
        sessions=session_service
    )

    preferences_service = providers.Factory(
        PreferencesService,
        database=database
    )

    dashboard_service = providers.Factory(
        DashboardService,
        cache_client=cache_client,
        cache_store=cache,
        database=database,
        simulation=simulation_client,
        events=stats_events
    )

    workflow_service = providers.Factory(
        WorkflowService,
        simulation=simulation_client,
        cache_store=cache,
        dashboard=dashboard_service,
        sessions=session_service
    )


# Global container instance
container = Container()
