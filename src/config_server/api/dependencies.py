"""FastAPI dependencies for dependency injection."""

import threading
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from config_server.config import Settings, get_settings
from config_server.services.environment import EnvironmentService

_service_lock = threading.Lock()


def get_settings_dep() -> Settings:
    """Get application settings."""
    return get_settings()


def environment_service_for(app: FastAPI) -> EnvironmentService:
    """Get the app's environment service, creating it exactly once.

    Sync dependencies run on the threadpool, so concurrent first requests
    must not each build a repository graph over the same working copies.
    """
    service = getattr(app.state, "environment_service", None)
    if service is not None:
        return service
    with _service_lock:
        service = getattr(app.state, "environment_service", None)
        if service is None:
            service = _create_environment_service(get_settings())
            app.state.environment_service = service
    return service


def get_environment_service(request: Request) -> EnvironmentService:
    """Get the environment service from app state."""
    return environment_service_for(request.app)


def _create_environment_service(settings: Settings) -> EnvironmentService:
    from config_server.repositories.factory import RepositoryFactory

    factory = RepositoryFactory(settings)
    return EnvironmentService(factory.get_environment_repository())


# Type aliases for dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings_dep)]
EnvironmentServiceDep = Annotated[EnvironmentService, Depends(get_environment_service)]
