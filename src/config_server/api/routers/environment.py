"""Environment API endpoints."""

from fastapi import APIRouter

from config_server.api.dependencies import EnvironmentServiceDep
from config_server.core.models.environment import Environment

router = APIRouter()


@router.get(
    "/{application}/{profile}",
    response_model=Environment,
    response_model_by_alias=True,
)
def find_default_label(
    application: str,
    profile: str,
    service: EnvironmentServiceDep,
) -> Environment:
    """Environment for the default label of each repository."""
    return service.find_one(application, profile)


@router.get(
    "/{application}/{profile}/{label}",
    response_model=Environment,
    response_model_by_alias=True,
)
def find_labelled(
    application: str,
    profile: str,
    label: str,
    service: EnvironmentServiceDep,
) -> Environment:
    """Environment for a label; ``(_)`` in the label stands for ``/``."""
    return service.find_one(application, profile, label)
