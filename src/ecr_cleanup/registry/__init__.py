from __future__ import annotations

from ecr_cleanup.base import RegistryClient
from ecr_cleanup.settings import Settings

from .ecr import ECRClient

__all__ = [
    "RegistryClient",
    "ECRClient",
    "init_registry",
]


def init_registry(settings: Settings) -> tuple[RegistryClient, str]:
    registry = ECRClient.from_settings(settings)
    account = settings.registry_id or "default"
    profile = settings.aws_profile or "default"
    info = f"ECR: {account} ({settings.aws_region}, profile={profile})"
    return registry, info
