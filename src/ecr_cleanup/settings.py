from functools import lru_cache

from botocore.loaders import create_loader
from botocore.regions import EndpointResolver
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ecr_cleanup.logic import MAX_BATCH_SIZE
from ecr_cleanup.pagination import DEFAULT_MAX_PAGES

LOG_LEVELS = frozenset(
    {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
)


@lru_cache(maxsize=1)
def known_regions() -> frozenset[str]:
    # Bundled endpoint data only; profiles and credentials are never read.
    # The endpoint data keys ECR as "api.ecr".
    resolver = EndpointResolver(create_loader().load_data("endpoints"))
    return frozenset(
        region
        for partition in resolver.get_available_partitions()
        for region in resolver.get_available_endpoints("api.ecr", partition)
    )


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, extra="ignore"
    )

    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("aws_region", "AWS_DEFAULT_REGION"),
    )
    aws_profile: str | None = None
    registry_id: str | None = None

    dry_run: bool = False
    log_level: str = "INFO"

    max_pages: int = Field(default=DEFAULT_MAX_PAGES, ge=1)
    batch_size: int = Field(default=MAX_BATCH_SIZE, ge=1, le=MAX_BATCH_SIZE)

    github_step_summary: str | None = None

    @field_validator("dry_run", mode="before")
    @classmethod
    def _parse_bool(cls, v: str | bool) -> bool:
        return v if isinstance(v, bool) else v.lower() == "true"

    @field_validator("aws_region")
    @classmethod
    def _check_region(cls, v: str) -> str:
        if v not in known_regions():
            raise ValueError(f"unknown AWS region '{v}'")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        if v.upper() not in LOG_LEVELS:
            raise ValueError(
                f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}, got '{v}'"
            )
        return v.upper()
