from __future__ import annotations

from datetime import datetime
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ProfileNotFound

from ecr_cleanup.base import (
    Image,
    ImagePageRequest,
    Page,
    RegistryClient,
    Repository,
    RepositoryPageRequest,
)
from ecr_cleanup.errors import ConfigError
from ecr_cleanup.settings import Settings


class ECRClient(RegistryClient):
    """Amazon Elastic Container Registry client.

    Credentials come from the standard AWS chain (environment, shared
    credentials file, instance profile); `aws_profile` selects a named profile.
    Retries and timeouts are left to botocore.
    """

    @classmethod
    def from_settings(cls, settings: Settings) -> ECRClient:
        try:
            session = boto3.session.Session(
                profile_name=settings.aws_profile, region_name=settings.aws_region
            )
            client = session.client("ecr")
        except ProfileNotFound as e:
            raise ConfigError(str(e)) from e
        except BotoCoreError as e:
            raise ConfigError(f"Could not create ECR client: {e}") from e
        return cls(client, settings.aws_region)

    def __init__(self, client: Any, region: str):
        self.client = client
        self.region = region

    def list_repositories_page(
        self, request: RepositoryPageRequest
    ) -> Page[Repository]:
        params: dict[str, Any] = {}
        if request.cursor is not None:
            params["nextToken"] = request.cursor
        if request.max_results is not None:
            params["maxResults"] = request.max_results
        if request.registry_id is not None:
            params["registryId"] = request.registry_id
        if request.repository_names is not None:
            params["repositoryNames"] = list(request.repository_names)

        response = self.client.describe_repositories(**params)

        repositories = response.get("repositories")
        items = (
            None
            if repositories is None
            else [
                Repository(r.get("repositoryName"), r.get("repositoryUri"))
                for r in repositories
            ]
        )
        return Page(items, response.get("nextToken"))

    def list_images_page(self, request: ImagePageRequest) -> Page[Image]:
        params: dict[str, Any] = {"repositoryName": request.repository_name}
        if request.cursor is not None:
            params["nextToken"] = request.cursor
        if request.max_results is not None:
            params["maxResults"] = request.max_results
        if request.registry_id is not None:
            params["registryId"] = request.registry_id
        if request.tag_status is not None:
            params["filter"] = {"tagStatus": request.tag_status}
        if request.image_digests is not None:
            params["imageIds"] = [{"imageDigest": d} for d in request.image_digests]

        response = self.client.describe_images(**params)

        details = response.get("imageDetails")
        items = None if details is None else [self._to_image(d) for d in details]
        return Page(items, response.get("nextToken"))

    def batch_delete_images(
        self,
        repository_name: str,
        digests: list[str],
        registry_id: str | None = None,
    ) -> tuple[list[str], list[str]]:
        params: dict[str, Any] = {
            "repositoryName": repository_name,
            "imageIds": [{"imageDigest": d} for d in digests],
        }
        if registry_id is not None:
            params["registryId"] = registry_id

        response = self.client.batch_delete_image(**params)

        # One entry per removed tag, so a digest can appear more than once.
        deleted = list(
            dict.fromkeys(
                i["imageDigest"]
                for i in response.get("imageIds", [])
                if i.get("imageDigest")
            )
        )
        failures = [
            f"{f.get('imageId', {}).get('imageDigest', 'n/a')}: "
            f"{f.get('failureCode', '')} {f.get('failureReason', '')}".rstrip()
            for f in response.get("failures", [])
        ]
        return deleted, failures

    @staticmethod
    def _to_image(detail: dict[str, Any]) -> Image:
        pushed_at = detail.get("imagePushedAt")
        if isinstance(pushed_at, datetime):
            pushed_at = pushed_at.timestamp()
        return Image(
            digest=detail.get("imageDigest"),
            pushed_at=pushed_at,
            size_bytes=detail.get("imageSizeInBytes"),
            tags=detail.get("imageTags") or [],
        )
