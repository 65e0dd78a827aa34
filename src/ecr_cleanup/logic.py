"""Core logic for listing and cleaning ECR repositories."""

import math
from collections.abc import Callable
from dataclasses import dataclass, field

from loguru import logger

from ecr_cleanup.base import (
    Image,
    ImagePageRequest,
    RegistryClient,
    Repository,
    RepositoryPageRequest,
)
from ecr_cleanup.errors import REMOTE_EXCEPTIONS, RemoteError
from ecr_cleanup.pagination import DEFAULT_MAX_PAGES, drain

# BatchDeleteImage accepts at most 100 image ids per call.
MAX_BATCH_SIZE = 100


@dataclass
class RetentionDecision:
    """Whether a repository met its threshold, and which images to delete."""

    act: bool
    victims: list[Image] = field(default_factory=list)


@dataclass
class RetentionPlan:
    repository_name: str
    images: list[Image]
    threshold: int
    count: int
    decision: RetentionDecision


def _pushed_at_key(image: Image) -> float:
    pushed_at = image.pushed_at
    if pushed_at is None or math.isnan(pushed_at):
        return 0.0
    return pushed_at


def sort_repositories(repositories: list[Repository]) -> list[Repository]:
    """Sort by name ascending. Repositories without a name go last."""
    return sorted(repositories, key=lambda r: (r.name is None, r.name or ""))


def sort_images(images: list[Image]) -> list[Image]:
    """Sort newest first. A missing push time counts as the epoch."""
    return sorted(images, key=_pushed_at_key, reverse=True)


def list_repositories(
    registry: RegistryClient,
    registry_id: str | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[Repository]:
    repositories = drain(
        RepositoryPageRequest(registry_id=registry_id),
        registry.list_repositories_page,
        operation="list repositories",
        not_found_message="no repositories found",
        max_pages=max_pages,
    )
    logger.debug(f"Found {len(repositories)} repositories")
    return sort_repositories(repositories)


def list_images(
    registry: RegistryClient,
    repository_name: str,
    registry_id: str | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> list[Image]:
    images = drain(
        ImagePageRequest(repository_name=repository_name, registry_id=registry_id),
        registry.list_images_page,
        operation="list images",
        not_found_message=f"no images found in repository {repository_name}",
        max_pages=max_pages,
    )
    logger.debug(f"Found {len(images)} images in {repository_name}")
    return sort_images(images)


def evaluate_retention(
    images: list[Image], threshold: int, count: int
) -> RetentionDecision:
    """Select the `count` oldest images once `threshold` images exist.

    `images` must be sorted newest first, as returned by sort_images.
    """
    if threshold < 0 or count < 0:
        raise ValueError("threshold and count must not be negative")

    if len(images) < threshold:
        return RetentionDecision(act=False)

    selected = min(count, len(images))
    return RetentionDecision(act=True, victims=images[len(images) - selected :])


def delete_images(
    registry: RegistryClient,
    repository_name: str,
    victims: list[Image],
    registry_id: str | None = None,
    batch_size: int = MAX_BATCH_SIZE,
) -> int:
    """Delete images by digest in chunks of at most `batch_size`.

    Chunks already deleted are not restored when a later call fails.
    Returns the number of images the service reports as deleted.
    """
    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")

    digests = []
    for image in victims:
        if image.digest is None:
            logger.warning(f"Skipping image without digest in {repository_name}")
            continue
        digests.append(image.digest)

    deleted = 0
    for start in range(0, len(digests), batch_size):
        chunk = digests[start : start + batch_size]
        try:
            removed, failures = registry.batch_delete_images(
                repository_name, chunk, registry_id=registry_id
            )
        except REMOTE_EXCEPTIONS as e:
            raise RemoteError(f"Could not delete images: {e}") from e

        for failure in failures:
            logger.warning(f"Could not delete image from {repository_name}: {failure}")
        for digest in removed:
            logger.info(f"Deleted {repository_name}@{digest}")
        deleted += len(removed)

    return deleted


def create_retention_plan(
    registry: RegistryClient,
    repository_name: str,
    threshold: int,
    count: int,
    registry_id: str | None = None,
    max_pages: int = DEFAULT_MAX_PAGES,
) -> RetentionPlan:
    images = list_images(registry, repository_name, registry_id, max_pages)
    decision = evaluate_retention(images, threshold, count)
    if decision.act:
        logger.info(
            f"Repository {repository_name} met threshold of {threshold} images. "
            f"Deleting the oldest {count} images."
        )
    else:
        logger.info(
            f"Repository {repository_name} has {len(images)} images, "
            f"below threshold of {threshold}. Nothing to delete."
        )
    return RetentionPlan(repository_name, images, threshold, count, decision)


def execute_plan(
    registry: RegistryClient,
    plan: RetentionPlan,
    dry_run: bool,
    registry_id: str | None = None,
    batch_size: int = MAX_BATCH_SIZE,
) -> int:
    victims = plan.decision.victims
    if not victims:
        logger.info("No images to delete")
        return 0

    if dry_run:
        logger.info(f"DRY RUN: Would delete {len(victims)} images")
        for image in victims:
            logger.info(f"DRY RUN: {plan.repository_name}@{image.digest}")
        return 0

    deleted = delete_images(
        registry, plan.repository_name, victims, registry_id, batch_size
    )
    logger.info(f"Deleted: {deleted} of {len(victims)} images")
    return deleted


def clean_repository(
    registry: RegistryClient,
    repository_name: str,
    threshold: int,
    count: int,
    registry_id: str | None = None,
    dry_run: bool = False,
    max_pages: int = DEFAULT_MAX_PAGES,
    batch_size: int = MAX_BATCH_SIZE,
    report: Callable[[RetentionPlan, int], None] | None = None,
) -> int:
    """List, sort, decide and delete. Returns the number of images removed.

    `report` is called with the plan and the deleted count once deletion ends.
    """
    plan = create_retention_plan(
        registry, repository_name, threshold, count, registry_id, max_pages
    )
    deleted = execute_plan(registry, plan, dry_run, registry_id, batch_size)
    if report is not None:
        report(plan, deleted)
    return deleted
