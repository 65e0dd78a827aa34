from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from ecr_cleanup.settings import Settings

T = TypeVar("T")


@dataclass
class Repository:
    """ECR repository as returned by DescribeRepositories."""

    name: str | None
    uri: str | None = None


@dataclass
class Image:
    """Image manifest as returned by DescribeImages.

    `pushed_at` is seconds since the epoch. Absent values are kept as None so
    the sorting and retention logic can apply its own defaults.
    """

    digest: str | None
    pushed_at: float | None = None
    size_bytes: int | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class Page(Generic[T]):
    items: list[T] | None
    next_cursor: str | None = None


@dataclass(frozen=True)
class RepositoryPageRequest:
    cursor: str | None = None
    max_results: int | None = None
    registry_id: str | None = None
    repository_names: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ImagePageRequest:
    repository_name: str
    cursor: str | None = None
    max_results: int | None = None
    registry_id: str | None = None
    tag_status: str | None = None
    image_digests: tuple[str, ...] | None = None


class RegistryClient(ABC):
    """Abstract base class for the registry service."""

    @classmethod
    @abstractmethod
    def from_settings(cls, settings: Settings) -> RegistryClient:
        pass

    @abstractmethod
    def list_repositories_page(
        self, request: RepositoryPageRequest
    ) -> Page[Repository]:
        pass

    @abstractmethod
    def list_images_page(self, request: ImagePageRequest) -> Page[Image]:
        pass

    @abstractmethod
    def batch_delete_images(
        self,
        repository_name: str,
        digests: list[str],
        registry_id: str | None = None,
    ) -> tuple[list[str], list[str]]:
        """Delete images by digest.

        Returns (deleted digests, failure descriptions reported by the service).
        """
