import argparse
import sys

from loguru import logger
from pydantic import ValidationError

from ecr_cleanup.errors import CleanupError, ConfigError
from ecr_cleanup.fmt import images_table, repositories_table, write_summary
from ecr_cleanup.logic import (
    RetentionPlan,
    clean_repository,
    list_images,
    list_repositories,
)
from ecr_cleanup.registry import init_registry
from ecr_cleanup.settings import Settings


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ecr-cleanup",
        description="List Amazon ECR repositories and delete their oldest images",
    )
    parser.add_argument(
        "-r", "--region", help="AWS region to operate in (default: us-east-1)"
    )
    parser.add_argument("--profile", help="AWS credentials profile name")
    parser.add_argument(
        "--registry-id", help="AWS account ID of the registry (default: caller's)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser(
        "list", help="List ECR repositories or their contents"
    )
    list_parser.add_argument(
        "repository", nargs="?", help="ECR repository to list the contents of"
    )

    clean_parser = subparsers.add_parser(
        "clean", help="Delete images from a repository"
    )
    clean_parser.add_argument(
        "repository", help="ECR repository whose images will be deleted"
    )
    clean_parser.add_argument(
        "-c",
        "--count",
        required=True,
        type=_non_negative_int,
        help="The number of images to delete if the threshold is met",
    )
    clean_parser.add_argument(
        "-t",
        "--threshold",
        required=True,
        type=_non_negative_int,
        help="The number of images that must exist before any will be deleted",
    )
    clean_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Show which images would be deleted without deleting them",
    )
    return parser


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format="<level>{level: <8}</level> {message}")


def load_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "aws_region": args.region,
        "aws_profile": args.profile,
        "registry_id": args.registry_id,
        "dry_run": getattr(args, "dry_run", None),
    }
    try:
        return Settings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def list_command(args: argparse.Namespace, settings: Settings) -> None:
    registry, registry_info = init_registry(settings)
    logger.debug(f"Registry: {registry_info}")

    if args.repository:
        images = list_images(
            registry, args.repository, settings.registry_id, settings.max_pages
        )
        print(images_table(images))
    else:
        repositories = list_repositories(
            registry, settings.registry_id, settings.max_pages
        )
        print(repositories_table(repositories))


def clean_command(args: argparse.Namespace, settings: Settings) -> None:
    registry, registry_info = init_registry(settings)
    logger.info(
        f"Registry: {registry_info} | Threshold={args.threshold}, "
        f"Count={args.count} | Dry run: {settings.dry_run}"
    )

    def report(plan: RetentionPlan, deleted: int) -> None:
        if settings.github_step_summary:
            write_summary(settings.github_step_summary, plan, deleted, settings.dry_run)

    clean_repository(
        registry,
        args.repository,
        args.threshold,
        args.count,
        registry_id=settings.registry_id,
        dry_run=settings.dry_run,
        max_pages=settings.max_pages,
        batch_size=settings.batch_size,
        report=report,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else "INFO")

    try:
        settings = load_settings(args)
        if not args.verbose:
            configure_logging(settings.log_level)

        if args.command == "list":
            list_command(args, settings)
        else:
            clean_command(args, settings)
    except CleanupError as e:
        logger.error(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
