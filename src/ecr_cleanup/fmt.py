"""Text rendering for repositories, images and cleanup summaries."""

import math
from datetime import UTC, datetime
from typing import Any

from tabulate import tabulate

from ecr_cleanup.base import Image, Repository
from ecr_cleanup.logic import RetentionPlan

NOT_AVAILABLE = "n/a"


def display_or_default(value: Any, default: str = NOT_AVAILABLE) -> str:
    return default if value is None else str(value)


def format_pushed_at(pushed_at: float | None) -> str:
    if pushed_at is None or math.isnan(pushed_at):
        return NOT_AVAILABLE
    return datetime.fromtimestamp(pushed_at, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _short_digest(digest: str | None) -> str:
    if digest is None:
        return NOT_AVAILABLE
    return digest[:19] if len(digest) > 19 else digest


def repositories_table(repositories: list[Repository]) -> str:
    rows = [
        [display_or_default(r.name), display_or_default(r.uri)] for r in repositories
    ]
    return tabulate(rows, headers=["Name", "URI"], tablefmt="simple")


def images_table(images: list[Image]) -> str:
    rows = [
        [
            display_or_default(i.digest),
            format_pushed_at(i.pushed_at),
            display_or_default(i.size_bytes),
            ", ".join(i.tags) if i.tags else "untagged",
        ]
        for i in images
    ]
    return tabulate(
        rows,
        headers=["Digest", "Pushed at", "Size", "Tags"],
        tablefmt="simple",
        disable_numparse=True,
    )


def write_summary(path: str, plan: RetentionPlan, deleted: int, dry_run: bool) -> None:
    """Write cleanup summary to GitHub Actions step summary."""
    victims = plan.decision.victims
    mode = "Dry Run" if dry_run else "Live"
    action = "To delete" if dry_run else "Deleted"

    metrics = tabulate(
        [
            ["Images: found", len(plan.images)],
            ["Images: selected", len(victims)],
            ["Images: deleted", deleted],
        ],
        headers=["Metric", "Count"],
        tablefmt="github",
    )

    with open(path, "w") as f:
        f.write(f"### Container Image Cleanup: {plan.repository_name}\n\n")
        f.write(f"{metrics}\n\n")
        f.write(
            f"**Mode:** {mode} | "
            f"**Threshold:** {plan.threshold} | **Count:** {plan.count}\n\n"
        )

        if victims:
            f.write(f"**{action}: {len(victims)} images**\n\n")
            rows = [
                [
                    f"`{_short_digest(i.digest)}`",
                    format_pushed_at(i.pushed_at),
                    ", ".join(i.tags) if i.tags else "untagged",
                ]
                for i in victims
            ]
            table = tabulate(
                rows,
                headers=["Digest", "Pushed at", "Tags"],
                tablefmt="github",
                disable_numparse=True,
            )
            f.write(f"{table}\n")
